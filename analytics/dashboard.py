"""
Operational dashboard: KPI counters, filter tabs and search
"""
from enum import Enum
from typing import Dict, Iterable, List, Optional

from core.models import Shipment, ShipmentStatus

TRANSIT_STATES = frozenset({ShipmentStatus.OPENED, ShipmentStatus.PRE_CLEARANCE})
CUSTOMS_STATES = frozenset({ShipmentStatus.CUSTOMS_LIQUIDATION, ShipmentStatus.LIQUIDATION_PAID})


class FilterMode(str, Enum):
    ALL = "ALL"              # everything not yet delivered
    TRANSIT = "TRANSIT"
    CUSTOMS = "CUSTOMS"
    ALERTS = "ALERTS"
    ATTENTION = "ATTENTION"  # blocked, or waiting on the liquidation
    COMPLETED = "COMPLETED"


def kpi_stats(shipments: Iterable[Shipment]) -> Dict[str, int]:
    """Counters over undelivered shipments"""
    active = [s for s in shipments if not s.is_delivered]
    return {
        "active": len(active),
        "blocked": sum(1 for s in active if s.is_blocked),
        "customs": sum(1 for s in active if s.status in CUSTOMS_STATES),
        "transit": sum(1 for s in active if s.status in TRANSIT_STATES),
    }


def _matches_mode(shipment: Shipment, mode: FilterMode) -> bool:
    if mode == FilterMode.ALL:
        return not shipment.is_delivered
    if mode == FilterMode.TRANSIT:
        return shipment.status in TRANSIT_STATES
    if mode == FilterMode.CUSTOMS:
        return shipment.status in CUSTOMS_STATES
    if mode == FilterMode.ALERTS:
        return shipment.is_blocked
    if mode == FilterMode.ATTENTION:
        return shipment.is_blocked or shipment.status == ShipmentStatus.CUSTOMS_LIQUIDATION
    return shipment.is_delivered


def matches_query(shipment: Shipment, query: str) -> bool:
    """Case-insensitive match on tracking number, BL, client or container"""
    q = query.lower()
    fields = (
        shipment.tracking_number,
        shipment.bl_number,
        shipment.client_name,
        shipment.container_number or "",
    )
    return any(q in value.lower() for value in fields)


def filter_shipments(
    shipments: Iterable[Shipment],
    mode: FilterMode = FilterMode.ALL,
    query: Optional[str] = None,
) -> List[Shipment]:
    mode = FilterMode(mode)
    selected = [s for s in shipments if _matches_mode(s, mode)]
    if query and query.strip():
        selected = [s for s in selected if matches_query(s, query.strip())]
    return selected
