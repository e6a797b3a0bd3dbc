"""
Shipment lifecycle state machine.

The seven customs steps advance strictly forward, one step at a time. The
document preconditions that the operator screens used to enforce by
disabling buttons are guards of the transition itself.
"""
from typing import Dict, FrozenSet, Optional, Set

from core.exceptions import InvalidTransition, TransitionGuardError
from core.models import Shipment, ShipmentStatus, DocumentType


STATUS_ORDER = (
    ShipmentStatus.OPENED,
    ShipmentStatus.PRE_CLEARANCE,
    ShipmentStatus.CUSTOMS_LIQUIDATION,
    ShipmentStatus.LIQUIDATION_PAID,
    ShipmentStatus.BAE_GRANTED,
    ShipmentStatus.PORT_EXIT,
    ShipmentStatus.DELIVERED,
)

# Single source of truth for lifecycle transitions
LIFECYCLE_TRANSITIONS: Dict[ShipmentStatus, Optional[ShipmentStatus]] = {
    current: (STATUS_ORDER[i + 1] if i + 1 < len(STATUS_ORDER) else None)
    for i, current in enumerate(STATUS_ORDER)
}

# Documents that must be on file before entering a state
REQUIRED_DOCUMENTS: Dict[ShipmentStatus, FrozenSet[DocumentType]] = {
    ShipmentStatus.CUSTOMS_LIQUIDATION: frozenset({DocumentType.DDI, DocumentType.BSC}),
    ShipmentStatus.BAE_GRANTED: frozenset({DocumentType.BAE}),
    ShipmentStatus.PORT_EXIT: frozenset({DocumentType.BAE, DocumentType.TRUCK_PHOTO}),
}

# States entered only through their dedicated operation
# (pay_liquidation and deliver), never by a plain status change.
OPERATION_OWNED_STATES = frozenset({
    ShipmentStatus.LIQUIDATION_PAID,
    ShipmentStatus.DELIVERED,
})


def status_index(status: ShipmentStatus) -> int:
    return STATUS_ORDER.index(status)


def has_reached(shipment: Shipment, status: ShipmentStatus) -> bool:
    return status_index(shipment.status) >= status_index(status)


def next_status(status: ShipmentStatus) -> Optional[ShipmentStatus]:
    return LIFECYCLE_TRANSITIONS[status]


def missing_documents(shipment: Shipment, target: ShipmentStatus) -> Set[DocumentType]:
    required = REQUIRED_DOCUMENTS.get(target, frozenset())
    return {doc_type for doc_type in required if not shipment.has_document(doc_type)}


def validate_transition(shipment: Shipment, target: ShipmentStatus) -> None:
    """
    Validate whether ``shipment`` may move to ``target``.

    Raises InvalidTransition for backward, skipping or same-state requests
    and TransitionGuardError when required documents are missing.
    """
    current = shipment.status
    if LIFECYCLE_TRANSITIONS.get(current) != target:
        raise InvalidTransition(current.name, target.name)

    missing = missing_documents(shipment, target)
    if missing:
        raise TransitionGuardError(current.name, target.name, (d.value for d in missing))
