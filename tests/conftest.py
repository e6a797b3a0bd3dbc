"""
Shared fixtures for the ledger tests
"""
import random
from datetime import datetime, timedelta

import pytest

from core.auth import AuthContext, Role
from core.models import CommodityType, CustomsRegime, DocumentType, ShipmentStatus
from services.shipment_service import ShipmentService
from services.tracking import TrackingNumberGenerator


class FakeClock:
    """Controllable replacement for datetime.now"""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def clock():
    return FakeClock(datetime(2025, 3, 14, 10, 30))


@pytest.fixture
def service(clock):
    return ShipmentService(
        tracking=TrackingNumberGenerator(rng=random.Random(42)),
        clock=clock,
        strict_provision_balance=False,
    )


@pytest.fixture
def shipment_data():
    return {
        "client_name": "Société Minière de Boké",
        "commodity_type": CommodityType.CONTAINER,
        "description": "Pièces détachées pour engins miniers",
        "origin": "Anvers, BE",
        "eta": "2025-04-02",
        "bl_number": "MEDU1234567",
        "shipping_line": "MSC",
        "container_number": "msku7654321",
        "customs_regime": CustomsRegime.IM4,
    }


@pytest.fixture
def shipment(service, shipment_data):
    return service.create_shipment(shipment_data)


@pytest.fixture
def at_liquidation(service, shipment):
    """A shipment whose pre-clearance documents are filed and that awaits liquidation"""
    service.advance_status(shipment.id, ShipmentStatus.PRE_CLEARANCE)
    service.add_document(shipment.id, {"name": "DDI", "type": DocumentType.DDI})
    service.add_document(shipment.id, {"name": "BSC", "type": DocumentType.BSC})
    return service.advance_status(shipment.id, ShipmentStatus.CUSTOMS_LIQUIDATION)


@pytest.fixture
def director():
    return AuthContext(user_id="u-dg", role=Role.DIRECTOR)


@pytest.fixture
def accountant():
    return AuthContext(user_id="u-compta", role=Role.ACCOUNTANT)


@pytest.fixture
def field_agent():
    return AuthContext(user_id="u-terrain", role=Role.FIELD_AGENT)


@pytest.fixture
def client_user():
    return AuthContext(user_id="u-client", role=Role.CLIENT)


@pytest.fixture
def at_port_exit(service, at_liquidation):
    """A shipment released by customs and loaded on a truck"""
    sid = at_liquidation.id
    service.add_expense(sid, {
        "description": "Avance client",
        "amount": 6_000_000,
        "category": "Autre",
        "type": "PROVISION",
        "paid": True,
    })
    service.declare(sid, "C-2025-0400", 5_000_000)
    service.pay_liquidation(sid)
    service.add_document(sid, {"name": "Bon à Enlever", "type": DocumentType.BAE})
    service.add_document(sid, {"name": "Chargement", "type": DocumentType.TRUCK_PHOTO})
    return service.advance_status(sid, ShipmentStatus.PORT_EXIT)
