"""
Tests for the lifecycle transition table
"""
import pytest

from core.exceptions import InvalidTransition, TransitionGuardError
from core.lifecycle import (
    LIFECYCLE_TRANSITIONS,
    STATUS_ORDER,
    has_reached,
    missing_documents,
    next_status,
    validate_transition,
)
from core.models import DocumentType, ShipmentStatus


class TestTransitionTable:
    """Test the forward-only transition table"""

    def test_each_state_admits_only_its_successor(self):
        for current, successor in zip(STATUS_ORDER, STATUS_ORDER[1:]):
            assert LIFECYCLE_TRANSITIONS[current] == successor

    def test_delivered_is_terminal(self):
        assert next_status(ShipmentStatus.DELIVERED) is None

    @pytest.mark.parametrize("current", list(STATUS_ORDER))
    def test_no_backward_or_same_state_transition(self, shipment, current):
        """Every earlier state and the current state itself are rejected"""
        at_state = shipment.model_copy(update={"status": current})
        for target in STATUS_ORDER[: STATUS_ORDER.index(current) + 1]:
            with pytest.raises(InvalidTransition):
                validate_transition(at_state, target)

    def test_skip_is_rejected(self, shipment):
        with pytest.raises(InvalidTransition) as exc_info:
            validate_transition(shipment, ShipmentStatus.DELIVERED)
        assert "OPENED → DELIVERED" in str(exc_info.value)


class TestTransitionGuards:
    """Test document guards on transitions"""

    def test_pre_clearance_has_no_guard(self, shipment):
        validate_transition(shipment, ShipmentStatus.PRE_CLEARANCE)

    def test_port_exit_needs_bae_and_truck_photo(self, shipment):
        granted = shipment.model_copy(update={"status": ShipmentStatus.BAE_GRANTED})

        assert missing_documents(granted, ShipmentStatus.PORT_EXIT) == {
            DocumentType.BAE,
            DocumentType.TRUCK_PHOTO,
        }
        with pytest.raises(TransitionGuardError) as exc_info:
            validate_transition(granted, ShipmentStatus.PORT_EXIT)
        assert exc_info.value.missing == ["BAE", "Photo Camion"]

    def test_has_reached(self, shipment):
        paid = shipment.model_copy(update={"status": ShipmentStatus.LIQUIDATION_PAID})
        assert has_reached(paid, ShipmentStatus.CUSTOMS_LIQUIDATION)
        assert has_reached(paid, ShipmentStatus.LIQUIDATION_PAID)
        assert not has_reached(paid, ShipmentStatus.BAE_GRANTED)
