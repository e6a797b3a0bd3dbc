"""
Tests for the dashboard counters and filters
"""
import pytest

from analytics.dashboard import FilterMode, filter_shipments, kpi_stats, matches_query
from core.models import DocumentType, ShipmentStatus


def _create(service, shipment_data, client, bl):
    data = dict(shipment_data, client_name=client, bl_number=bl)
    data.pop("container_number")
    return service.create_shipment(data)


@pytest.fixture
def fleet(service, shipment_data, at_port_exit):
    """One shipment per dashboard bucket"""
    delivered = service.deliver(at_port_exit.id, "Mamadou Diallo", "RC-1234-A")
    opened = _create(service, shipment_data, "Guinée Alimentaire SA", "CMAU5550001")

    blocked = _create(service, shipment_data, "Kindia Agro", "HLCU9990002")
    service.advance_status(blocked.id, ShipmentStatus.PRE_CLEARANCE)
    blocked = service.add_alert(blocked.id, "Document manquant")

    liquidation = _create(service, shipment_data, "Boké Trading", "MAEU3330003")
    service.advance_status(liquidation.id, ShipmentStatus.PRE_CLEARANCE)
    service.add_document(liquidation.id, {"name": "DDI", "type": DocumentType.DDI})
    service.add_document(liquidation.id, {"name": "BSC", "type": DocumentType.BSC})
    liquidation = service.advance_status(liquidation.id, ShipmentStatus.CUSTOMS_LIQUIDATION)

    return {
        "delivered": delivered,
        "opened": opened,
        "blocked": blocked,
        "liquidation": liquidation,
    }


def ids(shipments):
    return {s.id for s in shipments}


class TestKpiStats:
    """Test the dashboard counters"""

    def test_counts_exclude_delivered(self, fleet):
        assert kpi_stats(fleet.values()) == {
            "active": 3,
            "blocked": 1,
            "customs": 1,
            "transit": 2,
        }

    def test_empty(self):
        assert kpi_stats([]) == {"active": 0, "blocked": 0, "customs": 0, "transit": 0}


class TestFilters:
    """Test filter tabs and search"""

    @pytest.mark.parametrize("mode, expected", [
        (FilterMode.ALL, {"opened", "blocked", "liquidation"}),
        (FilterMode.TRANSIT, {"opened", "blocked"}),
        (FilterMode.CUSTOMS, {"liquidation"}),
        (FilterMode.ALERTS, {"blocked"}),
        (FilterMode.ATTENTION, {"blocked", "liquidation"}),
        (FilterMode.COMPLETED, {"delivered"}),
    ])
    def test_filter_modes(self, fleet, mode, expected):
        selected = filter_shipments(fleet.values(), mode)
        assert ids(selected) == {fleet[name].id for name in expected}

    def test_mode_accepts_plain_value(self, fleet):
        selected = filter_shipments(fleet.values(), "COMPLETED")
        assert ids(selected) == {fleet["delivered"].id}

    def test_search_is_case_insensitive(self, fleet):
        selected = filter_shipments(fleet.values(), FilterMode.ALL, "kindia")
        assert ids(selected) == {fleet["blocked"].id}

    def test_search_container_number(self, fleet):
        assert filter_shipments(fleet.values(), FilterMode.ALL, "mSkU") == []
        completed = filter_shipments(fleet.values(), FilterMode.COMPLETED, "mSkU")
        assert ids(completed) == {fleet["delivered"].id}

    def test_search_tracking_number(self, fleet):
        opened = fleet["opened"]
        assert matches_query(opened, opened.tracking_number.lower())
        selected = filter_shipments(fleet.values(), FilterMode.ALL, f"  {opened.tracking_number} ")
        assert ids(selected) == {opened.id}

    def test_blank_query_is_ignored(self, fleet):
        assert len(filter_shipments(fleet.values(), FilterMode.ALL, "   ")) == 3
