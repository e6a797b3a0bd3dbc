"""
Tests for the customs duty estimator
"""
from decimal import Decimal

import pytest

from services.customs_calculator import DutyRates, estimate_duties


class TestEstimateDuties:
    """Test duty estimation on the CAF value"""

    def test_fob_only(self):
        estimate = estimate_duties(1_000_000)

        assert estimate.to_dict() == {
            "caf": 1_000_000,
            "dd": 200_000,
            "rtl": 20_000,
            "rdl": 15_000,
            "fiscal_value": 1_235_000,
            "tvs": 222_300,
            "total": 457_300,
        }

    def test_freight_and_insurance_join_caf(self):
        estimate = estimate_duties(1_000_000, freight=200_000, insurance=50_000)

        assert estimate.caf == 1_250_000
        assert estimate.dd == 250_000
        assert estimate.rtl == 25_000
        assert estimate.rdl == 18_750
        assert estimate.fiscal_value == 1_543_750
        assert estimate.tvs == 277_875
        assert estimate.total == 571_625

    def test_rounds_to_whole_gnf(self):
        # CAF 1001: RDL 15.015, fiscal 1236.235, TVS 222.5223
        estimate = estimate_duties(1001)
        assert estimate.rdl == 15
        assert estimate.fiscal_value == 1236
        assert estimate.tvs == 223

    def test_custom_rates(self):
        rates = DutyRates(dd=Decimal("0.05"), rtl=Decimal("0"), rdl=Decimal("0"), tvs=Decimal("0"))
        estimate = estimate_duties(2_000_000, rates=rates)
        assert estimate.total == 100_000

    def test_zero_value(self):
        assert estimate_duties(0).total == 0

    @pytest.mark.parametrize("kwargs", [
        {"fob": -1},
        {"fob": 1000, "freight": -5},
        {"fob": 1000, "insurance": -0.5},
    ])
    def test_negative_amounts_rejected(self, kwargs):
        with pytest.raises(ValueError):
            estimate_duties(**kwargs)
