"""
Customs duty estimator

Estimates the Guinean import duties on a CAF value:
DD, RTL and RDL on the CAF value, then TVS on the fiscal value
(CAF plus those three).
"""
import logging
from dataclasses import dataclass, asdict
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Optional, Union

from config.settings import settings

logger = logging.getLogger(__name__)

Amount = Union[int, float, Decimal]
WHOLE_GNF = Decimal("1")


def _to_gnf(value: Decimal) -> int:
    return int(value.quantize(WHOLE_GNF, rounding=ROUND_HALF_UP))


def _rate(value: float) -> Decimal:
    return Decimal(str(value))


@dataclass(frozen=True)
class DutyRates:
    dd: Decimal
    rtl: Decimal
    rdl: Decimal
    tvs: Decimal

    @classmethod
    def from_settings(cls) -> "DutyRates":
        return cls(
            dd=_rate(settings.RATE_DD),
            rtl=_rate(settings.RATE_RTL),
            rdl=_rate(settings.RATE_RDL),
            tvs=_rate(settings.RATE_TVS),
        )


@dataclass(frozen=True)
class DutyEstimate:
    """Duty breakdown, whole GNF"""
    caf: int
    dd: int
    rtl: int
    rdl: int
    fiscal_value: int
    tvs: int
    total: int

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)


def estimate_duties(
    fob: Amount,
    freight: Amount = 0,
    insurance: Amount = 0,
    rates: Optional[DutyRates] = None,
) -> DutyEstimate:
    """Estimate duties and taxes for a FOB value plus freight and insurance"""
    values = [Decimal(str(v)) for v in (fob, freight, insurance)]
    if any(v < 0 for v in values):
        raise ValueError("Amounts must not be negative")
    rates = rates or DutyRates.from_settings()

    caf = sum(values, Decimal(0))
    dd = caf * rates.dd
    rtl = caf * rates.rtl
    rdl = caf * rates.rdl
    fiscal_value = caf + dd + rtl + rdl
    tvs = fiscal_value * rates.tvs
    total = dd + rtl + rdl + tvs

    logger.debug(f"Duty estimate on CAF {caf}: total {total}")
    return DutyEstimate(
        caf=_to_gnf(caf),
        dd=_to_gnf(dd),
        rtl=_to_gnf(rtl),
        rdl=_to_gnf(rdl),
        fiscal_value=_to_gnf(fiscal_value),
        tvs=_to_gnf(tvs),
        total=_to_gnf(total),
    )
