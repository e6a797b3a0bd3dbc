"""
Tracking number generation

Numbers read ``<regime>-<4 digits>-GN``. The random suffix is checked
against numbers already issued, so two shipments never share one.
"""
import logging
import random
from typing import Container, Optional

from config.settings import settings
from core.exceptions import TrackingNumberExhausted
from core.models import CustomsRegime

logger = logging.getLogger(__name__)

SUFFIX_MIN = 1000
SUFFIX_MAX = 9999


class TrackingNumberGenerator:
    """Random 4-digit tracking numbers with a collision check"""

    def __init__(self, rng: Optional[random.Random] = None, suffix: Optional[str] = None,
                 max_attempts: Optional[int] = None):
        self.rng = rng or random.Random()
        self.suffix = suffix or settings.TRACKING_SUFFIX
        self.max_attempts = max_attempts or settings.TRACKING_MAX_ATTEMPTS

    def format(self, regime: CustomsRegime, number: int) -> str:
        return f"{regime.value}-{number:04d}-{self.suffix}"

    def generate(self, regime: CustomsRegime, existing: Container[str]) -> str:
        """Return a tracking number not in ``existing``"""
        for _ in range(self.max_attempts):
            candidate = self.format(regime, self.rng.randint(SUFFIX_MIN, SUFFIX_MAX))
            if candidate not in existing:
                return candidate

        # Random draws keep colliding: the space is nearly full, scan it.
        logger.warning(f"Tracking number collisions for regime {regime.value}, scanning for a free number")
        for number in range(SUFFIX_MIN, SUFFIX_MAX + 1):
            candidate = self.format(regime, number)
            if candidate not in existing:
                return candidate

        raise TrackingNumberExhausted(f"No tracking number left for regime {regime.value}")
