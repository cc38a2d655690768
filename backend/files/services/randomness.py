"""
Bonus randomness derived from the drand public randomness beacon.

The bonus is a cosmetic reward sweetener: the latest beacon value seeds a
linear congruential generator and one sample is scaled to [0, 100).
"""

import logging
from typing import Iterator
import requests
from django.conf import settings

logger = logging.getLogger(__name__)


LCG_MULTIPLIER = 1664525
LCG_INCREMENT = 1013904223
LCG_MODULUS = 0x100000000  # 2^32

BONUS_CEILING = 100


class BonusRandomnessService:
    """Produce a bounded pseudo-random bonus from the drand beacon."""

    DEFAULT_CHAIN_URL = 'https://api.drand.sh'
    DEFAULT_TIMEOUT = 5

    @classmethod
    def fetch_latest_randomness(cls) -> str:
        """
        Fetch the latest beacon randomness as a hex string.

        Returns:
            str: Hex randomness, or '' if the beacon could not be fetched
        """
        chain_url = getattr(settings, 'DRAND_CHAIN_URL', cls.DEFAULT_CHAIN_URL).rstrip('/')
        timeout = getattr(settings, 'DRAND_TIMEOUT', cls.DEFAULT_TIMEOUT)
        headers = {}
        if getattr(settings, 'DRAND_NO_CACHE', False):
            headers['Cache-Control'] = 'no-cache'

        try:
            response = requests.get(f"{chain_url}/public/latest", headers=headers, timeout=timeout)
            response.raise_for_status()
            randomness = response.json().get('randomness') or ''
            return str(randomness)
        except (requests.RequestException, ValueError, AttributeError) as e:
            logger.error(f"Error fetching randomness: {str(e)}")
            return ''

    @staticmethod
    def hex_to_seed(randomness: str) -> int:
        """First 32 bits of the hex string; 0 when empty or unparsable."""
        try:
            return int(randomness[:8], 16)
        except (TypeError, ValueError):
            return 0

    @staticmethod
    def lcg(seed: int) -> Iterator[float]:
        """Yield floats in [0, 1) from a 32-bit linear congruential generator."""
        state = seed % LCG_MODULUS
        while True:
            state = (LCG_MULTIPLIER * state + LCG_INCREMENT) % LCG_MODULUS
            yield state / LCG_MODULUS

    @classmethod
    def bonus_from_randomness(cls, randomness: str) -> int:
        sample = next(cls.lcg(cls.hex_to_seed(randomness)))
        return int(sample * BONUS_CEILING)

    @classmethod
    def get_bonus(cls) -> int:
        """
        Bonus points in [0, 100) for the latest beacon round.

        Never raises: a failed fetch falls back to seed 0.
        """
        bonus = cls.bonus_from_randomness(cls.fetch_latest_randomness())
        logger.debug(f"Beacon bonus: {bonus}")
        return bonus
