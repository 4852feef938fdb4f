"""Expiration policy producing a fresh, optionally jittered TTL per request.

Jitter spreads the expiry of keys written together so they do not all miss
at the same moment.
"""

import logging
import random
import threading
from typing import Optional

from tiercache.domain.errors import ValidationError
from tiercache.domain.models.common import NO_EXPIRATION, Duration, duration_to_millis

logger = logging.getLogger(__name__)


class Expiration:
    """A base TTL with an optional symmetric random jitter.

    Each call to next_ttl() returns base +/- a uniform draw in [0, jitter).
    A base of 0 means the key never expires.
    """

    def __init__(self, base: Duration, jitter: Duration = 0, rng: Optional[random.Random] = None):
        """Initializes the policy.

        Args:
            base: Base time-to-live (seconds or timedelta); 0 means never expire.
            jitter: Maximum random deviation from `base`; 0 disables jitter.
            rng: Random generator to draw from. A private one is created if omitted.

        Raises:
            ValidationError: If base or jitter is negative, or jitter exceeds base.
        """
        try:
            base_ms = duration_to_millis(base)
            jitter_ms = duration_to_millis(jitter)
        except TypeError as e:
            raise ValidationError(str(e)) from e

        if base_ms < 0:
            raise ValidationError("'base' must not be less than 0")
        if jitter_ms < 0:
            raise ValidationError("'jitter' must not be less than 0")
        if base_ms < jitter_ms:
            raise ValidationError("'base' must not be less than 'jitter'")

        self._base_ms = base_ms
        self._jitter_ms = jitter_ms
        self._rng = rng
        if self._rng is None and jitter_ms:
            self._rng = random.Random()
        self._lock = threading.Lock()

    @classmethod
    def never(cls) -> "Expiration":
        return cls(NO_EXPIRATION)

    @classmethod
    def from_milliseconds(cls, base: int, jitter: int = 0) -> "Expiration":
        return cls(base / 1000, jitter / 1000)

    @classmethod
    def from_seconds(cls, base: float, jitter: float = 0) -> "Expiration":
        return cls(base, jitter)

    @classmethod
    def from_minutes(cls, base: float, jitter: float = 0) -> "Expiration":
        return cls(base * 60, jitter * 60)

    @classmethod
    def from_hours(cls, base: float, jitter: float = 0) -> "Expiration":
        return cls(base * 3600, jitter * 3600)

    @property
    def base(self) -> float:
        """Base TTL in seconds."""
        return self._base_ms / 1000

    @property
    def jitter(self) -> float:
        """Maximum jitter in seconds."""
        return self._jitter_ms / 1000

    def next_ttl(self) -> float:
        """Returns a TTL in seconds for one write. 0 means never expire."""
        if self._base_ms == NO_EXPIRATION:
            return NO_EXPIRATION
        if not self._jitter_ms:
            return self.base

        # random.Random is not safe to share across threads without a lock.
        with self._lock:
            upward = self._rng.randrange(2) == 1
            draw = self._rng.randrange(self._jitter_ms)

        ttl_ms = self._base_ms + draw if upward else self._base_ms - draw
        return ttl_ms / 1000

    def __repr__(self) -> str:
        return f"Expiration(base={self.base}, jitter={self.jitter})"
