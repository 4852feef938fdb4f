"""Two-level cache: a fast advisory tier in front of an authoritative slow tier.

Reads check the fast tier first and backfill it from the slow tier on a miss.
Writes go to the slow tier first and are mirrored into the fast tier with a
TTL drawn from the fast tier's Expiration. The slow tier decides the outcome
of create and remove, and its errors always propagate.
"""

import logging
from typing import Any, Optional, Tuple

from tiercache.core.expiration import Expiration
from tiercache.domain.errors import CacheError, UnsupportedOperationError, ValidationError
from tiercache.domain.interfaces.cache_store import CacheStore
from tiercache.domain.models.common import Duration

logger = logging.getLogger(__name__)


class TieredStore(CacheStore):
    """Composes a fast and a slow CacheStore into one CacheStore."""

    def __init__(self, fast: CacheStore, slow: CacheStore, expiration: Expiration):
        """Initializes the TieredStore.

        Args:
            fast: Advisory tier, usually in-process (e.g. MemoryStore).
            slow: Authoritative tier (e.g. RedisStore or DiskStore).
            expiration: TTL policy for entries written into the fast tier.

        Raises:
            ValidationError: If any argument is None.
        """
        if fast is None or slow is None:
            raise ValidationError("neither 'fast' nor 'slow' store can be None")
        if expiration is None:
            raise ValidationError("'expiration' must not be None")
        self.fast = fast
        self.slow = slow
        self.expiration = expiration

    def _mirror(self, key: str, value: Any, action: str) -> None:
        # Fast-tier failures never change the slow tier's outcome.
        try:
            self.fast.set(key, value, self.expiration.next_ttl())
            logger.debug(f"TieredStore {action} fast tier for key: {key}")
        except CacheError as e:
            logger.warning(f"TieredStore failed to {action} fast tier for key {key}: {e}")

    def try_get(self, key: str, shape: Any = Any) -> Tuple[bool, Any]:
        found, value = self.fast.try_get(key, shape)
        if found:
            logger.debug(f"TieredStore fast tier HIT for key: {key}")
            return True, value

        found, value = self.slow.try_get(key, shape)
        if not found:
            logger.debug(f"TieredStore MISS in both tiers for key: {key}")
            return False, None

        self._mirror(key, value, "backfill")
        return True, value

    def create(self, key: str, value: Any, ttl: Optional[Duration] = None) -> bool:
        if not self.slow.create(key, value, ttl):
            return False
        self._mirror(key, value, "mirror create into")
        return True

    def set(self, key: str, value: Any, ttl: Optional[Duration] = None) -> None:
        self.slow.set(key, value, ttl)
        self._mirror(key, value, "mirror set into")

    def remove(self, key: str) -> bool:
        try:
            return self.slow.remove(key)
        finally:
            try:
                self.fast.remove(key)
            except CacheError as e:
                logger.warning(f"TieredStore failed to remove key {key} from fast tier: {e}")

    def increment(self, key: str) -> int:
        raise UnsupportedOperationError(
            "TieredStore does not support increment: the two tiers cannot be updated atomically"
        )

    def increment_or_create(self, key: str, delta: int, ttl: Optional[Duration] = None) -> int:
        raise UnsupportedOperationError(
            "TieredStore does not support increment_or_create: the two tiers cannot be updated atomically"
        )
