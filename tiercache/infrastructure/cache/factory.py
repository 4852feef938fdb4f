"""Builds stores from configuration.

    store = create_tiered_store()           # MemoryStore in front of the configured backend
    users = CacheKeyBuilder("app", "user", 1, store)
"""

import logging
from typing import Optional

from tiercache.core.expiration import Expiration
from tiercache.domain.interfaces.cache_store import CacheStore
from tiercache.infrastructure.config import settings

from .disk_store import DiskStore
from .memory_store import MemoryStore
from .redis_store import RedisStore
from .tiered_store import TieredStore

logger = logging.getLogger(__name__)


def create_memory_store() -> MemoryStore:
    return MemoryStore(
        sweep_threshold=settings.get_memory_sweep_threshold(),
        max_retries=settings.get_increment_max_retries(),
    )


def create_store(backend: Optional[str] = None) -> CacheStore:
    """Creates a single store for `backend` ('memory', 'disk' or 'redis').

    Args:
        backend: Backend name. Defaults to the 'cache.backend' setting.

    Raises:
        ValueError: If the backend name is unknown.
    """
    backend = (backend or settings.get_cache_backend()).lower()
    logger.info(f"Creating '{backend}' cache store")

    if backend == "memory":
        return create_memory_store()
    if backend == "disk":
        return DiskStore(settings.get_disk_directory())
    if backend == "redis":
        return RedisStore.from_url(settings.get_redis_url(), max_retries=settings.get_increment_max_retries())
    raise ValueError(f"Unknown cache backend: {backend}")


def create_tiered_store(slow: Optional[CacheStore] = None) -> TieredStore:
    """Creates a TieredStore with an in-process fast tier.

    Args:
        slow: Authoritative tier. Defaults to create_store().
    """
    expiration = Expiration(settings.get_fast_tier_ttl(), settings.get_fast_tier_jitter())
    return TieredStore(create_memory_store(), slow if slow is not None else create_store(), expiration)
