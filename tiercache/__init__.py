"""tiercache: typed cache keys, jittered expiration and a two-tier cache.

    from tiercache import CacheKeyBuilder, Expiration, MemoryStore

    counters = CacheKeyBuilder("app", "hits", 1, MemoryStore(), Expiration.from_minutes(5, 1), shape=int)
    counters.key("home").increment_or_create()
"""

from tiercache.core.conversion import Converter, case_insensitive_name_indexer, convert, to_bool, to_plain
from tiercache.core.expiration import Expiration
from tiercache.core.key_builder import CacheKeyBuilder, KeyHandle
from tiercache.domain.errors import (
    BackingStoreError,
    CacheError,
    ConflictExhaustedError,
    ConversionError,
    KeyArityError,
    NotFoundError,
    UnsupportedCategoryError,
    UnsupportedOperationError,
    ValidationError,
)
from tiercache.domain.interfaces.cache_store import CacheStore
from tiercache.domain.models.common import NO_EXPIRATION
from tiercache.infrastructure.cache import (
    DiskStore,
    MemoryStore,
    RedisStore,
    TieredStore,
    create_store,
    create_tiered_store,
)

__version__ = "0.1.0"

__all__ = [
    "BackingStoreError",
    "CacheError",
    "CacheKeyBuilder",
    "CacheStore",
    "ConflictExhaustedError",
    "ConversionError",
    "Converter",
    "DiskStore",
    "Expiration",
    "KeyArityError",
    "KeyHandle",
    "MemoryStore",
    "NO_EXPIRATION",
    "NotFoundError",
    "RedisStore",
    "TieredStore",
    "UnsupportedCategoryError",
    "UnsupportedOperationError",
    "ValidationError",
    "case_insensitive_name_indexer",
    "convert",
    "create_store",
    "create_tiered_store",
    "to_bool",
    "to_plain",
]
