"""Backing store adapters and the tiered store."""

from .disk_store import DiskStore
from .factory import create_store, create_tiered_store
from .memory_store import MemoryStore
from .redis_store import RedisStore
from .tiered_store import TieredStore

__all__ = ["DiskStore", "MemoryStore", "RedisStore", "TieredStore", "create_store", "create_tiered_store"]
