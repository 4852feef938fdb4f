"""In-process expiring key-value store.

Values are kept exactly as given and only converted on read when a concrete
shape is requested. Expired entries are dropped lazily on access and swept in
bulk every `sweep_threshold` writes.
"""

import logging
import threading
import time
from typing import Any, Callable, Dict, NamedTuple, Optional, Tuple

from tiercache.core.conversion import DEFAULT_CONVERTER, Converter
from tiercache.domain.errors import ConflictExhaustedError, NotFoundError
from tiercache.domain.interfaces.cache_store import CacheStore
from tiercache.domain.models.common import Duration, duration_to_millis

logger = logging.getLogger(__name__)

DEFAULT_SWEEP_THRESHOLD = 1024
DEFAULT_MAX_RETRIES = 3


class _Entry(NamedTuple):
    value: Any
    expire_at: Optional[float]  # clock seconds, None = never
    version: int


class MemoryStore(CacheStore):
    """Thread-safe dictionary store with per-entry expiry."""

    def __init__(
        self,
        sweep_threshold: int = DEFAULT_SWEEP_THRESHOLD,
        max_retries: int = DEFAULT_MAX_RETRIES,
        clock: Callable[[], float] = time.monotonic,
        converter: Optional[Converter] = None,
    ):
        """Initializes the MemoryStore.

        Args:
            sweep_threshold: Number of writes between two sweeps of expired entries.
            max_retries: Attempts allowed for an optimistic increment.
            clock: Returns the current time in seconds; injectable for tests.
            converter: Converter used to reshape values on read.
        """
        self._data: Dict[str, _Entry] = {}
        self._lock = threading.Lock()
        self._clock = clock
        self._converter = converter or DEFAULT_CONVERTER
        self._sweep_threshold = max(1, sweep_threshold)
        self._max_retries = max(1, max_retries)
        self._writes = 0
        self._version = 0
        logger.debug(f"Initialized MemoryStore (sweep every {self._sweep_threshold} writes)")

    # --- Internal helpers (call with the lock held) ---

    def _expire_at(self, ttl: Optional[Duration]) -> Optional[float]:
        millis = duration_to_millis(ttl)
        if millis <= 0:
            return None
        return self._clock() + millis / 1000

    def _live_entry(self, key: str) -> Optional[_Entry]:
        entry = self._data.get(key)
        if entry is None:
            return None
        if entry.expire_at is not None and entry.expire_at <= self._clock():
            del self._data[key]
            logger.debug(f"MemoryStore EXPIRED key: {key}")
            return None
        return entry

    def _write(self, key: str, value: Any, expire_at: Optional[float]) -> None:
        self._version += 1
        self._data[key] = _Entry(value, expire_at, self._version)
        self._writes += 1
        if self._writes >= self._sweep_threshold:
            self._writes = 0
            self._sweep()

    def _sweep(self) -> int:
        now = self._clock()
        expired = [k for k, e in self._data.items() if e.expire_at is not None and e.expire_at <= now]
        for key in expired:
            del self._data[key]
        if expired:
            logger.debug(f"MemoryStore swept {len(expired)} expired entries")
        return len(expired)

    # --- CacheStore ---

    def try_get(self, key: str, shape: Any = Any) -> Tuple[bool, Any]:
        with self._lock:
            entry = self._live_entry(key)
        if entry is None:
            logger.debug(f"MemoryStore MISS for key: {key}")
            return False, None

        logger.debug(f"MemoryStore HIT for key: {key}")
        if shape is Any:
            return True, entry.value
        return True, self._converter.convert(entry.value, shape)

    def create(self, key: str, value: Any, ttl: Optional[Duration] = None) -> bool:
        with self._lock:
            if self._live_entry(key) is not None:
                return False
            self._write(key, value, self._expire_at(ttl))
            return True

    def set(self, key: str, value: Any, ttl: Optional[Duration] = None) -> None:
        with self._lock:
            self._write(key, value, self._expire_at(ttl))

    def remove(self, key: str) -> bool:
        with self._lock:
            if self._live_entry(key) is None:
                return False
            del self._data[key]
            return True

    def increment(self, key: str) -> int:
        """Adds 1 to an existing value using optimistic concurrency on the entry version."""
        for attempt in range(1, self._max_retries + 1):
            with self._lock:
                entry = self._live_entry(key)
            if entry is None:
                raise NotFoundError(key)

            new_value = self._converter.convert(entry.value, int) + 1

            with self._lock:
                current = self._live_entry(key)
                if current is None:
                    raise NotFoundError(key)
                if current.version == entry.version:
                    self._write(key, new_value, current.expire_at)
                    return new_value

            logger.debug(f"MemoryStore increment conflict on key: {key} (attempt {attempt})")

        raise ConflictExhaustedError(key, self._max_retries)

    def increment_or_create(self, key: str, delta: int, ttl: Optional[Duration] = None) -> int:
        with self._lock:
            entry = self._live_entry(key)
            if entry is None:
                self._write(key, delta, self._expire_at(ttl))
                return delta
            new_value = self._converter.convert(entry.value, int) + delta
            self._write(key, new_value, entry.expire_at)
            return new_value

    # --- Maintenance ---

    def purge_expired(self) -> int:
        """Removes every expired entry now. Returns the number removed."""
        with self._lock:
            return self._sweep()

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)
