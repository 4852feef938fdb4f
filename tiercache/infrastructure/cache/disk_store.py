"""Local persistent store backed by diskcache.

Values are written in their plain form (records become dicts, tuples become
lists) and reshaped with the converter on read. Increments use diskcache's
own atomic incr, which runs inside a SQLite transaction.
"""

import logging
from typing import Any, Optional, Tuple

import diskcache as dc

from tiercache.core.conversion import DEFAULT_CONVERTER, Converter
from tiercache.domain.errors import BackingStoreError, ConversionError, NotFoundError
from tiercache.domain.interfaces.cache_store import CacheStore
from tiercache.domain.models.common import Duration, duration_to_millis

logger = logging.getLogger(__name__)

DEFAULT_DIRECTORY = "tiercache_data"

_MISSING = object()


def _expire_seconds(ttl: Optional[Duration]) -> Optional[float]:
    millis = duration_to_millis(ttl)
    if millis <= 0:
        return None  # diskcache: no expiry
    return millis / 1000


class DiskStore(CacheStore):
    """CacheStore over a diskcache.Cache directory."""

    def __init__(
        self,
        directory: str = DEFAULT_DIRECTORY,
        cache: Optional[dc.Cache] = None,
        converter: Optional[Converter] = None,
    ):
        """Initializes the DiskStore.

        Args:
            directory: Directory of the cache files, created if missing.
            cache: An existing diskcache.Cache to use instead of opening `directory`.
            converter: Converter used for the stored plain form and reads.

        Raises:
            BackingStoreError: If the cache directory cannot be opened.
        """
        self._converter = converter or DEFAULT_CONVERTER
        if cache is not None:
            self._cache = cache
        else:
            try:
                self._cache = dc.Cache(directory, timeout=1)
            except (OSError, dc.Timeout) as e:
                raise BackingStoreError(f"failed to open disk cache at {directory}: {e}", e) from e
        logger.info(f"Initialized DiskStore at: {self._cache.directory}")

    @property
    def directory(self) -> str:
        return self._cache.directory

    def _wrap(self, operation: str, key: str, error: Exception) -> BackingStoreError:
        logger.error(f"DiskStore {operation} failed for key {key}: {error}")
        return BackingStoreError(f"disk cache {operation} failed for key '{key}': {error}", error)

    def try_get(self, key: str, shape: Any = Any) -> Tuple[bool, Any]:
        try:
            value = self._cache.get(key, default=_MISSING)
        except (OSError, dc.Timeout) as e:
            raise self._wrap("get", key, e) from e

        if value is _MISSING:
            logger.debug(f"DiskStore MISS for key: {key}")
            return False, None

        logger.debug(f"DiskStore HIT for key: {key}")
        return True, self._converter.convert(value, shape)

    def create(self, key: str, value: Any, ttl: Optional[Duration] = None) -> bool:
        plain = self._converter.to_plain(value)
        try:
            return self._cache.add(key, plain, expire=_expire_seconds(ttl))
        except (OSError, dc.Timeout) as e:
            raise self._wrap("add", key, e) from e

    def set(self, key: str, value: Any, ttl: Optional[Duration] = None) -> None:
        plain = self._converter.to_plain(value)
        try:
            self._cache.set(key, plain, expire=_expire_seconds(ttl))
        except (OSError, dc.Timeout) as e:
            raise self._wrap("set", key, e) from e

    def remove(self, key: str) -> bool:
        try:
            return self._cache.delete(key)
        except (OSError, dc.Timeout) as e:
            raise self._wrap("delete", key, e) from e

    def increment(self, key: str) -> int:
        try:
            return self._cache.incr(key, 1, default=None)
        except KeyError:
            raise NotFoundError(key) from None
        except TypeError as e:
            raise ConversionError(f"value of '{key}' is not an integer") from e
        except (OSError, dc.Timeout) as e:
            raise self._wrap("incr", key, e) from e

    def increment_or_create(self, key: str, delta: int, ttl: Optional[Duration] = None) -> int:
        try:
            value = self._cache.incr(key, delta, default=0)
            # Only the call that created the key applies the TTL; a concurrent
            # create-then-add at the boundary can leave the key without one.
            expire = _expire_seconds(ttl)
            if value == delta and expire is not None:
                self._cache.touch(key, expire=expire)
            return value
        except TypeError as e:
            raise ConversionError(f"value of '{key}' is not an integer") from e
        except (OSError, dc.Timeout) as e:
            raise self._wrap("incr", key, e) from e

    def close(self) -> None:
        self._cache.close()

    def __enter__(self) -> "DiskStore":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()
