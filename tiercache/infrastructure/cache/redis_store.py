"""Network key-value store backed by Redis.

Payloads are the JSON encoding of a value's plain form. Timestamps are
written as integer milliseconds and complex numbers as '(r+ii)' strings; the
converter restores them when a shape is requested on read.
"""

import json
import logging
from datetime import datetime
from typing import Any, Optional, Tuple

import redis

from tiercache.core.conversion import DEFAULT_CONVERTER, Converter
from tiercache.core.conversion.primitives import datetime_to_millis, format_complex
from tiercache.domain.errors import (
    BackingStoreError,
    ConflictExhaustedError,
    ConversionError,
    NotFoundError,
    ValidationError,
)
from tiercache.domain.interfaces.cache_store import CacheStore
from tiercache.domain.models.common import Duration, duration_to_millis

logger = logging.getLogger(__name__)

DEFAULT_MAX_RETRIES = 3


def _json_default(value: Any) -> Any:
    if isinstance(value, datetime):
        return datetime_to_millis(value)
    if isinstance(value, complex):
        return format_complex(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def _ttl_millis(ttl: Optional[Duration]) -> Optional[int]:
    millis = duration_to_millis(ttl)
    return millis if millis > 0 else None


class RedisStore(CacheStore):
    """CacheStore over a synchronous redis-py client."""

    def __init__(
        self,
        client: redis.Redis,
        max_retries: int = DEFAULT_MAX_RETRIES,
        converter: Optional[Converter] = None,
    ):
        """Initializes the RedisStore.

        Args:
            client: A connected redis.Redis (or compatible) client.
            max_retries: Attempts allowed for a WATCH/MULTI increment.
            converter: Converter used for payloads and reads.

        Raises:
            ValidationError: If client is None.
        """
        if client is None:
            raise ValidationError("'client' must not be None")
        self._client = client
        self._max_retries = max(1, max_retries)
        self._converter = converter or DEFAULT_CONVERTER

    @classmethod
    def from_url(cls, url: str, **kwargs: Any) -> "RedisStore":
        """Creates a store from a redis:// URL."""
        logger.info(f"Connecting RedisStore to {url}")
        return cls(redis.Redis.from_url(url), **kwargs)

    # --- Payload encoding ---

    def encode(self, value: Any) -> str:
        plain = self._converter.to_plain(value)
        try:
            return json.dumps(plain, default=_json_default, separators=(",", ":"))
        except (TypeError, ValueError) as e:
            raise ConversionError(f"cannot serialize {type(value).__name__}: {e}") from e

    def decode(self, payload: Any) -> Any:
        try:
            return json.loads(payload)
        except ValueError as e:
            raise ConversionError(f"stored payload is not valid JSON: {e}") from e

    def _wrap(self, operation: str, key: str, error: Exception) -> BackingStoreError:
        logger.error(f"RedisStore {operation} failed for key {key}: {error}")
        return BackingStoreError(f"redis {operation} failed for key '{key}': {error}", error)

    # --- CacheStore ---

    def try_get(self, key: str, shape: Any = Any) -> Tuple[bool, Any]:
        try:
            payload = self._client.get(key)
        except redis.RedisError as e:
            raise self._wrap("GET", key, e) from e

        if payload is None:
            logger.debug(f"RedisStore MISS for key: {key}")
            return False, None

        logger.debug(f"RedisStore HIT for key: {key}")
        return True, self._converter.convert(self.decode(payload), shape)

    def create(self, key: str, value: Any, ttl: Optional[Duration] = None) -> bool:
        payload = self.encode(value)
        try:
            return bool(self._client.set(key, payload, px=_ttl_millis(ttl), nx=True))
        except redis.RedisError as e:
            raise self._wrap("SET NX", key, e) from e

    def set(self, key: str, value: Any, ttl: Optional[Duration] = None) -> None:
        payload = self.encode(value)
        try:
            self._client.set(key, payload, px=_ttl_millis(ttl))
        except redis.RedisError as e:
            raise self._wrap("SET", key, e) from e

    def remove(self, key: str) -> bool:
        try:
            return self._client.delete(key) > 0
        except redis.RedisError as e:
            raise self._wrap("DEL", key, e) from e

    def increment(self, key: str) -> int:
        """Adds 1 to an existing key inside a WATCH/MULTI transaction.

        Raises:
            NotFoundError: If the key does not exist.
            ConflictExhaustedError: If the key kept changing under WATCH.
        """
        try:
            with self._client.pipeline() as pipe:
                for attempt in range(1, self._max_retries + 1):
                    try:
                        pipe.watch(key)
                        raw = pipe.get(key)
                        if raw is None:
                            raise NotFoundError(key)
                        try:
                            int(raw)
                        except ValueError:
                            raise ConversionError(f"value of '{key}' is not an integer") from None
                        pipe.multi()
                        pipe.incr(key)
                        return int(pipe.execute()[0])
                    except redis.WatchError:
                        logger.debug(f"RedisStore increment conflict on key: {key} (attempt {attempt})")
                        continue
        except redis.RedisError as e:
            raise self._wrap("INCR", key, e) from e

        raise ConflictExhaustedError(key, self._max_retries)

    def increment_or_create(self, key: str, delta: int, ttl: Optional[Duration] = None) -> int:
        try:
            value = int(self._client.incrby(key, delta))
            # Only the call that created the key applies the TTL; a concurrent
            # create-then-add at the boundary can leave the key without one.
            millis = _ttl_millis(ttl)
            if value == delta and millis is not None:
                self._client.pexpire(key, millis)
            return value
        except redis.ResponseError as e:
            raise ConversionError(f"value of '{key}' is not an integer: {e}") from e
        except redis.RedisError as e:
            raise self._wrap("INCRBY", key, e) from e
