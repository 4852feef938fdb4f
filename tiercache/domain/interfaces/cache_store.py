"""Interface for backing key-value stores.

Defines the narrow contract the rest of the library consumes. Any in-process
or network-addressable key-value engine can be plugged in by implementing it;
eviction, persistence and wire details stay inside the implementation.
"""

import abc
from typing import Any, Optional, Tuple

from ..models.common import Duration


class CacheStore(abc.ABC):
    """Abstract Base Class for cache stores."""

    def get(self, key: str, shape: Any = Any, default: Any = None) -> Any:
        """Retrieves a cached value.

        Args:
            key: The cache key.
            shape: The requested output shape (a type or typing annotation).
            default: Returned unchanged when the key does not exist.

        Returns:
            The cached value coerced into `shape`, or `default` if absent.
        """
        found, value = self.try_get(key, shape)
        return value if found else default

    @abc.abstractmethod
    def try_get(self, key: str, shape: Any = Any) -> Tuple[bool, Any]:
        """Retrieves a cached value and reports whether it exists.

        Args:
            key: The cache key.
            shape: The requested output shape.

        Returns:
            (True, value) if the key exists, otherwise (False, None).

        Raises:
            ConversionError: If the stored value cannot be coerced into `shape`.
            BackingStoreError: If the store itself fails.
        """
        pass

    @abc.abstractmethod
    def create(self, key: str, value: Any, ttl: Optional[Duration] = None) -> bool:
        """Stores a value only if the key does not exist yet.

        Args:
            key: The cache key.
            value: The value to store.
            ttl: Time-to-live; 0 or None means never expire.

        Returns:
            True if the value was stored, False if the key already existed.
        """
        pass

    @abc.abstractmethod
    def set(self, key: str, value: Any, ttl: Optional[Duration] = None) -> None:
        """Stores or replaces a value unconditionally.

        Args:
            key: The cache key.
            value: The value to store.
            ttl: Time-to-live; 0 or None means never expire.
        """
        pass

    @abc.abstractmethod
    def remove(self, key: str) -> bool:
        """Removes a key.

        Returns:
            True if a key was actually deleted, False if it did not exist.
        """
        pass

    @abc.abstractmethod
    def increment(self, key: str) -> int:
        """Adds 1 to an existing integer value.

        Returns:
            The value after the increment.

        Raises:
            NotFoundError: If the key does not exist.
            ConflictExhaustedError: If concurrent writers kept winning.
        """
        pass

    @abc.abstractmethod
    def increment_or_create(self, key: str, delta: int, ttl: Optional[Duration] = None) -> int:
        """Adds `delta` to a value, creating it with `delta` if absent.

        Args:
            key: The cache key.
            delta: The increment (negative to subtract); the initial value when absent.
            ttl: Time-to-live applied only when the key is created.

        Returns:
            The value after the operation.
        """
        pass
