"""Exception hierarchy shared by every layer.

All errors raised by tiercache derive from CacheError, so callers can catch
the whole family at once, while each class also derives from the closest
built-in exception (ValueError, LookupError, ...) for callers that do not
know about this package.
"""

from typing import Optional


class CacheError(Exception):
    """Base class for all tiercache errors."""


class ValidationError(CacheError, ValueError):
    """Raised when a constructor receives invalid arguments."""


class KeyArityError(ValidationError):
    """Raised when the number of key components differs from the builder's arity."""

    def __init__(self, expected: int, actual: int):
        self.expected = expected
        self.actual = actual
        super().__init__(f"expected {expected} key component(s), got {actual}")


class ConversionError(CacheError, ValueError):
    """Raised when a value cannot be coerced into the requested shape."""


class UnsupportedCategoryError(ConversionError, TypeError):
    """Raised when no conversion exists between two value categories."""


class NotFoundError(CacheError, LookupError):
    """Raised by increment() when the key does not exist."""

    def __init__(self, key: str):
        self.key = key
        super().__init__(f"cache key not found: {key}")


class UnsupportedOperationError(CacheError, NotImplementedError):
    """Raised when a store does not support an operation (e.g. TieredStore.increment)."""


class ConflictExhaustedError(CacheError):
    """Raised when an optimistic read-modify-write keeps conflicting."""

    def __init__(self, key: str, attempts: int):
        self.key = key
        self.attempts = attempts
        super().__init__(f"increment of '{key}' reached maximum number of retries ({attempts})")


class BackingStoreError(CacheError):
    """Wraps a failure reported by a backing store (network, disk, ...)."""

    def __init__(self, message: str, original_exception: Optional[BaseException] = None):
        self.original_exception = original_exception
        super().__init__(message)
