"""Composite cache keys and the typed operations bound to them.

A CacheKeyBuilder is defined once per kind of cached item; each request
derives a KeyHandle from its component values:

    users = CacheKeyBuilder("app", "user", 1, store, Expiration.from_minutes(10, 1), shape=User)
    handle = users.key(42)          # key "app:user_42"
    user = handle.get()             # User or None
"""

import logging
from typing import Any, Optional, Tuple

from tiercache.domain.errors import KeyArityError, ValidationError
from tiercache.domain.interfaces.cache_store import CacheStore
from tiercache.domain.models.common import CacheKey, KeyNamespace, KeyPrefix

from .conversion import DEFAULT_CONVERTER, Converter
from .expiration import Expiration

logger = logging.getLogger(__name__)

NAMESPACE_SEPARATOR = ":"
COMPONENT_SEPARATOR = "_"


class CacheKeyBuilder:
    """Builds keys of the form <namespace>:<prefix>[_component]*."""

    def __init__(
        self,
        namespace: KeyNamespace,
        prefix: KeyPrefix,
        arity: int,
        store: CacheStore,
        expiration: Optional[Expiration] = None,
        shape: Any = Any,
        converter: Optional[Converter] = None,
    ):
        """Initializes the builder.

        Args:
            namespace: First key segment, must not be empty.
            prefix: Second key segment, must not be empty.
            arity: Exact number of components every key takes.
            store: Store that KeyHandle operations delegate to.
            expiration: TTL policy for writes; None means never expire.
            shape: Default shape values are read back as.
            converter: Renders key components. Defaults to the standard Converter.

        Raises:
            ValidationError: If an argument is invalid.
        """
        if not namespace or not prefix:
            raise ValidationError("neither 'namespace' nor 'prefix' can be empty")
        if store is None:
            raise ValidationError("'store' must not be None")
        if arity < 0:
            raise ValidationError("'arity' must not be less than 0")

        self.namespace = KeyNamespace(namespace)
        self.prefix = KeyPrefix(prefix)
        self.arity = arity
        self.store = store
        self.expiration = expiration if expiration is not None else Expiration.never()
        self.shape = shape
        self.converter = converter or DEFAULT_CONVERTER
        self._key_base = f"{namespace}{NAMESPACE_SEPARATOR}{prefix}"

    def key(self, *components: Any) -> "KeyHandle":
        """Builds the key for `components` and binds it to the store.

        Raises:
            KeyArityError: If the number of components differs from the arity.
            UnsupportedCategoryError: If a component cannot be rendered.
        """
        if len(components) != self.arity:
            raise KeyArityError(self.arity, len(components))
        return KeyHandle(self, self.build_key(*components))

    def build_key(self, *components: Any) -> CacheKey:
        """Renders the key string without binding it."""
        parts = [self._key_base]
        for component in components:
            parts.append(self.converter.to_key_string(component))
        return CacheKey(COMPONENT_SEPARATOR.join(parts))

    def __repr__(self) -> str:
        return f"CacheKeyBuilder({self._key_base!r}, arity={self.arity}, expiration={self.expiration!r})"


class KeyHandle:
    """A built key bound to its builder's store and expiration policy."""

    def __init__(self, builder: CacheKeyBuilder, key: CacheKey):
        self._builder = builder
        self.key = key

    @property
    def _store(self) -> CacheStore:
        return self._builder.store

    def _next_ttl(self) -> float:
        return self._builder.expiration.next_ttl()

    def _shape(self, shape: Any) -> Any:
        return self._builder.shape if shape is None else shape

    def get(self, shape: Any = None, default: Any = None) -> Any:
        """Returns the cached value, or `default` if the key is absent."""
        return self._store.get(self.key, self._shape(shape), default)

    def try_get(self, shape: Any = None) -> Tuple[bool, Any]:
        """Returns (True, value) if the key exists, otherwise (False, None)."""
        return self._store.try_get(self.key, self._shape(shape))

    def create(self, value: Any) -> bool:
        """Stores `value` only if the key is absent. Returns True if stored."""
        return self._store.create(self.key, value, self._next_ttl())

    def set(self, value: Any) -> None:
        self._store.set(self.key, value, self._next_ttl())

    def remove(self) -> bool:
        return self._store.remove(self.key)

    def increment(self) -> int:
        return self._store.increment(self.key)

    def increment_or_create(self, delta: int = 1) -> int:
        return self._store.increment_or_create(self.key, delta, self._next_ttl())

    def __str__(self) -> str:
        return self.key

    def __repr__(self) -> str:
        return f"KeyHandle({self.key!r})"
