"""Classification of source values and resolution of target shapes.

A source value is classified into a Category exactly once per conversion
step; a requested output shape (a type or typing annotation) is resolved into
an immutable CoercionTarget. The converter dispatches on these two tags only.
"""

import collections.abc
import dataclasses
import functools
import types
import typing
from datetime import datetime
from typing import Any, Optional, Tuple

from tiercache.domain.errors import UnsupportedCategoryError
from tiercache.domain.models.common import Category

# bool must come before int: bool is a subclass of int.
PRIMITIVE_TYPES = (bool, int, float, complex, str)

_SEQUENCE_ORIGINS = (list, collections.abc.Sequence, collections.abc.MutableSequence)
_MAPPING_ORIGINS = (dict, collections.abc.Mapping, collections.abc.MutableMapping)
_UNION_ORIGINS = (typing.Union, getattr(types, "UnionType", typing.Union))


@dataclasses.dataclass(frozen=True)
class RecordField:
    """One field of a record target. The shape is resolved lazily so that
    self-referencing dataclasses do not recurse at resolution time."""
    name: str
    shape: Any
    has_default: bool
    init: bool


@dataclasses.dataclass(frozen=True)
class CoercionTarget:
    """Destination of a conversion, derived from the caller's requested shape."""
    category: Category
    label: str
    shape: Any = None                   # concrete class to produce (int, list, tuple, dict, a dataclass, ...)
    base: Any = None                    # PRIMITIVE only: the builtin the shape derives from
    nullable: bool = False              # Optional[...]: None passes through
    element: Optional["CoercionTarget"] = None
    key: Optional["CoercionTarget"] = None
    value: Optional["CoercionTarget"] = None
    fields: Tuple[RecordField, ...] = ()


ANY_TARGET = CoercionTarget(Category.ANY, "Any")


def classify(value: Any) -> Category:
    """Returns the category of a non-None source value."""
    if isinstance(value, PRIMITIVE_TYPES):
        return Category.PRIMITIVE
    if isinstance(value, datetime):
        return Category.TIMESTAMP
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return Category.RECORD
    if isinstance(value, collections.abc.Mapping):
        return Category.MAPPING
    if isinstance(value, (list, tuple)):
        return Category.SEQUENCE
    return Category.UNSUPPORTED


def shape_name(shape: Any) -> str:
    """Human readable name of a shape, for error messages."""
    if isinstance(shape, type):
        return shape.__name__
    return repr(shape).replace("typing.", "")


def describe_value(value: Any) -> str:
    return type(value).__name__


def resolve_target(shape: Any) -> CoercionTarget:
    """Resolves a requested shape into a CoercionTarget (cached per shape).

    Raises:
        UnsupportedCategoryError: If the shape is not a supported target.
    """
    try:
        hash(shape)
    except TypeError:
        return _resolve(shape)
    return _resolve_cached(shape)


@functools.lru_cache(maxsize=1024)
def _resolve_cached(shape: Any) -> CoercionTarget:
    return _resolve(shape)


def _resolve(shape: Any) -> CoercionTarget:
    label = shape_name(shape)

    if shape is Any or shape is object:
        return ANY_TARGET

    # typing.NewType aliases behave like their supertype.
    supertype = getattr(shape, "__supertype__", None)
    if supertype is not None:
        return _resolve(supertype)

    origin = typing.get_origin(shape)
    args = typing.get_args(shape)

    if origin is typing.Annotated:
        return _resolve(args[0])

    if origin in _UNION_ORIGINS:
        others = [a for a in args if a is not type(None)]
        if len(others) == 1 and len(others) < len(args):
            return dataclasses.replace(resolve_target(others[0]), nullable=True)
        raise UnsupportedCategoryError(f"unsupported target shape {label}: only Optional[X] unions are supported")

    container = origin or shape

    if container in _SEQUENCE_ORIGINS:
        element = resolve_target(args[0]) if args else ANY_TARGET
        return CoercionTarget(Category.SEQUENCE, label, shape=list, element=element)

    if container is tuple:
        if not args:
            return CoercionTarget(Category.SEQUENCE, label, shape=tuple, element=ANY_TARGET)
        if len(args) == 2 and args[1] is Ellipsis:
            return CoercionTarget(Category.SEQUENCE, label, shape=tuple, element=resolve_target(args[0]))
        raise UnsupportedCategoryError(f"unsupported target shape {label}: tuples must be homogeneous, use tuple[X, ...]")

    if container in _MAPPING_ORIGINS:
        key = resolve_target(args[0]) if args else ANY_TARGET
        value = resolve_target(args[1]) if len(args) > 1 else ANY_TARGET
        return CoercionTarget(Category.MAPPING, label, shape=dict, key=key, value=value)

    if isinstance(shape, type):
        for base in PRIMITIVE_TYPES:
            if issubclass(shape, base):
                return CoercionTarget(Category.PRIMITIVE, label, shape=shape, base=base)

        if issubclass(shape, datetime):
            return CoercionTarget(Category.TIMESTAMP, label, shape=datetime)

        if dataclasses.is_dataclass(shape):
            return CoercionTarget(Category.RECORD, label, shape=shape, fields=record_fields(shape))

    raise UnsupportedCategoryError(f"unsupported target shape {label}")


def record_fields(cls: type) -> Tuple[RecordField, ...]:
    """Describes the fields of a dataclass, resolving string annotations."""
    try:
        hints = typing.get_type_hints(cls)
    except (NameError, TypeError):
        hints = {}

    result = []
    for f in dataclasses.fields(cls):
        shape = hints.get(f.name, f.type)
        if isinstance(shape, str):
            shape = Any  # Unresolvable forward reference
        has_default = f.default is not dataclasses.MISSING or f.default_factory is not dataclasses.MISSING
        result.append(RecordField(f.name, shape, has_default, f.init))
    return tuple(result)
