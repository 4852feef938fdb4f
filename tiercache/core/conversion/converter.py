"""Generic, type-directed conversion between value categories.

The Converter turns a value of one category (primitive, timestamp, sequence,
mapping, record) into a requested shape without the caller choosing a
conversion path. Supported routes:

    primitive  -> primitive     via the canonical string form (bool has its own rule)
    primitive <-> timestamp     milliseconds since the epoch / parsed strings
    string     -> sequence      split on the delimiter, each part converted
    sequence   -> sequence      element-wise
    mapping    -> mapping       keys and values converted
    mapping    -> record        fields looked up with the name indexer
    record     -> mapping       fields become entries, recursively
    record     -> record        flattened to a mapping first (deep clone idiom)

A mapping holding exactly one entry under the key "" is a transparent
wrapper: conversion recurses into its value.

Usage:
    convert("1~2~3", list[int])            # [1, 2, 3]
    convert({"name": "a", "age": "3"}, Person)
    Converter(name_indexer=case_insensitive_name_indexer).convert(data, Person)
"""

import dataclasses
from datetime import datetime
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from tiercache.domain.errors import ConversionError, UnsupportedCategoryError
from tiercache.domain.models.common import Category

from .primitives import (
    EPOCH,
    datetime_to_millis,
    default_string_to_time,
    default_time_to_string,
    format_complex,
    format_float,
    millis_to_datetime,
    parse_bool,
    parse_complex,
    parse_int,
)
from .shapes import CoercionTarget, classify, describe_value, resolve_target

STRING_SEQUENCE_DELIMITER = "~"

# (mapping, name) -> (found, value)
NameIndexer = Callable[[Mapping[str, Any], str], Tuple[bool, Any]]

_NOT_WRAPPED = object()


def default_name_indexer(source: Mapping[str, Any], name: str) -> Tuple[bool, Any]:
    """Exact-match lookup."""
    if name in source:
        return True, source[name]
    return False, None


def case_insensitive_name_indexer(source: Mapping[str, Any], name: str) -> Tuple[bool, Any]:
    """Returns the first entry whose key equals `name` ignoring case."""
    folded = name.casefold()
    for key, value in source.items():
        if key.casefold() == folded:
            return True, value
    return False, None


def _nested(error: ConversionError, context: str) -> ConversionError:
    # Same class, with the location prepended.
    return type(error)(f"{context}: {error}")


@dataclasses.dataclass(frozen=True)
class Converter:
    """Converts values between categories.

    A default instance has the default behaviour; each hook may be replaced:

    Attributes:
        delimiter: Separator used when splitting a string into a sequence.
        split_string: Replaces the delimiter split entirely when set.
        name_indexer: Looks up record field names in a mapping (exact match by default).
        time_to_string: Formats timestamps (milliseconds since epoch by default).
        string_to_time: Parses timestamps (milliseconds, then ISO-8601 by default).
    """
    delimiter: str = STRING_SEQUENCE_DELIMITER
    split_string: Optional[Callable[[str], List[str]]] = None
    name_indexer: Optional[NameIndexer] = None
    time_to_string: Optional[Callable[[datetime], str]] = None
    string_to_time: Optional[Callable[[str], datetime]] = None

    _ROUTES = {
        (Category.PRIMITIVE, Category.PRIMITIVE): "_primitive_to_primitive",
        (Category.PRIMITIVE, Category.TIMESTAMP): "_primitive_to_timestamp",
        (Category.PRIMITIVE, Category.SEQUENCE): "_string_to_sequence",
        (Category.TIMESTAMP, Category.TIMESTAMP): "_timestamp_to_timestamp",
        (Category.TIMESTAMP, Category.PRIMITIVE): "_timestamp_to_primitive",
        (Category.SEQUENCE, Category.SEQUENCE): "_sequence_to_sequence",
        (Category.MAPPING, Category.MAPPING): "_mapping_to_mapping",
        (Category.MAPPING, Category.RECORD): "_mapping_to_record",
        (Category.RECORD, Category.MAPPING): "_record_to_mapping",
        (Category.RECORD, Category.RECORD): "_record_to_record",
    }

    # --- Public API ---

    def convert(self, value: Any, shape: Any) -> Any:
        """Converts `value` into `shape` (a type or typing annotation).

        Raises:
            UnsupportedCategoryError: If no route exists between the two categories.
            ConversionError: If the route exists but the value cannot be converted.
        """
        return self.convert_to_target(value, resolve_target(shape))

    def convert_to_target(self, value: Any, target: CoercionTarget) -> Any:
        """Converts `value` into an already resolved target."""
        if target.category is Category.ANY:
            return value

        if value is None:
            return self._convert_none(target)

        source = classify(value)
        if source is Category.MAPPING:
            inner = self._unwrap_empty_key(value)
            if inner is not _NOT_WRAPPED:
                return self.convert_to_target(inner, target)

        route = self._ROUTES.get((source, target.category))
        if route is None:
            raise self._unsupported(value, source, target)
        return getattr(self, route)(value, target)

    def to_bool(self, value: Any) -> bool:
        """Converts to bool.

        None is False; numbers and timestamps are False when zero; strings
        must be boolean literals ('1', 't', 'true', '0', 'f', 'false', ...).
        """
        if value is None:
            return False
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            return parse_bool(str.__str__(value))
        if isinstance(value, (int, float, complex)):
            return value != 0
        if isinstance(value, datetime):
            return datetime_to_millis(value) != 0
        raise UnsupportedCategoryError(f"cannot convert {describe_value(value)} to bool")

    def to_plain(self, value: Any) -> Any:
        """Converts a value to plain data: records become dicts, tuples become
        lists, mapping keys become strings. Primitives and timestamps are kept.
        """
        if value is None:
            return None

        category = classify(value)
        if category in (Category.PRIMITIVE, Category.TIMESTAMP):
            return value

        if category is Category.RECORD:
            return self._record_to_plain(value)

        if category is Category.MAPPING:
            result = {}
            for key, item in value.items():
                try:
                    plain_key = self.convert(key, str)
                except ConversionError as e:
                    raise _nested(e, f"key {key!r}") from e
                try:
                    result[plain_key] = self.to_plain(item)
                except ConversionError as e:
                    raise _nested(e, f"value of key {plain_key!r}") from e
            return result

        if category is Category.SEQUENCE:
            items = []
            for index, item in enumerate(value):
                try:
                    items.append(self.to_plain(item))
                except ConversionError as e:
                    raise _nested(e, f"index {index}") from e
            return items

        raise UnsupportedCategoryError(f"cannot convert {describe_value(value)} to plain data")

    def to_key_string(self, value: Any) -> str:
        """Renders a single cache key component.

        Primitives use their canonical string form, timestamps their
        millisecond value; other objects are accepted only if their type
        defines its own __str__.
        """
        if value is None:
            raise UnsupportedCategoryError("a key component must not be None")

        category = classify(value)
        if category is Category.PRIMITIVE:
            return self._primitive_to_string(value)
        if category is Category.TIMESTAMP:
            return str(datetime_to_millis(value))
        if category not in (Category.SEQUENCE, Category.MAPPING) and type(value).__str__ is not object.__str__:
            return str(value)

        raise UnsupportedCategoryError(
            f"cannot use {describe_value(value)} ({category.value}) as a key component, "
            "it must be a primitive, a timestamp or define __str__"
        )

    # --- Routes ---

    def _primitive_to_primitive(self, value: Any, target: CoercionTarget) -> Any:
        # Bridged through strings, so M*N conversions reduce to M formatters and N
        # parsers. bool is special: '33' is a valid int but not a bool literal.
        if target.base is bool:
            return self._rewrap(self.to_bool(value), target)

        text = self._primitive_to_string(value)
        return self._rewrap(self._string_to_primitive(text, target.base), target)

    def _primitive_to_timestamp(self, value: Any, target: CoercionTarget) -> datetime:
        if isinstance(value, str):
            return self._parse_time(value)
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return millis_to_datetime(value)
        raise self._unsupported(value, Category.PRIMITIVE, target)

    def _timestamp_to_timestamp(self, value: datetime, target: CoercionTarget) -> datetime:
        return value

    def _timestamp_to_primitive(self, value: datetime, target: CoercionTarget) -> Any:
        if target.base is str:
            return self._rewrap(self._format_time(value), target)
        return self._primitive_to_primitive(datetime_to_millis(value), target)

    def _string_to_sequence(self, value: Any, target: CoercionTarget) -> Any:
        if not isinstance(value, str):
            raise self._unsupported(value, Category.PRIMITIVE, target)

        if self.split_string is not None:
            parts = self.split_string(value)
        else:
            parts = value.split(self.delimiter)
        return self._build_sequence(parts, target)

    def _sequence_to_sequence(self, value: Any, target: CoercionTarget) -> Any:
        return self._build_sequence(value, target)

    def _mapping_to_mapping(self, value: Mapping, target: CoercionTarget) -> Dict[Any, Any]:
        result = {}
        for key, item in value.items():
            try:
                new_key = self.convert_to_target(key, target.key)
            except ConversionError as e:
                raise _nested(e, f"cannot convert key {key!r} to {target.key.label}") from e
            try:
                new_value = self.convert_to_target(item, target.value)
            except ConversionError as e:
                raise _nested(e, f"cannot convert value of key {key!r} to {target.value.label}") from e
            result[new_key] = new_value
        return result

    def _mapping_to_record(self, value: Mapping, target: CoercionTarget) -> Any:
        for key in value:
            if not isinstance(key, str):
                raise ConversionError(
                    f"when converting to {target.label}, mapping keys must be str, got {describe_value(key)}"
                )
        return self._populate_record(value, target)

    def _record_to_mapping(self, value: Any, target: CoercionTarget) -> Dict[Any, Any]:
        plain = self._record_to_plain(value)
        if target.key.category is Category.ANY and target.value.category is Category.ANY:
            return plain
        return self._mapping_to_mapping(plain, target)

    def _record_to_record(self, value: Any, target: CoercionTarget) -> Any:
        flat = {f.name: getattr(value, f.name) for f in dataclasses.fields(value)}
        return self._populate_record(flat, target)

    # --- Helpers ---

    def _convert_none(self, target: CoercionTarget) -> Any:
        if target.nullable:
            return None
        if target.category is Category.SEQUENCE:
            return target.shape()
        if target.category is Category.MAPPING:
            return {}
        raise ConversionError(f"cannot convert None to {target.label}")

    def _unwrap_empty_key(self, value: Mapping) -> Any:
        if len(value) == 1 and "" in value:
            inner = value[""]
            if inner is not None:
                return inner
        return _NOT_WRAPPED

    def _build_sequence(self, values: Any, target: CoercionTarget) -> Any:
        items = []
        for index, item in enumerate(values):
            try:
                items.append(self.convert_to_target(item, target.element))
            except ConversionError as e:
                raise _nested(e, f"cannot convert to {target.label}, at index {index}") from e
        return tuple(items) if target.shape is tuple else items

    def _populate_record(self, source: Mapping[str, Any], target: CoercionTarget) -> Any:
        indexer = self.name_indexer or default_name_indexer
        kwargs = {}

        for field in target.fields:
            if not field.init:
                continue

            found, raw = indexer(source, field.name)
            if found:
                try:
                    kwargs[field.name] = self.convert(raw, field.shape)
                except ConversionError as e:
                    raise _nested(e, f"error on converting field '{field.name}'") from e
            elif not field.has_default:
                kwargs[field.name] = self._zero_value(resolve_target(field.shape))

        try:
            return target.shape(**kwargs)
        except (TypeError, ValueError) as e:
            raise ConversionError(f"cannot build {target.label}: {e}") from e

    def _record_to_plain(self, value: Any) -> Dict[str, Any]:
        result = {}
        for f in dataclasses.fields(value):
            try:
                result[f.name] = self.to_plain(getattr(value, f.name))
            except ConversionError as e:
                raise _nested(e, f"error on converting field '{f.name}'") from e
        return result

    def _zero_value(self, target: CoercionTarget) -> Any:
        """Value for a record field that has no default and no source value."""
        if target.nullable or target.category is Category.ANY:
            return None
        if target.category is Category.PRIMITIVE:
            return self._rewrap(target.base(), target)
        if target.category is Category.TIMESTAMP:
            return EPOCH
        if target.category is Category.SEQUENCE:
            return target.shape()
        if target.category is Category.MAPPING:
            return {}
        return self._populate_record({}, target)

    def _primitive_to_string(self, value: Any) -> str:
        if isinstance(value, bool):
            # true/false would not parse as a number; 0/1 parses as every primitive.
            return "1" if value else "0"
        if isinstance(value, int):
            return int.__repr__(value)
        if isinstance(value, float):
            return format_float(value)
        if isinstance(value, complex):
            return format_complex(value)
        return str.__str__(value)

    def _string_to_primitive(self, text: str, kind: type) -> Any:
        if kind is str:
            return text
        if kind is bool:
            return parse_bool(text)
        try:
            if kind is int:
                return parse_int(text)
            if kind is float:
                return float(text)
            return parse_complex(text)
        except ValueError as e:
            raise ConversionError(f"cannot parse {text!r} as {kind.__name__}") from e

    def _rewrap(self, result: Any, target: CoercionTarget) -> Any:
        if target.shape is target.base:
            return result
        try:
            return target.shape(result)
        except (TypeError, ValueError) as e:
            raise ConversionError(f"cannot build {target.label} from {result!r}: {e}") from e

    def _format_time(self, value: datetime) -> str:
        return (self.time_to_string or default_time_to_string)(value)

    def _parse_time(self, text: str) -> datetime:
        parser = self.string_to_time or default_string_to_time
        try:
            return parser(text)
        except ConversionError:
            raise
        except (ValueError, OverflowError) as e:
            raise ConversionError(f"cannot parse {text!r} as a timestamp") from e

    def _unsupported(self, value: Any, source: Category, target: CoercionTarget) -> UnsupportedCategoryError:
        return UnsupportedCategoryError(
            f"cannot convert {describe_value(value)} ({source.value}) to {target.label} ({target.category.value})"
        )


DEFAULT_CONVERTER = Converter()


def convert(value: Any, shape: Any) -> Any:
    """Equivalent to Converter().convert()."""
    return DEFAULT_CONVERTER.convert(value, shape)


def to_plain(value: Any) -> Any:
    """Equivalent to Converter().to_plain()."""
    return DEFAULT_CONVERTER.to_plain(value)


def to_bool(value: Any) -> bool:
    """Equivalent to Converter().to_bool()."""
    return DEFAULT_CONVERTER.to_bool(value)


def to_key_string(value: Any) -> str:
    """Equivalent to Converter().to_key_string()."""
    return DEFAULT_CONVERTER.to_key_string(value)
