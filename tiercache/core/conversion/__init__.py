"""Value coercion engine."""

from .converter import (
    DEFAULT_CONVERTER,
    STRING_SEQUENCE_DELIMITER,
    Converter,
    case_insensitive_name_indexer,
    convert,
    default_name_indexer,
    to_bool,
    to_key_string,
    to_plain,
)
from .shapes import CoercionTarget, classify, resolve_target

__all__ = [
    "DEFAULT_CONVERTER",
    "STRING_SEQUENCE_DELIMITER",
    "CoercionTarget",
    "Converter",
    "case_insensitive_name_indexer",
    "classify",
    "convert",
    "default_name_indexer",
    "resolve_target",
    "to_bool",
    "to_key_string",
    "to_plain",
]
