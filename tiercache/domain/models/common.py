"""Common value objects used across the domain.

These are thin aliases and enums; they carry meaning for readers and type
checkers but add no runtime behaviour.
"""

import enum
from datetime import timedelta
from typing import NewType, Union

# === Keys ===
CacheKey = NewType("CacheKey", str)          # Fully built key: <namespace>:<prefix>[_component]*
KeyNamespace = NewType("KeyNamespace", str)  # First segment of a key
KeyPrefix = NewType("KeyPrefix", str)        # Second segment of a key

# === Durations ===
# Seconds as int/float, or a timedelta. 0 (or None where accepted) means "never expires".
Duration = Union[int, float, timedelta]

NO_EXPIRATION = 0


class Category(enum.Enum):
    """Semantic value categories recognised by the conversion engine."""
    PRIMITIVE = "primitive"      # bool, int, float, complex, str
    TIMESTAMP = "timestamp"      # datetime.datetime
    SEQUENCE = "sequence"        # list, tuple
    MAPPING = "mapping"          # dict and other Mapping implementations
    RECORD = "record"            # dataclass instances
    ANY = "any"                  # target only: pass the value through unchanged
    UNSUPPORTED = "unsupported"  # functions, generators, sets, bytes, ...


def duration_to_millis(value: Union[Duration, None]) -> int:
    """Normalises a duration (seconds or timedelta) to whole milliseconds.

    None is treated as NO_EXPIRATION.
    """
    if value is None:
        return NO_EXPIRATION
    if isinstance(value, timedelta):
        return int(round(value.total_seconds() * 1000))
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TypeError(f"duration must be seconds (int/float) or timedelta, got {type(value).__name__}")
    return int(round(value * 1000))
