"""Canonical string forms of primitives and timestamps.

Every primitive-to-primitive conversion (except to bool) is bridged through
the string forms produced and parsed here.
"""

from datetime import datetime, timedelta, timezone

from tiercache.domain.errors import ConversionError

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

BOOL_LITERALS = {
    "1": True, "t": True, "T": True, "TRUE": True, "true": True, "True": True,
    "0": False, "f": False, "F": False, "FALSE": False, "false": False, "False": False,
}


def format_float(value: float) -> str:
    """Shortest round-trippable form; integral floats drop the trailing '.0'."""
    text = float.__repr__(value)
    if text.endswith(".0"):
        text = text[:-2]
    return text


def format_complex(value: complex) -> str:
    """Formats a complex number as '(real+imagi)'."""
    real = format_float(value.real)
    imag = format_float(value.imag)
    sign = "" if imag.startswith("-") else "+"
    return f"({real}{sign}{imag}i)"


def parse_int(text: str) -> int:
    """Parses an integer honouring sign and 0x/0o/0b prefixes.

    Leading-zero decimals such as '010' are read in base 10.
    """
    try:
        return int(text, 0)
    except ValueError:
        return int(text, 10)


def parse_complex(text: str) -> complex:
    """Parses '(1+2i)', '1+2i', '2i' or '3'."""
    body = text.strip()
    if body.startswith("(") and body.endswith(")"):
        body = body[1:-1]
    if body.endswith("i"):
        body = body[:-1] + "j"
    return complex(body)


def parse_bool(text: str) -> bool:
    try:
        return BOOL_LITERALS[text]
    except KeyError:
        raise ConversionError(f"cannot parse {text!r} as bool") from None


def datetime_to_millis(value: datetime) -> int:
    """Milliseconds since the Unix epoch. Naive datetimes are read as UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    delta = value - EPOCH
    return (delta.days * 86400 + delta.seconds) * 1000 + delta.microseconds // 1000


def millis_to_datetime(millis: float) -> datetime:
    """Aware UTC datetime for a millisecond timestamp."""
    try:
        return EPOCH + timedelta(milliseconds=millis)
    except (OverflowError, ValueError) as e:
        raise ConversionError(f"timestamp {millis} is out of range") from e


def default_time_to_string(value: datetime) -> str:
    return str(datetime_to_millis(value))


def default_string_to_time(text: str) -> datetime:
    """Parses integer milliseconds, falling back to ISO-8601."""
    try:
        return millis_to_datetime(int(text))
    except ValueError:
        pass

    try:
        parsed = datetime.fromisoformat(text)
    except ValueError as e:
        raise ConversionError(f"cannot parse {text!r} as a timestamp") from e

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
