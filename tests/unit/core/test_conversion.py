import enum
import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, NewType, Optional, Tuple, Union

import pytest

from tiercache.core.conversion import (
    Converter,
    case_insensitive_name_indexer,
    classify,
    convert,
    to_bool,
    to_plain,
)
from tiercache.domain.errors import ConversionError, UnsupportedCategoryError
from tiercache.domain.models.common import Category

UserId = NewType("UserId", int)


class Color(str, enum.Enum):
    RED = "red"
    GREEN = "green"


@dataclass
class Person:
    name: str
    age: int


@dataclass
class Team:
    name: str
    members: List[Person]
    lead: Optional[Person] = None
    tags: Tuple[str, ...] = ()


@dataclass
class Event:
    title: str
    at: datetime
    scores: Dict[str, float] = field(default_factory=dict)


STAMP = datetime(2022, 3, 27, 18, 55, tzinfo=timezone.utc)
STAMP_MS = int(STAMP.timestamp()) * 1000


# --- classification ---

@pytest.mark.parametrize("value, expected", [
    (True, Category.PRIMITIVE),
    (1.5, Category.PRIMITIVE),
    ("x", Category.PRIMITIVE),
    (STAMP, Category.TIMESTAMP),
    ([1], Category.SEQUENCE),
    ((1,), Category.SEQUENCE),
    ({"a": 1}, Category.MAPPING),
    (Person("a", 1), Category.RECORD),
    ({1, 2}, Category.UNSUPPORTED),
    (b"raw", Category.UNSUPPORTED),
])
def test_classify(value, expected):
    assert classify(value) is expected


# --- primitives ---

@pytest.mark.parametrize("value", [True, False, -42, 0, 3.14159, 0.1 + 0.2, "hello", ""])
def test_primitive_round_trip_through_string(value):
    assert convert(convert(value, str), type(value)) == value

def test_complex_round_trip_within_tolerance():
    value = complex(1.5, -2.25)
    text = convert(value, str)
    assert text == "(1.5-2.25i)"
    result = convert(text, complex)
    assert math.isclose(result.real, value.real) and math.isclose(result.imag, value.imag)

def test_float_uses_shortest_form():
    assert convert(3.0, str) == "3"
    assert convert(3.5, str) == "3.5"
    assert convert(3.0, int) == 3

def test_bool_renders_as_digit():
    assert convert(True, str) == "1"
    assert convert(False, str) == "0"
    assert convert(True, int) == 1
    assert convert(True, float) == 1.0

def test_int_parsing_honours_prefixes():
    assert convert("0x1f", int) == 31
    assert convert("-0b101", int) == -5
    assert convert("010", int) == 10
    assert convert(" 7 ", int) == 7

@pytest.mark.parametrize("text, shape", [("abc", int), ("3.5", int), ("1e", float), ("x", complex)])
def test_unparsable_primitive_fails(text, shape):
    with pytest.raises(ConversionError):
        convert(text, shape)

def test_bool_rule():
    assert convert(0, bool) is False
    assert convert(7, bool) is True
    assert convert(-0.5, bool) is True
    assert convert(0.0, bool) is False
    assert convert("true", bool) is True
    assert convert("F", bool) is False
    assert convert("1", bool) is True

@pytest.mark.parametrize("text", ["", "33", "yes", " true"])
def test_bool_rejects_non_literals(text):
    with pytest.raises(ConversionError):
        convert(text, bool)

def test_to_bool_treats_none_as_false():
    assert to_bool(None) is False
    assert to_bool(STAMP) is True
    assert to_bool("t") is True

def test_newtype_and_primitive_subclasses():
    assert convert("7", UserId) == 7
    assert convert("red", Color) is Color.RED
    assert convert(Color.GREEN, str) == "green"


# --- timestamps ---

def test_timestamp_to_number_and_back():
    assert convert(STAMP, int) == STAMP_MS
    assert convert(STAMP_MS, datetime) == STAMP
    assert convert(STAMP, str) == str(STAMP_MS)
    assert convert(str(STAMP_MS), datetime) == STAMP

def test_timestamp_parses_iso_format():
    assert convert("2022-03-27T18:55:00+00:00", datetime) == STAMP
    assert convert("2022-03-27T18:55:00", datetime) == STAMP

def test_naive_timestamp_is_read_as_utc():
    assert convert(datetime(2022, 3, 27, 18, 55), int) == STAMP_MS

def test_invalid_timestamp_string_fails():
    with pytest.raises(ConversionError):
        convert("not a time", datetime)

@pytest.mark.parametrize("millis", [float("nan"), float("inf"), 10 ** 20])
def test_out_of_range_number_to_timestamp_fails(millis):
    with pytest.raises(ConversionError):
        convert(millis, datetime)

def test_custom_time_hooks():
    converter = Converter(
        time_to_string=lambda t: t.strftime("%Y%m%d"),
        string_to_time=lambda s: datetime.strptime(s, "%Y%m%d").replace(tzinfo=timezone.utc),
    )
    assert converter.convert(STAMP, str) == "20220327"
    assert converter.convert("20220327", datetime) == datetime(2022, 3, 27, tzinfo=timezone.utc)


# --- sequences ---

def test_string_splits_into_sequence():
    assert convert("1~2~3", List[int]) == [1, 2, 3]
    assert convert("a~b", Tuple[str, ...]) == ("a", "b")

def test_empty_string_yields_single_empty_part():
    assert convert("", List[str]) == [""]

def test_custom_delimiter_and_splitter():
    assert Converter(delimiter=",").convert("1,2", List[int]) == [1, 2]
    splitter = Converter(split_string=lambda s: s.split("|"))
    assert splitter.convert("x|y", List[str]) == ["x", "y"]

def test_sequence_element_wise():
    assert convert(("1", "2"), List[int]) == [1, 2]
    assert convert([1, 2], Tuple[str, ...]) == ("1", "2")
    assert convert([1, "a"], list) == [1, "a"]

def test_sequence_failure_reports_index():
    with pytest.raises(ConversionError, match="index 1"):
        convert(["1", "x", "3"], List[int])

def test_none_becomes_empty_container():
    assert convert(None, List[int]) == []
    assert convert(None, Tuple[int, ...]) == ()
    assert convert(None, Dict[str, int]) == {}


# --- mappings and indirection ---

def test_mapping_converts_keys_and_values():
    assert convert({"1": "2.5", 2: 3}, Dict[int, float]) == {1: 2.5, 2: 3.0}

def test_mapping_value_failure_names_key():
    with pytest.raises(ConversionError, match="'b'"):
        convert({"a": "1", "b": "x"}, Dict[str, int])

def test_optional_target():
    assert convert(None, Optional[int]) is None
    assert convert("5", Optional[int]) == 5

def test_none_into_non_nullable_scalar_fails():
    with pytest.raises(ConversionError):
        convert(None, int)

def test_empty_key_mapping_is_transparent():
    assert convert({"": "5"}, int) == 5
    assert convert({"": {"": "1~2"}}, List[int]) == [1, 2]
    assert convert({"": None}, Dict[str, Any]) == {"": None}


# --- records ---

def test_mapping_to_record():
    assert convert({"name": "ann", "age": "31"}, Person) == Person("ann", 31)

def test_record_mapping_round_trip():
    person = Person("ann", 31)
    plain = to_plain(person)
    assert plain == {"name": "ann", "age": 31}
    assert convert(plain, Person) == person

def test_missing_fields_use_defaults_or_zero_values():
    assert convert({"name": "ann"}, Person) == Person("ann", 0)
    team = convert({"name": "t"}, Team)
    assert team == Team("t", [], None, ())

def test_case_insensitive_name_indexer():
    converter = Converter(name_indexer=case_insensitive_name_indexer)
    assert converter.convert({"NAME": "ann", "Age": 3}, Person) == Person("ann", 3)
    # Default indexer is an exact match
    assert convert({"NAME": "ann", "Age": 3}, Person) == Person("", 0)

def test_nested_records():
    team = convert(
        {"name": "core", "members": [{"name": "a", "age": "1"}], "lead": {"name": "b", "age": 2}, "tags": "x~y"},
        Team,
    )
    assert team == Team("core", [Person("a", 1)], Person("b", 2), ("x", "y"))

def test_record_to_record_is_a_deep_copy():
    team = Team("core", [Person("a", 1)], Person("b", 2))
    clone = convert(team, Team)
    assert clone == team
    assert clone.members is not team.members
    assert clone.lead is not team.lead

def test_record_to_typed_mapping():
    assert convert(Person("ann", 3), Dict[str, str]) == {"name": "ann", "age": "3"}
    assert convert(Person("ann", 3), dict) == {"name": "ann", "age": 3}

def test_to_plain_flattens_nested_values():
    event = Event("launch", STAMP, {"a": 1.5})
    plain = to_plain(Team("t", [Person("a", 1)], tags=("x",)))
    assert plain == {"name": "t", "members": [{"name": "a", "age": 1}], "lead": None, "tags": ["x"]}
    assert to_plain(event) == {"title": "launch", "at": STAMP, "scores": {"a": 1.5}}
    assert convert(to_plain(event), Event) == event

def test_record_field_failure_names_field():
    with pytest.raises(ConversionError, match="age"):
        convert({"name": "ann", "age": "old"}, Person)

def test_record_requires_string_keys():
    with pytest.raises(ConversionError):
        convert({1: "ann"}, Person)


# --- unsupported ---

@pytest.mark.parametrize("value, shape", [
    (lambda: 1, int),
    ({1, 2}, List[int]),
    ([1, 2], int),
    ("x", Person),
    (1, Union[int, str]),
    ("1", Tuple[int, str]),
    (1, set),
])
def test_unsupported_pairs(value, shape):
    with pytest.raises(UnsupportedCategoryError):
        convert(value, shape)

def test_unsupported_is_also_type_error():
    with pytest.raises(TypeError):
        convert(object(), int)

def test_any_target_passes_through():
    marker = object()
    assert convert(marker, Any) is marker
