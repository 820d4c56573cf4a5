# topmark:header:start
#
#   project      : jsonx
#   file         : test_decoder.py
#   file_relpath : tests/decode/test_decoder.py
#   license      : MIT
#   copyright    : (c) 2025 Olivier Biot
#
# topmark:header:end

"""Tests for decoding JSON into typed values and records."""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Literal, Optional

import pytest

import jsonx
from tests.conftest import parametrize
from tests.models import (
    Base,
    Color,
    Defaults,
    Hidden,
    Keys,
    Kinds,
    Level,
    MaybeBase,
    Outer,
    Point,
    Positive,
    Raw,
    SelfEmbed,
    WithPoint,
    Wrapper,
)


@parametrize(
    "data, expected",
    [
        (b"null", None),
        (b"true", True),
        (b"1", 1.0),
        (b"-0.5e1", -5.0),
        (b'"x"', "x"),
        (b"[1, [null]]", [1.0, [None]]),
        (b'{"a": {"b": "c"}}', {"a": {"b": "c"}}),
        (b' \n {"dup": 1, "dup": 2} \t', {"dup": 2.0}),
        ('"café"'.encode(), "café"),
    ],
)
def test_unmarshal_dynamic(data: bytes, expected: Any) -> None:
    assert jsonx.new().unmarshal(data) == expected


def test_unmarshal_dynamic_numbers_are_floats() -> None:
    value = jsonx.new().unmarshal(b"[3]")
    assert isinstance(value[0], float)


def test_unmarshal_accepts_text_and_buffers() -> None:
    codec = jsonx.new()
    assert codec.unmarshal("[1]", list[int]) == [1]
    assert codec.unmarshal(bytearray(b"[1]"), list[int]) == [1]
    assert codec.unmarshal(memoryview(b"[1]"), list[int]) == [1]


def test_unmarshal_kinds() -> None:
    data = b"""{
        "i": 1, "f": 2, "d": 1.10, "n": 12345678901234567890,
        "s": "s", "b": true, "raw": "aGk=",
        "color": "green", "level": 2, "mode": "b",
        "items": [1, 2], "pair": [7, "x"], "many": [1, 2, 3],
        "unique": [3, 1, 3], "by_id": {"1": "a", "20": "b"},
        "either": "text", "anything": {"k": [1, null]}
    }"""
    value = jsonx.new().unmarshal(data, Kinds)
    assert value == Kinds(
        i=1,
        f=2.0,
        d=Decimal("1.10"),
        n=jsonx.Number("12345678901234567890"),
        s="s",
        b=True,
        raw=b"hi",
        color=Color.GREEN,
        level=Level.HIGH,
        mode="b",
        items=[1, 2],
        pair=(7, "x"),
        many=(1, 2, 3),
        unique={1, 3},
        by_id={1: "a", 20: "b"},
        either="text",
        anything={"k": [1.0, None]},
    )
    assert isinstance(value.i, int)
    assert isinstance(value.f, float)
    assert isinstance(value.n, jsonx.Number)


@parametrize(
    "data, tp, expected",
    [
        (b"[7]", tuple[int, str], (7, "")),
        (b'[7, "x", "extra"]', tuple[int, str], (7, "x")),
        (b"[1, 2]", tuple, (1.0, 2.0)),
        (b"[1, 2]", frozenset[int], frozenset({1, 2})),
        (b'{"a": 1}', dict, {"a": 1.0}),
        (b'{"red": 1}', dict[Color, int], {Color.RED: 1}),
        (b'{"2": "x"}', dict[Level, str], {Level.HIGH: "x"}),
        (b"5", int | str, 5),
        (b'"5"', int | str, "5"),
        (b"null", Optional[int], None),
        (b"3", Optional[int], 3),
        (b"null", int, 0),
        (b"null", list[int], []),
        (b"null", Keys, Keys()),
        (b"1", Literal[1, 2], 1),
        (b"true", Literal[True], True),
    ],
)
def test_unmarshal_typed(data: bytes, tp: Any, expected: Any) -> None:
    assert jsonx.new().unmarshal(data, tp) == expected


def test_null_keeps_defaults_of_non_nullable_fields() -> None:
    codec = jsonx.new()
    assert codec.unmarshal(b'{"Bar": null, "Foo": "f"}', Keys) == Keys(Foo="f")
    value = codec.unmarshal(b'{"label": null, "note": null}', Defaults)
    assert value.label == "x"
    assert value.note is None


def test_missing_members_get_zero_values() -> None:
    value = jsonx.new().unmarshal(b"{}", Defaults)
    assert value == Defaults(count=0, tags=[], child=Keys())
    assert value.label == "x"
    assert value.note == "n"
    assert value.computed == 0


def test_unmarshal_promoted_fields() -> None:
    codec = jsonx.new()
    assert codec.unmarshal(b'{"ID": 1, "kind": "k", "Title": "t"}', Hidden) == Hidden(
        _base=Base(ID=1, Kind="k"), Title="t"
    )
    assert codec.unmarshal(b'{"Name": "n", "Extra": 3}', Outer).inner.Extra == 3
    assert codec.unmarshal(b'{"Name": "n"}', Outer).inner.Name == ""
    assert codec.unmarshal(b'{"Value": 4}', SelfEmbed) == SelfEmbed(Value=4)


def test_optional_embedded_record_is_created_on_demand() -> None:
    codec = jsonx.new()
    assert codec.unmarshal(b'{"Title": "t"}', MaybeBase) == MaybeBase(Title="t")
    assert codec.unmarshal(b'{"ID": 3}', MaybeBase) == MaybeBase(base=Base(ID=3))


def test_unmarshal_nested_record() -> None:
    value = jsonx.new().unmarshal(b'{"inner": {"Foo": "a", "Baz": {"k": "v"}}}', Wrapper)
    assert value == Wrapper(inner=Keys(Foo="a", Baz={"k": "v"}))


def test_unmarshal_list_of_records() -> None:
    assert jsonx.new().unmarshal(b'[{"ID": 1}, {"ID": 2}]', list[Base]) == [Base(1), Base(2)]


@parametrize(
    "data, tp, message",
    [
        (b'"x"', int, "cannot unmarshal string into value of type int"),
        (b"2.5", int, "cannot unmarshal number 2.5 into value of type int"),
        (b"1", bool, "cannot unmarshal number into value of type bool"),
        (b"[1]", Keys, "cannot unmarshal array into value of type Keys"),
        (b"{}", list[int], "cannot unmarshal object into value of type list"),
        (b'"blue"', Color, "cannot unmarshal string into value of type Color"),
        (b'"c"', Literal["a", "b"], "cannot unmarshal string into value of type"),
        (b'"!!"', bytes, "cannot unmarshal string into value of type bytes"),
        (b"1", type(None), "cannot unmarshal number into value of type NoneType"),
        (b'"7"', jsonx.Number, "cannot unmarshal string into value of type Number"),
    ],
)
def test_type_mismatch_messages(data: bytes, tp: Any, message: str) -> None:
    with pytest.raises(jsonx.TypeMismatchError) as excinfo:
        jsonx.new().unmarshal(data, tp)
    assert str(excinfo.value).startswith(message)
    assert excinfo.value.record is None
    assert excinfo.value.field is None


def test_type_mismatch_names_record_and_field() -> None:
    with pytest.raises(jsonx.TypeMismatchError) as excinfo:
        jsonx.new().unmarshal(b'{"Bar": "x"}', Keys)
    err = excinfo.value
    assert str(err) == "cannot unmarshal string into field Keys.Bar of type int"
    assert (err.record, err.field, err.value, err.target) == ("Keys", "Bar", "string", int)
    assert isinstance(err, ValueError)


def test_type_mismatch_path_through_nested_records() -> None:
    with pytest.raises(jsonx.TypeMismatchError) as excinfo:
        jsonx.new().unmarshal(b'{"inner": {"Bar": true}}', Wrapper)
    assert excinfo.value.record == "Keys"
    assert excinfo.value.field == "inner.Bar"


def test_unmarshal_hooks() -> None:
    value = jsonx.new().unmarshal(b'{"at": "1,2", "raw": {"a": 1, "b": [true]}}', WithPoint)
    assert value.at == Point(1, 2)
    assert Point.received == b'"1,2"'
    assert value.raw is not None
    assert value.raw.data == b'{"a":1,"b":[true]}'


def test_unmarshal_hook_null_handling() -> None:
    value = jsonx.new().unmarshal(b'{"raw": null}', WithPoint)
    assert value.raw is None
    assert jsonx.new().unmarshal(b"null", Raw).data == b"null"


def test_unmarshal_hook_failure_is_wrapped() -> None:
    with pytest.raises(jsonx.UnmarshalError) as excinfo:
        jsonx.new().unmarshal(b'"12"', Point)
    assert isinstance(excinfo.value.__cause__, ValueError)
    assert excinfo.value.type is Point


def test_unmarshal_hook_jsonx_errors_pass_through() -> None:
    with pytest.raises(jsonx.TypeMismatchError):
        jsonx.new().unmarshal(b"5", Point)


def test_record_constructor_failure_is_wrapped() -> None:
    with pytest.raises(jsonx.UnmarshalError) as excinfo:
        jsonx.new().unmarshal(b'[{"value": 2}, {"value": -1}]', list[Positive])
    assert str(excinfo.value) == (
        "error calling __init__ for type Positive: value must be positive"
    )
    assert excinfo.value.method == "__init__"


def test_unsupported_destination_type() -> None:
    with pytest.raises(jsonx.UnsupportedTypeError):
        jsonx.new().unmarshal(b"1", complex)
    with pytest.raises(jsonx.UnsupportedTypeError):
        jsonx.new().unmarshal(b'{"1.5": 1}', dict[float, int])


@parametrize(
    "data, msg, offset, line, column",
    [
        (b'{\n  "a": tru\n}', "Expecting value", 9, 2, 8),
        (b"", "unexpected end of JSON input", 0, 1, 1),
        (b"  \n", "unexpected end of JSON input", 3, 2, 1),
        (b"{} x", "invalid character after top-level value", 3, 1, 4),
        (b"[1] [2]", "invalid character after top-level value", 4, 1, 5),
        (b"[NaN]", "invalid literal 'NaN'", 1, 1, 2),
        (b"-Infinity", "invalid literal '-Infinity'", 0, 1, 1),
    ],
)
def test_syntax_errors(data: bytes, msg: str, offset: int, line: int, column: int) -> None:
    with pytest.raises(jsonx.JSONSyntaxError) as excinfo:
        jsonx.new().unmarshal(data, Any)
    err = excinfo.value
    assert (err.msg, err.offset, err.line, err.column) == (msg, offset, line, column)
    assert str(err) == f"{msg}: line {line} column {column} (char {offset})"


def test_syntax_error_precedes_type_errors() -> None:
    with pytest.raises(jsonx.JSONSyntaxError):
        jsonx.new().unmarshal(b'{"Bar": "x",}', Keys)


@parametrize(
    "data, expected",
    [
        (b'{"a": [1, 2.5e3, "x", null, true]}', True),
        (b" 1 ", True),
        (b"", False),
        (b"{", False),
        (b'{"a":}', False),
        (b"1 2", False),
        (b"NaN", False),
        (b"[01]", False),
    ],
)
def test_valid(data: bytes, expected: bool) -> None:
    assert jsonx.valid(data) is expected
