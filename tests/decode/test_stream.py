# topmark:header:start
#
#   project      : jsonx
#   file         : test_stream.py
#   file_relpath : tests/decode/test_stream.py
#   license      : MIT
#   copyright    : (c) 2025 Olivier Biot
#
# topmark:header:end

"""Tests for the streaming decoder and encoder."""

from __future__ import annotations

import io
from typing import Any

import pytest

import jsonx
from tests.conftest import mark_integration, parametrize
from tests.models import Keys


class TrickleReader(io.RawIOBase):
    """A binary stream that returns at most one byte per read."""

    def __init__(self, data: bytes) -> None:
        self._data = data
        self._pos = 0

    def readable(self) -> bool:
        return True

    def read(self, size: int = -1) -> bytes:
        chunk = self._data[self._pos : self._pos + 1]
        self._pos += len(chunk)
        return chunk


class OneShotReader(io.RawIOBase):
    """A binary stream that delivers one message, then blocks like an idle peer."""

    def __init__(self, data: bytes) -> None:
        self._data = data
        self._sent = False

    def readable(self) -> bool:
        return True

    def readinto(self, buffer: Any) -> int:
        if self._sent:
            raise TimeoutError("peer has not sent anything yet")
        self._sent = True
        buffer[: len(self._data)] = self._data
        return len(self._data)


def test_decode_successive_values() -> None:
    dec = jsonx.new().new_decoder(io.BytesIO(b'{"Bar": 1} {"Bar": 2}\n[3]'))
    assert dec.decode(Keys) == Keys(Bar=1)
    assert dec.input_offset == 10
    assert dec.more()
    assert dec.decode(Keys) == Keys(Bar=2)
    assert dec.decode(list[int]) == [3]
    assert not dec.more()
    with pytest.raises(EOFError):
        dec.decode()


def test_decode_text_stream() -> None:
    dec = jsonx.new_decoder(io.StringIO('"a"\n"b"'))
    assert [dec.decode(str), dec.decode(str)] == ["a", "b"]
    assert not dec.more()


def test_empty_stream() -> None:
    dec = jsonx.new().new_decoder(io.BytesIO(b"  \n"))
    assert not dec.more()
    with pytest.raises(EOFError):
        dec.decode()


def test_trickled_values_are_not_cut_short() -> None:
    """A number ending at a read boundary is only accepted once the next byte arrives."""
    dec = jsonx.new().use_number().new_decoder(TrickleReader(b'123 {"k": [4.5]} 6'))
    assert dec.decode() == jsonx.Number("123")
    assert dec.decode() == {"k": [jsonx.Number("4.5")]}
    assert dec.decode() == jsonx.Number("6")
    with pytest.raises(EOFError):
        dec.decode()


def test_multibyte_characters_split_across_reads() -> None:
    dec = jsonx.new().new_decoder(TrickleReader('["hé", "€"]'.encode()))
    assert dec.decode(list[str]) == ["hé", "€"]


def test_syntax_error_in_stream_reports_stream_offset() -> None:
    dec = jsonx.new().new_decoder(io.BytesIO(b'{"Bar": 1} {"Bar": ?}'))
    dec.decode(Keys)
    with pytest.raises(jsonx.JSONSyntaxError) as excinfo:
        dec.decode(Keys)
    assert excinfo.value.offset == 19
    assert (excinfo.value.line, excinfo.value.column) == (1, 20)


def test_syntax_error_in_stream_reports_stream_line_and_column() -> None:
    dec = jsonx.new().new_decoder(io.BytesIO(b'{"a":\n1}\n{"a":\n?}'))
    assert dec.decode() == {"a": 1.0}
    with pytest.raises(jsonx.JSONSyntaxError) as excinfo:
        dec.decode()
    assert excinfo.value.offset == 15
    assert (excinfo.value.line, excinfo.value.column) == (4, 1)


@parametrize(
    "data, expected",
    [
        (b'{"a":1}', {"a": 1.0}),
        (b'[1, "x]"]', [1.0, "x]"]),
        (b'"say \\"hi\\""', 'say "hi"'),
        (b"true", True),
        (b"null", None),
        (b"12 ", 12.0),
    ],
)
def test_complete_value_is_returned_without_reading_ahead(data: bytes, expected: Any) -> None:
    dec = jsonx.new().new_decoder(OneShotReader(data))
    assert dec.decode() == expected
    with pytest.raises(TimeoutError):
        dec.decode()


def test_buffered_stream_returns_available_value() -> None:
    dec = jsonx.new().new_decoder(io.BufferedReader(OneShotReader(b'{"Bar": 3}')))
    assert dec.decode(Keys) == Keys(Bar=3)


def test_malformed_value_is_reported_before_more_input() -> None:
    dec = jsonx.new().new_decoder(OneShotReader(b'{"a": ?'))
    with pytest.raises(jsonx.JSONSyntaxError) as excinfo:
        dec.decode()
    assert excinfo.value.offset == 6


def test_number_at_end_of_input_waits_for_delimiter() -> None:
    dec = jsonx.new().new_decoder(OneShotReader(b"12"))
    with pytest.raises(TimeoutError):
        dec.decode()


def test_more_stops_at_closing_delimiter() -> None:
    dec = jsonx.new().new_decoder(io.StringIO("1 ]"))
    assert dec.decode(int) == 1
    assert not dec.more()


@mark_integration
def test_encoder_decoder_pipe() -> None:
    values = [Keys(Foo="a"), Keys(Bar=2, Baz={"x": "<y>"}), Keys()]
    buf = io.BytesIO()
    enc = jsonx.new().omit_empty().new_encoder(buf)
    for value in values:
        enc.encode(value)

    buf.seek(0)
    dec = jsonx.new().disallow_unknown_fields().new_decoder(buf)
    decoded: list[Keys] = []
    while dec.more():
        decoded.append(dec.decode(Keys))
    assert decoded == values
