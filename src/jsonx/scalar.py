# topmark:header:start
#
#   project      : jsonx
#   file         : scalar.py
#   file_relpath : src/jsonx/scalar.py
#   license      : MIT
#   copyright    : (c) 2025 Olivier Biot
#
# topmark:header:end

r"""Scalar JSON codec built on the standard library `json` module.

This module is the only place that knows the JSON wire syntax. Everything above
it (encoder, decoder, field plans) works with Python values and with the parsed
token tree produced here.

Conventions:
- Strings are written as UTF-8 text (no ``\\uXXXX`` escaping of non-ASCII).
- U+2028 and U+2029 are always escaped; ``&``, ``<`` and ``>`` are escaped when
  markup escaping is on.
- Every number literal is parsed into a [`Number`][jsonx.scalar.Number] so that the
  decoder can pick the destination representation later without loss.
- Objects are parsed into [`JSONObject`][jsonx.scalar.JSONObject], an ordered list
  of ``(key, value)`` pairs that keeps duplicates and stream order.
"""

from __future__ import annotations

import json
import math
import re
from decimal import Decimal
from typing import Any, Final

from jsonx.errors import JSONSyntaxError, UnsupportedValueError

_NUMBER_RE: Final[re.Pattern[str]] = re.compile(
    r"-?(?:0|[1-9][0-9]*)(?:\.[0-9]+)?(?:[eE][+-]?[0-9]+)?\Z"
)
_WHITESPACE: Final[str] = " \t\n\r"

_ALWAYS_ESCAPED: Final[dict[int, str]] = {cp: "\\u%04x" % cp for cp in (0x2028, 0x2029)}
_MARKUP_ESCAPED: Final[dict[int, str]] = {
    **_ALWAYS_ESCAPED,
    **{ord(ch): "\\u%04x" % ord(ch) for ch in "&<>"},
}


class Number(str):
    """A JSON number literal kept as text.

    Produced for dynamically-typed destinations when the codec runs in
    arbitrary-precision mode, and accepted by the encoder as a verbatim literal.
    """

    __slots__ = ()

    def __repr__(self) -> str:
        return f"Number({str.__repr__(self)})"

    def to_int(self) -> int:
        """Return the literal as an int (raises ValueError for non-integral text)."""
        return int(self)

    def to_float(self) -> float:
        """Return the literal as a float."""
        return float(self)

    def to_decimal(self) -> Decimal:
        """Return the literal as an exact Decimal."""
        return Decimal(self)


class JSONObject(list[tuple[str, Any]]):
    """A parsed JSON object: its ``(key, value)`` pairs in stream order."""

    __slots__ = ()


def is_valid_number(text: str) -> bool:
    """Return True if ``text`` is a valid JSON number literal."""
    return _NUMBER_RE.match(text) is not None


# --- Encoding ---


def encode_string(s: str, escape_html: bool) -> str:
    """Return ``s`` as a quoted JSON string token."""
    quoted = json.dumps(s, ensure_ascii=False)
    return quoted.translate(_MARKUP_ESCAPED if escape_html else _ALWAYS_ESCAPED)


def encode_int(i: int) -> str:
    return int.__repr__(i)


def encode_float(f: float) -> str:
    """Return ``f`` as a JSON number literal.

    Raises:
        UnsupportedValueError: For NaN and infinities, which JSON cannot represent.
    """
    if not math.isfinite(f):
        raise UnsupportedValueError(f, float.__repr__(f))
    return float.__repr__(f)


def encode_decimal(d: Decimal) -> str:
    if not d.is_finite():
        raise UnsupportedValueError(d, str(d))
    return str(d)


def encode_number_literal(n: str) -> str:
    """Validate and return a textual number literal (an empty literal encodes as ``0``)."""
    text = str.__str__(n) or "0"
    if not is_valid_number(text):
        raise UnsupportedValueError(n, f"invalid number literal {text!r}")
    return text


def dump_tree(node: Any, escape_html: bool) -> str:
    """Serialize a parsed token tree compactly, preserving object key order."""
    parts: list[str] = []
    _write_tree(node, parts, escape_html)
    return "".join(parts)


def _write_tree(node: Any, parts: list[str], escape_html: bool) -> None:
    if node is None:
        parts.append("null")
    elif node is True:
        parts.append("true")
    elif node is False:
        parts.append("false")
    elif isinstance(node, Number):
        parts.append(str.__str__(node))
    elif isinstance(node, str):
        parts.append(encode_string(node, escape_html))
    elif isinstance(node, JSONObject):
        parts.append("{")
        for i, (key, value) in enumerate(node):
            if i:
                parts.append(",")
            parts.append(encode_string(key, escape_html))
            parts.append(":")
            _write_tree(value, parts, escape_html)
        parts.append("}")
    else:
        parts.append("[")
        for i, value in enumerate(node):
            if i:
                parts.append(",")
            _write_tree(value, parts, escape_html)
        parts.append("]")


def indent(src: str, prefix: str, indent: str) -> str:
    """Re-indent compact JSON text.

    Each element of an object or array begins on a new line starting with
    ``prefix`` followed by one copy of ``indent`` per nesting level. The first
    line is not prefixed. Empty objects and arrays stay on one line.
    """
    out: list[str] = []
    depth = 0
    in_string = False
    escaped = False
    need_indent = False

    def newline(level: int) -> None:
        out.append("\n" + prefix + indent * level)

    for ch in src:
        if in_string:
            out.append(ch)
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if need_indent and ch not in "]}":
            need_indent = False
            depth += 1
            newline(depth)
        if ch == '"':
            in_string = True
            out.append(ch)
        elif ch in "{[":
            out.append(ch)
            need_indent = True
        elif ch == ",":
            out.append(ch)
            newline(depth)
        elif ch == ":":
            out.append(": ")
        elif ch in "]}":
            if need_indent:
                # empty container
                need_indent = False
            else:
                depth -= 1
                newline(depth)
            out.append(ch)
        else:
            out.append(ch)
    return "".join(out)


# --- Decoding ---


class _InvalidConstant(ValueError):
    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(name)


def _reject_constant(name: str) -> Any:
    raise _InvalidConstant(name)


_DECODER: Final[json.JSONDecoder] = json.JSONDecoder(
    object_pairs_hook=JSONObject,
    parse_float=Number,
    parse_int=Number,
    parse_constant=_reject_constant,
)


def position(text: str, offset: int) -> tuple[int, int]:
    """Return the 1-based ``(line, column)`` of ``offset`` in ``text``."""
    line = text.count("\n", 0, offset) + 1
    column = offset - text.rfind("\n", 0, offset)
    return line, column


def _syntax_error(
    text: str, msg: str, offset: int, base: int, origin: tuple[int, int] = (1, 1)
) -> JSONSyntaxError:
    line, column = position(text, offset)
    if line == 1:
        column += origin[1] - 1
    return JSONSyntaxError(msg, base + offset, origin[0] + line - 1, column)


def skip_whitespace(text: str, pos: int) -> int:
    n = len(text)
    while pos < n and text[pos] in _WHITESPACE:
        pos += 1
    return pos


def decode_prefix(
    text: str, start: int = 0, *, base: int = 0, origin: tuple[int, int] = (1, 1)
) -> tuple[Any, int]:
    """Parse one JSON value starting at ``start`` (leading whitespace allowed).

    Args:
        text: Input text.
        start: Offset where parsing begins.
        base: Offset of ``text`` within a larger stream, added to error offsets.
        origin: 1-based ``(line, column)`` of ``text[0]`` within that stream.

    Returns:
        The parsed token tree and the offset just past the value.

    Raises:
        JSONSyntaxError: If no well-formed value starts at ``start``.
    """
    pos = skip_whitespace(text, start)
    try:
        return _DECODER.raw_decode(text, pos)
    except json.JSONDecodeError as exc:
        raise _syntax_error(text, exc.msg, exc.pos, base, origin) from None
    except _InvalidConstant as exc:
        offset = text.find(exc.name, pos)
        raise _syntax_error(
            text, f"invalid literal {exc.name!r}", max(offset, pos), base, origin
        ) from None


def decode_document(text: str) -> Any:
    """Parse a complete JSON document (one value, optional surrounding whitespace)."""
    if not text.strip(_WHITESPACE):
        raise _syntax_error(text, "unexpected end of JSON input", len(text), 0)
    node, end = decode_prefix(text)
    end = skip_whitespace(text, end)
    if end != len(text):
        raise _syntax_error(text, "invalid character after top-level value", end, 0)
    return node


def to_text(data: bytes | bytearray | memoryview | str) -> str:
    """Return input data as text; invalid UTF-8 is replaced by U+FFFD."""
    if isinstance(data, str):
        return data
    return bytes(data).decode("utf-8", errors="replace")
