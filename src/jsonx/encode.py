# topmark:header:start
#
#   project      : jsonx
#   file         : encode.py
#   file_relpath : src/jsonx/encode.py
#   license      : MIT
#   copyright    : (c) 2025 Olivier Biot
#
# topmark:header:end

"""Encoding Python values to JSON text.

Each Python type gets an encoder function, compiled once and stored in the
codec's shared ``encoder_cache``. Encoder functions receive an
[`EncodeState`][jsonx.encode.EncodeState] carrying the per-call options
(markup escaping, omit-empty default), so a cached function is valid for every
codec sharing the cache.

Dispatch order for a value's type:
    1. ``marshal_json`` hook (the type encodes itself);
    2. ``None``, enums, ``bool``, ``int``, ``float``, ``Number``, ``str``,
       ``Decimal``, ``bytes``;
    3. parsed objects, mappings (keys sorted), sequences, sets (sorted);
    4. dataclass records, through their [`FieldPlan`][jsonx.fields.FieldPlan].
"""

from __future__ import annotations

import base64
import io
from collections.abc import Callable, Mapping
from decimal import Decimal
from enum import Enum
from operator import itemgetter
from typing import IO, TYPE_CHECKING, Any

from jsonx.descriptor import is_record_type
from jsonx.errors import (
    MarshalError,
    UnsupportedTypeError,
    UnsupportedValueError,
)
from jsonx.hooks import is_marshaler
from jsonx.logging import TraceLogger, get_logger
from jsonx.scalar import (
    JSONObject,
    Number,
    decode_document,
    dump_tree,
    encode_decimal,
    encode_float,
    encode_int,
    encode_number_literal,
    encode_string,
    indent,
    to_text,
)

if TYPE_CHECKING:
    from jsonx.codec import Codec
    from jsonx.fields import FieldPlan

logger: TraceLogger = get_logger(__name__)

EncoderFunc = Callable[["EncodeState", Any], None]


class EncodeState:
    """Output buffer and options for one encode call."""

    __slots__ = ("_active", "_codec", "escape_html", "omit_empty", "parts")

    def __init__(self, codec: Codec, *, escape_html: bool) -> None:
        self._codec = codec
        self._active: set[int] = set()
        self.parts: list[str] = []
        self.escape_html = escape_html
        self.omit_empty = codec.omits_empty

    def write(self, text: str) -> None:
        self.parts.append(text)

    def encode(self, value: Any) -> None:
        type_encoder(self._codec, type(value))(self, value)

    def encode_detached(self, value: Any) -> str:
        """Encode ``value`` with the same options into a separate buffer."""
        sub = EncodeState(self._codec, escape_html=self.escape_html)
        sub.omit_empty = self.omit_empty
        sub._active = self._active
        sub.encode(value)
        return sub.getvalue()

    def enter(self, container: Any) -> None:
        """Mark a container as being encoded; raise on reference cycles."""
        key = id(container)
        if key in self._active:
            raise UnsupportedValueError(
                container, f"encountered a cycle via {type(container).__qualname__}"
            )
        self._active.add(key)

    def leave(self, container: Any) -> None:
        self._active.discard(id(container))

    def getvalue(self) -> str:
        return "".join(self.parts)


def is_empty_value(value: Any) -> bool:
    """Return True if ``value`` is the zero/empty value of its kind.

    ``None``, ``False``, numeric zero and empty strings or containers are empty.
    Records and enum members never are.
    """
    if value is None:
        return True
    if isinstance(value, Enum) or is_record_type(type(value)):
        return False
    if isinstance(value, (bool, int, float, Decimal)):
        return not value
    if isinstance(value, (str, bytes, bytearray, list, tuple, set, frozenset, Mapping)):
        return len(value) == 0
    return False


# --- Encoder functions ---


def _null_encoder(state: EncodeState, value: Any) -> None:
    state.write("null")


def _bool_encoder(state: EncodeState, value: bool) -> None:
    state.write("true" if value else "false")


def _int_encoder(state: EncodeState, value: int) -> None:
    state.write(encode_int(value))


def _float_encoder(state: EncodeState, value: float) -> None:
    state.write(encode_float(value))


def _number_encoder(state: EncodeState, value: Number) -> None:
    state.write(encode_number_literal(value))


def _string_encoder(state: EncodeState, value: str) -> None:
    state.write(encode_string(value, state.escape_html))


def _decimal_encoder(state: EncodeState, value: Decimal) -> None:
    state.write(encode_decimal(value))


def _bytes_encoder(state: EncodeState, value: bytes) -> None:
    state.write(encode_string(base64.b64encode(value).decode("ascii"), state.escape_html))


def _enum_encoder(state: EncodeState, value: Enum) -> None:
    state.encode(value.value)


def _marshaler_encoder(state: EncodeState, value: Any) -> None:
    try:
        raw = value.marshal_json()
        node = decode_document(to_text(raw))
    except Exception as exc:
        raise MarshalError(type(value), exc) from exc
    state.write(dump_tree(node, state.escape_html))


def _object_encoder(state: EncodeState, value: JSONObject) -> None:
    state.write(dump_tree(value, state.escape_html))


def _map_key(key: Any) -> str:
    if isinstance(key, Enum):
        key = key.value
    if isinstance(key, str):
        return str.__str__(key)
    if isinstance(key, int) and not isinstance(key, bool):
        return encode_int(key)
    raise UnsupportedTypeError(type(key))


def _map_encoder(state: EncodeState, value: Mapping[Any, Any]) -> None:
    if not value:
        state.write("{}")
        return
    state.enter(value)
    items = sorted(((_map_key(k), v) for k, v in value.items()), key=itemgetter(0))
    state.write("{")
    for i, (key, item) in enumerate(items):
        if i:
            state.write(",")
        state.write(encode_string(key, state.escape_html))
        state.write(":")
        state.encode(item)
    state.write("}")
    state.leave(value)


def _array_encoder(state: EncodeState, value: list[Any] | tuple[Any, ...]) -> None:
    if not value:
        state.write("[]")
        return
    state.enter(value)
    state.write("[")
    for i, item in enumerate(value):
        if i:
            state.write(",")
        state.encode(item)
    state.write("]")
    state.leave(value)


def _set_encoder(state: EncodeState, value: set[Any] | frozenset[Any]) -> None:
    encoded: list[str] = []
    for item in value:
        encoded.append(state.encode_detached(item))
    state.write("[" + ",".join(sorted(encoded)) + "]")


def _record_encoder(plan: FieldPlan) -> EncoderFunc:
    compiled = tuple(
        (
            entry,
            entry.attr_path[:-1],
            entry.attr_path[-1],
            encode_string(entry.wire_name, True),
            encode_string(entry.wire_name, False),
        )
        for entry in plan.entries
    )

    def encode_record(state: EncodeState, value: Any) -> None:
        state.enter(value)
        state.write("{")
        first = True
        for entry, parents, leaf, quoted_escaped, quoted_raw in compiled:
            holder = value
            for attr in parents:
                holder = getattr(holder, attr)
                if holder is None:
                    break
            if holder is None:
                # promoted from an embedded record that is absent
                continue
            field_value = getattr(holder, leaf)
            omit = entry.omit_empty if entry.omit_empty is not None else state.omit_empty
            if omit and is_empty_value(field_value):
                continue
            if not first:
                state.write(",")
            first = False
            state.write(quoted_escaped if state.escape_html else quoted_raw)
            state.write(":")
            state.encode(field_value)
        state.write("}")
        state.leave(value)

    return encode_record


def _unsupported_encoder(tp: type) -> EncoderFunc:
    def encode_unsupported(state: EncodeState, value: Any) -> None:
        raise UnsupportedTypeError(tp)

    return encode_unsupported


def _new_type_encoder(codec: Codec, tp: type) -> EncoderFunc:
    logger.trace("compiling encoder for %s", tp.__qualname__)
    # Order matters: Number is a str, bool is an int, JSONObject is a list.
    if is_marshaler(tp):
        return _marshaler_encoder
    if tp is type(None):
        return _null_encoder
    if issubclass(tp, Enum):
        return _enum_encoder
    if issubclass(tp, bool):
        return _bool_encoder
    if issubclass(tp, int):
        return _int_encoder
    if issubclass(tp, float):
        return _float_encoder
    if issubclass(tp, Number):
        return _number_encoder
    if issubclass(tp, str):
        return _string_encoder
    if issubclass(tp, Decimal):
        return _decimal_encoder
    if issubclass(tp, (bytes, bytearray)):
        return _bytes_encoder
    if issubclass(tp, JSONObject):
        return _object_encoder
    if issubclass(tp, Mapping):
        return _map_encoder
    if issubclass(tp, (list, tuple)):
        return _array_encoder
    if issubclass(tp, (set, frozenset)):
        return _set_encoder
    if is_record_type(tp):
        return _record_encoder(codec.plan_for(tp))
    return _unsupported_encoder(tp)


def type_encoder(codec: Codec, tp: type) -> EncoderFunc:
    """Return the cached encoder function for ``tp``, compiling it on first use."""
    return codec.encoder_cache.get_or_compute(tp, lambda: _new_type_encoder(codec, tp))


def encode_value(codec: Codec, value: Any, *, escape_html: bool | None = None) -> str:
    """Encode ``value`` to compact JSON text.

    Args:
        codec: The codec whose options and caches apply.
        value: The value to encode.
        escape_html: Overrides the codec's markup escaping when not None.

    Returns:
        Compact JSON text without a trailing newline.
    """
    state = EncodeState(codec, escape_html=codec.escapes_html if escape_html is None else escape_html)
    state.encode(value)
    return state.getvalue()


class Encoder:
    """Writes successive JSON values to a text or binary sink.

    Each value is followed by a newline. Indentation and markup escaping can be
    adjusted per encoder without affecting its codec.
    """

    def __init__(self, codec: Codec, sink: IO[Any]) -> None:
        self._codec = codec
        self._sink = sink
        self._text = isinstance(sink, io.TextIOBase)
        self._escape_html = codec.escapes_html
        self._prefix = ""
        self._indent = ""

    def set_indent(self, prefix: str, indent: str) -> None:
        """Indent subsequent values like `Codec.marshal_indent`."""
        self._prefix = prefix
        self._indent = indent

    def set_escape_html(self, on: bool) -> None:
        self._escape_html = on

    def encode(self, value: Any) -> None:
        """Encode ``value`` and write it, followed by a newline, to the sink."""
        text = encode_value(self._codec, value, escape_html=self._escape_html)
        if self._prefix or self._indent:
            text = indent(text, self._prefix, self._indent)
        text += "\n"
        self._sink.write(text if self._text else text.encode("utf-8"))
