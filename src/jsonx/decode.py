# topmark:header:start
#
#   project      : jsonx
#   file         : decode.py
#   file_relpath : src/jsonx/decode.py
#   license      : MIT
#   copyright    : (c) 2025 Olivier Biot
#
# topmark:header:end

"""Decoding JSON into typed Python values.

The input is first parsed by [`jsonx.scalar`][jsonx.scalar] into a token tree
(numbers kept as [`Number`][jsonx.scalar.Number] literals, objects as ordered
[`JSONObject`][jsonx.scalar.JSONObject] pairs). A [`DecodeState`][jsonx.decode.DecodeState]
then walks that tree against the destination type:

- dynamic slots (``Any``, ``object``) receive plain Python values; numbers become
  ``float``, or ``Number`` when the codec uses arbitrary-precision numbers;
- typed slots convert (``int``, ``float``, ``Decimal``, ``str``, containers,
  enums, literals, unions, dataclass records);
- types providing ``unmarshal_json`` receive the compact JSON text of their subtree.

Record keys are matched against the type's [`FieldPlan`][jsonx.fields.FieldPlan]
(exact wire name first, then case-insensitively). Unknown keys are skipped unless
the codec disallows them. Members absent from the input keep their dataclass
default, or the zero value of their declared type.
"""

from __future__ import annotations

import base64
import binascii
import codecs
import collections.abc
import io
import types
import typing
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import IO, TYPE_CHECKING, Any, Final, Literal, Union

from jsonx.descriptor import describe, is_record_type
from jsonx.errors import (
    JsonxError,
    JSONSyntaxError,
    TypeMismatchError,
    UnknownFieldError,
    UnmarshalError,
    UnsupportedTypeError,
)
from jsonx.hooks import is_unmarshaler
from jsonx.logging import TraceLogger, get_logger
from jsonx.scalar import (
    JSONObject,
    Number,
    decode_document,
    decode_prefix,
    dump_tree,
    skip_whitespace,
    to_text,
)

if TYPE_CHECKING:
    from jsonx.codec import Codec

logger: TraceLogger = get_logger(__name__)

_NONE_TYPE: Final = type(None)

_SEQUENCE_ORIGINS: Final[tuple[Any, ...]] = (
    list,
    collections.abc.Sequence,
    collections.abc.MutableSequence,
    collections.abc.Iterable,
    collections.abc.Collection,
)
_SET_ORIGINS: Final[tuple[Any, ...]] = (
    set,
    frozenset,
    collections.abc.Set,
    collections.abc.MutableSet,
)
_MAPPING_ORIGINS: Final[tuple[Any, ...]] = (
    dict,
    collections.abc.Mapping,
    collections.abc.MutableMapping,
)


def _is_union(origin: Any) -> bool:
    return origin is Union or origin is types.UnionType


def describe_node(node: Any) -> str:
    """Return the JSON kind of a token tree node, as used in error messages."""
    if node is None:
        return "null"
    if isinstance(node, bool):
        return "bool"
    if isinstance(node, Number):
        return "number"
    if isinstance(node, str):
        return "string"
    if isinstance(node, JSONObject):
        return "object"
    return "array"


def accepts_none(tp: Any) -> bool:
    """Return True if JSON ``null`` is a meaningful value for ``tp``."""
    if tp is Any or tp is object or tp is _NONE_TYPE or tp is None:
        return True
    origin = typing.get_origin(tp)
    if _is_union(origin):
        return _NONE_TYPE in typing.get_args(tp)
    if origin is Literal:
        return None in typing.get_args(tp)
    return False


class DecodeState:
    """Walks a token tree against a destination type for one decode call."""

    def __init__(self, codec: Codec) -> None:
        self._codec = codec
        self._record: str | None = None
        self._path: list[str] = []

    # --- errors ---

    def mismatch(self, value: str, tp: Any) -> TypeMismatchError:
        return TypeMismatchError(
            value,
            tp,
            record=self._record,
            field=".".join(self._path) or None,
        )

    # --- dispatch ---

    def convert(self, node: Any, tp: Any) -> Any:
        """Convert a token tree node into a value of type ``tp``."""
        if tp is Any or tp is object:
            return self.dynamic(node)
        if is_unmarshaler(tp):
            return self._unmarshaler(node, tp)

        origin = typing.get_origin(tp)
        if _is_union(origin):
            return self._union(node, tp)
        if origin is Literal:
            return self._literal(node, tp)
        if origin is not None:
            return self._generic(node, tp, origin, typing.get_args(tp))

        if tp is None or tp is _NONE_TYPE:
            if node is not None:
                raise self.mismatch(describe_node(node), _NONE_TYPE)
            return None
        if not isinstance(tp, type):
            raise UnsupportedTypeError(tp)
        if node is None:
            return self.zero_value(tp)
        return self._concrete(node, tp)

    def dynamic(self, node: Any) -> Any:
        """Convert a node for a dynamically-typed destination."""
        if isinstance(node, JSONObject):
            return {key: self.dynamic(value) for key, value in node}
        if isinstance(node, Number):
            return Number(node) if self._codec.uses_number else float(node)
        if isinstance(node, list):
            return [self.dynamic(item) for item in node]
        return node

    def _concrete(self, node: Any, tp: type) -> Any:
        if issubclass(tp, Enum):
            return self._enum(node, tp)
        if issubclass(tp, bool):
            if not isinstance(node, bool):
                raise self.mismatch(describe_node(node), tp)
            return node
        if issubclass(tp, Number):
            if not isinstance(node, Number):
                raise self.mismatch(describe_node(node), tp)
            return tp(node)
        if issubclass(tp, int):
            if not isinstance(node, Number):
                raise self.mismatch(describe_node(node), tp)
            try:
                return tp(str.__str__(node))
            except ValueError:
                raise self.mismatch(f"number {node}", tp) from None
        if issubclass(tp, float):
            if not isinstance(node, Number):
                raise self.mismatch(describe_node(node), tp)
            return tp(float(node))
        if issubclass(tp, Decimal):
            if not isinstance(node, Number):
                raise self.mismatch(describe_node(node), tp)
            try:
                return tp(str.__str__(node))
            except InvalidOperation:
                raise self.mismatch(f"number {node}", tp) from None
        if issubclass(tp, str):
            if not isinstance(node, str) or isinstance(node, Number):
                raise self.mismatch(describe_node(node), tp)
            return node if tp is str else tp(node)
        if issubclass(tp, (bytes, bytearray)):
            return self._bytes(node, tp)
        if is_record_type(tp):
            return self.record(node, tp)
        if issubclass(tp, (dict, collections.abc.Mapping)):
            return self._generic(node, tp, dict, ())
        if issubclass(tp, tuple):
            return self._generic(node, tp, tuple, ())
        if issubclass(tp, (set, frozenset)):
            return self._generic(node, tp, tp, ())
        if issubclass(tp, list):
            return self._generic(node, tp, list, ())
        raise UnsupportedTypeError(tp)

    # --- containers ---

    def _generic(self, node: Any, tp: Any, origin: Any, args: tuple[Any, ...]) -> Any:
        if node is None:
            return self.zero_value(tp)
        if origin in _MAPPING_ORIGINS:
            if not isinstance(node, JSONObject):
                raise self.mismatch(describe_node(node), tp)
            key_tp = args[0] if args else Any
            value_tp = args[1] if len(args) > 1 else Any
            return {self._map_key(key, key_tp): self.convert(value, value_tp) for key, value in node}

        if not isinstance(node, list) or isinstance(node, JSONObject):
            raise self.mismatch(describe_node(node), tp)
        if origin is tuple:
            if not args or (len(args) == 2 and args[1] is Ellipsis):
                item_tp = args[0] if args else Any
                return tuple(self.convert(item, item_tp) for item in node)
            # fixed-length: extra input is ignored, missing positions are zero
            return tuple(
                self.convert(node[i], item_tp) if i < len(node) else self.zero_value(item_tp)
                for i, item_tp in enumerate(args)
            )
        item_tp = args[0] if args else Any
        items = [self.convert(item, item_tp) for item in node]
        if origin in _SET_ORIGINS:
            return frozenset(items) if origin is frozenset else set(items)
        if origin in _SEQUENCE_ORIGINS:
            return items
        raise UnsupportedTypeError(tp)

    def _map_key(self, key: str, tp: Any) -> Any:
        if tp is Any or tp is object or tp is str:
            return key
        if isinstance(tp, type):
            if issubclass(tp, Enum):
                return self._enum(Number(key) if key.lstrip("-").isdigit() else key, tp, raw=key)
            if issubclass(tp, int) and not issubclass(tp, bool):
                try:
                    return tp(key)
                except ValueError:
                    raise self.mismatch(f"number {key}", tp) from None
            if issubclass(tp, str):
                return tp(key)
        raise UnsupportedTypeError(tp)

    # --- special kinds ---

    def _enum(self, node: Any, tp: type[Enum], raw: str | None = None) -> Enum:
        candidates: list[Any] = []
        if isinstance(node, Number):
            try:
                candidates.append(int(str.__str__(node)))
            except ValueError:
                candidates.append(float(node))
        elif isinstance(node, (str, bool)):
            candidates.append(node)
        if raw is not None:
            candidates.append(raw)
        for candidate in candidates:
            try:
                return tp(candidate)
            except ValueError:
                continue
        raise self.mismatch(describe_node(node) if raw is None else f"key {raw!r}", tp)

    def _literal(self, node: Any, tp: Any) -> Any:
        value = self.dynamic(node) if not isinstance(node, Number) else _literal_number(node)
        for allowed in typing.get_args(tp):
            if type(allowed) is type(value) and allowed == value:
                return allowed
        raise self.mismatch(describe_node(node), tp)

    def _union(self, node: Any, tp: Any) -> Any:
        args = typing.get_args(tp)
        if node is None and _NONE_TYPE in args:
            return None
        options = [a for a in args if a is not _NONE_TYPE]
        if len(options) == 1:
            return self.convert(node, options[0])
        for option in options:
            try:
                return self.convert(node, option)
            except TypeMismatchError:
                continue
        raise self.mismatch(describe_node(node), tp)

    def _bytes(self, node: Any, tp: type) -> Any:
        if not isinstance(node, str) or isinstance(node, Number):
            raise self.mismatch(describe_node(node), tp)
        try:
            return tp(base64.b64decode(node, validate=True))
        except binascii.Error:
            raise self.mismatch("string", tp) from None

    def _unmarshaler(self, node: Any, tp: type) -> Any:
        raw = dump_tree(node, escape_html=False).encode("utf-8")
        try:
            return tp.unmarshal_json(raw)  # type: ignore[attr-defined]
        except JsonxError:
            raise
        except Exception as exc:
            raise UnmarshalError(tp, exc) from exc

    # --- records ---

    def record(self, node: Any, tp: type) -> Any:
        """Decode a JSON object into the dataclass ``tp``."""
        if not isinstance(node, JSONObject):
            raise self.mismatch(describe_node(node), tp)
        plan = self._codec.plan_for(tp)
        assigned: dict[tuple[int, ...], Any] = {}

        saved = self._record
        self._record = tp.__qualname__
        try:
            for key, value in node:
                entry = plan.lookup(key)
                if entry is None:
                    if self._codec.disallows_unknown_fields:
                        raise UnknownFieldError(key)
                    logger.trace("%s: skipping unknown field %r", tp.__qualname__, key)
                    continue
                if value is None and not accepts_none(entry.annotation):
                    continue
                self._path.append(entry.wire_name)
                try:
                    assigned[entry.access_path] = self.convert(value, entry.annotation)
                finally:
                    self._path.pop()
        finally:
            self._record = saved

        prefixes = {path[:i] for path in assigned for i in range(1, len(path))}
        return self.build(tp, (), assigned, prefixes)

    def build(
        self,
        tp: type,
        prefix: tuple[int, ...],
        assigned: dict[tuple[int, ...], Any],
        prefixes: set[tuple[int, ...]],
    ) -> Any:
        """Instantiate ``tp`` from decoded member values keyed by access path."""
        kwargs: dict[str, Any] = {}
        late: dict[str, Any] = {}
        for member in describe(tp).members:
            path = (*prefix, member.index)
            if path in assigned:
                value = assigned[path]
            elif member.flattened and path in prefixes:
                assert member.record_type is not None
                value = self.build(member.record_type, path, assigned, prefixes)
            elif member.has_default:
                continue
            else:
                value = self.zero_value(member.annotation)
            if member.init:
                kwargs[member.name] = value
            else:
                late[member.name] = value

        try:
            obj = tp(**kwargs)
        except JsonxError:
            raise
        except Exception as exc:
            raise UnmarshalError(tp, exc, "__init__") from exc
        for name, value in late.items():
            object.__setattr__(obj, name, value)
        return obj

    def zero_value(self, tp: Any) -> Any:
        """Return the zero value of a declared type."""
        if tp is Any or tp is object or tp is None or tp is _NONE_TYPE:
            return None
        origin = typing.get_origin(tp)
        if _is_union(origin):
            args = typing.get_args(tp)
            return None if _NONE_TYPE in args else self.zero_value(args[0])
        if origin is Literal:
            return typing.get_args(tp)[0]
        if origin is not None:
            if origin in _MAPPING_ORIGINS:
                return {}
            if origin in _SET_ORIGINS:
                return frozenset() if origin is frozenset else set()
            if origin is tuple:
                args = typing.get_args(tp)
                if not args or (len(args) == 2 and args[1] is Ellipsis):
                    return ()
                return tuple(self.zero_value(a) for a in args)
            if origin in _SEQUENCE_ORIGINS:
                return []
            return None
        if not isinstance(tp, type):
            return None
        if issubclass(tp, Enum):
            return next(iter(tp), None)
        if issubclass(tp, Number):
            return tp("0")
        if is_record_type(tp):
            return self.build(tp, (), {}, set())
        try:
            return tp()
        except TypeError:
            return None


def _literal_number(node: Number) -> int | float:
    try:
        return int(str.__str__(node))
    except ValueError:
        return float(node)


def decode_value(codec: Codec, node: Any, tp: Any = Any) -> Any:
    """Convert a parsed token tree into a value of type ``tp``."""
    return DecodeState(codec).convert(node, tp)


def unmarshal(codec: Codec, data: bytes | bytearray | memoryview | str, tp: Any = Any) -> Any:
    """Parse one complete JSON document and convert it to ``tp``."""
    return decode_value(codec, decode_document(to_text(data)), tp)


_CHUNK_SIZE: Final[int] = 64 * 1024

# Characters of bare tokens: numbers, the literals true, false and null, and
# the NaN and Infinity constants (parsed only to be rejected).
_TOKEN_CHARS: Final[frozenset[str]] = frozenset("0123456789+-.eEtrufalsnNaIiy")
_LITERALS: Final[frozenset[str]] = frozenset(("true", "false", "null"))
_SEPARATORS: Final[frozenset[str]] = frozenset(" \t\n\r,:")


class Decoder:
    """Reads successive JSON values from a text or binary stream.

    Values may be separated by whitespace. A value is handed to the parser as
    soon as its extent is known: at the closing bracket, brace or quote, or at
    the end of a literal. Only a number at the end of the buffered input waits
    for the next character (or the end of the stream), so it is never cut short.
    """

    def __init__(self, codec: Codec, source: IO[Any]) -> None:
        self._codec = codec
        self._source = source
        self._text = isinstance(source, io.TextIOBase)
        # read1 returns what is available instead of waiting for a full chunk
        self._read = getattr(source, "read1", source.read)
        self._utf8 = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buf = ""
        self._eof = False
        self._offset = 0
        self._line = 1
        self._column = 1
        # progress through the value being scanned
        self._start: int | None = None
        self._scanp = 0
        self._depth = 0
        self._in_string = False
        self._escaped = False

    @property
    def input_offset(self) -> int:
        """Number of characters consumed from the stream so far."""
        return self._offset

    def _fill(self) -> bool:
        if self._eof:
            return False
        chunk = self._read(_CHUNK_SIZE)
        if not chunk:
            self._eof = True
            if not self._text:
                self._buf += self._utf8.decode(b"", final=True)
            return False
        if isinstance(chunk, str):
            self._buf += chunk
        else:
            self._buf += self._utf8.decode(chunk)
        return True

    def _begin(self, start: int) -> None:
        self._start = start
        self._scanp = start
        self._depth = 0
        self._in_string = False
        self._escaped = False

    def _scan(self) -> int | None:
        """Advance through the current value; return its end once known, else None.

        Scanning resumes where the previous call stopped, so each character is
        looked at once however many reads the value spans.
        """
        buf = self._buf
        start = self._start
        assert start is not None
        i = self._scanp
        n = len(buf)

        if buf[start] not in '"[{':
            while i < n and buf[i] in _TOKEN_CHARS:
                i += 1
            self._scanp = i
            if i < n:
                # let the parser report a stray character
                return i if i > start else start + 1
            return i if buf[start:i] in _LITERALS else None

        depth = self._depth
        in_string = self._in_string
        escaped = self._escaped
        end: int | None = None
        while i < n:
            ch = buf[i]
            i += 1
            if in_string:
                if escaped:
                    escaped = False
                elif ch == "\\":
                    escaped = True
                elif ch == '"':
                    in_string = False
                    if depth == 0:
                        end = i
                        break
            elif ch == '"':
                in_string = True
            elif ch in "[{":
                depth += 1
            elif ch in "]}":
                depth -= 1
                if depth <= 0:
                    end = i
                    break
            elif ch not in _SEPARATORS and ch not in _TOKEN_CHARS:
                # cannot occur in a well-formed value
                end = i
                break
        self._scanp = i
        self._depth = depth
        self._in_string = in_string
        self._escaped = escaped
        return end

    def _consume(self, stop: int) -> None:
        consumed = self._buf[:stop]
        newlines = consumed.count("\n")
        if newlines:
            self._line += newlines
            self._column = stop - consumed.rfind("\n")
        else:
            self._column += stop
        self._buf = self._buf[stop:]
        self._offset += stop

    def _next_node(self) -> Any:
        while self._start is None:
            start = skip_whitespace(self._buf, 0)
            if start < len(self._buf):
                self._begin(start)
            elif not self._fill():
                raise EOFError("no more JSON values in stream")

        end = self._scan()
        while end is None:
            if not self._fill():
                end = len(self._buf)
                break
            end = self._scan()

        start = self._start
        self._start = None
        node, stop = decode_prefix(
            self._buf[:end], start, base=self._offset, origin=(self._line, self._column)
        )
        self._consume(stop)
        return node

    def decode(self, tp: Any = Any) -> Any:
        """Read the next JSON value and convert it to ``tp``.

        Raises:
            EOFError: If the stream holds no further value.
            JSONSyntaxError: If the next value is malformed.
        """
        return decode_value(self._codec, self._next_node(), tp)

    def more(self) -> bool:
        """Return True if another value is available in the stream."""
        while True:
            start = skip_whitespace(self._buf, 0)
            if start < len(self._buf):
                return self._buf[start] not in "]}"
            if not self._fill():
                return False
