# topmark:header:start
#
#   project      : jsonx
#   file         : __init__.py
#   file_relpath : src/jsonx/__init__.py
#   license      : MIT
#   copyright    : (c) 2025 Olivier Biot
#
# topmark:header:end

"""jsonx package.

jsonx encodes dataclass records to JSON and decodes JSON back into typed values,
with codec-wide control over key naming, empty-value omission, unknown-field
handling, number representation and markup escaping.

Typical usage:
    ```python
    import jsonx

    codec = jsonx.new(name_transform=lambda s: s[:1].lower() + s[1:])
    data = codec.omit_empty().marshal(record)
    again = codec.disallow_unknown_fields().unmarshal(data, Record)
    ```

The module-level functions below use a process-wide default codec, created on
import with default options. New code should prefer holding an explicit
[`Codec`][jsonx.codec.Codec].
"""

from __future__ import annotations

from typing import IO, Any

from jsonx.codec import Codec, SharedState, new, valid
from jsonx.constants import JSONX_VERSION
from jsonx.decode import Decoder
from jsonx.descriptor import FieldKey, RecordTypeDescriptor, describe, field
from jsonx.encode import Encoder
from jsonx.errors import (
    JsonxError,
    JSONSyntaxError,
    MarshalError,
    ResolutionError,
    TypeMismatchError,
    UnknownFieldError,
    UnmarshalError,
    UnsupportedTypeError,
    UnsupportedValueError,
)
from jsonx.fields import FieldEntry, FieldPlan, resolve_fields
from jsonx.hooks import Marshaler, Unmarshaler
from jsonx.scalar import Number

__version__: str = JSONX_VERSION

__all__ = [
    "Codec",
    "Decoder",
    "Encoder",
    "FieldEntry",
    "FieldKey",
    "FieldPlan",
    "JSONSyntaxError",
    "JsonxError",
    "MarshalError",
    "Marshaler",
    "Number",
    "RecordTypeDescriptor",
    "ResolutionError",
    "SharedState",
    "TypeMismatchError",
    "UnknownFieldError",
    "UnmarshalError",
    "Unmarshaler",
    "UnsupportedTypeError",
    "UnsupportedValueError",
    "default_codec",
    "describe",
    "disallow_unknown_fields",
    "escape_html",
    "field",
    "marshal",
    "marshal_indent",
    "new",
    "new_decoder",
    "new_encoder",
    "omit_empty",
    "resolve_fields",
    "unmarshal",
    "use_number",
    "valid",
]

_default: Codec = new()


def default_codec() -> Codec:
    """Return the process-wide default codec."""
    return _default


def marshal(value: Any) -> bytes:
    """Encode ``value`` with the default codec."""
    return _default.marshal(value)


def marshal_indent(value: Any, prefix: str = "", indent_with: str = "  ") -> bytes:
    """Encode ``value`` as indented JSON with the default codec."""
    return _default.marshal_indent(value, prefix, indent_with)


def unmarshal(data: bytes | bytearray | memoryview | str, tp: Any = Any) -> Any:
    """Decode ``data`` into ``tp`` with the default codec."""
    return _default.unmarshal(data, tp)


def new_encoder(sink: IO[Any]) -> Encoder:
    return _default.new_encoder(sink)


def new_decoder(source: IO[Any]) -> Decoder:
    return _default.new_decoder(source)


def omit_empty() -> Codec:
    """Return a copy of the default codec that omits empty values, sharing its caches."""
    return _default.omit_empty()


def use_number() -> Codec:
    """Return a copy of the default codec decoding dynamic numbers as `Number`."""
    return _default.use_number()


def disallow_unknown_fields() -> Codec:
    """Return a copy of the default codec that rejects unknown object keys."""
    return _default.disallow_unknown_fields()


def escape_html(on: bool) -> Codec:
    """Return a copy of the default codec with markup escaping set to ``on``."""
    return _default.escape_html(on)
