# topmark:header:start
#
#   project      : jsonx
#   file         : errors.py
#   file_relpath : src/jsonx/errors.py
#   license      : MIT
#   copyright    : (c) 2025 Olivier Biot
#
# topmark:header:end

"""Exceptions raised by jsonx.

Usage:
    Every failure surfaced by the codec is a subclass of
    [`JsonxError`][jsonx.errors.JsonxError]. Each concrete error also derives from
    the closest built-in category (`TypeError` or `ValueError`) so callers that do
    not know about jsonx can still catch them meaningfully.

Retry semantics:
    All errors are deterministic functions of (codec, input); none of them is
    retried internally.
"""

from __future__ import annotations

from typing import Any


def _type_name(tp: Any) -> str:
    return getattr(tp, "__qualname__", None) or getattr(tp, "__name__", None) or repr(tp)


class JsonxError(Exception):
    """Base class for all jsonx errors."""


class ResolutionError(JsonxError, TypeError):
    """A type's shape cannot be introspected (not a record, unresolvable annotations)."""

    def __init__(self, tp: Any, reason: str) -> None:
        self.type = tp
        self.reason = reason
        super().__init__(f"cannot resolve fields of {_type_name(tp)}: {reason}")


class JSONSyntaxError(JsonxError, ValueError):
    """Malformed JSON input.

    Attributes:
        msg: Description of the problem, without position information.
        offset: Character offset into the input where the problem was detected.
        line: 1-based line number.
        column: 1-based column number.
    """

    def __init__(self, msg: str, offset: int, line: int, column: int) -> None:
        self.msg = msg
        self.offset = offset
        self.line = line
        self.column = column
        super().__init__(f"{msg}: line {line} column {column} (char {offset})")


class TypeMismatchError(JsonxError, ValueError):
    """A JSON value cannot populate the destination's declared kind.

    Attributes:
        value: Short description of the JSON value kind (``"string"``, ``"number 2.5"``...).
        target: The destination type.
        record: Name of the record type being decoded when the mismatch happened, if any.
        field: Dotted wire-name path of the offending field inside ``record``, if any.
    """

    def __init__(
        self,
        value: str,
        target: Any,
        *,
        record: str | None = None,
        field: str | None = None,
    ) -> None:
        self.value = value
        self.target = target
        self.record = record
        self.field = field
        if record is not None and field:
            where = f"field {record}.{field}"
        else:
            where = "value"
        super().__init__(f"cannot unmarshal {value} into {where} of type {_type_name(target)}")


class UnknownFieldError(JsonxError, ValueError):
    """An input object key matches no field of the destination record."""

    def __init__(self, key: str) -> None:
        self.key = key
        super().__init__(f'unknown field "{key}"')


class UnsupportedTypeError(JsonxError, TypeError):
    """A Python value of this type has no JSON representation."""

    def __init__(self, tp: Any) -> None:
        self.type = tp
        super().__init__(f"unsupported type: {_type_name(tp)}")


class UnsupportedValueError(JsonxError, ValueError):
    """A value of a supported type cannot be represented (NaN, cycles, bad literals)."""

    def __init__(self, value: Any, reason: str) -> None:
        self.value = value
        self.reason = reason
        super().__init__(f"unsupported value: {reason}")


class MarshalError(JsonxError):
    """A custom ``marshal_json`` hook failed or produced invalid JSON.

    The original exception is available as ``__cause__``.
    """

    def __init__(self, tp: Any, cause: BaseException) -> None:
        self.type = tp
        super().__init__(f"error calling marshal_json for type {_type_name(tp)}: {cause}")


class UnmarshalError(JsonxError):
    """A custom ``unmarshal_json`` hook, or a record constructor, failed.

    The original exception is available as ``__cause__``.
    """

    def __init__(self, tp: Any, cause: BaseException, method: str = "unmarshal_json") -> None:
        self.type = tp
        self.method = method
        super().__init__(f"error calling {method} for type {_type_name(tp)}: {cause}")
