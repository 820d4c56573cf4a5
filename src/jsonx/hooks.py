# topmark:header:start
#
#   project      : jsonx
#   file         : hooks.py
#   file_relpath : src/jsonx/hooks.py
#   license      : MIT
#   copyright    : (c) 2025 Olivier Biot
#
# topmark:header:end

"""Custom marshal/unmarshal capabilities.

A type takes over its own JSON representation by implementing one or both
protocols below. The encoder and decoder check for these capabilities before
applying any field-plan logic, and never look inside the hook's output beyond
validating that it is well-formed JSON.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class Marshaler(Protocol):
    """Values that encode themselves.

    ``marshal_json`` returns a complete JSON document (``bytes`` or ``str``).
    """

    def marshal_json(self) -> bytes | str:  # pragma: no cover - protocol
        ...


@runtime_checkable
class Unmarshaler(Protocol):
    """Types that decode themselves.

    ``unmarshal_json`` is a classmethod receiving the compact JSON text of the
    subtree and returning a new instance.
    """

    @classmethod
    def unmarshal_json(cls, data: bytes) -> Any:  # pragma: no cover - protocol
        ...


def is_marshaler(tp: type) -> bool:
    """Return True if instances of ``tp`` provide ``marshal_json``."""
    return callable(getattr(tp, "marshal_json", None))


def is_unmarshaler(tp: Any) -> bool:
    """Return True if ``tp`` is a class providing ``unmarshal_json``."""
    return isinstance(tp, type) and callable(getattr(tp, "unmarshal_json", None))
