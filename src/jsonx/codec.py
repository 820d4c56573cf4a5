# topmark:header:start
#
#   project      : jsonx
#   file         : codec.py
#   file_relpath : src/jsonx/codec.py
#   license      : MIT
#   copyright    : (c) 2025 Olivier Biot
#
# topmark:header:end

"""Codec configuration.

A [`Codec`][jsonx.codec.Codec] is an immutable set of behavior flags plus two
caches: resolved field plans and compiled per-type encoders.

Lifecycle:
    - [`new`][jsonx.codec.new] creates a root codec with fresh caches. It is the
      only way to choose a ``name_transform``.
    - Builder methods (`omit_empty`, `use_number`, `disallow_unknown_fields`,
      `escape_html`) return a copy with one flag changed that **shares** both
      caches with the codec it was derived from.

Cache sharing is sound because a field plan depends only on the record type and
the ``name_transform``, which every codec derived from one root has in common.
Flags are read at encode/decode time and never stored in the caches.

Concurrency:
    Codecs are safe for concurrent use by multiple threads. Reuse them: the
    caches make every call after the first one for a type cheaper.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import IO, TYPE_CHECKING, Any

from jsonx.cache import ResolutionCache
from jsonx.decode import Decoder, unmarshal
from jsonx.descriptor import describe
from jsonx.encode import Encoder, encode_value
from jsonx.errors import JSONSyntaxError
from jsonx.fields import FieldPlan, NameTransform, resolve_fields
from jsonx.scalar import decode_document, indent, to_text

if TYPE_CHECKING:
    from jsonx.encode import EncoderFunc


@dataclass(frozen=True, slots=True)
class SharedState:
    """State common to a root codec and every codec derived from it.

    Holding the name transform next to the caches keeps them consistent: a
    different transform always comes with fresh caches.
    """

    name_transform: NameTransform | None = None
    field_cache: ResolutionCache[type, FieldPlan] = field(
        default_factory=lambda: ResolutionCache("field_cache"), repr=False, compare=False
    )
    encoder_cache: ResolutionCache[type, EncoderFunc] = field(
        default_factory=lambda: ResolutionCache("encoder_cache"), repr=False, compare=False
    )


@dataclass(frozen=True, slots=True)
class Codec:
    """A JSON encoder/decoder configuration.

    Attributes:
        shared: Name transform and caches, shared with derived codecs.
        omits_empty: Omit empty values of fields without an explicit override.
        uses_number: Decode numbers in dynamic slots as `Number` instead of ``float``.
        disallows_unknown_fields: Fail on object keys that match no record field.
        escapes_html: Escape ``&``, ``<`` and ``>`` inside JSON strings.
    """

    shared: SharedState = field(default_factory=SharedState, repr=False)
    omits_empty: bool = False
    uses_number: bool = False
    disallows_unknown_fields: bool = False
    escapes_html: bool = True

    @property
    def name_transform(self) -> NameTransform | None:
        return self.shared.name_transform

    @property
    def field_cache(self) -> ResolutionCache[type, FieldPlan]:
        return self.shared.field_cache

    @property
    def encoder_cache(self) -> ResolutionCache[type, EncoderFunc]:
        return self.shared.encoder_cache

    # --- builders ---

    def omit_empty(self) -> Codec:
        """Return a copy that omits fields holding empty values, sharing caches."""
        return replace(self, omits_empty=True)

    def use_number(self) -> Codec:
        """Return a copy that decodes dynamic numbers as `Number`, sharing caches."""
        return replace(self, uses_number=True)

    def disallow_unknown_fields(self) -> Codec:
        """Return a copy that rejects unknown object keys, sharing caches."""
        return replace(self, disallows_unknown_fields=True)

    def escape_html(self, on: bool) -> Codec:
        """Return a copy with markup escaping turned on or off, sharing caches.

        The default escapes ``&``, ``<`` and ``>`` so JSON can be embedded in HTML
        safely. In other settings, ``escape_html(False)`` keeps output readable.
        """
        return replace(self, escapes_html=on)

    # --- field plans ---

    def plan_for(self, tp: type) -> FieldPlan:
        """Return the (cached) field plan of the record type ``tp``."""
        return self.field_cache.get_or_compute(
            tp, lambda: resolve_fields(describe(tp), self.name_transform)
        )

    # --- one-shot ---

    def marshal(self, value: Any) -> bytes:
        """Encode ``value`` to compact JSON bytes."""
        return encode_value(self, value).encode("utf-8")

    def marshal_indent(self, value: Any, prefix: str = "", indent_with: str = "  ") -> bytes:
        """Encode ``value`` to indented JSON bytes.

        Args:
            value: The value to encode.
            prefix: Written at the start of every line but the first.
            indent_with: Written once per nesting level.

        Returns:
            Indented JSON bytes without a trailing newline.
        """
        return indent(encode_value(self, value), prefix, indent_with).encode("utf-8")

    def unmarshal(self, data: bytes | bytearray | memoryview | str, tp: Any = Any) -> Any:
        """Decode one JSON document into a value of type ``tp`` (``Any`` by default)."""
        return unmarshal(self, data, tp)

    # --- streaming ---

    def new_encoder(self, sink: IO[Any]) -> Encoder:
        """Return an [`Encoder`][jsonx.encode.Encoder] writing to ``sink``."""
        return Encoder(self, sink)

    def new_decoder(self, source: IO[Any]) -> Decoder:
        """Return a [`Decoder`][jsonx.decode.Decoder] reading from ``source``."""
        return Decoder(self, source)


def new(*, name_transform: NameTransform | None = None) -> Codec:
    """Create a root codec with its own caches.

    Args:
        name_transform: Function applied to member names to create object keys
            when encoding. Decoding matches incoming keys against the transformed
            names, exactly first and then case-insensitively. It cannot be changed
            on derived codecs, since that would invalidate their shared caches.

    Returns:
        A new [`Codec`][jsonx.codec.Codec].
    """
    return Codec(shared=SharedState(name_transform=name_transform))


def valid(data: bytes | bytearray | memoryview | str) -> bool:
    """Return True if ``data`` is one well-formed JSON document."""
    try:
        decode_document(to_text(data))
    except JSONSyntaxError:
        return False
    return True
