# topmark:header:start
#
#   project      : jsonx
#   file         : descriptor.py
#   file_relpath : src/jsonx/descriptor.py
#   license      : MIT
#   copyright    : (c) 2025 Olivier Biot
#
# topmark:header:end

"""Record type descriptors.

A [`RecordTypeDescriptor`][jsonx.descriptor.RecordTypeDescriptor] is the
introspected, per-type view of a dataclass: its declared members in order, each
with its annotation and any explicit JSON overrides found in the field metadata.

Overrides live in ``dataclasses.field(metadata=...)`` under the keys listed in
[`FieldKey`][jsonx.descriptor.FieldKey]; [`field`][jsonx.descriptor.field] is a
shortcut that builds them:

```python
@dataclass
class User:
    name: str = jsonx.field(name="user_name")
    email: str = jsonx.field(default="", omitempty=True)
    base: Base = jsonx.field(default_factory=Base, embed=True)
    secret: str = jsonx.field(default="", skip=True)
```

The Go-style tag string is accepted too: ``field(metadata={"json": "user_name,omitempty"})``.

Descriptors are computed once per type and memoized.
"""

from __future__ import annotations

import dataclasses
import functools
import types
import typing
from dataclasses import dataclass
from typing import Any, Final, Union

from jsonx.errors import ResolutionError
from jsonx.logging import TraceLogger, get_logger

logger: TraceLogger = get_logger(__name__)


class FieldKey:
    """Field metadata keys understood by jsonx."""

    TAG: Final[str] = "json"
    NAME: Final[str] = "json_name"
    OMITEMPTY: Final[str] = "omitempty"
    EMBED: Final[str] = "embed"


@dataclass(frozen=True, slots=True)
class MemberDescriptor:
    """One declared member of a record type.

    Attributes:
        index: Position among the record's dataclass fields.
        name: Declared attribute name.
        annotation: Resolved type annotation.
        wire_name: Explicit wire name override, or None.
        omit_empty: Explicit omit-empty override, or None to follow the codec.
        embedded: True if the member is marked for flattening.
        record_type: The dataclass the member holds (unwrapping ``Optional``), if any.
        skip: True if the member is excluded from JSON entirely.
        init: True if the member is accepted by the dataclass ``__init__``.
        has_default: True if the dataclass declares a default or default factory.
    """

    index: int
    name: str
    annotation: Any
    wire_name: str | None = None
    omit_empty: bool | None = None
    embedded: bool = False
    record_type: type | None = None
    skip: bool = False
    init: bool = True
    has_default: bool = False

    @property
    def exported(self) -> bool:
        return not self.name.startswith("_")

    @property
    def flattened(self) -> bool:
        """True if this member's own members are promoted into the parent."""
        return self.embedded and self.wire_name is None and self.record_type is not None


@dataclass(frozen=True, slots=True)
class RecordTypeDescriptor:
    """Introspected shape of a record type."""

    record_type: type
    members: tuple[MemberDescriptor, ...]

    @property
    def name(self) -> str:
        return self.record_type.__qualname__


def field(
    *,
    name: str | None = None,
    omitempty: bool | None = None,
    embed: bool = False,
    skip: bool = False,
    metadata: dict[str, Any] | None = None,
    **kwargs: Any,
) -> Any:
    """Return a ``dataclasses.field`` carrying jsonx overrides.

    Args:
        name: Explicit wire name.
        omitempty: Explicit omit-empty override (``None`` follows the codec).
        embed: Flatten this dataclass-typed member into its parent.
        skip: Exclude the member from JSON.
        metadata: Extra metadata to merge.
        **kwargs: Forwarded to `dataclasses.field` (``default``, ``default_factory``...).

    Returns:
        The dataclass field specifier.
    """
    md: dict[str, Any] = dict(metadata or {})
    if skip:
        md[FieldKey.TAG] = "-"
    if name is not None:
        md[FieldKey.NAME] = name
    if omitempty is not None:
        md[FieldKey.OMITEMPTY] = omitempty
    if embed:
        md[FieldKey.EMBED] = True
    return dataclasses.field(metadata=md, **kwargs)


def parse_tag(tag: str) -> tuple[str, frozenset[str]]:
    """Split a ``"name,opt1,opt2"`` tag into its name and option set."""
    name, _, rest = tag.partition(",")
    options = frozenset(opt.strip() for opt in rest.split(",") if opt.strip())
    return name, options


def is_record_type(tp: Any) -> bool:
    return isinstance(tp, type) and dataclasses.is_dataclass(tp)


def unwrap_optional(tp: Any) -> Any:
    """Return ``T`` for ``Optional[T]`` / ``T | None``, else ``tp`` unchanged."""
    origin = typing.get_origin(tp)
    if origin is Union or origin is types.UnionType:
        args = [a for a in typing.get_args(tp) if a is not type(None)]
        if len(args) == 1:
            return args[0]
    return tp


def _describe_member(index: int, f: dataclasses.Field[Any], annotation: Any) -> MemberDescriptor:
    md = f.metadata
    wire_name: str | None = None
    omit_empty: bool | None = None
    skip = False

    tag = md.get(FieldKey.TAG)
    if tag is not None:
        if tag == "-":
            skip = True
        else:
            tag_name, options = parse_tag(tag)
            wire_name = tag_name or None
            if "omitempty" in options:
                omit_empty = True
    if md.get(FieldKey.NAME):
        wire_name = md[FieldKey.NAME]
    if md.get(FieldKey.OMITEMPTY) is not None:
        omit_empty = bool(md[FieldKey.OMITEMPTY])

    target = unwrap_optional(annotation)
    return MemberDescriptor(
        index=index,
        name=f.name,
        annotation=annotation,
        wire_name=wire_name,
        omit_empty=omit_empty,
        embedded=bool(md.get(FieldKey.EMBED, False)),
        record_type=target if is_record_type(target) else None,
        skip=skip,
        init=f.init,
        has_default=(
            f.default is not dataclasses.MISSING or f.default_factory is not dataclasses.MISSING
        ),
    )


@functools.lru_cache(maxsize=None)
def describe(tp: type) -> RecordTypeDescriptor:
    """Introspect a dataclass into a [`RecordTypeDescriptor`][jsonx.descriptor.RecordTypeDescriptor].

    Args:
        tp: A dataclass type.

    Returns:
        The memoized descriptor for ``tp``.

    Raises:
        ResolutionError: If ``tp`` is not a dataclass type or its annotations
            cannot be evaluated.
    """
    if not is_record_type(tp):
        raise ResolutionError(tp, "not a dataclass type")
    try:
        hints = typing.get_type_hints(tp)
    except (NameError, TypeError) as exc:
        raise ResolutionError(tp, str(exc)) from exc

    members = tuple(
        _describe_member(i, f, hints.get(f.name, Any))
        for i, f in enumerate(dataclasses.fields(tp))
    )
    logger.trace("described %s: %d members", tp.__qualname__, len(members))
    return RecordTypeDescriptor(record_type=tp, members=members)
