# topmark:header:start
#
#   project      : jsonx
#   file         : fields.py
#   file_relpath : src/jsonx/fields.py
#   license      : MIT
#   copyright    : (c) 2025 Olivier Biot
#
# topmark:header:end

"""Field resolution: from a record descriptor to its encodable field plan.

[`resolve_fields`][jsonx.fields.resolve_fields] walks a record type breadth-first
by embedding depth and returns a [`FieldPlan`][jsonx.fields.FieldPlan]: the
ordered, name-deduplicated list of fields that encode and decode.

Conflict rules for candidates sharing one wire name:
    1. Only candidates at the shallowest embedding depth are considered.
    2. Among those, a single candidate with an explicit wire name wins.
    3. Otherwise, if more than one candidate remains, the name is dropped: no
       field is encoded or decoded under it.

A plan depends only on ``(descriptor, name_transform)``. Per-codec flags such as
the omit-empty default are applied later by the encoder, never stored here.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from jsonx.descriptor import RecordTypeDescriptor, describe
from jsonx.logging import TraceLogger, get_logger

logger: TraceLogger = get_logger(__name__)

NameTransform = Callable[[str], str]


@dataclass(frozen=True, slots=True)
class FieldEntry:
    """A resolved field.

    Attributes:
        wire_name: Key used in the JSON object.
        access_path: Member indices from the record down to the field, through
            zero or more flattened embedded members.
        attr_path: Attribute names matching ``access_path``.
        annotation: Declared type of the field.
        omit_empty: Explicit per-field override, or None to follow the codec default.
        explicit_name: True if ``wire_name`` came from an explicit override.
        depth: Embedding depth (0 for members declared on the record itself).
    """

    wire_name: str
    access_path: tuple[int, ...]
    attr_path: tuple[str, ...]
    annotation: Any
    omit_empty: bool | None = None
    explicit_name: bool = False
    depth: int = 0

    @property
    def fold_name(self) -> str:
        return self.wire_name.lower()


@dataclass(frozen=True, slots=True)
class FieldPlan:
    """Resolved fields of a record type, in encoding order."""

    record_type: type
    entries: tuple[FieldEntry, ...]
    by_name: Mapping[str, FieldEntry] = field(default_factory=dict)
    _folded: tuple[tuple[str, FieldEntry], ...] = ()

    @classmethod
    def build(cls, record_type: type, entries: tuple[FieldEntry, ...]) -> FieldPlan:
        return cls(
            record_type=record_type,
            entries=entries,
            by_name=MappingProxyType({e.wire_name: e for e in entries}),
            _folded=tuple((e.fold_name, e) for e in entries),
        )

    @property
    def names(self) -> tuple[str, ...]:
        return tuple(e.wire_name for e in self.entries)

    def lookup(self, key: str) -> FieldEntry | None:
        """Match an input object key to a field.

        An exact wire-name match wins; otherwise the first entry in plan order
        whose wire name matches case-insensitively is returned.
        """
        entry = self.by_name.get(key)
        if entry is not None:
            return entry
        folded = key.lower()
        for name, candidate in self._folded:
            if name == folded:
                return candidate
        return None

    def __len__(self) -> int:
        return len(self.entries)


@dataclass(slots=True)
class _Pending:
    """A record reached through embedding, waiting to be scanned at the next depth."""

    descriptor: RecordTypeDescriptor
    access_path: tuple[int, ...]
    attr_path: tuple[str, ...]


def _candidate_name(member_name: str, wire_name: str | None, transform: NameTransform | None) -> str:
    if wire_name is not None:
        return wire_name
    if transform is not None:
        return transform(member_name)
    return member_name


def _dominant(group: list[FieldEntry]) -> FieldEntry | None:
    """Pick the winner among candidates sharing a wire name, or None if ambiguous."""
    min_depth = min(e.depth for e in group)
    shallow = [e for e in group if e.depth == min_depth]
    if len(shallow) == 1:
        return shallow[0]
    explicit = [e for e in shallow if e.explicit_name]
    if len(explicit) == 1:
        return explicit[0]
    return None


def resolve_fields(
    descriptor: RecordTypeDescriptor,
    name_transform: NameTransform | None = None,
) -> FieldPlan:
    """Compute the field plan of a record type.

    Args:
        descriptor: Descriptor of the record type.
        name_transform: Function applied to member names that carry no explicit
            wire name. ``None`` keeps member names unchanged.

    Returns:
        The resolved [`FieldPlan`][jsonx.fields.FieldPlan].
    """
    candidates: list[FieldEntry] = []
    visited: set[type] = set()

    depth = 0
    next_level: list[_Pending] = [_Pending(descriptor, (), ())]
    next_count: dict[type, int] = {descriptor.record_type: 1}

    while next_level:
        current, next_level = next_level, []
        count, next_count = next_count, {}

        for pending in current:
            rt = pending.descriptor.record_type
            if rt in visited:
                continue
            visited.add(rt)

            for member in pending.descriptor.members:
                if member.skip:
                    continue
                access_path = (*pending.access_path, member.index)
                attr_path = (*pending.attr_path, member.name)

                if member.flattened:
                    sub_type = member.record_type
                    assert sub_type is not None
                    next_count[sub_type] = next_count.get(sub_type, 0) + 1
                    if next_count[sub_type] == 1:
                        next_level.append(_Pending(describe(sub_type), access_path, attr_path))
                    continue

                if not member.exported:
                    continue

                entry = FieldEntry(
                    wire_name=_candidate_name(member.name, member.wire_name, name_transform),
                    access_path=access_path,
                    attr_path=attr_path,
                    annotation=member.annotation,
                    omit_empty=member.omit_empty,
                    explicit_name=member.wire_name is not None,
                    depth=depth,
                )
                candidates.append(entry)
                if count.get(rt, 0) > 1:
                    # The same record was embedded more than once at this depth:
                    # its members are ambiguous and must annihilate.
                    candidates.append(entry)
        depth += 1

    groups: dict[str, list[FieldEntry]] = {}
    for entry in candidates:
        groups.setdefault(entry.wire_name, []).append(entry)

    survivors: list[FieldEntry] = []
    for name, group in groups.items():
        winner = _dominant(group)
        if winner is None:
            logger.trace("%s: dropping ambiguous field %r", descriptor.name, name)
            continue
        survivors.append(winner)

    survivors.sort(key=lambda e: e.access_path)
    plan = FieldPlan.build(descriptor.record_type, tuple(survivors))
    logger.trace("%s: resolved fields %s", descriptor.name, plan.names)
    return plan
