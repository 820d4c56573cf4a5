# topmark:header:start
#
#   project      : jsonx
#   file         : cache.py
#   file_relpath : src/jsonx/cache.py
#   license      : MIT
#   copyright    : (c) 2025 Olivier Biot
#
# topmark:header:end

"""Concurrent-safe, grow-only caches keyed by type.

Notes:
    * Values must be pure functions of their key (plus state shared by every
      holder of the cache). Two threads missing on the same key may both
      compute; the first value stored wins and is returned to both.
    * The lock is only held while storing, never while computing, so a
      computation may itself consult the cache (recursive record types).
    * Entries are never evicted: growth is bounded by the number of distinct
      types a process encodes or decodes.
"""

from __future__ import annotations

from threading import Lock
from typing import TYPE_CHECKING, Generic, TypeVar

from jsonx.logging import TraceLogger, get_logger

if TYPE_CHECKING:
    from collections.abc import Callable, Hashable

logger: TraceLogger = get_logger(__name__)

K = TypeVar("K", bound="Hashable")
V = TypeVar("V")


class ResolutionCache(Generic[K, V]):
    """A grow-only mapping populated by compute-then-store-if-absent."""

    __slots__ = ("_entries", "_lock", "name")

    def __init__(self, name: str = "cache") -> None:
        self.name = name
        self._entries: dict[K, V] = {}
        self._lock = Lock()

    def get(self, key: K) -> V | None:
        """Return the cached value for ``key``, or None."""
        return self._entries.get(key)

    def get_or_compute(self, key: K, compute: Callable[[], V]) -> V:
        """Return the cached value for ``key``, computing and storing it on a miss.

        Args:
            key: Cache key (a type).
            compute: Zero-argument function producing the value.

        Returns:
            The value stored for ``key``; on a race, the one stored first.
        """
        value = self._entries.get(key)
        if value is not None:
            return value

        computed = compute()
        with self._lock:
            value = self._entries.setdefault(key, computed)
        if value is computed:
            logger.debug("%s: stored entry for %r", self.name, key)
        return value

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r}, entries={len(self)})"
