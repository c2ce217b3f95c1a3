"""Process-lifetime TTL cache for resolved entity lookups."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from types import MappingProxyType

from wpcommit.entities import EntityKey, EntityKind

logger = logging.getLogger(__name__)

Clock = Callable[[], float]

DEFAULT_MAX_ENTRIES = 1000
DEFAULT_TTL_SECONDS: Mapping[EntityKind, float] = MappingProxyType(
    {
        EntityKind.TICKET: 300.0,
        EntityKind.CHANGESET: 300.0,
        EntityKind.PROFILE: 600.0,
    },
)


@dataclass(frozen=True, slots=True)
class CacheEntry:
    """Immutable lookup outcome; superseded on refresh, never mutated."""

    exists: bool
    detail: str | None
    fetched_at: float


class EntityCache:
    """Map entity keys to lookup outcomes with per-kind TTL expiry.

    Expired entries are never returned from :meth:`get` but stay in the store
    until the next :meth:`evict_expired` sweep, which :meth:`put` runs once
    the store grows past ``max_entries``.
    """

    _entries: dict[EntityKey, CacheEntry]
    _ttl_seconds: Mapping[EntityKind, float]
    _max_entries: int
    _clock: Clock

    def __init__(
        self,
        *,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        ttl_seconds: Mapping[EntityKind, float] | None = None,
        clock: Clock = time.monotonic,
    ) -> None:
        """Create an empty cache with injectable clock and TTL overrides."""
        self._entries = {}
        self._ttl_seconds = {**DEFAULT_TTL_SECONDS, **(ttl_seconds or {})}
        self._max_entries = max_entries
        self._clock = clock

    def __len__(self) -> int:
        return len(self._entries)

    def now(self) -> float:
        """Return the cache clock reading used to stamp new entries."""
        return self._clock()

    def ttl_for(self, kind: EntityKind) -> float:
        """Return TTL seconds for one entity kind."""
        return self._ttl_seconds[kind]

    def get(self, key: EntityKey) -> CacheEntry | None:
        """Return the entry for key, or None when missing or expired."""
        entry = self._entries.get(key)
        if entry is None or not self._is_fresh(key, entry, now=self._clock()):
            return None
        return entry

    def put(self, key: EntityKey, entry: CacheEntry) -> None:
        """Store entry for key, sweeping expired entries when over capacity."""
        if len(self._entries) > self._max_entries:
            _ = self.evict_expired()
        self._entries[key] = entry

    def evict_expired(self) -> int:
        """Drop every expired entry and return how many were removed."""
        now = self._clock()
        expired = [
            key
            for key, entry in self._entries.items()
            if not self._is_fresh(key, entry, now=now)
        ]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.debug(
                "Evicted expired cache entries",
                extra={"evicted": len(expired), "remaining": len(self._entries)},
            )
        return len(expired)

    def clear(self) -> None:
        """Remove every entry."""
        self._entries.clear()

    def _is_fresh(self, key: EntityKey, entry: CacheEntry, *, now: float) -> bool:
        return now - entry.fetched_at < self._ttl_seconds[key.kind]
