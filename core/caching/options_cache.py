"""
Field Options Cache: Explicit Lookup Cache for Dynamic Fields.

Dynamic rule fields (campus, faculty, region, ...) draw their candidate
values from lookup tables. The calling layer owns one of these caches and
passes a loader for the actual fetch; nothing here does I/O on its own and
there is no module-level state.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional
import logging

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class FieldOption:
    """One selectable value for a dynamic field."""
    value: Any
    label: str

    def to_dict(self) -> dict[str, Any]:
        return {"value": self.value, "label": self.label}


@dataclass
class CacheEntry:
    field_type: str
    options: list[FieldOption]
    stored_at: datetime
    expires_at: datetime | None = None

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at is not None and now >= self.expires_at


@dataclass
class CacheStats:
    hits: int = 0
    misses: int = 0
    load_failures: int = 0
    entries: int = 0


class FieldOptionsCache:
    """In-memory options cache keyed by field type.

    Usage::

        cache = FieldOptionsCache(ttl_seconds=300)
        regions = cache.get_or_load("region", fetch_regions)
        ...
        cache.invalidate("region")   # after a region is edited
    """

    def __init__(
        self,
        ttl_seconds: int | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._stats = CacheStats()

    def get(self, field_type: str) -> Optional[list[FieldOption]]:
        """Return cached options, or None when absent or expired."""
        entry = self._entries.get(field_type)
        if entry is None:
            return None
        if entry.is_expired(self._clock()):
            del self._entries[field_type]
            return None
        return entry.options

    def set(self, field_type: str, options: list[Any]) -> list[FieldOption]:
        now = self._clock()
        normalized = [_to_option(item) for item in options]
        self._entries[field_type] = CacheEntry(
            field_type=field_type,
            options=normalized,
            stored_at=now,
            expires_at=now + timedelta(seconds=self.ttl_seconds) if self.ttl_seconds else None,
        )
        return normalized

    def get_or_load(
        self,
        field_type: str,
        loader: Callable[[str], list[Any]],
    ) -> Optional[list[FieldOption]]:
        """Return cached options or call ``loader(field_type)`` and cache the result.

        A failing loader is logged and yields None; nothing is cached so the
        next call retries.
        """
        cached = self.get(field_type)
        if cached is not None:
            self._stats.hits += 1
            return cached

        self._stats.misses += 1
        try:
            loaded = loader(field_type)
        except Exception:
            self._stats.load_failures += 1
            logger.exception("Error loading options for field type %s", field_type)
            return None

        if not loaded:
            return []
        return self.set(field_type, loaded)

    def invalidate(self, field_type: str | None = None) -> int:
        """Drop one field type, or everything when called without arguments."""
        if field_type is None:
            count = len(self._entries)
            self._entries.clear()
            return count
        return 1 if self._entries.pop(field_type, None) is not None else 0

    @property
    def stats(self) -> CacheStats:
        return CacheStats(
            hits=self._stats.hits,
            misses=self._stats.misses,
            load_failures=self._stats.load_failures,
            entries=len(self._entries),
        )


def _to_option(item: Any) -> FieldOption:
    if isinstance(item, FieldOption):
        return item
    if isinstance(item, dict):
        value = item.get("value", item.get("id"))
        return FieldOption(value=value, label=str(item.get("label", value)))
    return FieldOption(value=item, label=str(item))
