"""In-memory regeneration cache for rendered site content.

Entries are keyed by public path (``/projects``, ``/blog/my-post``) and
carry tags (``projects``, ``all-content``). Webhooks invalidate by tag or
path; entries also expire after their revalidation interval.

Invalidation is idempotent: dropping an unknown tag or path is a no-op.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Iterable

logger = logging.getLogger(__name__)


@dataclass
class CacheEntry:
    """A cached value and the tags it was rendered from."""

    value: Any
    tags: frozenset[str]
    stored_at: float  # time.monotonic()
    revalidate: float | None = None  # Seconds until stale; None = until invalidated

    def is_stale(self, now: float) -> bool:
        return self.revalidate is not None and now - self.stored_at >= self.revalidate


@dataclass
class RegenerationCache:
    """Path-keyed cache with tag and path invalidation."""

    entries: dict[str, CacheEntry] = field(default_factory=dict)
    # tag -> paths carrying that tag
    tag_index: dict[str, set[str]] = field(default_factory=dict)
    clock: Callable[[], float] = time.monotonic

    def get(self, path: str) -> Any | None:
        """Return the cached value, or None on a miss or stale entry."""
        entry = self.entries.get(path)
        if entry is None:
            return None
        if entry.is_stale(self.clock()):
            self._drop(path)
            return None
        return entry.value

    def set(
        self,
        path: str,
        value: Any,
        tags: Iterable[str] = (),
        revalidate: float | None = None,
    ) -> None:
        tags = frozenset(tags)
        self._drop(path)
        self.entries[path] = CacheEntry(
            value=value,
            tags=tags,
            stored_at=self.clock(),
            revalidate=revalidate,
        )
        for tag in tags:
            self.tag_index.setdefault(tag, set()).add(path)

    async def get_or_load(
        self,
        path: str,
        loader: Callable[[], Awaitable[Any]],
        tags: Iterable[str] = (),
        revalidate: float | None = None,
    ) -> Any:
        """Return the cached value for ``path``, regenerating it on a miss."""
        value = self.get(path)
        if value is not None:
            return value
        value = await loader()
        if value is not None:
            self.set(path, value, tags=tags, revalidate=revalidate)
        return value

    def invalidate_tag(self, tag: str) -> int:
        """Drop every entry carrying ``tag``. Returns the number dropped."""
        paths = self.tag_index.pop(tag, set())
        for path in paths:
            self._drop(path)
        if paths:
            logger.debug(f"Invalidated tag {tag!r} ({len(paths)} entries)")
        return len(paths)

    def invalidate_path(self, path: str) -> bool:
        """Drop the entry for ``path``. Returns True if one existed."""
        existed = path in self.entries
        self._drop(path)
        return existed

    def clear(self) -> None:
        self.entries.clear()
        self.tag_index.clear()

    def _drop(self, path: str) -> None:
        entry = self.entries.pop(path, None)
        if entry is None:
            return
        for tag in entry.tags:
            paths = self.tag_index.get(tag)
            if paths is not None:
                paths.discard(path)
                if not paths:
                    del self.tag_index[tag]


# Global cache singleton
_cache: RegenerationCache | None = None


def get_cache() -> RegenerationCache:
    """Get the process-wide regeneration cache, creating it on first use."""
    global _cache
    if _cache is None:
        _cache = RegenerationCache()
    return _cache


def set_cache(cache: RegenerationCache) -> None:
    """Set the regeneration cache (used by tests)."""
    global _cache
    _cache = cache


def clear_cache() -> None:
    """Discard the regeneration cache (used by tests)."""
    global _cache
    _cache = None
