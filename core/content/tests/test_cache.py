"""Tests for the regeneration cache."""

from unittest.mock import AsyncMock

import pytest

from core.content.cache import (
    RegenerationCache,
    clear_cache,
    get_cache,
    set_cache,
)


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class TestCacheSingleton:
    """Test the process-wide cache accessors."""

    def setup_method(self):
        """Clear cache before each test."""
        clear_cache()

    def teardown_method(self):
        clear_cache()

    def test_get_cache_creates_on_first_use(self):
        """Should create a cache lazily and keep returning it."""
        cache = get_cache()

        assert isinstance(cache, RegenerationCache)
        assert get_cache() is cache

    def test_set_and_get_cache(self):
        cache = RegenerationCache()
        set_cache(cache)

        assert get_cache() is cache

    def test_clear_cache(self):
        """Should discard the cache so the next get starts fresh."""
        cache = get_cache()
        clear_cache()

        assert get_cache() is not cache


class TestRegenerationCache:
    """Test storage, expiry and invalidation."""

    def test_set_and_get(self):
        cache = RegenerationCache()
        cache.set("/projects", {"projects": []}, tags={"projects"})

        assert cache.get("/projects") == {"projects": []}

    def test_miss_returns_none(self):
        assert RegenerationCache().get("/nope") is None

    def test_entry_expires_after_revalidate_interval(self):
        clock = FakeClock()
        cache = RegenerationCache(clock=clock)
        cache.set("/blog", "v1", tags={"blog"}, revalidate=300)

        clock.now += 299
        assert cache.get("/blog") == "v1"

        clock.now += 1
        assert cache.get("/blog") is None
        assert "blog" not in cache.tag_index

    def test_entry_without_interval_never_expires(self):
        clock = FakeClock()
        cache = RegenerationCache(clock=clock)
        cache.set("/", "home")

        clock.now += 10**9
        assert cache.get("/") == "home"

    def test_invalidate_tag_drops_tagged_entries(self):
        cache = RegenerationCache()
        cache.set("/projects", "list", tags={"projects", "all-content"})
        cache.set("/projects/a", "a", tags={"projects", "all-content"})
        cache.set("/blog", "blog", tags={"blog", "all-content"})

        assert cache.invalidate_tag("projects") == 2

        assert cache.get("/projects") is None
        assert cache.get("/projects/a") is None
        assert cache.get("/blog") == "blog"

    def test_invalidate_tag_cleans_other_tags(self):
        """Dropped entries no longer count against their other tags."""
        cache = RegenerationCache()
        cache.set("/projects", "list", tags={"projects", "all-content"})
        cache.invalidate_tag("projects")

        assert cache.invalidate_tag("all-content") == 0

    def test_invalidate_path(self):
        cache = RegenerationCache()
        cache.set("/services/decks", "decks", tags={"services"})

        assert cache.invalidate_path("/services/decks") is True
        assert cache.get("/services/decks") is None
        assert "services" not in cache.tag_index

    def test_invalidation_is_idempotent(self):
        """Unknown tags and paths are no-ops, and repeating changes nothing."""
        cache = RegenerationCache()
        cache.set("/blog", "blog", tags={"blog"})

        assert cache.invalidate_tag("unknown") == 0
        assert cache.invalidate_path("/unknown") is False
        assert cache.invalidate_tag("blog") == 1
        assert cache.invalidate_tag("blog") == 0
        assert cache.entries == {}

    def test_set_replaces_entry_and_tags(self):
        cache = RegenerationCache()
        cache.set("/x", "v1", tags={"old"})
        cache.set("/x", "v2", tags={"new"})

        assert cache.invalidate_tag("old") == 0
        assert cache.get("/x") == "v2"

    def test_tags_accept_any_iterable(self):
        cache = RegenerationCache()
        cache.set("/a", "v", tags=["blog", "blog"])
        cache.set("/b", "v", tags=(t for t in ("blog", "pages")))

        assert cache.entries["/b"].tags == frozenset({"blog", "pages"})
        assert cache.invalidate_tag("blog") == 2
        assert cache.tag_index == {}

    def test_clear(self):
        cache = RegenerationCache()
        cache.set("/x", "v", tags={"t"})
        cache.clear()

        assert cache.entries == {}
        assert cache.tag_index == {}


class TestGetOrLoad:
    @pytest.mark.asyncio
    async def test_loads_on_miss_then_serves_cached(self):
        cache = RegenerationCache()
        loader = AsyncMock(return_value={"posts": []})

        first = await cache.get_or_load("/blog", loader, tags={"blog"})
        second = await cache.get_or_load("/blog", loader, tags={"blog"})

        assert first == second == {"posts": []}
        loader.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_reloads_after_invalidation(self):
        cache = RegenerationCache()
        loader = AsyncMock(side_effect=["v1", "v2"])

        await cache.get_or_load("/blog", loader, tags={"blog"})
        cache.invalidate_tag("blog")

        assert await cache.get_or_load("/blog", loader, tags={"blog"}) == "v2"

    @pytest.mark.asyncio
    async def test_none_is_not_cached(self):
        cache = RegenerationCache()
        loader = AsyncMock(return_value=None)

        await cache.get_or_load("/blog/missing", loader)
        await cache.get_or_load("/blog/missing", loader)

        assert loader.await_count == 2

    @pytest.mark.asyncio
    async def test_loader_errors_propagate(self):
        cache = RegenerationCache()
        loader = AsyncMock(side_effect=RuntimeError("repo down"))

        with pytest.raises(RuntimeError):
            await cache.get_or_load("/blog", loader)

        assert "/blog" not in cache.entries
