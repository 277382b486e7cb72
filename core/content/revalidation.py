"""Invalidate regeneration-cache entries when repository content changes.

Webhook deliveries are at-least-once and may arrive out of order. Every
operation here is idempotent, so replays and reordering only cause extra
regeneration, never stale content. When a change cannot be classified the
router invalidates everything.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Iterable

import sentry_sdk

from .cache import RegenerationCache, get_cache
from .parser import classify, slug_from_path
from .types import ContentType

logger = logging.getLogger(__name__)

ALL_CONTENT_TAG = "all-content"

REVALIDATION_TAGS: dict[ContentType, str] = {
    ContentType.PAGE: "pages",
    ContentType.PROJECT: "projects",
    ContentType.SERVICE: "services",
    ContentType.BLOG: "blog",
    ContentType.TESTIMONIAL: "testimonials",
    ContentType.CONFIG: "site-config",
}

# Seconds before a cached page is regenerated even without a webhook
REVALIDATION_INTERVALS = {
    "static": 3600,
    "dynamic": 1800,
    "frequent": 300,
    "config": 86400,
}

CORE_PATHS = ("/", "/about", "/services", "/projects", "/contact")

# Listing pages that show every item of a type
LANDING_PATHS: dict[ContentType, tuple[str, ...]] = {
    ContentType.PAGE: ("/",),
    ContentType.PROJECT: ("/projects",),
    ContentType.SERVICE: ("/services",),
    ContentType.BLOG: ("/blog",),
    ContentType.TESTIMONIAL: (),
    ContentType.CONFIG: ("/", "/about", "/contact"),
}

# Public URL prefix per type; testimonials and site config have no page
PUBLIC_PATH_PREFIXES: dict[ContentType, str] = {
    ContentType.PAGE: "/",
    ContentType.PROJECT: "/projects/",
    ContentType.SERVICE: "/services/",
    ContentType.BLOG: "/blog/",
}

INDEX_PAGE_SLUG = "index"

# Page slugs whose "/{slug}" would collide with a collection landing page
RESERVED_PAGE_SLUGS = frozenset(
    prefix.strip("/") for prefix in PUBLIC_PATH_PREFIXES.values() if prefix != "/"
)


@dataclass
class InvalidationScope:
    """What a set of changed files invalidates."""

    affected_types: set[ContentType] = field(default_factory=set)
    affected_paths: set[str] = field(default_factory=set)

    @property
    def is_empty(self) -> bool:
        return not self.affected_types


def get_revalidation_config(page_type: str) -> dict:
    """Revalidation interval for a page type (unknown types are "dynamic")."""
    return {
        "revalidate": REVALIDATION_INTERVALS.get(
            page_type, REVALIDATION_INTERVALS["dynamic"]
        )
    }


def public_path(content_type: ContentType, slug: str) -> str | None:
    """Public URL of a content item, or None if it has no page of its own."""
    prefix = PUBLIC_PATH_PREFIXES.get(content_type)
    if prefix is None:
        return None
    if content_type == ContentType.PAGE and slug == INDEX_PAGE_SLUG:
        return None  # Served at "/", covered by the landing path
    if content_type == ContentType.PAGE and slug in RESERVED_PAGE_SLUGS:
        return None
    return f"{prefix}{slug}"


def project_url(project_id: str) -> str:
    return f"/projects/{project_id}"


def service_url(slug: str) -> str:
    return f"/services/{slug}"


def blog_url(slug: str) -> str:
    return f"/blog/{slug}"


def page_url(slug: str) -> str:
    return "/" if slug == INDEX_PAGE_SLUG else f"/{slug}"


def collect_changed_files(commits: Iterable[dict] | None) -> set[str]:
    """Union of added, modified and removed paths across commits."""
    changed: set[str] = set()
    for commit in commits or []:
        for key in ("added", "modified", "removed"):
            changed.update(commit.get(key) or [])
    return changed


def compute_invalidation_scope(changed_files: Iterable[str]) -> InvalidationScope:
    """Classify changed paths into affected content types and public paths."""
    scope = InvalidationScope()
    for path in changed_files:
        content_type = classify(path)
        if content_type == ContentType.UNKNOWN:
            continue
        scope.affected_types.add(content_type)

        slug = slug_from_path(path)
        if slug is None:
            continue
        url = public_path(content_type, slug)
        if url is not None:
            scope.affected_paths.add(url)
    return scope


def revalidate_content(
    content_type: ContentType,
    paths: Iterable[str] | None = None,
    cache: RegenerationCache | None = None,
) -> None:
    """Invalidate a content type's tag, the global tag, given paths and landing pages.

    Raises:
        KeyError: If ``content_type`` has no tag (UNKNOWN).
    """
    cache = cache or get_cache()
    path_list = sorted(paths or [])

    cache.invalidate_tag(REVALIDATION_TAGS[content_type])
    cache.invalidate_tag(ALL_CONTENT_TAG)

    for path in path_list:
        cache.invalidate_path(path)
    for path in LANDING_PATHS[content_type]:
        cache.invalidate_path(path)

    suffix = f" with paths: {', '.join(path_list)}" if path_list else ""
    logger.info(f"Revalidated content type: {content_type.value}{suffix}")


def revalidate_all_content(cache: RegenerationCache | None = None) -> None:
    """Invalidate every known tag and the core navigation paths."""
    cache = cache or get_cache()
    for tag in REVALIDATION_TAGS.values():
        cache.invalidate_tag(tag)
    cache.invalidate_tag(ALL_CONTENT_TAG)
    for path in CORE_PATHS:
        cache.invalidate_path(path)
    logger.info("Revalidated all content")


def apply_invalidation(
    scope: InvalidationScope, cache: RegenerationCache | None = None
) -> None:
    """Invalidate everything ``scope`` covers, or everything if it is empty."""
    if scope.is_empty:
        revalidate_all_content(cache)
        return
    for content_type in sorted(scope.affected_types, key=lambda t: t.value):
        revalidate_content(content_type, scope.affected_paths, cache)


def handle_webhook_revalidation(
    payload: dict, cache: RegenerationCache | None = None
) -> dict:
    """Invalidate the cache for a push payload's commits.

    Never raises: failures are reported as ``{"success": False, "error": ...}``
    and are not retried (the next change, or the periodic sweep, recovers).
    """
    try:
        changed_files = collect_changed_files(payload.get("commits"))
        scope = compute_invalidation_scope(changed_files)
        apply_invalidation(scope, cache)
        return {
            "success": True,
            "affected_types": sorted(t.value for t in scope.affected_types),
            "affected_paths": sorted(scope.affected_paths),
        }
    except Exception as e:
        logger.error(f"Failed to handle webhook revalidation: {e}")
        sentry_sdk.capture_exception(e)
        return {"success": False, "error": str(e)}


def schedule_revalidation(cache: RegenerationCache | None = None) -> dict:
    """Full invalidation, run periodically as a backstop for missed webhooks."""
    try:
        revalidate_all_content(cache)
        logger.info("Scheduled revalidation completed")
        return {"success": True}
    except Exception as e:
        logger.error(f"Scheduled revalidation failed: {e}")
        sentry_sdk.capture_exception(e)
        return {"success": False, "error": str(e)}


class RevalidationScheduler:
    """Runs ``schedule_revalidation`` on a fixed interval in the background."""

    def __init__(self, interval: float):
        self._interval = interval
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if not self.running:
            self._task = asyncio.create_task(self._loop())
            logger.info(f"Revalidation sweep started (every {self._interval}s)")

    def stop(self) -> None:
        if self.running:
            self._task.cancel()
            self._task = None
            logger.info("Revalidation sweep stopped")

    async def _loop(self) -> None:
        while True:
            try:
                await asyncio.sleep(self._interval)
            except asyncio.CancelledError:
                break
            schedule_revalidation()
