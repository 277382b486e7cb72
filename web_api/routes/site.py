"""
Public site content API routes.

Every response is served through the regeneration cache, keyed by the public
path it renders (or its API path when it has no page) and tagged with its
content type, so webhook invalidation reaches it.

Endpoints:
- GET /api/site/pages, /api/site/pages/{slug}
- GET /api/site/projects, /api/site/projects/{slug}
- GET /api/site/services, /api/site/services/{slug}
- GET /api/site/blog, /api/site/blog/{slug}
- GET /api/site/testimonials
- GET /api/site/config
- GET /api/site/paths - Identifiers of every addressable item
- GET /api/site/stats - Item counts and last content update
"""

from typing import Awaitable, Callable

from fastapi import APIRouter, Depends, HTTPException

from core.content import AuthError, ContentFetcher, ContentType, RegenerationCache
from core.content.revalidation import (
    ALL_CONTENT_TAG,
    RESERVED_PAGE_SLUGS,
    REVALIDATION_TAGS,
    blog_url,
    get_revalidation_config,
    page_url,
    project_url,
    service_url,
)
from web_api.deps import get_content_fetcher, get_regeneration_cache

router = APIRouter(prefix="/api/site", tags=["site"])

# Responses with no public page of their own are keyed by their API path,
# which never equals a page path ("/{slug}").
PAGES_KEY = "/api/site/pages"
TESTIMONIALS_KEY = "/api/site/testimonials"
CONFIG_KEY = "/api/site/config"
PATHS_KEY = "/api/site/paths"
STATS_KEY = "/api/site/stats"


def _dump(record) -> dict:
    return record.model_dump(mode="json", by_alias=True)


def _tags(*content_types: ContentType, aggregate: bool = False) -> set[str]:
    """Cache tags for a response. Aggregates also carry the global tag."""
    tags = {REVALIDATION_TAGS[t] for t in content_types}
    if aggregate:
        tags.add(ALL_CONTENT_TAG)
    return tags


async def _cached(
    cache: RegenerationCache,
    path: str,
    loader: Callable[[], Awaitable],
    content_types: tuple[ContentType, ...],
    page_type: str,
    aggregate: bool = False,
):
    """Serve ``path`` from the cache, surfacing a broken repository as 503."""
    try:
        return await cache.get_or_load(
            path,
            loader,
            tags=_tags(*content_types, aggregate=aggregate),
            revalidate=get_revalidation_config(page_type)["revalidate"],
        )
    except AuthError:
        raise HTTPException(
            status_code=503, detail="Content repository unavailable"
        )


def _not_found(kind: str, slug: str) -> HTTPException:
    return HTTPException(status_code=404, detail=f"{kind} not found: {slug}")


# --- Pages ---


@router.get("/pages")
async def list_pages(
    fetcher: ContentFetcher = Depends(get_content_fetcher),
    cache: RegenerationCache = Depends(get_regeneration_cache),
):
    async def load():
        return {"pages": [_dump(p) for p in await fetcher.get_pages()]}

    return await _cached(cache, PAGES_KEY, load, (ContentType.PAGE,), "static")


@router.get("/pages/{slug}")
async def get_page(
    slug: str,
    fetcher: ContentFetcher = Depends(get_content_fetcher),
    cache: RegenerationCache = Depends(get_regeneration_cache),
):
    if slug in RESERVED_PAGE_SLUGS:
        raise _not_found("Page", slug)

    async def load():
        page = await fetcher.get_page(slug)
        return _dump(page) if page else None

    result = await _cached(cache, page_url(slug), load, (ContentType.PAGE,), "static")
    if result is None:
        raise _not_found("Page", slug)
    return result


# --- Projects ---


@router.get("/projects")
async def list_projects(
    featured: bool = False,
    fetcher: ContentFetcher = Depends(get_content_fetcher),
    cache: RegenerationCache = Depends(get_regeneration_cache),
):
    """Published projects, most recently completed first."""

    async def load():
        return {"projects": [_dump(p) for p in await fetcher.get_projects()]}

    result = await _cached(
        cache, "/projects", load, (ContentType.PROJECT,), "dynamic"
    )
    if featured:
        return {"projects": [p for p in result["projects"] if p["featured"]]}
    return result


@router.get("/projects/{slug}")
async def get_project(
    slug: str,
    fetcher: ContentFetcher = Depends(get_content_fetcher),
    cache: RegenerationCache = Depends(get_regeneration_cache),
):
    async def load():
        project = await fetcher.get_project(slug)
        return _dump(project) if project else None

    result = await _cached(
        cache, project_url(slug), load, (ContentType.PROJECT,), "dynamic"
    )
    if result is None:
        raise _not_found("Project", slug)
    return result


# --- Services ---


@router.get("/services")
async def list_services(
    fetcher: ContentFetcher = Depends(get_content_fetcher),
    cache: RegenerationCache = Depends(get_regeneration_cache),
):
    async def load():
        return {"services": [_dump(s) for s in await fetcher.get_services()]}

    return await _cached(cache, "/services", load, (ContentType.SERVICE,), "static")


@router.get("/services/{slug}")
async def get_service(
    slug: str,
    fetcher: ContentFetcher = Depends(get_content_fetcher),
    cache: RegenerationCache = Depends(get_regeneration_cache),
):
    async def load():
        service = await fetcher.get_service(slug)
        return _dump(service) if service else None

    result = await _cached(
        cache, service_url(slug), load, (ContentType.SERVICE,), "static"
    )
    if result is None:
        raise _not_found("Service", slug)
    return result


# --- Blog ---


@router.get("/blog")
async def list_blog_posts(
    fetcher: ContentFetcher = Depends(get_content_fetcher),
    cache: RegenerationCache = Depends(get_regeneration_cache),
):
    async def load():
        return {"posts": [_dump(p) for p in await fetcher.get_blog_posts()]}

    return await _cached(cache, "/blog", load, (ContentType.BLOG,), "frequent")


@router.get("/blog/{slug}")
async def get_blog_post(
    slug: str,
    fetcher: ContentFetcher = Depends(get_content_fetcher),
    cache: RegenerationCache = Depends(get_regeneration_cache),
):
    async def load():
        post = await fetcher.get_blog_post(slug)
        return _dump(post) if post else None

    result = await _cached(cache, blog_url(slug), load, (ContentType.BLOG,), "frequent")
    if result is None:
        raise _not_found("Blog post", slug)
    return result


# --- Testimonials and site config ---


@router.get("/testimonials")
async def list_testimonials(
    featured: bool = False,
    fetcher: ContentFetcher = Depends(get_content_fetcher),
    cache: RegenerationCache = Depends(get_regeneration_cache),
):
    async def load():
        return {
            "testimonials": [_dump(t) for t in await fetcher.get_testimonials()]
        }

    result = await _cached(
        cache, TESTIMONIALS_KEY, load, (ContentType.TESTIMONIAL,), "dynamic"
    )
    if featured:
        return {"testimonials": [t for t in result["testimonials"] if t["featured"]]}
    return result


@router.get("/config")
async def get_site_config(
    fetcher: ContentFetcher = Depends(get_content_fetcher),
    cache: RegenerationCache = Depends(get_regeneration_cache),
):
    async def load():
        config = await fetcher.get_site_config()
        return _dump(config) if config else None

    result = await _cached(cache, CONFIG_KEY, load, (ContentType.CONFIG,), "config")
    if result is None:
        raise HTTPException(status_code=404, detail="Site config not found")
    return result


# --- Aggregates ---


@router.get("/paths")
async def get_content_paths(
    fetcher: ContentFetcher = Depends(get_content_fetcher),
    cache: RegenerationCache = Depends(get_regeneration_cache),
):
    """Identifiers for every page, project, service and blog post."""
    return await _cached(
        cache,
        PATHS_KEY,
        fetcher.get_content_paths,
        (ContentType.PAGE, ContentType.PROJECT, ContentType.SERVICE, ContentType.BLOG),
        "dynamic",
        aggregate=True,
    )


@router.get("/stats")
async def get_content_stats(
    fetcher: ContentFetcher = Depends(get_content_fetcher),
    cache: RegenerationCache = Depends(get_regeneration_cache),
):
    async def load():
        stats = await fetcher.get_content_stats()
        last_update = stats["last_update"]
        return {
            **stats,
            "last_update": last_update.isoformat() if last_update else None,
        }

    return await _cached(
        cache,
        STATS_KEY,
        load,
        tuple(REVALIDATION_TAGS),
        "frequent",
        aggregate=True,
    )
