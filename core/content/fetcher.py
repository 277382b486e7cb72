"""Typed content collections read from the GitHub content repository.

Read paths never crash a page render: a missing directory, an unreachable
repository or a malformed file degrade to empty or partial results. The one
exception is AuthError, which means the whole content layer is broken and
must reach the health signal.
"""

import asyncio
import logging
from datetime import datetime
from typing import TypeVar

from .github_client import AuthError, GitHubClient, GitHubError, RemoteFile
from .parser import (
    ContentValidationError,
    content_directory,
    parse_content,
)
from .types import (
    BlogPost,
    ContentRecord,
    ContentType,
    Page,
    Project,
    Service,
    SiteConfig,
    Testimonial,
)

logger = logging.getLogger(__name__)

SITE_CONFIG_PATH = "content/settings/general.yml"
MAX_CONCURRENT_READS = 20
# Items are addressed by "{slug}.md"; other extensions are not served
ITEM_EXTENSION = ".md"

R = TypeVar("R", bound=ContentRecord)


class ContentFetcher:
    """Expose repository content as typed, filtered, ordered collections."""

    def __init__(self, github: GitHubClient | None = None):
        self.github = github or GitHubClient()

    # --- Internals ---

    async def _load_file(
        self,
        entry: RemoteFile,
        content_type: ContentType,
        semaphore: asyncio.Semaphore,
    ) -> ContentRecord | None:
        """Read and parse one file. Returns None if it cannot be used."""
        try:
            async with semaphore:
                text = await self.github.read_content(entry.path)
            return parse_content(text, content_type, path=entry.path)
        except AuthError:
            raise
        except ContentValidationError as e:
            logger.warning(f"Skipping invalid {content_type.value} {entry.path}: {e}")
        except GitHubError as e:
            logger.warning(f"Failed to read {entry.path}: {e}")
        return None

    async def _fetch_collection(self, content_type: ContentType) -> list:
        """Every parseable record of a type, in directory listing order."""
        directory = content_directory(content_type)
        try:
            entries = await self.github.list_directory(directory)
        except AuthError:
            raise
        except GitHubError as e:
            logger.error(f"Failed to list {directory}: {e}")
            return []

        files = [
            e for e in entries if e.type == "file" and e.name.endswith(ITEM_EXTENSION)
        ]
        semaphore = asyncio.Semaphore(MAX_CONCURRENT_READS)
        results = await asyncio.gather(
            *[self._load_file(entry, content_type, semaphore) for entry in files]
        )
        records = [r for r in results if r is not None]
        logger.debug(f"Loaded {len(records)}/{len(files)} files from {directory}")
        return records

    async def _fetch_one(
        self, content_type: ContentType, slug: str
    ) -> ContentRecord | None:
        path = f"{content_directory(content_type)}/{slug}{ITEM_EXTENSION}"
        try:
            text = await self.github.read_content(path)
            record = parse_content(text, content_type, path=path)
        except AuthError:
            raise
        except (GitHubError, ContentValidationError) as e:
            logger.warning(f"Failed to fetch {content_type.value} {slug}: {e}")
            return None

        if getattr(record, "status", "published") != "published":
            return None
        return record

    @staticmethod
    def _published(records: list[R]) -> list[R]:
        return [r for r in records if r.status == "published"]

    # --- Collections ---

    async def get_pages(self) -> list[Page]:
        return self._published(await self._fetch_collection(ContentType.PAGE))

    async def get_projects(self) -> list[Project]:
        """Published projects, most recently completed first."""
        projects = self._published(await self._fetch_collection(ContentType.PROJECT))
        return sorted(projects, key=lambda p: p.completed_at, reverse=True)

    async def get_services(self) -> list[Service]:
        """Published services in ascending display order."""
        services = self._published(await self._fetch_collection(ContentType.SERVICE))
        return sorted(services, key=lambda s: s.order)

    async def get_blog_posts(self) -> list[BlogPost]:
        """Published posts, newest first."""
        posts = self._published(await self._fetch_collection(ContentType.BLOG))
        return sorted(posts, key=lambda p: p.published_at, reverse=True)

    async def get_testimonials(self) -> list[Testimonial]:
        """All testimonials in listing order. Callers filter on ``featured``."""
        return await self._fetch_collection(ContentType.TESTIMONIAL)

    async def get_site_config(self) -> SiteConfig | None:
        try:
            text = await self.github.read_content(SITE_CONFIG_PATH)
            return parse_content(text, ContentType.CONFIG, path=SITE_CONFIG_PATH)
        except AuthError:
            raise
        except (GitHubError, ContentValidationError) as e:
            logger.warning(f"Failed to fetch site config: {e}")
            return None

    # --- Single items ---

    async def get_page(self, slug: str) -> Page | None:
        return await self._fetch_one(ContentType.PAGE, slug)

    async def get_project(self, slug: str) -> Project | None:
        return await self._fetch_one(ContentType.PROJECT, slug)

    async def get_service(self, slug: str) -> Service | None:
        return await self._fetch_one(ContentType.SERVICE, slug)

    async def get_blog_post(self, slug: str) -> BlogPost | None:
        return await self._fetch_one(ContentType.BLOG, slug)

    # --- Aggregates ---

    async def get_all_content(self) -> dict:
        """Fetch every collection concurrently.

        A failing collection contributes an empty result; AuthError is
        re-raised once all fetches have finished.
        """
        names = (
            "pages",
            "projects",
            "services",
            "blog_posts",
            "testimonials",
            "site_config",
        )
        results = await asyncio.gather(
            self.get_pages(),
            self.get_projects(),
            self.get_services(),
            self.get_blog_posts(),
            self.get_testimonials(),
            self.get_site_config(),
            return_exceptions=True,
        )

        content: dict = {}
        for name, result in zip(names, results):
            if isinstance(result, AuthError):
                raise result
            if isinstance(result, BaseException):
                logger.error(f"Failed to fetch {name}: {result}")
                result = None if name == "site_config" else []
            content[name] = result
        return content

    async def get_content_paths(self) -> dict[str, list[str]]:
        """Identifiers of every addressable item, for generating site URLs."""
        projects, services, blog_posts, pages = await asyncio.gather(
            self.get_projects(),
            self.get_services(),
            self.get_blog_posts(),
            self.get_pages(),
        )
        return {
            "project_paths": [p.id for p in projects],
            "service_paths": [s.slug for s in services],
            "blog_paths": [p.slug for p in blog_posts],
            "page_paths": [p.slug for p in pages],
        }

    async def get_last_content_update(self) -> datetime | None:
        """Author date of the latest commit on the content branch."""
        try:
            commits = await self.github.list_commits(1)
        except AuthError:
            raise
        except GitHubError as e:
            logger.error(f"Failed to get last content update: {e}")
            return None
        return commits[0].date if commits else None

    async def get_content_stats(self) -> dict:
        pages, projects, services, blog_posts, testimonials, last_update = (
            await asyncio.gather(
                self.get_pages(),
                self.get_projects(),
                self.get_services(),
                self.get_blog_posts(),
                self.get_testimonials(),
                self.get_last_content_update(),
            )
        )
        return {
            "total_pages": len(pages),
            "total_projects": len(projects),
            "total_services": len(services),
            "total_blog_posts": len(blog_posts),
            "total_testimonials": len(testimonials),
            "last_update": last_update,
        }
