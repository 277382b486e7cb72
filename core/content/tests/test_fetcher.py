"""Tests for ContentFetcher: filtering, ordering and graceful degradation."""

from unittest.mock import AsyncMock

import pytest

from core.content.fetcher import SITE_CONFIG_PATH, ContentFetcher
from core.content.github_client import AuthError
from core.content.tests.fake_github import (
    PROJECT_MD,
    SITE_CONFIG_YML,
    blog_md,
    make_testimonial_md,
    page_md,
    project_md,
    service_md,
)


@pytest.fixture
def fetcher(github_client):
    return ContentFetcher(github_client)


class TestCollections:
    """Typed collections are filtered to published and ordered."""

    @pytest.mark.asyncio
    async def test_projects_newest_completed_first(self, fetcher, fake_github):
        fake_github.add_file(
            "content/projects/old.md", project_md("old", completed_at="2022-01-01")
        )
        fake_github.add_file(
            "content/projects/new.md", project_md("new", completed_at="2024-06-01")
        )
        fake_github.add_file(
            "content/projects/mid.md", project_md("mid", completed_at="2023-03-01")
        )

        projects = await fetcher.get_projects()

        assert [p.id for p in projects] == ["new", "mid", "old"]

    @pytest.mark.asyncio
    async def test_drafts_are_excluded(self, fetcher, fake_github):
        fake_github.add_file("content/projects/live.md", project_md("live"))
        fake_github.add_file(
            "content/projects/wip.md", project_md("wip", status="draft")
        )

        projects = await fetcher.get_projects()

        assert [p.id for p in projects] == ["live"]

    @pytest.mark.asyncio
    async def test_services_in_display_order(self, fetcher, fake_github):
        fake_github.add_file("content/services/roofing.md", service_md("roofing", 2))
        fake_github.add_file("content/services/decks.md", service_md("decks", 0))
        fake_github.add_file("content/services/siding.md", service_md("siding", 1))

        services = await fetcher.get_services()

        assert [s.slug for s in services] == ["decks", "siding", "roofing"]

    @pytest.mark.asyncio
    async def test_blog_posts_newest_first(self, fetcher, fake_github):
        fake_github.add_file("content/blog/a.md", blog_md("a", "2024-01-01"))
        fake_github.add_file("content/blog/b.md", blog_md("b", "2024-03-01"))
        fake_github.add_file(
            "content/blog/c.md", blog_md("c", "2024-05-01", status="draft")
        )

        posts = await fetcher.get_blog_posts()

        assert [p.slug for p in posts] == ["b", "a"]

    @pytest.mark.asyncio
    async def test_pages(self, fetcher, fake_github):
        fake_github.add_file("content/pages/about.md", page_md("about"))

        pages = await fetcher.get_pages()

        assert [p.slug for p in pages] == ["about"]

    @pytest.mark.asyncio
    async def test_testimonials_are_not_filtered(self, fetcher, fake_github):
        fake_github.add_file("content/testimonials/t1.md", make_testimonial_md("t1"))
        fake_github.add_file(
            "content/testimonials/t2.md", make_testimonial_md("t2", featured=True)
        )

        testimonials = await fetcher.get_testimonials()

        assert [t.id for t in testimonials] == ["t1", "t2"]

    @pytest.mark.asyncio
    async def test_non_content_files_and_subdirectories_ignored(
        self, fetcher, fake_github
    ):
        fake_github.add_file("content/projects/a.md", project_md("a"))
        fake_github.add_file("content/projects/photo.jpg", "binary")
        fake_github.add_file("content/projects/archive/b.md", project_md("b"))

        projects = await fetcher.get_projects()

        assert [p.id for p in projects] == ["a"]

    @pytest.mark.asyncio
    async def test_collections_list_only_addressable_items(
        self, fetcher, fake_github
    ):
        fake_github.add_file("content/pages/about.md", page_md("about"))
        fake_github.add_file("content/pages/contact.mdx", page_md("contact"))

        pages = await fetcher.get_pages()

        assert [p.slug for p in pages] == ["about"]
        for page in pages:
            assert await fetcher.get_page(page.slug) is not None


class TestDegradation:
    """One bad file or collection never takes down the others."""

    @pytest.mark.asyncio
    async def test_malformed_file_is_skipped(self, fetcher, fake_github):
        fake_github.add_file("content/projects/good.md", project_md("good"))
        fake_github.add_file(
            "content/projects/bad.md",
            project_md("bad").replace("category: bathroom", "category: treehouse"),
        )

        projects = await fetcher.get_projects()

        assert [p.id for p in projects] == ["good"]

    @pytest.mark.asyncio
    async def test_unreadable_file_is_skipped(self, fetcher, fake_github):
        fake_github.add_file("content/projects/good.md", project_md("good"))
        fake_github.add_file("content/projects/flaky.md", project_md("flaky"))
        fake_github.failures["content/projects/flaky.md"] = 502

        projects = await fetcher.get_projects()

        assert [p.id for p in projects] == ["good"]

    @pytest.mark.asyncio
    async def test_missing_directory_is_empty(self, fetcher):
        assert await fetcher.get_blog_posts() == []

    @pytest.mark.asyncio
    async def test_unreachable_directory_is_empty(self, fetcher, fake_github):
        fake_github.add_file("content/services/a.md", service_md("a", 0))
        fake_github.failures["content/services"] = 503

        assert await fetcher.get_services() == []

    @pytest.mark.asyncio
    async def test_auth_error_propagates(self, fetcher, fake_github):
        fake_github.add_file("content/projects/a.md", project_md("a"))
        fake_github.global_failure = 401

        with pytest.raises(AuthError):
            await fetcher.get_projects()

    @pytest.mark.asyncio
    async def test_auth_error_on_file_read_propagates(self, fetcher, fake_github):
        fake_github.add_file("content/projects/a.md", project_md("a"))
        fake_github.failures["content/projects/a.md"] = 401

        with pytest.raises(AuthError):
            await fetcher.get_projects()


class TestSingleItems:
    @pytest.mark.asyncio
    async def test_get_project(self, fetcher, fake_github):
        fake_github.add_file("content/projects/kitchen-remodel.md", PROJECT_MD)

        project = await fetcher.get_project("kitchen-remodel")

        assert project.title == "Modern Kitchen Remodel"

    @pytest.mark.asyncio
    async def test_missing_item_is_none(self, fetcher):
        assert await fetcher.get_blog_post("nope") is None

    @pytest.mark.asyncio
    async def test_draft_item_is_none(self, fetcher, fake_github):
        fake_github.add_file(
            "content/services/wip.md", service_md("wip", 0, status="draft")
        )

        assert await fetcher.get_service("wip") is None

    @pytest.mark.asyncio
    async def test_invalid_item_is_none(self, fetcher, fake_github):
        fake_github.add_file(
            "content/pages/about.md", page_md("about").replace("slug: about", "")
        )

        assert await fetcher.get_page("about") is None

    @pytest.mark.asyncio
    async def test_auth_error_propagates(self, fetcher, fake_github):
        fake_github.global_failure = 403

        with pytest.raises(AuthError):
            await fetcher.get_page("about")

    @pytest.mark.asyncio
    async def test_site_config(self, fetcher, fake_github):
        fake_github.add_file(SITE_CONFIG_PATH, SITE_CONFIG_YML)

        config = await fetcher.get_site_config()

        assert config.site_name == "Acme Builders"

    @pytest.mark.asyncio
    async def test_missing_site_config_is_none(self, fetcher):
        assert await fetcher.get_site_config() is None


class TestAggregates:
    @pytest.mark.asyncio
    async def test_get_all_content(self, fetcher, fake_github):
        fake_github.add_file("content/pages/about.md", page_md("about"))
        fake_github.add_file("content/projects/a.md", project_md("a"))
        fake_github.add_file(SITE_CONFIG_PATH, SITE_CONFIG_YML)

        content = await fetcher.get_all_content()

        assert [p.slug for p in content["pages"]] == ["about"]
        assert [p.id for p in content["projects"]] == ["a"]
        assert content["services"] == []
        assert content["blog_posts"] == []
        assert content["testimonials"] == []
        assert content["site_config"].site_name == "Acme Builders"

    @pytest.mark.asyncio
    async def test_failing_collection_does_not_break_others(self, fetcher, fake_github):
        fake_github.add_file("content/projects/a.md", project_md("a"))
        fetcher.get_services = AsyncMock(side_effect=RuntimeError("boom"))
        fetcher.get_site_config = AsyncMock(side_effect=RuntimeError("boom"))

        content = await fetcher.get_all_content()

        assert [p.id for p in content["projects"]] == ["a"]
        assert content["services"] == []
        assert content["site_config"] is None

    @pytest.mark.asyncio
    async def test_auth_error_raised_from_aggregate(self, fetcher, fake_github):
        fake_github.global_failure = 401

        with pytest.raises(AuthError):
            await fetcher.get_all_content()

    @pytest.mark.asyncio
    async def test_content_paths(self, fetcher, fake_github):
        fake_github.add_file("content/projects/a.md", project_md("a"))
        fake_github.add_file("content/services/decks.md", service_md("decks", 0))
        fake_github.add_file("content/blog/b.md", blog_md("b", "2024-01-01"))
        fake_github.add_file("content/pages/about.md", page_md("about"))

        paths = await fetcher.get_content_paths()

        assert paths == {
            "project_paths": ["a"],
            "service_paths": ["decks"],
            "blog_paths": ["b"],
            "page_paths": ["about"],
        }

    @pytest.mark.asyncio
    async def test_content_stats(self, fetcher, fake_github):
        fake_github.add_file("content/projects/a.md", project_md("a"))
        fake_github.add_file("content/testimonials/t1.md", make_testimonial_md("t1"))

        stats = await fetcher.get_content_stats()

        assert stats["total_projects"] == 1
        assert stats["total_testimonials"] == 1
        assert stats["total_blog_posts"] == 0
        assert stats["last_update"] is not None

    @pytest.mark.asyncio
    async def test_last_update_without_commits(self, fetcher):
        assert await fetcher.get_last_content_update() is None
