"""FastAPI dependencies shared by the content routes.

Tests swap these out with ``app.dependency_overrides``.
"""

from fastapi import Depends

from core.content import ContentFetcher, GitHubClient, RegenerationCache, get_cache


def get_github_client() -> GitHubClient:
    return GitHubClient()


def get_content_fetcher(
    github: GitHubClient = Depends(get_github_client),
) -> ContentFetcher:
    return ContentFetcher(github)


def get_regeneration_cache() -> RegenerationCache:
    return get_cache()
