# web_api/tests/conftest.py
"""Pytest fixtures for web API tests.

Routes run against the fake GitHub contents API, a fresh regeneration
cache and a fresh rate limiter, so tests need no network access and do not
share state.
"""

import httpx
import pytest
from fastapi.testclient import TestClient

from core.content import GitHubClient, RegenerationCache
from core.content.tests.fake_github import REPO, FakeGitHub
from web_api.auth import create_jwt
from web_api.deps import get_github_client, get_regeneration_cache
from web_api.rate_limit import RateLimiter, get_rate_limiter


@pytest.fixture
def fake_github():
    return FakeGitHub()


@pytest.fixture
def regeneration_cache():
    return RegenerationCache()


@pytest.fixture
def limiter():
    return RateLimiter(interval_seconds=60)


@pytest.fixture
def client(fake_github, regeneration_cache, limiter):
    """Test client for the FastAPI app with content dependencies overridden."""
    from main import app

    transport = httpx.MockTransport(fake_github.handler)
    app.dependency_overrides[get_github_client] = lambda: GitHubClient(
        repo=REPO, branch="main", token="test-token", transport=transport
    )
    app.dependency_overrides[get_regeneration_cache] = lambda: regeneration_cache
    app.dependency_overrides[get_rate_limiter] = lambda: limiter

    yield TestClient(app)

    app.dependency_overrides.clear()


@pytest.fixture
def editor_headers():
    """Authorization header for a signed-in CMS editor."""
    token = create_jwt("Jane Editor", "jane@acme-builders.example.com")
    return {"Authorization": f"Bearer {token}"}
