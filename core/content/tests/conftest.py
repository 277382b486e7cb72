"""Fixtures for content tests, backed by the fake GitHub contents API."""

import httpx
import pytest

from core.content import GitHubClient, RegenerationCache
from core.content.tests.fake_github import REPO, FakeGitHub


@pytest.fixture
def fake_github():
    return FakeGitHub()


@pytest.fixture
def github_client(fake_github):
    return GitHubClient(
        repo=REPO,
        branch="main",
        token="test-token",
        transport=httpx.MockTransport(fake_github.handler),
    )


@pytest.fixture
def regeneration_cache():
    return RegenerationCache()
