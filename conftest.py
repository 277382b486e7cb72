"""Root pytest configuration."""

from pathlib import Path

import pytest
from dotenv import load_dotenv

# Load environment variables before tests run
_root = Path(__file__).parent
load_dotenv(_root / ".env")
load_dotenv(_root / ".env.local", override=True)

TEST_REPO = "acme-builders/site-content"
TEST_WEBHOOK_SECRET = "test-webhook-secret"
TEST_JWT_SECRET = "test-jwt-secret"


@pytest.fixture(autouse=True)
def content_env(monkeypatch):
    """Point every test at a fixed fake repository, whatever .env says."""
    monkeypatch.setenv("GITHUB_REPO", TEST_REPO)
    monkeypatch.setenv("GITHUB_BRANCH", "main")
    monkeypatch.setenv("GITHUB_TOKEN", "test-token")
    monkeypatch.setenv("GITHUB_WEBHOOK_SECRET", TEST_WEBHOOK_SECRET)
    monkeypatch.setenv("JWT_SECRET", TEST_JWT_SECRET)
    monkeypatch.delenv("RAILWAY_ENVIRONMENT", raising=False)


@pytest.fixture(scope="session")
def event_loop_policy():
    """Use default event loop policy for all async tests."""
    import asyncio

    return asyncio.DefaultEventLoopPolicy()
