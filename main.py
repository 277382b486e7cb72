"""
Content service entry point.

Architecture:
- One Python process, one asyncio event loop
- FastAPI serves the public site read API, the GitHub webhook and the
  CMS editor endpoints
- Two background tasks run alongside it:
  1. Rate limiter sweep (drops expired windows)
  2. Periodic full revalidation (backstop for missed webhooks)

Run with: python main.py [--port PORT] [--dev]
"""

import os
import sys
from contextlib import asynccontextmanager
from pathlib import Path

project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))

from dotenv import load_dotenv

# Load .env.local first (if exists), then .env as fallback
# .env.local is gitignored and used for local dev overrides
load_dotenv(project_root / ".env.local")
load_dotenv()

import sentry_sdk
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from core.config import (
    ContentRepoNotConfiguredError,
    check_required_env_vars,
    get_allowed_origins,
    get_api_port,
    get_revalidation_sweep_seconds,
)
from core.content import GitHubClient
from core.content.revalidation import RevalidationScheduler
from web_api.rate_limit import rate_limiter
from web_api.routes.content import router as content_router
from web_api.routes.site import router as site_router

if os.getenv("SENTRY_DSN"):
    sentry_sdk.init(dsn=os.environ["SENTRY_DSN"])

_scheduler: RevalidationScheduler | None = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    FastAPI lifespan context manager.

    Starts the background sweeps; they run concurrently with FastAPI in the
    same event loop and are cancelled on shutdown.
    """
    global _scheduler

    ok, warnings = check_required_env_vars()
    for warning in warnings:
        print(warning)
    if not ok:
        print("Missing required environment variables, content routes will fail")

    print("Starting background sweeps...")
    rate_limiter.start_sweeping()
    _scheduler = RevalidationScheduler(get_revalidation_sweep_seconds())
    _scheduler.start()

    yield

    print("Shutting down background sweeps...")
    _scheduler.stop()
    rate_limiter.stop_sweeping()


app = FastAPI(
    title="Site Content Service API",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_allowed_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(content_router)
app.include_router(site_router)


@app.get("/api/status")
async def api_status():
    return {"status": "ok"}


@app.get("/health")
async def health():
    """Health check endpoint: reports whether the content repository is reachable."""
    try:
        access = await GitHubClient().check_access()
    except ContentRepoNotConfiguredError as e:
        access = {"valid": False, "error": str(e)}

    return {
        "status": "healthy" if access["valid"] else "degraded",
        "content_repo_connected": access["valid"],
        "error": access.get("error"),
    }


if __name__ == "__main__":
    import argparse

    import uvicorn

    parser = argparse.ArgumentParser(description="Site Content Service")
    parser.add_argument(
        "--port",
        type=int,
        default=get_api_port(),
        help="Port to run the server on (default: API_PORT or 8000)",
    )
    parser.add_argument(
        "--dev",
        action="store_true",
        help="Development mode (relaxes required environment variables)",
    )
    args = parser.parse_args()

    # Set env var so it persists across uvicorn reloads
    if args.dev:
        os.environ["DEV_MODE"] = "true"

    # Pass app object directly (not string) to avoid module reimport issues
    uvicorn.run(
        app,
        host="0.0.0.0",
        port=args.port,
    )
