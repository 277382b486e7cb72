"""
Centralized configuration for the marketing site content service.

All settings come from environment variables (loaded from .env / .env.local
by main.py and the root conftest).
"""

import os


class ContentRepoNotConfiguredError(Exception):
    """Raised when GITHUB_REPO is not set."""

    pass


def is_dev_mode() -> bool:
    """Check if running in development mode (--dev flag or DEV_MODE env)."""
    return os.getenv("DEV_MODE", "").lower() in ("true", "1", "yes")


def is_production() -> bool:
    """Check if running in a deployed environment."""
    return bool(os.environ.get("RAILWAY_ENVIRONMENT"))


def get_api_port() -> int:
    """Get API server port from env or default."""
    return int(os.getenv("API_PORT", "8000"))


def get_site_url() -> str:
    """Get the public site URL (used for absolute links)."""
    return os.getenv("SITE_URL", f"http://localhost:{get_api_port()}").rstrip("/")


def get_content_repo() -> str:
    """Get the content repository (``owner/name``).

    Raises:
        ContentRepoNotConfiguredError: If GITHUB_REPO not set.
    """
    repo = os.getenv("GITHUB_REPO")
    if not repo:
        raise ContentRepoNotConfiguredError(
            "GITHUB_REPO environment variable is required "
            "(e.g. 'acme-builders/site-content')."
        )
    return repo


def get_content_branch() -> str:
    """Get the branch content is read from and written to."""
    return os.getenv("GITHUB_BRANCH") or "main"


def get_github_token() -> str | None:
    """Get optional GitHub token for API requests."""
    return os.getenv("GITHUB_TOKEN")


def get_webhook_secret() -> str | None:
    return os.getenv("GITHUB_WEBHOOK_SECRET")


def get_revalidation_sweep_seconds() -> int:
    """Interval of the periodic full revalidation sweep."""
    return int(os.getenv("REVALIDATION_SWEEP_SECONDS", "3600"))


def get_allowed_origins() -> list[str]:
    """
    Get list of allowed CORS origins.

    Includes localhost variants for dev and the configured frontend URL.
    """
    origins = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        f"http://localhost:{get_api_port()}",
    ]

    env_frontend = os.environ.get("FRONTEND_URL")
    if env_frontend and env_frontend not in origins:
        origins.append(env_frontend)

    site_url = get_site_url()
    if site_url not in origins:
        origins.append(site_url)

    return origins


# Required environment variables
# Format: (name, description, required_in_dev)
REQUIRED_ENV_VARS = [
    ("GITHUB_REPO", "Content repository in owner/name form", True),
    ("GITHUB_TOKEN", "GitHub token with contents read/write access", True),
    ("GITHUB_WEBHOOK_SECRET", "Shared secret for push webhook signatures", False),
    ("JWT_SECRET", "Secret key for CMS editor tokens", False),
]


def check_required_env_vars() -> tuple[bool, list[str]]:
    """
    Check that required environment variables are set.

    Returns:
        (all_ok, warnings): Tuple of success flag and list of warning messages
    """
    warnings = []
    errors = []
    in_dev = is_dev_mode()

    for name, description, required_in_dev in REQUIRED_ENV_VARS:
        value = os.environ.get(name)

        if not value:
            if is_production():
                errors.append(f"  ✗ {name}: Not set ({description})")
            elif required_in_dev or not in_dev:
                warnings.append(f"  ⚠ {name}: Not set ({description})")

    if errors:
        for error in errors:
            print(error)
        return False, warnings

    return True, warnings
