"""
Core logic for the site content service - framework-agnostic.

Configuration lives in core.config; GitHub content sync and cache
invalidation live in core.content.
"""

from .config import (
    ContentRepoNotConfiguredError,
    check_required_env_vars,
    get_content_branch,
    get_content_repo,
)

__all__ = [
    "ContentRepoNotConfiguredError",
    "check_required_env_vars",
    "get_content_branch",
    "get_content_repo",
]
