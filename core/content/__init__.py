"""Site content stored in GitHub: client, parser, fetcher and cache invalidation."""

from .cache import (
    RegenerationCache,
    get_cache,
    set_cache,
    clear_cache,
)
from .fetcher import ContentFetcher
from .github_client import (
    GitHubClient,
    GitHubError,
    NotFoundError,
    ConflictError,
    AuthError,
    TransientError,
    UnknownError,
    DecodeError,
    RemoteFile,
    CommitRecord,
    CommitResult,
)
from .parser import (
    ContentValidationError,
    classify,
    parse_content,
    parse_file,
    slugify,
    excerpt,
)
from .revalidation import (
    ALL_CONTENT_TAG,
    REVALIDATION_TAGS,
    InvalidationScope,
    compute_invalidation_scope,
    handle_webhook_revalidation,
    revalidate_content,
    revalidate_all_content,
)
from .types import ContentType, ProjectCategory
from .webhook_handler import (
    WebhookSignatureError,
    verify_webhook_signature,
    handle_webhook_event,
)

__all__ = [
    "RegenerationCache",
    "get_cache",
    "set_cache",
    "clear_cache",
    "ContentFetcher",
    "GitHubClient",
    "GitHubError",
    "NotFoundError",
    "ConflictError",
    "AuthError",
    "TransientError",
    "UnknownError",
    "DecodeError",
    "RemoteFile",
    "CommitRecord",
    "CommitResult",
    "ContentValidationError",
    "classify",
    "parse_content",
    "parse_file",
    "slugify",
    "excerpt",
    "ALL_CONTENT_TAG",
    "REVALIDATION_TAGS",
    "InvalidationScope",
    "compute_invalidation_scope",
    "handle_webhook_revalidation",
    "revalidate_content",
    "revalidate_all_content",
    "ContentType",
    "ProjectCategory",
    "WebhookSignatureError",
    "verify_webhook_signature",
    "handle_webhook_event",
]
