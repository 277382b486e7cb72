"""
Content management API routes.

Endpoints:
- POST /api/content/webhook - Handle GitHub push webhook, invalidate cache
- GET  /api/content/revalidate - List revalidation types
- POST /api/content/revalidate - Manual revalidation for editors
- GET  /api/content/status - Repository connection status and statistics
- GET  /api/content/files - Browse a directory or read a file
- POST /api/content/files - Create or update a file
- DELETE /api/content/files - Delete a file
"""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Header, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from core.content import (
    AuthError,
    CommitResult,
    ConflictError,
    ContentType,
    ContentValidationError,
    DecodeError,
    GitHubClient,
    GitHubError,
    NotFoundError,
    RegenerationCache,
    TransientError,
    classify,
    parse_content,
)
from core.content.parser import is_content_file
from core.content.revalidation import (
    REVALIDATION_TAGS,
    revalidate_all_content,
    revalidate_content,
)
from core.content.webhook_handler import (
    WebhookPayloadError,
    WebhookSignatureError,
    handle_webhook_event,
    parse_webhook_payload,
    verify_webhook_signature,
)
from web_api.auth import commit_author, get_current_editor
from web_api.deps import get_github_client, get_regeneration_cache
from web_api.rate_limit import (
    EDITOR_LIMIT,
    WEBHOOK_LIMIT,
    RateLimiter,
    enforce,
    get_rate_limiter,
)

router = APIRouter(prefix="/api/content", tags=["content"])

logger = logging.getLogger(__name__)


class RevalidateRequest(BaseModel):
    """Schema for a manual revalidation request."""

    type: str  # "all", a content type ("project") or a tag ("projects")
    paths: list[str] | None = None


class SaveFileRequest(BaseModel):
    """Schema for creating or updating a content file.

    Without ``content_hash`` the file is updated if it exists, otherwise
    created. With it, the write fails if the file changed since it was read.
    """

    path: str
    content: str
    message: str
    content_hash: str | None = None


class DeleteFileRequest(BaseModel):
    path: str
    message: str
    content_hash: str


def _http_error(e: GitHubError) -> HTTPException:
    """Map a content repository failure onto an HTTP error."""
    if isinstance(e, NotFoundError):
        return HTTPException(status_code=404, detail="Path not found")
    if isinstance(e, ConflictError):
        return HTTPException(
            status_code=409,
            detail="File changed since it was read; reload and retry",
        )
    if isinstance(e, DecodeError):
        return HTTPException(status_code=422, detail=str(e))
    if isinstance(e, AuthError):
        return HTTPException(
            status_code=502, detail="Content repository rejected credentials"
        )
    if isinstance(e, TransientError):
        return HTTPException(
            status_code=503, detail="Content repository temporarily unavailable"
        )
    return HTTPException(status_code=502, detail=f"Content repository error: {e}")


def _commit_summary(result: CommitResult) -> dict:
    commit = result.commit
    return {
        "sha": commit.sha,
        "message": commit.message,
        "author": commit.author_name,
        "date": commit.date.isoformat() if commit.date else None,
    }


def _resolve_content_type(name: str) -> ContentType | None:
    """Accept a content type ("project"), a tag ("projects") or a key ("SITE_CONFIG")."""
    normalized = name.strip().lower().replace("_", "-")
    for content_type, tag in REVALIDATION_TAGS.items():
        if normalized in (content_type.value, tag):
            return content_type
    return None


# --- Webhook ---


@router.post("/webhook")
async def github_webhook(
    request: Request,
    x_hub_signature_256: str | None = Header(None),
    x_github_event: str | None = Header(None),
    limiter: RateLimiter = Depends(get_rate_limiter),
    cache: RegenerationCache = Depends(get_regeneration_cache),
):
    """
    Handle GitHub push webhook to invalidate cached pages.

    The signature is checked against the raw body before anything is parsed.
    """
    enforce(limiter, WEBHOOK_LIMIT, request)

    body = await request.body()
    try:
        verify_webhook_signature(body, x_hub_signature_256)
    except WebhookSignatureError as e:
        logger.warning(f"Webhook signature verification failed: {e}")
        raise HTTPException(status_code=401, detail=str(e))

    try:
        payload = parse_webhook_payload(body)
    except WebhookPayloadError as e:
        raise HTTPException(status_code=400, detail=str(e))

    result = handle_webhook_event(x_github_event, payload, cache)
    if not result["success"]:
        return JSONResponse(status_code=500, content=result)
    return result


# --- Manual revalidation ---


@router.get("/revalidate")
async def revalidation_types(editor: dict = Depends(get_current_editor)):
    return {
        "available_types": ["all", *REVALIDATION_TAGS.values()],
        "message": "Use POST to trigger revalidation",
        "example": {"type": "projects", "paths": ["/projects/kitchen-remodel"]},
    }


@router.post("/revalidate")
async def manual_revalidate(
    body: RevalidateRequest,
    request: Request,
    editor: dict = Depends(get_current_editor),
    limiter: RateLimiter = Depends(get_rate_limiter),
    cache: RegenerationCache = Depends(get_regeneration_cache),
):
    """Invalidate one content type (optionally with paths) or everything."""
    enforce(limiter, EDITOR_LIMIT, request)
    timestamp = datetime.now(timezone.utc).isoformat()

    if body.type.strip().lower() == "all":
        revalidate_all_content(cache)
        logger.info(f"Manual revalidation of all content by {editor['sub']}")
        return {
            "success": True,
            "message": "All content revalidated successfully",
            "timestamp": timestamp,
        }

    content_type = _resolve_content_type(body.type)
    if content_type is None:
        raise HTTPException(status_code=400, detail="Invalid revalidation type")

    revalidate_content(content_type, body.paths, cache)
    logger.info(f"Manual revalidation of {content_type.value} by {editor['sub']}")
    return {
        "success": True,
        "message": f"Content type {body.type} revalidated successfully",
        "paths": body.paths or [],
        "timestamp": timestamp,
    }


# --- Repository status ---


@router.get("/status")
async def repository_status(
    editor: dict = Depends(get_current_editor),
    github: GitHubClient = Depends(get_github_client),
):
    """Connection validity, repository info and latest commit."""
    access = await github.check_access()

    try:
        stats = await github.get_stats()
    except GitHubError as e:
        logger.warning(f"Failed to get repository stats: {e}")
        stats = {"total_files": 0, "last_commit": None, "repo_info": None}

    repo_info = stats["repo_info"] or {}
    last_commit = stats["last_commit"]
    return {
        "connected": access["valid"],
        "error": access.get("error"),
        "repository": {
            "name": repo_info.get("name", "Unknown"),
            "full_name": repo_info.get("full_name", "Unknown"),
            "private": repo_info.get("private", False),
            "default_branch": repo_info.get("default_branch", "main"),
            "url": repo_info.get("html_url"),
        },
        "statistics": {
            "total_files": stats["total_files"],
            "last_commit": {
                "sha": last_commit.sha[:7],
                "message": last_commit.message,
                "author": last_commit.author_name,
                "date": last_commit.date.isoformat() if last_commit.date else None,
            }
            if last_commit
            else None,
        },
    }


# --- File access for the CMS ---


@router.get("/files")
async def read_files(
    path: str = "content",
    editor: dict = Depends(get_current_editor),
    github: GitHubClient = Depends(get_github_client),
):
    """List a directory, or return a file's decoded text and content hash."""
    try:
        result = await github.read(path)
    except NotFoundError:
        if path.strip("/") == "content":
            return {
                "path": path,
                "contents": [],
                "message": "Content directory not found. "
                "It will be created when you add content.",
            }
        raise HTTPException(status_code=404, detail="Path not found")
    except GitHubError as e:
        logger.error(f"GitHub content error for {path}: {e}")
        raise _http_error(e)

    if isinstance(result, list):
        return {
            "path": path,
            "contents": [
                {
                    "name": item.name,
                    "path": item.path,
                    "type": item.type,
                    "size": item.size,
                    "url": item.html_url,
                }
                for item in result
            ],
        }

    try:
        text = await github.read_content(path)
    except GitHubError as e:
        raise _http_error(e)
    return {
        "path": path,
        "type": "file",
        "content": text,
        "size": result.size,
        "content_hash": result.content_hash,
    }


def _validate_before_write(path: str, content: str) -> None:
    """Reject content files that would fail to parse once committed."""
    content_type = classify(path)
    if content_type == ContentType.UNKNOWN or not is_content_file(path):
        return
    try:
        parse_content(content, content_type, path=path)
    except ContentValidationError as e:
        raise HTTPException(
            status_code=422,
            detail={
                "message": str(e),
                "errors": [{"field": f.field, "message": f.message} for f in e.errors],
            },
        )


@router.post("/files")
async def save_file(
    body: SaveFileRequest,
    request: Request,
    editor: dict = Depends(get_current_editor),
    github: GitHubClient = Depends(get_github_client),
    limiter: RateLimiter = Depends(get_rate_limiter),
):
    """Commit a content file on behalf of the editor."""
    enforce(limiter, EDITOR_LIMIT, request)
    _validate_before_write(body.path, body.content)

    author = commit_author(editor)
    try:
        if body.content_hash:
            result = await github.write(
                body.path,
                body.content,
                body.message,
                precondition_hash=body.content_hash,
                author=author,
            )
        else:
            result = await github.save(body.path, body.content, body.message, author)
    except GitHubError as e:
        logger.error(f"GitHub content save error for {body.path}: {e}")
        raise _http_error(e)

    return {
        "success": True,
        "commit": _commit_summary(result),
        "file": {
            "path": result.content.path,
            "size": result.content.size,
            "content_hash": result.content.content_hash,
            "url": result.content.html_url,
        },
    }


@router.delete("/files")
async def delete_file(
    body: DeleteFileRequest,
    request: Request,
    editor: dict = Depends(get_current_editor),
    github: GitHubClient = Depends(get_github_client),
    limiter: RateLimiter = Depends(get_rate_limiter),
):
    """Delete a content file. The content hash must be current."""
    enforce(limiter, EDITOR_LIMIT, request)
    try:
        result = await github.remove(
            body.path, body.message, body.content_hash, commit_author(editor)
        )
    except GitHubError as e:
        logger.error(f"GitHub content delete error for {body.path}: {e}")
        raise _http_error(e)

    return {"success": True, "commit": _commit_summary(result)}
