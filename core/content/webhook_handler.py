"""Webhook handling for GitHub content repository pushes."""

import hmac
import hashlib
import json
import logging

from core.config import get_content_branch, get_webhook_secret

from .cache import RegenerationCache
from .revalidation import handle_webhook_revalidation

logger = logging.getLogger(__name__)


class WebhookSignatureError(Exception):
    """Raised when webhook signature verification fails."""

    pass


class WebhookPayloadError(Exception):
    """Raised when an authenticated webhook body is not a JSON object."""

    pass


def verify_webhook_signature(payload: bytes, signature_header: str | None) -> None:
    """Verify GitHub webhook signature.

    Must be given the raw request body exactly as received; re-serialized
    JSON will not match.

    Args:
        payload: Raw request body bytes
        signature_header: Value of X-Hub-Signature-256 header

    Raises:
        WebhookSignatureError: If signature is invalid or secret not configured
    """
    secret = get_webhook_secret()
    if not secret:
        raise WebhookSignatureError("GITHUB_WEBHOOK_SECRET not configured")

    if not signature_header or not signature_header.startswith("sha256="):
        raise WebhookSignatureError("Invalid signature header format")

    expected_sig = signature_header[7:]  # Remove "sha256=" prefix

    computed_sig = hmac.new(
        secret.encode(),
        payload,
        hashlib.sha256,
    ).hexdigest()

    if not hmac.compare_digest(expected_sig, computed_sig):
        raise WebhookSignatureError("Signature verification failed")


def parse_webhook_payload(payload: bytes) -> dict:
    """Decode a verified webhook body.

    Raises:
        WebhookPayloadError: If the body is not a JSON object.
    """
    try:
        data = json.loads(payload)
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise WebhookPayloadError(f"Invalid JSON payload: {e}")
    if not isinstance(data, dict):
        raise WebhookPayloadError("Payload must be a JSON object")
    return data


def handle_webhook_event(
    event: str | None,
    payload: dict,
    cache: RegenerationCache | None = None,
) -> dict:
    """Route an authenticated webhook event.

    Only pushes to the configured branch invalidate anything. Other events
    and other branches succeed with nothing affected.
    """
    repository = payload.get("repository")
    if isinstance(repository, dict):
        repository = repository.get("full_name")
    commits = payload.get("commits")
    if not isinstance(commits, list):
        commits = []
    logger.info(
        f"GitHub webhook received: {event} "
        f"(repository={repository}, ref={payload.get('ref')}, commits={len(commits)})"
    )

    if event != "push":
        logger.info(f"Unhandled webhook event: {event}")
        return {
            "success": True,
            "status": "ignored",
            "message": f"Event type '{event}' ignored",
            "affected_types": [],
            "affected_paths": [],
        }

    ref = payload.get("ref", "")
    branch = get_content_branch()
    if ref != f"refs/heads/{branch}":
        logger.info(f"Ignoring push to {ref}, only processing {branch}")
        return {
            "success": True,
            "status": "ignored",
            "message": f"Push to '{ref}' ignored (watching '{branch}')",
            "affected_types": [],
            "affected_paths": [],
        }

    result = handle_webhook_revalidation(payload, cache)
    logger.info(f"Revalidation result: {result}")
    return {"status": "ok" if result["success"] else "error", **result}
