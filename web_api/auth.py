"""
JWT authentication for CMS editor endpoints.

Editors authenticate with a signed token sent either as
``Authorization: Bearer <token>`` or in the ``session`` cookie.

Security measures implemented:
- HS256 signing algorithm
- Token expiration (12 hours)
"""

import os
from datetime import datetime, timedelta, timezone

import jwt
from fastapi import HTTPException, Request

JWT_ALGORITHM = "HS256"
JWT_EXPIRATION_HOURS = 12


def _get_secret() -> str:
    secret = os.environ.get("JWT_SECRET")
    if not secret:
        raise ValueError("JWT_SECRET environment variable not set")
    return secret


def create_jwt(editor_name: str, editor_email: str) -> str:
    """
    Create a signed JWT token for a CMS editor.

    Args:
        editor_name: Name recorded as commit author
        editor_email: Email recorded as commit author

    Returns:
        Signed JWT token string
    """
    now = datetime.now(timezone.utc)
    payload = {
        "sub": editor_email,
        "name": editor_name,
        "iat": now,
        "exp": now + timedelta(hours=JWT_EXPIRATION_HOURS),
    }
    return jwt.encode(payload, _get_secret(), algorithm=JWT_ALGORITHM)


def verify_jwt(token: str) -> dict | None:
    """
    Verify and decode a JWT token.

    Returns:
        Decoded payload dict if valid, None if invalid
    """
    try:
        return jwt.decode(token, _get_secret(), algorithms=[JWT_ALGORITHM])
    except jwt.InvalidTokenError:
        return None


def _extract_token(request: Request) -> str | None:
    authorization = request.headers.get("authorization", "")
    if authorization.lower().startswith("bearer "):
        return authorization[7:].strip()
    return request.cookies.get("session")


async def get_current_editor(request: Request) -> dict:
    """
    FastAPI dependency returning the authenticated editor's token payload.

    Raises:
        HTTPException: 401 if not authenticated or invalid token
    """
    token = _extract_token(request)
    if not token:
        raise HTTPException(status_code=401, detail="Not authenticated")

    try:
        payload = verify_jwt(token)
    except ValueError:
        raise HTTPException(status_code=503, detail="Editor login not configured")
    if not payload:
        raise HTTPException(status_code=401, detail="Invalid or expired token")

    return payload


def commit_author(editor: dict) -> dict[str, str]:
    """Commit author block for an editor's token payload."""
    return {"name": editor.get("name") or "CMS User", "email": editor["sub"]}
