"""Read and write site content in the GitHub content repository.

Thin typed wrapper over the GitHub Contents and Commits REST APIs. Every
call goes to the network; nothing is cached here and nothing is retried.
Callers decide on retry policy because writes are not idempotent without a
content hash precondition.
"""

import asyncio
import base64
import binascii
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Literal
from urllib.parse import quote

import httpx

from core.config import get_content_branch, get_content_repo, get_github_token

logger = logging.getLogger(__name__)

GITHUB_API_URL = "https://api.github.com"
USER_AGENT = "marketing-site-content/1.0"
DEFAULT_TIMEOUT = 10.0


class GitHubError(Exception):
    """Base class for failures talking to the content repository."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class NotFoundError(GitHubError):
    """Path or file does not exist at the requested ref."""

    pass


class ConflictError(GitHubError):
    """Content hash precondition failed (stale hash, or create over an existing file)."""

    pass


class AuthError(GitHubError):
    """Token missing, invalid, expired or lacking access to the repository."""

    pass


class TransientError(GitHubError):
    """Timeout, network failure, rate limit or 5xx. Safe to retry with backoff."""

    pass


class UnknownError(GitHubError):
    """Any other unexpected response."""

    pass


class DecodeError(GitHubError):
    """File content is not base64-encoded UTF-8 text."""

    pass


@dataclass
class RemoteFile:
    """A file or directory entry in the content repository."""

    name: str
    path: str
    content_hash: str  # GitHub blob SHA, the optimistic concurrency token
    size: int
    type: Literal["file", "dir"]
    raw_content: str | None = None  # Base64, only present for single-file reads
    encoding: str | None = None
    html_url: str | None = None

    @classmethod
    def from_api(cls, data: dict) -> "RemoteFile":
        return cls(
            name=data["name"],
            path=data["path"],
            content_hash=data["sha"],
            size=data.get("size", 0),
            type="dir" if data.get("type") == "dir" else "file",
            raw_content=data.get("content"),
            encoding=data.get("encoding"),
            html_url=data.get("html_url"),
        )


@dataclass
class CommitRecord:
    """A commit on the content branch."""

    sha: str
    message: str
    author_name: str | None = None
    author_email: str | None = None
    date: datetime | None = None
    html_url: str | None = None

    @classmethod
    def from_api(cls, data: dict) -> "CommitRecord":
        # List/get endpoints nest the git commit under "commit";
        # the contents PUT/DELETE response returns the git commit directly.
        git_commit = data.get("commit", data)
        author = git_commit.get("author") or {}
        date = author.get("date")
        return cls(
            sha=data["sha"],
            message=git_commit.get("message", ""),
            author_name=author.get("name"),
            author_email=author.get("email"),
            date=datetime.fromisoformat(date.replace("Z", "+00:00")) if date else None,
            html_url=data.get("html_url"),
        )


@dataclass
class CommitResult:
    """Result of a create, update or delete."""

    commit: CommitRecord
    content: RemoteFile | None = None  # None after a delete


def _error_message(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.text
    if isinstance(data, dict):
        return data.get("message", "")
    return ""


def _translate_error(response: httpx.Response, context: str) -> GitHubError:
    """Map an HTTP error response onto the error taxonomy."""
    status = response.status_code
    message = _error_message(response)
    detail = f"{context}: HTTP {status}"
    if message:
        detail = f"{detail} ({message})"

    if status == 404:
        return NotFoundError(detail, status)
    if status == 409:
        return ConflictError(detail, status)
    if status == 422 and "sha" in message.lower():
        # GitHub answers a create over an existing file with
        # 422 '"sha" wasn't supplied'
        return ConflictError(detail, status)
    if status == 401:
        return AuthError(detail, status)
    if status == 403:
        if (
            response.headers.get("x-ratelimit-remaining") == "0"
            or "rate limit" in message.lower()
        ):
            return TransientError(detail, status)
        return AuthError(detail, status)
    if status == 429 or status >= 500:
        return TransientError(detail, status)
    return UnknownError(detail, status)


def _encode(content: str) -> str:
    return base64.b64encode(content.encode("utf-8")).decode("ascii")


class GitHubClient:
    """Client for one repository and branch.

    Args:
        repo: ``owner/name``; defaults to GITHUB_REPO.
        branch: Defaults to GITHUB_BRANCH (or "main").
        token: Defaults to GITHUB_TOKEN.
        transport: Optional httpx transport (tests use ``httpx.MockTransport``).
    """

    def __init__(
        self,
        repo: str | None = None,
        branch: str | None = None,
        token: str | None = None,
        *,
        base_url: str = GITHUB_API_URL,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.repo = repo or get_content_repo()
        self.branch = branch or get_content_branch()
        self._token = token if token is not None else get_github_token()
        self._base_url = base_url
        self._timeout = timeout
        self._transport = transport

    def _headers(self) -> dict[str, str]:
        headers = {
            "Accept": "application/vnd.github.v3+json",
            "User-Agent": USER_AGENT,
        }
        if self._token:
            headers["Authorization"] = f"token {self._token}"
        return headers

    def _contents_endpoint(self, path: str) -> str:
        return f"/contents/{quote(path.strip('/'))}"

    async def _request(
        self,
        method: str,
        endpoint: str,
        *,
        context: str,
        params: dict | None = None,
        json: dict | None = None,
    ) -> Any:
        url = f"/repos/{self.repo}{endpoint}"
        try:
            async with httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self._timeout,
                transport=self._transport,
            ) as client:
                response = await client.request(
                    method, url, params=params, json=json, headers=self._headers()
                )
        except httpx.TimeoutException as e:
            raise TransientError(f"{context}: timed out ({e})")
        except httpx.TransportError as e:
            raise TransientError(f"{context}: network error ({e})")

        if response.status_code >= 400:
            raise _translate_error(response, context)
        return response.json()

    # --- Reads ---

    async def read(
        self, path: str, ref: str | None = None
    ) -> RemoteFile | list[RemoteFile]:
        """Read a file, or list a directory, at ``ref`` (default: branch).

        Raises:
            NotFoundError: If nothing exists at ``path``.
        """
        data = await self._request(
            "GET",
            self._contents_endpoint(path),
            params={"ref": ref or self.branch},
            context=f"Failed to read {path}",
        )
        if isinstance(data, list):
            return [RemoteFile.from_api(item) for item in data]
        return RemoteFile.from_api(data)

    async def get_file(self, path: str, ref: str | None = None) -> RemoteFile:
        """Read a single file.

        Raises:
            NotFoundError: If the path is missing or is a directory.
        """
        result = await self.read(path, ref)
        if isinstance(result, list):
            raise NotFoundError(f"{path} is a directory, not a file")
        return result

    async def list_directory(
        self, path: str, ref: str | None = None
    ) -> list[RemoteFile]:
        """List directory entries (files and subdirectories).

        Raises:
            NotFoundError: If the path is missing or is a file.
        """
        result = await self.read(path, ref)
        if not isinstance(result, list):
            raise NotFoundError(f"{path} is a file, not a directory")
        return result

    async def read_content(self, path: str, ref: str | None = None) -> str:
        """Read a file and decode its base64 content to UTF-8 text.

        Raises:
            NotFoundError: If the file does not exist.
            DecodeError: If the content is missing or not base64 UTF-8.
        """
        remote = await self.get_file(path, ref)
        if remote.raw_content is None or remote.encoding != "base64":
            raise DecodeError(
                f"Content of {path} not available or not base64 encoded "
                f"(encoding={remote.encoding!r})"
            )
        try:
            return base64.b64decode(remote.raw_content).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError) as e:
            raise DecodeError(f"Failed to decode {path}: {e}")

    async def file_exists(self, path: str) -> bool:
        try:
            await self.get_file(path)
            return True
        except NotFoundError:
            return False

    async def list_commits(self, limit: int = 10) -> list[CommitRecord]:
        """Most recent commits on the branch, newest first."""
        data = await self._request(
            "GET",
            "/commits",
            params={"per_page": limit, "sha": self.branch},
            context="Failed to list commits",
        )
        return [CommitRecord.from_api(item) for item in data]

    async def get_commit(self, sha: str) -> CommitRecord:
        data = await self._request(
            "GET", f"/commits/{sha}", context=f"Failed to get commit {sha[:8]}"
        )
        return CommitRecord.from_api(data)

    async def get_repository(self) -> dict:
        return await self._request(
            "GET", "", context=f"Failed to get repository {self.repo}"
        )

    # --- Writes ---

    async def write(
        self,
        path: str,
        content: str,
        message: str,
        precondition_hash: str | None = None,
        author: dict[str, str] | None = None,
    ) -> CommitResult:
        """Create or update a file.

        With ``precondition_hash`` this is an update that GitHub rejects if
        the file's current hash differs. Without it this is a create that
        fails if the file already exists.

        Raises:
            ConflictError: If the precondition does not hold.
        """
        body: dict[str, Any] = {
            "message": message,
            "content": _encode(content),
            "branch": self.branch,
        }
        if precondition_hash:
            body["sha"] = precondition_hash
        if author:
            body["author"] = author
            body["committer"] = author

        action = "update" if precondition_hash else "create"
        data = await self._request(
            "PUT",
            self._contents_endpoint(path),
            json=body,
            context=f"Failed to {action} {path}",
        )
        logger.info(f"Committed {action} of {path}: {data['commit']['sha'][:8]}")
        return CommitResult(
            commit=CommitRecord.from_api(data["commit"]),
            content=RemoteFile.from_api(data["content"]),
        )

    async def save(
        self,
        path: str,
        content: str,
        message: str,
        author: dict[str, str] | None = None,
    ) -> CommitResult:
        """Update ``path`` if it exists, otherwise create it.

        Reads the current hash first, so a concurrent writer landing between
        the read and the write is overwritten (or, for a create race, surfaces
        as ConflictError). Use ``write`` with an explicit hash to avoid this.
        """
        try:
            existing = await self.get_file(path)
        except NotFoundError:
            return await self.write(path, content, message, author=author)
        return await self.write(
            path,
            content,
            message,
            precondition_hash=existing.content_hash,
            author=author,
        )

    async def remove(
        self,
        path: str,
        message: str,
        content_hash: str,
        author: dict[str, str] | None = None,
    ) -> CommitResult:
        """Delete a file. Fails closed when ``content_hash`` is stale.

        Raises:
            ConflictError: If the hash does not match the current file.
            NotFoundError: If the file does not exist.
        """
        body: dict[str, Any] = {
            "message": message,
            "sha": content_hash,
            "branch": self.branch,
        }
        if author:
            body["author"] = author
            body["committer"] = author

        data = await self._request(
            "DELETE",
            self._contents_endpoint(path),
            json=body,
            context=f"Failed to delete {path}",
        )
        logger.info(f"Committed delete of {path}: {data['commit']['sha'][:8]}")
        return CommitResult(commit=CommitRecord.from_api(data["commit"]))

    # --- Status ---

    async def check_access(self) -> dict:
        """Probe repository reachability and token validity.

        Returns:
            {"valid": True} or {"valid": False, "error": "..."}
        """
        try:
            await self.get_repository()
            return {"valid": True}
        except GitHubError as e:
            return {"valid": False, "error": str(e)}

    async def get_stats(self) -> dict:
        """Repository info, latest commit and number of files under content/."""
        repo_info, commits = await asyncio.gather(
            self.get_repository(), self.list_commits(1)
        )

        total_files = 0
        try:
            entries = await self.list_directory("content")
            total_files = len([e for e in entries if e.type == "file"])
        except NotFoundError:
            pass  # No content directory before first use

        return {
            "total_files": total_files,
            "last_commit": commits[0] if commits else None,
            "repo_info": repo_info,
        }
