"""
Parse and validate content files from the content repository.

A content file is YAML front-matter between ``---`` lines followed by a
markdown body. Parsing is pure: no I/O, no caching.

Usage:
    from core.content.parser import parse_file, classify

    record = parse_file(text, "content/projects/kitchen-remodel.md")
"""

import logging
import re
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from pathlib import PurePosixPath

import pydantic
import yaml
from pydantic.alias_generators import to_snake

from .types import (
    BlogPost,
    ContentRecord,
    ContentType,
    MODEL_FOR_TYPE,
    Page,
    Project,
    Service,
    SiteConfig,
    Testimonial,
)

logger = logging.getLogger(__name__)

FRONTMATTER_RE = re.compile(r"^---\s*\n(.*?)\n---\s*(?:\n|$)", re.DOTALL)

# Path prefix -> content type. classify() is the only place this is read.
CONTENT_DIRECTORIES: dict[ContentType, str] = {
    ContentType.PAGE: "content/pages/",
    ContentType.PROJECT: "content/projects/",
    ContentType.SERVICE: "content/services/",
    ContentType.BLOG: "content/blog/",
    ContentType.TESTIMONIAL: "content/testimonials/",
    ContentType.CONFIG: "content/settings/",
}

SUPPORTED_CONTENT_EXTENSIONS = (".md", ".mdx", ".yml", ".yaml", ".json")

# Front-matter keys coerced to datetimes before validation
DATE_FIELDS = ("publishedAt", "updatedAt", "completedAt")
DEFAULT_NOW_FIELDS: dict[ContentType, tuple[str, ...]] = {
    ContentType.PAGE: ("publishedAt", "updatedAt"),
    ContentType.PROJECT: ("publishedAt", "updatedAt"),
    ContentType.SERVICE: ("publishedAt", "updatedAt"),
    ContentType.BLOG: ("publishedAt", "updatedAt"),
    ContentType.TESTIMONIAL: ("publishedAt",),
    ContentType.CONFIG: (),
}


@dataclass
class FieldError:
    """A single failing field."""

    field: str  # Dotted location, e.g. "seo.title" or "images.0.src"
    message: str

    def __str__(self) -> str:
        return f"{self.field}: {self.message}"


class ContentValidationError(Exception):
    """Raised when a content file is malformed or violates its schema.

    Carries every failing field, not just the first one.
    """

    def __init__(
        self,
        content_type: ContentType,
        errors: list[FieldError],
        path: str | None = None,
    ):
        self.content_type = content_type
        self.errors = errors
        self.path = path
        location = f" ({path})" if path else ""
        details = "; ".join(str(e) for e in errors)
        super().__init__(
            f"{content_type.value} validation failed{location}: {details}"
        )

    @property
    def fields(self) -> list[str]:
        return [e.field for e in self.errors]


@dataclass
class RawContent:
    """A content file split into front-matter data and markdown body."""

    front_matter: dict = field(default_factory=dict)
    body: str = ""


def split_front_matter(text: str) -> RawContent:
    """Split YAML front-matter from the markdown body.

    Files without a front-matter block are returned as all body.

    Raises:
        ContentValidationError: If the front-matter is not a YAML mapping.
    """
    match = FRONTMATTER_RE.match(text)
    if not match:
        return RawContent(front_matter={}, body=text)

    try:
        data = yaml.safe_load(match.group(1)) or {}
    except yaml.YAMLError as e:
        raise ContentValidationError(
            ContentType.UNKNOWN, [FieldError("frontmatter", f"Invalid YAML: {e}")]
        )
    if not isinstance(data, dict):
        raise ContentValidationError(
            ContentType.UNKNOWN,
            [FieldError("frontmatter", "Front-matter must be a mapping")],
        )

    return RawContent(front_matter=data, body=text[match.end() :])


def _coerce_datetime(value):
    """Turn YAML dates and ISO strings into datetimes; leave anything else."""
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value.strip())
        except ValueError:
            return value  # Let validation report it
    return value


def _location(loc: tuple) -> str:
    return ".".join(str(part) for part in loc) or "__root__"


def _field_errors(exc: pydantic.ValidationError) -> list[FieldError]:
    errors = []
    for err in exc.errors():
        message = err["msg"]
        # Custom validators surface as "Value error, <message>"
        if message.startswith("Value error, "):
            message = message[len("Value error, ") :]
        errors.append(FieldError(field=_location(err["loc"]), message=message))
    return errors


def parse(
    raw: RawContent, target_type: ContentType, path: str | None = None
) -> ContentRecord:
    """Validate split content against the schema for ``target_type``.

    Steps: coerce date fields, default missing timestamps to now, attach the
    body as ``content``, then validate collecting all field errors.

    Raises:
        ContentValidationError: Listing every failing field.
    """
    model = MODEL_FOR_TYPE.get(target_type)
    if model is None:
        raise ContentValidationError(
            target_type,
            [FieldError("path", f"Unknown content type for file: {path}")],
            path=path,
        )

    data = dict(raw.front_matter)

    for key in DATE_FIELDS:
        for spelling in (key, to_snake(key)):
            if spelling in data:
                data[spelling] = _coerce_datetime(data[spelling])

    now = datetime.now(timezone.utc)
    for key in DEFAULT_NOW_FIELDS[target_type]:
        if data.get(key) is None and data.get(to_snake(key)) is None:
            data[key] = now

    # The body becomes ``content`` unless front-matter already sets it
    if target_type != ContentType.CONFIG and "content" not in data:
        body = raw.body.strip()
        if body or target_type != ContentType.PROJECT:
            data["content"] = body

    try:
        return model.model_validate(data)
    except pydantic.ValidationError as e:
        raise ContentValidationError(target_type, _field_errors(e), path=path)


def parse_content(
    text: str, target_type: ContentType, path: str | None = None
) -> ContentRecord:
    """Split and validate a raw content file.

    Site config files are plain YAML documents; they are accepted with or
    without front-matter delimiters.
    """
    try:
        raw = split_front_matter(text)
    except ContentValidationError as e:
        raise ContentValidationError(target_type, e.errors, path=path)

    if target_type == ContentType.CONFIG and not raw.front_matter:
        try:
            data = yaml.safe_load(text) or {}
        except yaml.YAMLError as e:
            raise ContentValidationError(
                target_type, [FieldError("yaml", f"Invalid YAML: {e}")], path=path
            )
        if not isinstance(data, dict):
            raise ContentValidationError(
                target_type,
                [FieldError("yaml", "Site config must be a mapping")],
                path=path,
            )
        raw = RawContent(front_matter=data, body="")

    return parse(raw, target_type, path=path)


def parse_file(text: str, path: str) -> ContentRecord:
    """Parse a file, choosing the schema from its repository path."""
    return parse_content(text, classify(path), path=path)


def parse_project(text: str) -> Project:
    return parse_content(text, ContentType.PROJECT)


def parse_page(text: str) -> Page:
    return parse_content(text, ContentType.PAGE)


def parse_service(text: str) -> Service:
    return parse_content(text, ContentType.SERVICE)


def parse_blog_post(text: str) -> BlogPost:
    return parse_content(text, ContentType.BLOG)


def parse_testimonial(text: str) -> Testimonial:
    return parse_content(text, ContentType.TESTIMONIAL)


def parse_site_config(text: str) -> SiteConfig:
    return parse_content(text, ContentType.CONFIG)


# --- Path helpers ---


def classify(path: str) -> ContentType:
    """Map a repository path to the content type stored under it."""
    normalized = path.lstrip("/")
    for content_type, prefix in CONTENT_DIRECTORIES.items():
        if normalized.startswith(prefix):
            return content_type
    return ContentType.UNKNOWN


def content_directory(content_type: ContentType) -> str:
    """Directory (no trailing slash) that holds files of ``content_type``."""
    return CONTENT_DIRECTORIES[content_type].rstrip("/")


def slug_from_path(path: str) -> str | None:
    """Slug of a content file: its path under the type directory, sans extension.

    Returns None for unknown paths or the directory itself.
    """
    content_type = classify(path)
    if content_type == ContentType.UNKNOWN:
        return None
    remainder = path.lstrip("/")[len(CONTENT_DIRECTORIES[content_type]) :]
    if not remainder or remainder.endswith("/"):
        return None
    return str(PurePosixPath(remainder).with_suffix(""))


def is_content_file(name: str) -> bool:
    return name.lower().endswith(SUPPORTED_CONTENT_EXTENSIONS)


# --- Text helpers ---


def slugify(title: str) -> str:
    """Generate a URL slug from a title.

    Output contains only ``[a-z0-9-]``, with no leading, trailing or repeated
    hyphens, so ``slugify(slugify(x)) == slugify(x)``.
    """
    slug = title.lower()
    slug = re.sub(r"[\s_]+", "-", slug)
    slug = re.sub(r"[^a-z0-9-]", "", slug)
    slug = re.sub(r"-+", "-", slug)
    return slug.strip("-")


def excerpt(markdown: str, max_length: int = 160) -> str:
    """Plain-text excerpt of markdown, cut on a word boundary.

    An ellipsis is appended only when the text was truncated.
    """
    text = re.sub(r"!\[([^\]]*)\]\([^)]*\)", r"\1", markdown)  # Images
    text = re.sub(r"\[([^\]]*)\]\([^)]*\)", r"\1", text)  # Links
    text = re.sub(r"^#{1,6}\s+", "", text, flags=re.MULTILINE)  # Headers
    text = re.sub(r"^>\s?", "", text, flags=re.MULTILINE)  # Blockquotes
    text = re.sub(r"^\s*[-*+]\s+", "", text, flags=re.MULTILINE)  # Bullets
    text = re.sub(r"\*\*(.*?)\*\*", r"\1", text)  # Bold
    text = re.sub(r"__(.*?)__", r"\1", text)
    text = re.sub(r"\*(.*?)\*", r"\1", text)  # Italic
    text = re.sub(r"`([^`]*)`", r"\1", text)  # Inline code
    text = re.sub(r"\s+", " ", text).strip()

    if len(text) <= max_length:
        return text

    truncated = text[:max_length]
    last_space = truncated.rfind(" ")
    if last_space > 0:
        truncated = truncated[:last_space]
    return truncated.rstrip() + "..."
