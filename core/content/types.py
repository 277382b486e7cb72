"""
Typed content records for the marketing site.

Every record is parsed from a markdown (or YAML) file in the content
repository. Field names are snake_case in Python and camelCase in the
front-matter (``publishedAt``); both spellings are accepted on input.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, ClassVar, Literal
from urllib.parse import urlparse

from pydantic import (
    AfterValidator,
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
    field_validator,
)
from pydantic.alias_generators import to_camel

SLUG_PATTERN = r"^[a-z0-9-]+$"
TIME_PATTERN = r"^([0-1]?[0-9]|2[0-3]):[0-5][0-9]$"
PHONE_PATTERN = r"^[\+]?[1-9][\d]{0,15}$"
EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


class ContentType(str, Enum):
    """Kind of content a repository path holds."""

    PAGE = "page"
    PROJECT = "project"
    SERVICE = "service"
    BLOG = "blog"
    TESTIMONIAL = "testimonial"
    CONFIG = "config"
    UNKNOWN = "unknown"


class ProjectCategory(str, Enum):
    KITCHEN = "kitchen"
    BATHROOM = "bathroom"
    ADDITION = "addition"
    RENOVATION = "renovation"
    EXTERIOR = "exterior"
    COMMERCIAL = "commercial"


PROJECT_CATEGORY_LABELS: dict[ProjectCategory, str] = {
    ProjectCategory.KITCHEN: "Kitchen Remodeling",
    ProjectCategory.BATHROOM: "Bathroom Renovation",
    ProjectCategory.ADDITION: "Home Additions",
    ProjectCategory.RENOVATION: "Home Renovation",
    ProjectCategory.EXTERIOR: "Exterior Work",
    ProjectCategory.COMMERCIAL: "Commercial Projects",
}


def _ensure_utc(value: datetime) -> datetime:
    """Treat naive timestamps as UTC so records sort against each other."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _check_url(value: str) -> str:
    parsed = urlparse(value)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValueError("Must be a valid URL")
    return value


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


Timestamp = Annotated[datetime, AfterValidator(_ensure_utc)]
UrlStr = Annotated[str, AfterValidator(_check_url)]
Slug = Annotated[str, Field(min_length=1, pattern=SLUG_PATTERN)]
Status = Literal["draft", "published"]


class ContentModel(BaseModel):
    """Base for all content models: camelCase aliases, unknown keys ignored."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class SEOMetadata(ContentModel):
    title: str = Field(min_length=1, max_length=60)
    description: str = Field(min_length=1, max_length=160)
    keywords: list[str] = Field(default_factory=list)
    og_image: UrlStr | None = None
    og_type: str | None = None
    twitter_card: Literal["summary", "summary_large_image"] | None = None


class ProjectImage(ContentModel):
    src: UrlStr
    alt: str = Field(min_length=1)  # Required for accessibility
    caption: str | None = None
    width: int | None = Field(default=None, gt=0)
    height: int | None = Field(default=None, gt=0)


# --- Content records ---


class Page(ContentModel):
    content_type: ClassVar[ContentType] = ContentType.PAGE

    id: str = Field(min_length=1)
    title: str = Field(min_length=1, max_length=100)
    slug: Slug
    content: str = Field(min_length=1)
    seo: SEOMetadata
    published_at: Timestamp = Field(default_factory=_utcnow)
    updated_at: Timestamp = Field(default_factory=_utcnow)
    status: Status = "draft"


class Project(ContentModel):
    content_type: ClassVar[ContentType] = ContentType.PROJECT

    id: str = Field(min_length=1)
    title: str = Field(min_length=1, max_length=100)
    description: str = Field(min_length=1, max_length=500)
    content: str | None = None
    images: list[ProjectImage]
    category: ProjectCategory
    completed_at: Timestamp
    featured: bool = False
    seo: SEOMetadata
    published_at: Timestamp = Field(default_factory=_utcnow)
    updated_at: Timestamp = Field(default_factory=_utcnow)
    status: Status = "draft"

    @field_validator("images")
    @classmethod
    def _at_least_one_image(cls, images: list[ProjectImage]) -> list[ProjectImage]:
        if not images:
            raise ValueError("At least one image is required")
        return images

    @computed_field(alias="categoryLabel")
    @property
    def category_label(self) -> str:
        return PROJECT_CATEGORY_LABELS[self.category]


class Service(ContentModel):
    content_type: ClassVar[ContentType] = ContentType.SERVICE

    id: str = Field(min_length=1)
    title: str = Field(min_length=1, max_length=100)
    slug: Slug
    description: str = Field(min_length=1, max_length=300)
    content: str = Field(min_length=1)
    icon: str | None = None
    featured_image: UrlStr | None = None
    gallery: list[ProjectImage] | None = None
    features: list[str] = Field(default_factory=list)
    seo: SEOMetadata
    order: int = Field(ge=0)  # Display ordering, ascending
    featured: bool = False
    published_at: Timestamp = Field(default_factory=_utcnow)
    updated_at: Timestamp = Field(default_factory=_utcnow)
    status: Status = "draft"


class BlogPost(ContentModel):
    content_type: ClassVar[ContentType] = ContentType.BLOG

    id: str = Field(min_length=1)
    title: str = Field(min_length=1, max_length=100)
    slug: Slug
    excerpt: str = Field(min_length=1, max_length=300)
    content: str = Field(min_length=1)
    author: str = Field(min_length=1)
    published_at: Timestamp = Field(default_factory=_utcnow)
    updated_at: Timestamp = Field(default_factory=_utcnow)
    tags: list[str] = Field(default_factory=list)
    category: str = Field(min_length=1)
    featured_image: UrlStr | None = None
    seo: SEOMetadata
    status: Status = "draft"


class Testimonial(ContentModel):
    """Customer quote. Has no status; callers filter on ``featured``."""

    content_type: ClassVar[ContentType] = ContentType.TESTIMONIAL

    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    company: str | None = None
    content: str = Field(min_length=1, max_length=500)
    rating: int = Field(ge=1, le=5)
    avatar: UrlStr | None = None
    project_id: str | None = None
    featured: bool = False
    published_at: Timestamp = Field(default_factory=_utcnow)


# --- Site configuration (singleton, always active) ---


class Address(ContentModel):
    street: str = Field(min_length=1)
    city: str = Field(min_length=1)
    state: str = Field(min_length=2, max_length=2)
    zip_code: str = Field(min_length=5, max_length=10)
    country: str = Field(default="US", min_length=1)


class BusinessHours(ContentModel):
    day: str = Field(min_length=1)
    open: str = Field(pattern=TIME_PATTERN)
    close: str = Field(pattern=TIME_PATTERN)
    closed: bool | None = None


class ContactInfo(ContentModel):
    phone: str = Field(min_length=10, pattern=PHONE_PATTERN)
    email: str = Field(pattern=EMAIL_PATTERN)
    address: Address
    business_hours: list[BusinessHours]


class SocialLinks(ContentModel):
    facebook: UrlStr | None = None
    instagram: UrlStr | None = None
    twitter: UrlStr | None = None
    linkedin: UrlStr | None = None
    youtube: UrlStr | None = None


class GlobalSEO(ContentModel):
    default_title: str = Field(min_length=1)
    title_template: str = Field(min_length=1)
    default_description: str = Field(min_length=1)
    default_keywords: list[str]
    og_image: UrlStr
    twitter_handle: str | None = None


class SiteConfig(ContentModel):
    content_type: ClassVar[ContentType] = ContentType.CONFIG

    site_name: str = Field(min_length=1)
    site_url: UrlStr
    description: str = Field(min_length=1)
    contact: ContactInfo
    social: SocialLinks = Field(default_factory=SocialLinks)
    seo: GlobalSEO
    logo: UrlStr | None = None
    favicon: UrlStr | None = None


ContentRecord = Page | Project | Service | BlogPost | Testimonial | SiteConfig

MODEL_FOR_TYPE: dict[ContentType, type[ContentModel]] = {
    model.content_type: model
    for model in (Page, Project, Service, BlogPost, Testimonial, SiteConfig)
}
