"""Typed content records mapped from record-store rows.

Mapping happens once, right after a fetch. Code past the query engine only
sees these models, never raw field bags.
"""

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field

from app.models.base import (
    Attachment,
    Record,
    attachments,
    flag,
    link_ids,
    number,
    parse_date,
    text,
)

DEFAULT_CATEGORY_PRIORITY = 999


class ContentKind(StrEnum):
    ARTICLE = "article"
    GUIDE = "guide"


class PageType(StrEnum):
    HOME = "Home"
    BLOG_OVERVIEW = "Blog overview"
    ABOUT = "About us"
    CONTACT = "Contact"


class ContentBase(BaseModel):
    """Fields shared by articles and guides."""

    id: str
    tenant_ids: list[str] = Field(default_factory=list)
    published: bool = False
    title: str = ""
    slug: str = ""
    excerpt: str | None = None
    featured_image: list[Attachment] = Field(default_factory=list)
    published_date: datetime | None = None
    last_updated: datetime | None = None
    category_ids: list[str] = Field(default_factory=list)
    author_ids: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    meta_title: str | None = None
    meta_description: str | None = None
    redirect_status: str | None = None
    redirect_target: str | None = None

    def belongs_to(self, tenant_id: str) -> bool:
        return tenant_id in self.tenant_ids

    @staticmethod
    def _common(record: Record) -> dict:
        f = record.fields
        tags = f.get("Tags")
        return {
            "id": record.id,
            "tenant_ids": link_ids(f.get("Site")),
            "published": flag(f.get("Published")),
            "title": text(f.get("Title")) or "",
            "slug": text(f.get("Slug")) or "",
            "excerpt": text(f.get("Excerpt")),
            "featured_image": attachments(f.get("Featured image")),
            "published_date": parse_date(f.get("Published date")),
            "last_updated": parse_date(f.get("Last updated")),
            "category_ids": link_ids(f.get("Categories")),
            "author_ids": link_ids(f.get("Author")),
            "tags": [str(t) for t in tags] if isinstance(tags, list) else [],
            "meta_title": text(f.get("Meta title")),
            "meta_description": text(f.get("Meta description")),
            "redirect_status": text(f.get("Redirect status")),
            "redirect_target": text(f.get("Redirect to")),
        }


class Article(ContentBase):
    kind: ContentKind = ContentKind.ARTICLE
    content: str | None = None
    popular: bool = False
    related_ids: list[str] = Field(default_factory=list)

    @classmethod
    def from_record(cls, record: Record) -> "Article":
        f = record.fields
        return cls(
            **cls._common(record),
            content=text(f.get("Content")),
            popular=f.get("Popular") is True,
            related_ids=link_ids(f.get("Related blogs")),
        )


class Guide(ContentBase):
    """Multi-entry content: an ordered list of business/location entries."""

    kind: ContentKind = ContentKind.GUIDE
    entry_ids: list[str] = Field(default_factory=list)
    conclusion: str | None = None
    featured_image_alt: str | None = None

    @classmethod
    def from_record(cls, record: Record) -> "Guide":
        f = record.fields
        return cls(
            **cls._common(record),
            entry_ids=link_ids(f.get("Businesses")),
            conclusion=text(f.get("Conclusion")),
            featured_image_alt=text(f.get("Featured image alt text")),
        )


ContentItem = Article | Guide


class Page(BaseModel):
    id: str
    tenant_ids: list[str] = Field(default_factory=list)
    published: bool = False
    page_type: str | None = None
    title: str = ""
    slug: str = ""
    content: str | None = None
    featured_image: list[Attachment] = Field(default_factory=list)
    ordinal: int = 0

    @classmethod
    def from_record(cls, record: Record) -> "Page":
        f = record.fields
        return cls(
            id=record.id,
            tenant_ids=link_ids(f.get("Site")),
            published=flag(f.get("Published")),
            page_type=text(f.get("Page")),
            title=text(f.get("Title")) or "",
            slug=text(f.get("Slug")) or "",
            content=text(f.get("Content")),
            featured_image=attachments(f.get("Featured image")),
            ordinal=number(f.get("ID"), 0) or 0,
        )


class Category(BaseModel):
    id: str
    tenant_ids: list[str] = Field(default_factory=list)
    name: str = ""
    slug: str = ""
    description: str | None = None
    color: str | None = None
    priority: int = DEFAULT_CATEGORY_PRIORITY

    @classmethod
    def from_record(cls, record: Record) -> "Category":
        f = record.fields
        # Priority 0 / unset both mean "no priority"
        priority = number(f.get("Priority"), None) or DEFAULT_CATEGORY_PRIORITY
        return cls(
            id=record.id,
            tenant_ids=link_ids(f.get("Site")),
            name=text(f.get("Name")) or "",
            slug=text(f.get("Slug")) or "",
            description=text(f.get("Description")),
            color=text(f.get("Color")),
            priority=priority,
        )


class Feature(BaseModel):
    id: str
    ordinal: int = 0
    name: str = ""
    description: str | None = None
    enabled_tenant_ids: list[str] = Field(default_factory=list)

    def enabled_for(self, tenant_id: str) -> bool:
        return tenant_id in self.enabled_tenant_ids

    @classmethod
    def from_record(cls, record: Record) -> "Feature":
        f = record.fields
        return cls(
            id=record.id,
            ordinal=number(f.get("ID"), 0) or 0,
            name=text(f.get("Name")) or "",
            description=text(f.get("Description")),
            enabled_tenant_ids=link_ids(f.get("Enabled sites")),
        )


class Author(BaseModel):
    id: str
    name: str = "Author"
    slug: str | None = None
    bio: str | None = None
    image: list[Attachment] = Field(default_factory=list)

    @classmethod
    def from_record(cls, record: Record) -> "Author":
        f = record.fields
        return cls(
            id=record.id,
            name=text(f.get("Name")) or "Author",
            slug=text(f.get("Slug")),
            bio=text(f.get("Bio")),
            image=attachments(f.get("Image")),
        )


class Business(BaseModel):
    """A guide entry (business / location), resolved on demand."""

    id: str
    name: str = ""
    description: str | None = None
    address: str | None = None
    city: str | None = None
    website: str | None = None
    price: str | None = None
    image: list[Attachment] = Field(default_factory=list)

    @classmethod
    def from_record(cls, record: Record) -> "Business":
        f = record.fields
        return cls(
            id=record.id,
            name=text(f.get("Competitor")) or text(f.get("Name")) or "",
            description=text(f.get("Description")),
            address=text(f.get("Address")),
            city=text(f.get("City")),
            website=text(f.get("Website")),
            price=text(f.get("Price")),
            image=attachments(f.get("Image")),
        )
