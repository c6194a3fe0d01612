"""Typed representations of blog posts, pages, and their front matter."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..utils import slugify


class DocumentKind(str, Enum):
    """Variant of a content document."""

    POST = "post"
    PAGE = "page"


def normalize_categories(value: Any) -> tuple[str, ...]:
    """Accept a space-separated string or a list and return lowercase tokens.

    Order is preserved and repeats are dropped.
    """
    if value is None:
        return ()
    if isinstance(value, str):
        raw = value.split()
    elif isinstance(value, (list, tuple)):
        raw = list(value)
    else:
        raise ValueError("categories must be a string or a list of strings")

    tokens: list[str] = []
    for entry in raw:
        if not isinstance(entry, str):
            entry = str(entry)
        token = " ".join(entry.split()).lower()
        if not token:
            raise ValueError("category entries cannot be empty")
        if token not in tokens:
            tokens.append(token)
    return tuple(tokens)


def normalize_permalink(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    if not text.startswith("/"):
        text = f"/{text}"
    if any(segment in {".", ".."} for segment in text.split("/")):
        raise ValueError("permalink cannot contain '.' or '..' segments")
    return text


class FrontMatter(BaseModel):
    """Header fields shared by posts and pages."""

    model_config = ConfigDict(extra="allow", frozen=True)

    layout: str = Field(description="Layout name; selects the document kind.")
    title: str = Field(description="Display title.")
    categories: tuple[str, ...] = Field(default=(), description="Lowercase category tokens.")
    permalink: Optional[str] = Field(default=None, description="Explicit output path.")

    @field_validator("layout", "title", mode="before")
    def _require_text(cls, value: Any) -> str:
        text = "" if value is None else str(value).strip()
        if not text:
            raise ValueError("value cannot be empty")
        return text

    @field_validator("categories", mode="before")
    def _normalize_categories(cls, value: Any) -> tuple[str, ...]:
        return normalize_categories(value)

    @field_validator("permalink", mode="before")
    def _normalize_permalink(cls, value: Any) -> Optional[str]:
        return normalize_permalink(value)

    @property
    def extra_fields(self) -> dict[str, Any]:
        return dict(self.model_extra or {})


class PostFrontMatter(FrontMatter):
    """Header of a dated blog post."""

    date: datetime = Field(description="Publication timestamp with UTC offset.")

    @field_validator("title")
    def _title_must_slugify(cls, value: str) -> str:
        if not slugify(value):
            raise ValueError("title must contain at least one letter or digit")
        return value

    @field_validator("date")
    def _require_offset(cls, value: datetime) -> datetime:
        if value.tzinfo is None or value.utcoffset() is None:
            raise ValueError("date must carry a UTC offset")
        return value


class PageFrontMatter(FrontMatter):
    """Header of a standalone page such as "About"."""

    date: Optional[datetime] = Field(default=None)


class Document(BaseModel):
    """A loaded post or page. Immutable once constructed."""

    model_config = ConfigDict(frozen=True)

    kind: DocumentKind
    layout: str
    title: str
    date: Optional[datetime] = None
    categories: tuple[str, ...] = ()
    permalink: Optional[str] = None
    body: str = Field(description="Raw markdown body.")
    body_line: int = Field(default=1, ge=1, description="Source line where the body starts.")
    source_path: str = Field(description="Path to the source file.")
    source_identity: str = Field(repr=False, exclude=True)
    extra: dict[str, Any] = Field(default_factory=dict)

    def __hash__(self) -> int:
        return hash(self.source_identity)

    @property
    def is_post(self) -> bool:
        return self.kind is DocumentKind.POST

    @property
    def title_slug(self) -> str:
        return slugify(self.title)

    @property
    def slug(self) -> str:
        """``YYYY-MM-DD-title-slug`` for posts; the title slug for pages."""
        if self.is_post and self.date is not None:
            return f"{self.date:%Y-%m-%d}-{self.title_slug}"
        return self.title_slug

    @classmethod
    def from_front_matter(
        cls,
        front_matter: FrontMatter,
        *,
        body: str,
        body_line: int,
        source_path: str,
        source_identity: str,
    ) -> "Document":
        kind = DocumentKind.POST if isinstance(front_matter, PostFrontMatter) else DocumentKind.PAGE
        return cls(
            kind=kind,
            layout=front_matter.layout,
            title=front_matter.title,
            date=front_matter.date,
            categories=front_matter.categories,
            permalink=front_matter.permalink,
            body=body,
            body_line=body_line,
            source_path=source_path,
            source_identity=source_identity,
            extra=front_matter.extra_fields,
        )
