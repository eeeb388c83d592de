"""Typed representations of blog corpus content."""

from __future__ import annotations

from datetime import date
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class DraftState(str, Enum):
    """Visibility state for a content item."""

    DRAFT = "draft"
    PUBLISHED = "published"


class ContentItem(BaseModel):
    """One authored post or page."""

    model_config = ConfigDict(frozen=True)

    slug: str = Field(description="Path-identifying string, unique across the corpus.")
    title: str = Field(description="Display title.")
    published_date: Optional[date] = Field(
        default=None, description="Publish date; required once the item is published."
    )
    tags: frozenset[str] = Field(default_factory=frozenset, description="Free-form tags.")
    module: Optional[str] = Field(default=None, description="Key of the owning module.")
    draft_state: DraftState = Field(default=DraftState.PUBLISHED)
    body: str = Field(default="", description="Raw markdown body.")
    source_path: str = Field(description="Path to the source file.")
    aliases: tuple[str, ...] = Field(
        default=(), description="Additional URL paths that redirect to this item."
    )
    extra: dict[str, Any] = Field(
        default_factory=dict, description="Unrecognised front-matter keys, kept verbatim."
    )

    @field_validator("slug", "title")
    def _require_text(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned:
            raise ValueError("value cannot be empty")
        return cleaned

    @property
    def is_draft(self) -> bool:
        return self.draft_state is DraftState.DRAFT

    @property
    def sorted_tags(self) -> list[str]:
        return sorted(self.tags)


class Module(BaseModel):
    """A named grouping (category) of content items."""

    model_config = ConfigDict(frozen=True)

    key: str = Field(description="Unique module key.")
    title: str = Field(description="Display title.")
    member_slugs: tuple[str, ...] = Field(default=(), description="Ordered member slugs.")
    source_path: str = Field(default="", description="File the module was declared in.")

    @field_validator("key")
    def _normalize_key(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned:
            raise ValueError("module key cannot be empty")
        return cleaned


class ParseFailure(BaseModel):
    """A content unit or module declaration that could not be parsed."""

    model_config = ConfigDict(frozen=True)

    slug: str
    source_path: str
    message: str


class Corpus(BaseModel):
    """Immutable snapshot of everything read from the content directory."""

    model_config = ConfigDict(frozen=True)

    items: tuple[ContentItem, ...] = ()
    modules: tuple[Module, ...] = ()
    unreadable: tuple[ParseFailure, ...] = ()
    unreadable_modules: tuple[ParseFailure, ...] = ()

    @property
    def known_slugs(self) -> frozenset[str]:
        """Slugs of parsed items plus the path-derived slugs of unparseable ones."""
        slugs = {item.slug for item in self.items}
        slugs.update(entry.slug for entry in self.unreadable)
        return frozenset(slugs)
