from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

ItemType = Literal["book", "movie", "drama"]
SuggestType = Literal["book", "ebook", "movie", "drama"]


def _normalize_optional_text(value: object) -> str | None:
    if not isinstance(value, str):
        return None
    normalized = value.strip()
    if not normalized:
        return None
    return normalized


def _default_str_list() -> list[str]:
    return []


class _CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class CatalogItem(_CamelModel):
    title: str
    authors: list[str] = Field(default_factory=_default_str_list)
    publisher: str | None = None
    thumbnail: str | None = None
    isbn: str | None = None
    published_date: str | None = None
    url: str | None = None
    genres: list[str] = Field(default_factory=_default_str_list)
    country: str | None = None
    type: ItemType = "book"
    item_page: int = 0
    runtime: int = 0
    total_episodes: int = 0

    @field_validator("publisher", "thumbnail", "isbn", "published_date", "url", "country", mode="before")
    @classmethod
    def _normalize_optional_fields(cls, value: object) -> str | None:
        return _normalize_optional_text(value)

    @field_validator("item_page", "runtime", "total_episodes", mode="before")
    @classmethod
    def _coerce_count(cls, value: object) -> int:
        if isinstance(value, bool) or value is None:
            return 0
        if isinstance(value, int | float):
            return max(0, int(value))
        if isinstance(value, str) and value.strip().isdigit():
            return int(value.strip())
        return 0

    @property
    def numeric_fact(self) -> int:
        if self.type == "movie":
            return self.runtime
        if self.type == "drama":
            return self.total_episodes
        return self.item_page


class AddToNotionRequest(CatalogItem):
    # Optional here so a missing title is answered with 400, not a validation error.
    title: str | None = None  # type: ignore[assignment]
    rating: str | None = None
    tense: str | None = None

    @field_validator("title", "rating", "tense", mode="before")
    @classmethod
    def _normalize_annotation_fields(cls, value: object) -> str | None:
        return _normalize_optional_text(value)


class Annotations(BaseModel):
    rating: str | None = None
    tense: str | None = None


class Suggestion(BaseModel):
    model_config = ConfigDict(extra="ignore")

    title: str
    year: str | None = None
    author: str | None = None


class BookSearchResponse(BaseModel):
    books: list[CatalogItem]


class MediaSearchResponse(BaseModel):
    items: list[CatalogItem]


class SuggestResponse(BaseModel):
    suggestions: list[Suggestion]


class TenseOptionsResponse(BaseModel):
    options: list[str]


class DuplicateCheckRequest(_CamelModel):
    title: str | None = None
    published_date: str | None = None

    @field_validator("title", "published_date", mode="before")
    @classmethod
    def _normalize_fields(cls, value: object) -> str | None:
        return _normalize_optional_text(value)


class DuplicateCheckResponse(_CamelModel):
    exists: bool
    date: str | None = None
    existing_title: str | None = None
    page_url: str | None = None


class AddToNotionResponse(_CamelModel):
    success: bool
    page_id: str | None = None
    url: str | None = None


class ErrorResponse(BaseModel):
    error: str
