"""Retryable event envelopes and their queue codecs."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Protocol, Self, Sequence

from pydantic import AwareDatetime, BaseModel, ConfigDict, Field, PositiveInt

from .canonical import to_canonical_json
from .models import Book


class Event(Protocol):
    """Envelope contract consumed by the retry policy."""

    @property
    def created_at(self) -> datetime:
        ...

    @property
    def previous_attempts(self) -> int:
        ...

    def next_attempt(self) -> Self:
        ...


def _utc_now() -> datetime:
    return datetime.now(UTC)


class RetryableEvent(BaseModel):
    """Creation instant plus attempt counter; ``retry`` is absent on the first attempt."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    created_at: AwareDatetime = Field(default_factory=_utc_now, alias="createdAt")
    retry: int | None = None

    @property
    def previous_attempts(self) -> int:
        return max(0, self.retry) if self.retry is not None else 0

    def next_attempt(self) -> Self:
        """Return a copy with the attempt counter incremented and ``createdAt`` kept."""
        return self.model_copy(update={"retry": self.previous_attempts + 1})

    def to_json(self) -> str:
        return to_canonical_json(self)

    @classmethod
    def from_json(cls, payload: str | bytes) -> Self:
        return cls.model_validate_json(payload)


class ComposerEvent(RetryableEvent):
    """Request to compose lore, one sentence count per paragraph."""

    composition: tuple[PositiveInt, ...] = Field(min_length=1)

    @classmethod
    def create(cls, composition: Sequence[int], *, created_at: datetime | None = None) -> "ComposerEvent":
        return cls(composition=tuple(composition), created_at=created_at or _utc_now())


class BookEvent(RetryableEvent):
    """Request to post a rendered book to the social feed."""

    book: tuple[str, ...] = Field(min_length=1)

    @classmethod
    def from_book(cls, book: Book, *, created_at: datetime | None = None) -> "BookEvent":
        return cls(book=book.paragraphs, created_at=created_at or _utc_now())

    def to_book(self) -> Book:
        return Book(self.book)
