from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, TypeAlias


class NameCategory(str, Enum):
    PERSON = "Person"
    ORGANIZATION = "Organization"
    LOCATION = "Location"

    @property
    def ordinal(self) -> int:
        return _CATEGORY_ORDER.index(self)

    @classmethod
    def parse(cls, value: str) -> "NameCategory":
        """Resolve a category from its name, ignoring case."""
        lowered = value.strip().lower()
        for category in cls:
            if category.value.lower() == lowered:
                return category
        raise ValueError(f"Invalid name token category: {value!r}")


_CATEGORY_ORDER = tuple(NameCategory)


class _OrderedToken(ABC):
    """Total ordering shared by both token variants: text tokens sort before name tokens."""

    @abstractmethod
    def sort_key(self) -> tuple[Any, ...]:
        ...

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, _OrderedToken):
            return NotImplemented
        return self.sort_key() < other.sort_key()

    def __le__(self, other: object) -> bool:
        if not isinstance(other, _OrderedToken):
            return NotImplemented
        return self.sort_key() <= other.sort_key()

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, _OrderedToken):
            return NotImplemented
        return self.sort_key() > other.sort_key()

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, _OrderedToken):
            return NotImplemented
        return self.sort_key() >= other.sort_key()


@dataclass(frozen=True)
class TextToken(_OrderedToken):
    text: str
    part_of_speech: str | None = None

    @property
    def content(self) -> str:
        return self.text

    def sort_key(self) -> tuple[Any, ...]:
        # An absent part of speech sorts before any present one.
        pos = self.part_of_speech
        return (0, self.text, pos is not None, pos or "")

    def to_json(self) -> dict[str, str]:
        payload = {"text": self.text}
        if self.part_of_speech is not None:
            payload["pos"] = self.part_of_speech
        return payload


@dataclass(frozen=True)
class NameToken(_OrderedToken):
    name: str
    category: NameCategory

    @property
    def content(self) -> str:
        return self.name

    def sort_key(self) -> tuple[Any, ...]:
        return (1, self.name, self.category.ordinal)

    def to_json(self) -> dict[str, str]:
        return {"name": self.name, "category": self.category.value}


Token: TypeAlias = TextToken | NameToken


def token_from_json(payload: Any) -> Token:
    """Decode a token from its JSON object form.

    Raises:
        ValueError: If the payload is neither a text token nor a name token.
    """
    if isinstance(payload, dict):
        text = payload.get("text")
        if isinstance(text, str):
            pos = payload.get("pos")
            if pos is not None and not isinstance(pos, str):
                raise ValueError(f"Invalid token part of speech: {pos!r}")
            return TextToken(text, pos)
        name = payload.get("name")
        category = payload.get("category")
        if isinstance(name, str) and isinstance(category, str):
            return NameToken(name, NameCategory.parse(category))
    raise ValueError(f"Invalid token: {payload!r}")


def _require_items(kind: str, items: tuple[Any, ...]) -> None:
    if not items:
        raise ValueError(f"{kind} must contain at least one element")


@dataclass(frozen=True)
class Sentence:
    """A non-empty sequence of tokens in walk order."""

    tokens: tuple[Token, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "tokens", tuple(self.tokens))
        _require_items("Sentence", self.tokens)

    @classmethod
    def of(cls, *tokens: Token) -> "Sentence":
        return cls(tokens)

    @classmethod
    def from_iterable(cls, tokens: Iterable[Token]) -> "Sentence | None":
        items = tuple(tokens)
        return cls(items) if items else None


@dataclass(frozen=True)
class Paragraph:
    sentences: tuple[Sentence, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "sentences", tuple(self.sentences))
        _require_items("Paragraph", self.sentences)

    @classmethod
    def of(cls, *sentences: Sentence) -> "Paragraph":
        return cls(sentences)

    @classmethod
    def from_iterable(cls, sentences: Iterable[Sentence]) -> "Paragraph | None":
        items = tuple(sentences)
        return cls(items) if items else None


@dataclass(frozen=True)
class Lore:
    """Token-level composition, prior to rendering into prose."""

    paragraphs: tuple[Paragraph, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "paragraphs", tuple(self.paragraphs))
        _require_items("Lore", self.paragraphs)

    @classmethod
    def of(cls, *paragraphs: Paragraph) -> "Lore":
        return cls(paragraphs)

    @classmethod
    def from_iterable(cls, paragraphs: Iterable[Paragraph]) -> "Lore | None":
        items = tuple(paragraphs)
        return cls(items) if items else None

    @property
    def shape(self) -> tuple[int, ...]:
        """Sentence count of every paragraph, in order."""
        return tuple(len(paragraph.sentences) for paragraph in self.paragraphs)


@dataclass(frozen=True)
class Book:
    """Rendered prose, one string per paragraph."""

    paragraphs: tuple[str, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "paragraphs", tuple(self.paragraphs))
        _require_items("Book", self.paragraphs)

    def __str__(self) -> str:
        return "\r\n\r\n".join(self.paragraphs)

    @classmethod
    def of(cls, *paragraphs: str) -> "Book":
        return cls(paragraphs)

    @classmethod
    def from_iterable(cls, paragraphs: Iterable[str]) -> "Book | None":
        items = tuple(paragraphs)
        return cls(items) if items else None
