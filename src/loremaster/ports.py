"""Protocols for the collaborators the composition engine depends on."""

from __future__ import annotations

from datetime import timedelta
from typing import Protocol, Sequence, TypeVar

from .graph import Link, Source
from .models import Book, Lore

EventT = TypeVar("EventT", contravariant=True)


class Repository(Protocol):
    """Resolves the weighted outgoing links of a source node.

    Implementations raise ``RepositoryError`` (with ``should_retry``) on failure.
    """

    def links_from(self, source: Source) -> Sequence[Link]:
        ...


class Renderer(Protocol):
    """Turns token-level lore into prose; raises ``RenderError`` on failure."""

    def render(self, lore: Lore) -> Book:
        ...


class Publisher(Protocol[EventT]):
    """Delay-capable publish primitive; ``delay=None`` means as soon as possible.

    Implementations raise ``PublishError`` (with ``should_retry``) on failure.
    """

    def publish(self, event: EventT, delay: timedelta | None = None) -> None:
        ...


class RandomSource(Protocol):
    """Subset of ``random.Random`` used by the composer."""

    def randrange(self, stop: int) -> int:
        ...
