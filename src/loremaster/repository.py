from __future__ import annotations

from typing import Mapping, Sequence

from .errors import RepositoryError
from .graph import START, Continue, End, Link, Source
from .models import TextToken


class InMemoryRepository:
    """Repository over a fixed adjacency mapping; link order is preserved as given."""

    def __init__(self, links: Mapping[Source, Sequence[Link]]) -> None:
        self._links = {source: tuple(entries) for source, entries in links.items()}

    def links_from(self, source: Source) -> Sequence[Link]:
        try:
            return self._links[source]
        except KeyError:
            raise RepositoryError(f"Invalid node: {source!r}") from None

    def __len__(self) -> int:
        return len(self._links)


def sample_repository() -> InMemoryRepository:
    """The lazy/shaggy dog graph: ``The (lazy|shaggy) dog (barks|runs)``."""
    the = Continue(TextToken("The", "DT"))
    lazy = Continue(TextToken("lazy", "JJ"))
    shaggy = Continue(TextToken("shaggy", "JJ"))
    dog = Continue(TextToken("dog", "NN"))
    return InMemoryRepository(
        {
            START: [Link(the, 1)],
            the: [Link(lazy, 1), Link(shaggy, 1)],
            lazy: [Link(dog, 1)],
            shaggy: [Link(dog, 1)],
            dog: [Link(End(TextToken("barks", "VBZ")), 1), Link(End(TextToken("runs", "VBZ")), 1)],
        }
    )
