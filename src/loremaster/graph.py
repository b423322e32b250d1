"""Value types for the token transition graph.

Nodes are plain values; adjacency is resolved on demand by a repository lookup,
so revisiting a node never creates an ownership cycle.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, TypeAlias

from .models import Token


@dataclass(frozen=True)
class Start:
    """The unique entry point of every sentence walk."""

    def __repr__(self) -> str:
        return "Start"


START = Start()


@dataclass(frozen=True)
class Continue:
    """A node that can be walked to and then walked from."""

    token: Token


@dataclass(frozen=True)
class End:
    """A terminal node; it is never a walk source."""

    token: Token


Node: TypeAlias = Start | Continue | End
Source: TypeAlias = Start | Continue
Destination: TypeAlias = Continue | End


@dataclass(frozen=True)
class Link:
    destination: Destination
    weight: int

    def __post_init__(self) -> None:
        if not isinstance(self.destination, (Continue, End)):
            raise ValueError(f"Link destination must be a Continue or End node, got: {self.destination!r}")
        if self.weight < 0:
            raise ValueError(f"Link weight must be >= 0, got: {self.weight}")


def total_weight(links: Iterable[Link]) -> int:
    return sum(link.weight for link in links)


def select_link(links: Iterable[Link], offset: int) -> Link | None:
    """Return the first link whose weight exceeds what remains of ``offset``.

    Links are consumed in the order given, so list order is part of the
    effective distribution. Returns None when ``offset`` falls past the total.
    """
    remaining = offset
    for link in links:
        if remaining < link.weight:
            return link
        remaining -= link.weight
    return None
