from __future__ import annotations

import logging
import random
import threading
from typing import Sequence

from .errors import (
    ComposerError,
    EmptyParagraphError,
    InvalidTransitionError,
    LinkLookupError,
    NoOutgoingLinksError,
    RepositoryError,
)
from .graph import START, Continue, End, Link, Source, select_link, total_weight
from .models import Lore, Paragraph, Sentence, Token
from .ports import RandomSource, Repository

logger = logging.getLogger(__name__)


class Composer:
    """Builds sentences by a weighted random walk over a repository-backed graph.

    The composer holds no state between calls apart from the random source,
    whose draws are serialized so one instance can serve concurrent attempts.
    """

    def __init__(self, repository: Repository, *, rng: RandomSource | None = None) -> None:
        self.repository = repository
        self.rng = rng if rng is not None else random.Random()
        self._rng_lock = threading.Lock()

    def compose_lore(self, shape: Sequence[int]) -> Lore:
        """Compose one paragraph per entry of ``shape``, each with that many sentences.

        Raises:
            EmptyParagraphError: If any requested sentence count is below one.
            ComposerError: If ``shape`` is empty or the walk fails.
        """
        counts = list(shape)
        if not counts:
            raise ComposerError("Cannot compose lore without any paragraphs")
        for count in counts:
            if count <= 0:
                raise EmptyParagraphError(count)
        return Lore(tuple(self.compose_paragraph(count) for count in counts))

    def compose_paragraph(self, sentence_count: int) -> Paragraph:
        if sentence_count <= 0:
            raise EmptyParagraphError(sentence_count)
        return Paragraph(tuple(self.compose_sentence() for _ in range(sentence_count)))

    def compose_sentence(self) -> Sentence:
        """Walk from ``START`` until an ``End`` node is drawn.

        Raises:
            NoOutgoingLinksError: If a source's outgoing weight totals zero.
            InvalidTransitionError: If no link covers the drawn offset.
            LinkLookupError: If the repository fails; keeps its retry classification.
        """
        tokens: list[Token] = []
        source: Source = START
        while True:
            links = self._links_from(source)
            weight = total_weight(links)
            if weight < 1:
                raise NoOutgoingLinksError(source)
            offset = self._draw(weight)
            link = select_link(links, offset)
            if link is None:
                raise InvalidTransitionError(source, offset)
            logger.debug("Walked from %r to %r (offset %d of %d)", source, link.destination, offset, weight)
            match link.destination:
                case End(token):
                    tokens.append(token)
                    return Sentence(tuple(tokens))
                case Continue(token) as destination:
                    tokens.append(token)
                    source = destination
                case other:
                    raise ComposerError(f"Invalid link destination from {source!r}: {other!r}")

    def _links_from(self, source: Source) -> list[Link]:
        try:
            return list(self.repository.links_from(source))
        except RepositoryError as exc:
            raise LinkLookupError(source, should_retry=exc.should_retry) from exc
        except Exception as exc:  # noqa: BLE001 - unclassified repository failures are fatal.
            raise LinkLookupError(source, should_retry=False) from exc

    def _draw(self, bound: int) -> int:
        with self._rng_lock:
            return self.rng.randrange(bound)
