from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, TypedDict

from langgraph.graph import END, START, StateGraph
from langgraph.types import Command

from .composer import Composer
from .errors import (
    ComposerError,
    DownstreamError,
    FallbackEnqueueError,
    LoremasterError,
    RetryExhaustedError,
)
from .events import BookEvent, ComposerEvent
from .models import Book, Lore
from .ports import Publisher, RandomSource, Renderer, Repository
from .retry import DEFAULT_RETRY_POLICY, RetryPolicy

if TYPE_CHECKING:
    from .settings import RuntimeSettings

logger = logging.getLogger(__name__)


class CompositionStage(str, Enum):
    COMPOSE = "compose"
    RENDER = "render"
    PUBLISH = "publish"
    RETRY = "retry"
    DONE = "done"
    FATAL = "fatal"


class CompositionState(TypedDict, total=False):
    event: ComposerEvent
    stage: CompositionStage
    lore: Lore
    book: Book
    failure: LoremasterError
    retry_delay: timedelta
    error: LoremasterError


@dataclass
class CompositionResult:
    stage: CompositionStage
    lore: Lore | None = None
    book: Book | None = None
    retry_delay: timedelta | None = None
    error: LoremasterError | None = None


def _chain(error: LoremasterError, cause: BaseException) -> LoremasterError:
    error.__cause__ = cause
    return error


class ComposerService:
    """One composition attempt as a StateGraph: compose -> render -> publish.

    Retryable failures route to ``reschedule``, which consults the retry policy
    and re-enqueues the next attempt through the fallback publisher. Everything
    else ends the graph in the ``FATAL`` stage and is raised by ``handle``.
    """

    def __init__(
        self,
        *,
        repository: Repository,
        renderer: Renderer,
        publisher: Publisher[BookEvent],
        fallback: Publisher[ComposerEvent],
        retry_policy: RetryPolicy | None = None,
        rng: RandomSource | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.composer = Composer(repository, rng=rng)
        self.renderer = renderer
        self.publisher = publisher
        self.fallback = fallback
        self.retry_policy = retry_policy if retry_policy is not None else DEFAULT_RETRY_POLICY
        self.clock = clock if clock is not None else (lambda: datetime.now(UTC))
        self.graph = self._build_graph().compile()

    @classmethod
    def from_settings(
        cls,
        settings: RuntimeSettings,
        *,
        repository: Repository,
        renderer: Renderer,
        publisher: Publisher[BookEvent],
        fallback: Publisher[ComposerEvent],
    ) -> "ComposerService":
        return cls(
            repository=repository,
            renderer=renderer,
            publisher=publisher,
            fallback=fallback,
            retry_policy=settings.retry_policy,
            rng=settings.build_rng(),
        )

    def _build_graph(self) -> StateGraph:
        graph = StateGraph(CompositionState)
        graph.add_node("compose", self._compose)
        graph.add_node("render", self._render)
        graph.add_node("publish", self._publish)
        graph.add_node("reschedule", self._reschedule)

        graph.add_edge(START, "compose")
        graph.add_edge("reschedule", END)
        return graph

    # -- nodes ---------------------------------------------------------------

    def _compose(self, state: CompositionState) -> Command[str]:
        event = state["event"]
        try:
            lore = self.composer.compose_lore(event.composition)
        except ComposerError as exc:
            return self._route_failure(exc)
        return Command(update={"lore": lore, "stage": CompositionStage.RENDER}, goto="render")

    def _render(self, state: CompositionState) -> Command[str]:
        lore = state["lore"]
        try:
            book = self.renderer.render(lore)
        except Exception as exc:  # noqa: BLE001 - classified by _downstream_failure.
            return self._downstream_failure("render", f"Failed to render: {lore}", exc)
        return Command(update={"book": book, "stage": CompositionStage.PUBLISH}, goto="publish")

    def _publish(self, state: CompositionState) -> Command[str]:
        book = state["book"]
        try:
            self.publisher.publish(BookEvent.from_book(book, created_at=self.clock()))
        except Exception as exc:  # noqa: BLE001 - classified by _downstream_failure.
            return self._downstream_failure("publish", f"Failed to publish: {book}", exc)
        logger.info("Composed: %s", book)
        return Command(update={"stage": CompositionStage.DONE}, goto=END)

    def _reschedule(self, state: CompositionState) -> dict[str, Any]:
        event = state["event"]
        failure = state["failure"]
        delay = self.retry_policy(event, now=self.clock())
        if delay is None:
            error = _chain(
                RetryExhaustedError(
                    f"Gave up on composition after {event.previous_attempts} previous attempts: {failure.message}"
                ),
                failure,
            )
            logger.error("%s", error.message)
            return {"stage": CompositionStage.FATAL, "error": error}

        logger.warning("Retrying composition after %s: %s", delay, event.to_json())
        try:
            self.fallback.publish(event.next_attempt(), delay)
        except Exception as exc:  # noqa: BLE001 - every enqueue failure is fatal.
            error = _chain(FallbackEnqueueError(f"Failed to retry composition: {event.to_json()}"), exc)
            logger.error("%s", error.message)
            return {"stage": CompositionStage.FATAL, "error": error}
        return {"stage": CompositionStage.RETRY, "retry_delay": delay}

    # -- routing -------------------------------------------------------------

    def _downstream_failure(self, stage: str, message: str, exc: Exception) -> Command[str]:
        should_retry = isinstance(exc, LoremasterError) and exc.should_retry
        return self._route_failure(_chain(DownstreamError(stage, message, should_retry=should_retry), exc))

    def _route_failure(self, failure: LoremasterError) -> Command[str]:
        if failure.should_retry:
            return Command(update={"failure": failure}, goto="reschedule")
        logger.error("Composition failed: %s", failure.message)
        return Command(
            update={"failure": failure, "error": failure, "stage": CompositionStage.FATAL},
            goto=END,
        )

    # -- entry points --------------------------------------------------------

    def run(self, event: ComposerEvent) -> CompositionResult:
        """Drive one attempt and report the stage it ended in without raising."""
        final = self.graph.invoke({"event": event, "stage": CompositionStage.COMPOSE})
        return CompositionResult(
            stage=final["stage"],
            lore=final.get("lore"),
            book=final.get("book"),
            retry_delay=final.get("retry_delay"),
            error=final.get("error"),
        )

    def handle(self, event: ComposerEvent) -> None:
        """Handle one composer event.

        Returns normally when the book was published or the event was
        rescheduled.

        Raises:
            LoremasterError: The fatal error that ended the attempt.
        """
        result = self.run(event)
        if result.error is not None:
            raise result.error
