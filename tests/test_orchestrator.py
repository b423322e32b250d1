from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from loremaster.errors import (
    DownstreamError,
    FallbackEnqueueError,
    LinkLookupError,
    NoOutgoingLinksError,
    PublishError,
    RepositoryError,
    RetryExhaustedError,
)
from loremaster.events import BookEvent, ComposerEvent
from loremaster.graph import START
from loremaster.orchestrator import ComposerService, CompositionStage
from loremaster.publishing import InMemoryPublisher
from loremaster.rendering import DetokenizingRenderer
from loremaster.repository import InMemoryRepository, sample_repository
from loremaster.retry import Constant, Golden, LimitRetries, RetryPolicy
from loremaster.settings import RuntimeSettings

from conftest import FirstOption, FlakyRenderer

CREATED = datetime(2022, 6, 1, 12, 0, tzinfo=UTC)


def build_service(
    *,
    renderer=None,  # noqa: ANN001
    repository=None,  # noqa: ANN001
    retry_policy: RetryPolicy | None = None,
) -> tuple[ComposerService, InMemoryPublisher[BookEvent], InMemoryPublisher[ComposerEvent]]:
    publisher: InMemoryPublisher[BookEvent] = InMemoryPublisher()
    fallback: InMemoryPublisher[ComposerEvent] = InMemoryPublisher()
    service = ComposerService(
        repository=repository if repository is not None else sample_repository(),
        renderer=renderer if renderer is not None else DetokenizingRenderer(),
        publisher=publisher,
        fallback=fallback,
        retry_policy=retry_policy,
        rng=FirstOption(),
        clock=lambda: CREATED,
    )
    return service, publisher, fallback


def test_successful_attempt_publishes_the_rendered_book() -> None:
    service, publisher, fallback = build_service()
    result = service.run(ComposerEvent.create([2, 1], created_at=CREATED))

    assert result.stage == CompositionStage.DONE
    assert result.lore is not None and result.lore.shape == (2, 1)
    assert [entry.event.to_book() for entry in publisher.scheduled] == [result.book]
    assert publisher.scheduled[0].delay is None
    assert str(result.book) == "The lazy dog barks The lazy dog barks\r\n\r\nThe lazy dog barks"
    assert len(fallback) == 0


def test_retryable_render_failures_are_rescheduled_until_success() -> None:
    renderer = FlakyRenderer(failures=2, should_retry=True)
    service, publisher, fallback = build_service(
        renderer=renderer,
        retry_policy=RetryPolicy(Constant(timedelta(0)), LimitRetries(3)),
    )

    event = ComposerEvent.create([1], created_at=CREATED)
    handled = []
    for _ in range(3):
        handled.append(event.previous_attempts)
        assert service.handle(event) is None
        if len(fallback) < len(handled):
            break
        event = fallback.scheduled[-1].event

    assert handled == [0, 1, 2]
    assert [entry.event.previous_attempts for entry in fallback.scheduled] == [1, 2]
    assert [entry.delay for entry in fallback.scheduled] == [timedelta(0), timedelta(0)]
    assert all(entry.event.created_at == CREATED for entry in fallback.scheduled)
    assert len(publisher) == 1
    assert renderer.calls == 3


def test_non_retryable_render_failure_is_fatal_without_fallback() -> None:
    service, publisher, fallback = build_service(renderer=FlakyRenderer(failures=1, should_retry=False))

    with pytest.raises(DownstreamError) as excinfo:
        service.handle(ComposerEvent.create([1], created_at=CREATED))

    assert excinfo.value.stage == "render"
    assert excinfo.value.should_retry is False
    assert len(fallback) == 0
    assert len(publisher) == 0


def test_exhausted_retries_surface_the_last_failure() -> None:
    service, _, fallback = build_service(
        renderer=FlakyRenderer(failures=10, should_retry=True),
        retry_policy=RetryPolicy(Constant(timedelta(seconds=5)), LimitRetries(2)),
    )
    event = ComposerEvent.create([1], created_at=CREATED).next_attempt().next_attempt()

    with pytest.raises(RetryExhaustedError) as excinfo:
        service.handle(event)

    assert isinstance(excinfo.value.__cause__, DownstreamError)
    assert len(fallback) == 0


def test_unrepresentable_backoff_ends_in_exhaustion() -> None:
    service, _, fallback = build_service(
        renderer=FlakyRenderer(failures=1, should_retry=True),
        retry_policy=RetryPolicy(Golden(timedelta(minutes=1)), LimitRetries(100)),
    )
    event = ComposerEvent.from_json('{"composition":[1],"createdAt":"2022-06-01T00:00:00Z","retry":60}')

    with pytest.raises(RetryExhaustedError) as excinfo:
        service.handle(event)

    assert isinstance(excinfo.value.__cause__, DownstreamError)
    assert len(fallback) == 0


def test_retryable_publish_failure_is_rescheduled_with_backoff() -> None:
    service, publisher, fallback = build_service(
        retry_policy=RetryPolicy(Constant(timedelta(seconds=30)), LimitRetries(2)),
    )
    publisher.fail_next(1, should_retry=True)

    result = service.run(ComposerEvent.create([1], created_at=CREATED))

    assert result.stage == CompositionStage.RETRY
    assert result.retry_delay == timedelta(seconds=30)
    assert result.error is None
    assert [(entry.event.previous_attempts, entry.delay) for entry in fallback.scheduled] == [(1, timedelta(seconds=30))]
    assert len(publisher) == 0


def test_fallback_enqueue_failure_is_fatal() -> None:
    service, _, fallback = build_service(renderer=FlakyRenderer(failures=1, should_retry=True))
    fallback.fail_next(1, should_retry=True)

    with pytest.raises(FallbackEnqueueError) as excinfo:
        service.handle(ComposerEvent.create([1], created_at=CREATED))

    assert isinstance(excinfo.value.__cause__, PublishError)
    assert len(fallback) == 0


def test_composer_data_errors_are_never_retried() -> None:
    repository = InMemoryRepository({START: []})
    service, publisher, fallback = build_service(repository=repository)

    with pytest.raises(NoOutgoingLinksError):
        service.handle(ComposerEvent.create([1], created_at=CREATED))

    assert len(fallback) == 0
    assert len(publisher) == 0


def test_retryable_repository_failure_is_rescheduled() -> None:
    class Throttled:
        def links_from(self, source):  # noqa: ANN001,ANN201
            raise RepositoryError("throttled", should_retry=True)

    service, _, fallback = build_service(repository=Throttled())
    result = service.run(ComposerEvent.create([1], created_at=CREATED))

    assert result.stage == CompositionStage.RETRY
    assert len(fallback) == 1


def test_non_retryable_repository_failure_is_fatal() -> None:
    class Broken:
        def links_from(self, source):  # noqa: ANN001,ANN201
            raise RepositoryError("corrupt", should_retry=False)

    service, _, fallback = build_service(repository=Broken())
    with pytest.raises(LinkLookupError):
        service.handle(ComposerEvent.create([1], created_at=CREATED))
    assert len(fallback) == 0


def test_unclassified_renderer_exceptions_are_fatal() -> None:
    class Exploding:
        def render(self, lore):  # noqa: ANN001,ANN201
            raise KeyError("boom")

    service, _, fallback = build_service(renderer=Exploding())
    with pytest.raises(DownstreamError) as excinfo:
        service.handle(ComposerEvent.create([1], created_at=CREATED))
    assert isinstance(excinfo.value.__cause__, KeyError)
    assert len(fallback) == 0


def test_service_from_settings_uses_configured_policy() -> None:
    settings = RuntimeSettings(retry_policy=RetryPolicy(Constant(timedelta(seconds=1)), LimitRetries(1)), random_seed=5)
    publisher: InMemoryPublisher[BookEvent] = InMemoryPublisher()
    fallback: InMemoryPublisher[ComposerEvent] = InMemoryPublisher()
    service = ComposerService.from_settings(
        settings,
        repository=sample_repository(),
        renderer=FlakyRenderer(failures=1),
        publisher=publisher,
        fallback=fallback,
    )

    service.handle(ComposerEvent.create(settings.default_composition))

    assert service.retry_policy == settings.retry_policy
    assert [entry.delay for entry in fallback.scheduled] == [timedelta(seconds=1)]
