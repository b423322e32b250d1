from __future__ import annotations


class LoremasterError(Exception):
    """Base error; ``should_retry`` marks failures worth rescheduling."""

    def __init__(self, message: str, *, should_retry: bool = False) -> None:
        super().__init__(message)
        self.message = message
        self.should_retry = should_retry


# ---------------------------------------------------------------------------
# Port failures raised by repository, renderer and publisher adapters
# ---------------------------------------------------------------------------


class RepositoryError(LoremasterError):
    pass


class RenderError(LoremasterError):
    pass


class PublishError(LoremasterError):
    pass


# ---------------------------------------------------------------------------
# Composition failures
# ---------------------------------------------------------------------------


class ComposerError(LoremasterError):
    pass


class EmptyParagraphError(ComposerError):
    def __init__(self, sentence_count: int) -> None:
        super().__init__(f"Cannot create a paragraph with less than one sentence: {sentence_count}")
        self.sentence_count = sentence_count


class NoOutgoingLinksError(ComposerError):
    def __init__(self, source: object) -> None:
        super().__init__(f"Could not find any links from {source!r}")
        self.source = source


class InvalidTransitionError(ComposerError):
    def __init__(self, source: object, offset: int) -> None:
        super().__init__(f"Invalid transition from {source!r} to {offset}")
        self.source = source
        self.offset = offset


class LinkLookupError(ComposerError):
    """Repository failure while walking; keeps the repository's retry classification."""

    def __init__(self, source: object, *, should_retry: bool) -> None:
        super().__init__(f"Failed to select links from {source!r}", should_retry=should_retry)
        self.source = source


# ---------------------------------------------------------------------------
# Orchestration failures
# ---------------------------------------------------------------------------


class DownstreamError(LoremasterError):
    """Render or publish failure, classified by the downstream's own ``should_retry``."""

    def __init__(self, stage: str, message: str, *, should_retry: bool) -> None:
        super().__init__(message, should_retry=should_retry)
        self.stage = stage


class RetryExhaustedError(LoremasterError):
    def __init__(self, message: str) -> None:
        super().__init__(message, should_retry=False)


class FallbackEnqueueError(LoremasterError):
    def __init__(self, message: str) -> None:
        super().__init__(message, should_retry=False)
