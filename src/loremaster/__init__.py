from importlib.metadata import version

from .composer import Composer
from .errors import (
    ComposerError,
    DownstreamError,
    EmptyParagraphError,
    FallbackEnqueueError,
    InvalidTransitionError,
    LinkLookupError,
    LoremasterError,
    NoOutgoingLinksError,
    PublishError,
    RenderError,
    RepositoryError,
    RetryExhaustedError,
)
from .events import BookEvent, ComposerEvent, Event
from .graph import START, Continue, End, Link, Node, Start
from .models import Book, Lore, NameCategory, NameToken, Paragraph, Sentence, TextToken, Token
from .orchestrator import ComposerService, CompositionResult, CompositionStage
from .ports import Publisher, RandomSource, Renderer, Repository
from .publishing import InMemoryPublisher, ScheduledEvent
from .rendering import DetokenizingRenderer
from .repository import InMemoryRepository, sample_repository
from .retry import (
    DEFAULT_RETRY_POLICY,
    Constant,
    Golden,
    LimitDuration,
    LimitRetries,
    Linear,
    RetryPolicy,
)
from .settings import RuntimeSettings, configure_logging, load_env_file


def get_version() -> str:
    try:
        return version(__name__)
    except Exception:
        return "0.0.0"


__all__ = [
    "DEFAULT_RETRY_POLICY",
    "Book",
    "BookEvent",
    "Composer",
    "ComposerError",
    "ComposerEvent",
    "ComposerService",
    "CompositionResult",
    "CompositionStage",
    "Constant",
    "Continue",
    "DetokenizingRenderer",
    "DownstreamError",
    "EmptyParagraphError",
    "End",
    "Event",
    "FallbackEnqueueError",
    "Golden",
    "InMemoryPublisher",
    "InMemoryRepository",
    "InvalidTransitionError",
    "LimitDuration",
    "LimitRetries",
    "Linear",
    "Link",
    "LinkLookupError",
    "Lore",
    "LoremasterError",
    "NameCategory",
    "NameToken",
    "NoOutgoingLinksError",
    "Node",
    "Paragraph",
    "PublishError",
    "Publisher",
    "RandomSource",
    "RenderError",
    "Renderer",
    "Repository",
    "RepositoryError",
    "RetryExhaustedError",
    "RetryPolicy",
    "RuntimeSettings",
    "START",
    "ScheduledEvent",
    "Sentence",
    "Start",
    "TextToken",
    "Token",
    "configure_logging",
    "get_version",
    "load_env_file",
    "sample_repository",
]
