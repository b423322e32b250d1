from __future__ import annotations

from typing import Iterable

import pytest

from loremaster.errors import RenderError
from loremaster.models import Book, Lore
from loremaster.rendering import DetokenizingRenderer


class FirstOption:
    """Random source that always lands on the first listed link."""

    def randrange(self, stop: int) -> int:
        return 0


class ScriptedRandom:
    """Random source that replays fixed draws, then falls back to zero."""

    def __init__(self, draws: Iterable[int]) -> None:
        self._draws = iter(draws)

    def randrange(self, stop: int) -> int:
        return next(self._draws, 0)


class FlakyRenderer:
    """Fails the first ``failures`` renders with the given retry classification."""

    def __init__(self, failures: int, *, should_retry: bool = True) -> None:
        self.failures = failures
        self.should_retry = should_retry
        self.calls = 0
        self._delegate = DetokenizingRenderer()

    def render(self, lore: Lore) -> Book:
        self.calls += 1
        if self.calls <= self.failures:
            raise RenderError("renderer unavailable", should_retry=self.should_retry)
        return self._delegate.render(lore)


@pytest.fixture
def first_option() -> FirstOption:
    return FirstOption()
