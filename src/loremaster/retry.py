"""Retry policy: a backoff strategy paired with a termination strategy.

A policy encodes as ``<backoff>:<termination>``. Backoffs encode as a bare
duration (constant), ``+duration`` (linear) or ``~duration`` (golden);
terminations encode as a bare integer (retry limit) or a bare duration
(wall-clock limit measured from the event's creation).
"""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import TypeAlias

from .events import Event

logger = logging.getLogger(__name__)

SEPARATOR = ":"
LINEAR_DESIGNATOR = "+"
GOLDEN_DESIGNATOR = "~"
GOLDEN_GROWTH = 8 / 5

_DURATION_RE = re.compile(r"^(\d+(?:\.\d+)?)\s*([a-zµ]+)$", re.IGNORECASE)
_RETRY_LIMIT_RE = re.compile(r"^\d+$")

_UNIT_ALIASES: dict[str, timedelta] = {
    alias: unit
    for unit, aliases in (
        (timedelta(days=1), ("d", "day", "days")),
        (timedelta(hours=1), ("h", "hr", "hrs", "hour", "hours")),
        (timedelta(minutes=1), ("m", "min", "mins", "minute", "minutes")),
        (timedelta(seconds=1), ("s", "sec", "secs", "second", "seconds")),
        (timedelta(milliseconds=1), ("ms", "milli", "millis", "millisecond", "milliseconds")),
        (timedelta(microseconds=1), ("us", "µs", "micro", "micros", "microsecond", "microseconds")),
    )
    for alias in aliases
}

# Coarsest exact unit wins when encoding.
_ENCODING_UNITS: tuple[tuple[int, str], ...] = (
    (3_600_000_000, "h"),
    (60_000_000, "m"),
    (1_000_000, "s"),
    (1_000, "ms"),
    (1, "us"),
)


def parse_duration(text: str) -> timedelta | None:
    """Parse ``<amount><unit>`` (optional space, short or long unit names); None if malformed."""
    match = _DURATION_RE.match(text.strip())
    if match is None:
        return None
    unit = _UNIT_ALIASES.get(match.group(2).lower())
    if unit is None:
        return None
    amount = match.group(1)
    try:
        return unit * int(amount) if amount.isdigit() else unit * float(amount)
    except OverflowError:
        return None


def format_duration(duration: timedelta) -> str:
    micros = duration // timedelta(microseconds=1)
    if micros == 0:
        return "0s"
    for size, suffix in _ENCODING_UNITS:
        if micros % size == 0:
            return f"{micros // size}{suffix}"
    raise AssertionError("unreachable: microseconds always divide evenly")


def _require_non_negative(name: str, duration: timedelta) -> None:
    if duration < timedelta(0):
        raise ValueError(f"{name} must be non-negative, got: {duration}")


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


# ---------------------------------------------------------------------------
# Backoff strategies
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Constant:
    delay: timedelta

    def __post_init__(self) -> None:
        _require_non_negative("Constant backoff delay", self.delay)

    def __str__(self) -> str:
        return encode_backoff(self)


@dataclass(frozen=True)
class Linear:
    delay: timedelta

    def __post_init__(self) -> None:
        _require_non_negative("Linear backoff delay", self.delay)

    def __str__(self) -> str:
        return encode_backoff(self)


@dataclass(frozen=True)
class Golden:
    """Grows by roughly the golden ratio (8/5) per attempt, rounded to a whole multiplier."""

    delay: timedelta

    def __post_init__(self) -> None:
        _require_non_negative("Golden backoff delay", self.delay)

    def __str__(self) -> str:
        return encode_backoff(self)


Backoff: TypeAlias = Constant | Linear | Golden

DEFAULT_BACKOFF: Backoff = Golden(timedelta(seconds=60))


def backoff_delay(backoff: Backoff, previous_attempts: int) -> timedelta:
    match backoff:
        case Constant(delay):
            return delay
        case Linear(delay):
            return delay * (previous_attempts + 1)
        case Golden(delay):
            # Round after the power; successive multipliers may repeat.
            return delay * _round_half_up(GOLDEN_GROWTH**previous_attempts)
    raise TypeError(f"Unknown backoff: {backoff!r}")


def encode_backoff(backoff: Backoff) -> str:
    match backoff:
        case Constant(delay):
            return format_duration(delay)
        case Linear(delay):
            return f"{LINEAR_DESIGNATOR}{format_duration(delay)}"
        case Golden(delay):
            return f"{GOLDEN_DESIGNATOR}{format_duration(delay)}"
    raise TypeError(f"Unknown backoff: {backoff!r}")


def decode_backoff(text: str) -> Backoff | None:
    data = text.strip()
    if data.startswith(GOLDEN_DESIGNATOR):
        delay = parse_duration(data.lstrip(GOLDEN_DESIGNATOR))
        return Golden(delay) if delay is not None else None
    if data.startswith(LINEAR_DESIGNATOR):
        delay = parse_duration(data.lstrip(LINEAR_DESIGNATOR))
        return Linear(delay) if delay is not None else None
    delay = parse_duration(data)
    return Constant(delay) if delay is not None else None


# ---------------------------------------------------------------------------
# Termination strategies
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LimitRetries:
    maximum: int

    def __post_init__(self) -> None:
        if self.maximum < 0:
            raise ValueError(f"Retry limit must be >= 0, got: {self.maximum}")

    def __str__(self) -> str:
        return encode_termination(self)


@dataclass(frozen=True)
class LimitDuration:
    """Wall-clock budget measured from the event's creation, not its last attempt."""

    maximum: timedelta

    def __post_init__(self) -> None:
        _require_non_negative("Retry duration limit", self.maximum)

    def __str__(self) -> str:
        return encode_termination(self)


Termination: TypeAlias = LimitRetries | LimitDuration

DEFAULT_TERMINATION: Termination = LimitRetries(2)


def should_terminate(termination: Termination, event: Event, now: datetime) -> bool:
    match termination:
        case LimitRetries(maximum):
            return event.previous_attempts >= maximum
        case LimitDuration(maximum):
            return now - event.created_at >= maximum
    raise TypeError(f"Unknown termination: {termination!r}")


def encode_termination(termination: Termination) -> str:
    match termination:
        case LimitRetries(maximum):
            return str(maximum)
        case LimitDuration(maximum):
            return format_duration(maximum)
    raise TypeError(f"Unknown termination: {termination!r}")


def decode_termination(text: str) -> Termination | None:
    data = text.strip()
    if _RETRY_LIMIT_RE.match(data):
        return LimitRetries(int(data))
    maximum = parse_duration(data)
    return LimitDuration(maximum) if maximum is not None else None


# ---------------------------------------------------------------------------
# Policy
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RetryPolicy:
    backoff: Backoff = DEFAULT_BACKOFF
    termination: Termination = DEFAULT_TERMINATION

    def __call__(self, event: Event, *, now: datetime | None = None) -> timedelta | None:
        """Return the delay before retrying ``event``, or None to give up.

        A delay too large for ``timedelta`` also gives up.
        """
        current = now if now is not None else datetime.now(UTC)
        if should_terminate(self.termination, event, current):
            return None
        try:
            return backoff_delay(self.backoff, event.previous_attempts)
        except OverflowError:
            logger.warning("Backoff %s overflows after %d previous attempts", self.backoff, event.previous_attempts)
            return None

    def __str__(self) -> str:
        return f"{encode_backoff(self.backoff)}{SEPARATOR}{encode_termination(self.termination)}"

    @classmethod
    def parse(cls, text: str) -> "RetryPolicy | None":
        """Decode ``[backoff][':'[termination]]``; an empty side takes the default.

        A non-empty side that does not decode fails the whole parse.
        """
        data = text.strip()
        found_at = data.find(SEPARATOR)
        if found_at < 0:
            if not data:
                return cls()
            backoff = decode_backoff(data)
            if backoff is not None:
                return cls(backoff=backoff)
            termination = decode_termination(data)
            return cls(termination=termination) if termination is not None else None

        backoff_text = data[:found_at].strip()
        termination_text = data[found_at:].lstrip(SEPARATOR).strip()
        backoff = decode_backoff(backoff_text) if backoff_text else DEFAULT_BACKOFF
        termination = decode_termination(termination_text) if termination_text else DEFAULT_TERMINATION
        if backoff is None or termination is None:
            return None
        return cls(backoff=backoff, termination=termination)

    @classmethod
    def from_config(cls, text: str) -> "RetryPolicy":
        policy = cls.parse(text)
        if policy is None:
            raise ValueError(f"Invalid retry policy: {text!r}")
        logger.debug("Parsed retry policy %r as %s", text, policy)
        return policy


DEFAULT_RETRY_POLICY = RetryPolicy()
