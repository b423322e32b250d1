from __future__ import annotations

import logging
import os
import random
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

from .retry import DEFAULT_RETRY_POLICY, RetryPolicy

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class RuntimeSettings:
    """Runtime settings loaded from environment with fail-fast validation."""

    retry_policy: RetryPolicy = DEFAULT_RETRY_POLICY
    log_level: str = "INFO"
    random_seed: int | None = None
    default_composition: tuple[int, ...] = field(default=(1,))

    @classmethod
    def from_env(cls) -> "RuntimeSettings":
        return cls(
            retry_policy=_get_env_retry_policy("LOREMASTER_RETRY_POLICY"),
            log_level=os.getenv("LOREMASTER_LOG_LEVEL", "INFO"),
            random_seed=_get_env_optional_int("LOREMASTER_RANDOM_SEED"),
            default_composition=_get_env_composition("LOREMASTER_DEFAULT_COMPOSITION", default=(1,)),
        ).normalized()

    def normalized(self) -> "RuntimeSettings":
        """Validate and normalize all fields. Raises ValueError on invalid configuration."""
        log_level = self.log_level.strip().upper()
        if log_level not in _LOG_LEVELS:
            raise ValueError(f"LOREMASTER_LOG_LEVEL must be one of: {', '.join(_LOG_LEVELS)}, got: {self.log_level!r}")
        composition = tuple(self.default_composition)
        if not composition:
            raise ValueError("LOREMASTER_DEFAULT_COMPOSITION must list at least one paragraph")
        if any(count < 1 for count in composition):
            raise ValueError(f"LOREMASTER_DEFAULT_COMPOSITION entries must be >= 1, got: {list(composition)}")
        return RuntimeSettings(
            retry_policy=self.retry_policy,
            log_level=log_level,
            random_seed=self.random_seed,
            default_composition=composition,
        )

    def build_rng(self) -> random.Random:
        return random.Random(self.random_seed)


def load_env_file(repo_root: Path | None = None) -> bool:
    """Load a ``.env`` file from ``repo_root`` (or cwd) without overriding the environment."""
    repo = repo_root if repo_root is not None else Path.cwd()
    env_path = repo / ".env"
    if not env_path.is_file():
        return False
    loaded = load_dotenv(env_path)
    logger.debug("Loaded environment from %s", env_path)
    return loaded


def configure_logging(settings: RuntimeSettings) -> None:
    logging.basicConfig(level=getattr(logging, settings.log_level), format=LOG_FORMAT)


def _get_env_retry_policy(name: str) -> RetryPolicy:
    raw = os.getenv(name)
    if raw is None:
        return DEFAULT_RETRY_POLICY
    try:
        return RetryPolicy.from_config(raw)
    except ValueError as exc:
        raise ValueError(f"{name} is not a valid retry policy: {raw!r}") from exc


def _get_env_optional_int(name: str) -> int | None:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return None
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got: {raw!r}") from exc


def _get_env_composition(name: str, default: tuple[int, ...]) -> tuple[int, ...]:
    """Parse a comma-separated list of sentence counts, one per paragraph."""
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return tuple(int(part) for part in raw.split(",") if part.strip())
    except ValueError as exc:
        raise ValueError(f"{name} must be a comma-separated list of integers, got: {raw!r}") from exc
