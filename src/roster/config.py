"""Configuration helpers for the roster service."""

from __future__ import annotations

import os
from collections.abc import Iterable
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

from loguru import logger

DEFAULT_TIMEZONE = "UTC"
DEFAULT_LOG_LOCALE = "pt-BR"
SUPPORTED_LOCALES = ("pt-BR", "en")


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _candidate_env_paths(start: Path) -> Iterable[Path]:
    """Yield plausible .env locations from closest to farthest."""
    override = os.environ.get("ROSTER_ENV_FILE")
    if override:
        yield Path(override).expanduser()

    for directory in (start, *start.parents):
        yield directory / ".env"


def _discover_env_path() -> Path | None:
    """Return the first .env path that exists, if any."""
    package_dir = Path(__file__).resolve().parent
    for candidate in _candidate_env_paths(package_dir):
        if candidate.exists():
            return candidate
    return None


def load_env_file(path: Path | None = None) -> None:
    """Populate os.environ with values from a .env file if present."""
    env_path = path or _discover_env_path()
    if env_path is None or not env_path.exists():
        logger.debug("No .env file discovered for configuration")
        return

    logger.bind(path=str(env_path)).info("Loading environment variables from .env")
    for raw_line in env_path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue

        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip().strip('"').strip("'")
        # Existing environment variables win over the file.
        os.environ.setdefault(key, value)


load_env_file()


@dataclass(frozen=True)
class Settings:
    """Typed accessors for configuration derived from the environment."""

    timezone: str
    log_locale: str
    seed_defaults: bool

    @classmethod
    def from_env(cls) -> Settings:
        timezone = os.environ.get("ROSTER_TIMEZONE", DEFAULT_TIMEZONE).strip()
        log_locale = os.environ.get("ROSTER_LOG_LOCALE", DEFAULT_LOG_LOCALE).strip()
        if log_locale not in SUPPORTED_LOCALES:
            logger.bind(locale=log_locale).warning(
                "Unsupported log locale; falling back to default"
            )
            log_locale = DEFAULT_LOG_LOCALE
        seed_env = os.environ.get("ROSTER_SEED_DEFAULTS")
        seed_defaults = _parse_bool(seed_env) if seed_env is not None else True

        logger.bind(
            timezone=timezone or DEFAULT_TIMEZONE,
            log_locale=log_locale,
            seed_defaults=seed_defaults,
        ).debug("Configuration loaded from environment")

        return cls(
            timezone=timezone or DEFAULT_TIMEZONE,
            log_locale=log_locale,
            seed_defaults=seed_defaults,
        )


@lru_cache
def get_settings() -> Settings:
    """Return cached service settings."""
    return Settings.from_env()


__all__ = [
    "DEFAULT_LOG_LOCALE",
    "DEFAULT_TIMEZONE",
    "SUPPORTED_LOCALES",
    "Settings",
    "get_settings",
    "load_env_file",
]
