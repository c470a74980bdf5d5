"""Configuration management for BreakBuddy."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import click
from dotenv import find_dotenv, load_dotenv

from .suggest.client import DEFAULT_MODEL, DEFAULT_TIMEOUT
from .timer.models import MAX_CATCH_UP_ITERATIONS
from .timer.persistence import DEFAULT_STATE_PATH
from .timer.ticker import DEFAULT_TICK_INTERVAL_MS

DEFAULT_IDLE_PROMPT_SECONDS = 60


@dataclass
class AppConfig:
    """Settings read from the environment (and an optional ``.env`` file)."""

    gemini_api_key: Optional[str] = None
    gemini_model: str = DEFAULT_MODEL
    state_path: Path = DEFAULT_STATE_PATH
    tick_ms: int = DEFAULT_TICK_INTERVAL_MS
    idle_prompt_seconds: float = DEFAULT_IDLE_PROMPT_SECONDS
    request_timeout: float = DEFAULT_TIMEOUT
    notifications: bool = True
    max_catch_up: int = MAX_CATCH_UP_ITERATIONS

    @classmethod
    def from_env(cls, environ=None) -> "AppConfig":
        env = os.environ if environ is None else environ
        return cls(
            gemini_api_key=env.get("GEMINI_API_KEY") or None,
            gemini_model=env.get("BREAKBUDDY_GEMINI_MODEL", DEFAULT_MODEL),
            state_path=Path(env.get("BREAKBUDDY_STATE_PATH", str(DEFAULT_STATE_PATH))).expanduser(),
            tick_ms=_parse_number(env, "BREAKBUDDY_TICK_MS", DEFAULT_TICK_INTERVAL_MS, int),
            idle_prompt_seconds=_parse_number(
                env, "BREAKBUDDY_IDLE_PROMPT_SECONDS", DEFAULT_IDLE_PROMPT_SECONDS, float
            ),
            request_timeout=_parse_number(env, "BREAKBUDDY_REQUEST_TIMEOUT", DEFAULT_TIMEOUT, float),
            notifications=env.get("BREAKBUDDY_NOTIFICATIONS", "true").lower() == "true",
            max_catch_up=_parse_number(env, "BREAKBUDDY_MAX_CATCH_UP", MAX_CATCH_UP_ITERATIONS, int),
        )

    def validate(self) -> None:
        """Validate configuration."""
        if self.tick_ms <= 0:
            raise click.ClickException(f"BREAKBUDDY_TICK_MS must be positive, got {self.tick_ms}")
        if self.idle_prompt_seconds <= 0:
            raise click.ClickException(
                f"BREAKBUDDY_IDLE_PROMPT_SECONDS must be positive, got {self.idle_prompt_seconds}"
            )
        if self.request_timeout <= 0:
            raise click.ClickException(
                f"BREAKBUDDY_REQUEST_TIMEOUT must be positive, got {self.request_timeout}"
            )
        if self.max_catch_up < 1:
            raise click.ClickException(
                f"BREAKBUDDY_MAX_CATCH_UP must be at least 1, got {self.max_catch_up}"
            )
        if not self.gemini_model.strip():
            raise click.ClickException("BREAKBUDDY_GEMINI_MODEL must not be empty")


def _parse_number(env, name: str, default, kind):
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return kind(raw)
    except ValueError:
        raise click.ClickException(f"{name} must be a number, got {raw!r}")


def get_config(env_file: Optional[Path] = None) -> AppConfig:
    """Load ``.env`` (without overriding the real environment) and validate."""
    load_dotenv(env_file or find_dotenv(usecwd=True))
    config = AppConfig.from_env()
    config.validate()
    return config


def verbose_option(f):
    """Decorator to add verbose option to commands."""
    return click.option(
        "--verbose", "-v",
        is_flag=True,
        help="Enable verbose output",
    )(f)
