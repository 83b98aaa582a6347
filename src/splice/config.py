"""Configuration loader for Splice.

Loads from splice.toml with sensible defaults when file is absent.
Configuration is loaded once at startup and passed via dependency injection;
runtime edits go through ``SettingsStore`` so listeners hear about them.
"""

from __future__ import annotations

import dataclasses
import logging
import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path

from splice.events.bus import Event, EventBus
from splice.events.types import SETTINGS_CHANGED

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.replicate.com/v1"
DEFAULT_MODEL_VERSION = "anthropic/claude-3.7-sonnet"
DEFAULT_SYSTEM_PROMPT = (
    "You are an expert senior polyglot software developer, architect who "
    "re-writes and refactors code. You do not give any other output apart "
    "from the re-written code provided. Do not include markdown code blocks "
    "or language identifiers in your response - just the raw code."
)
API_TOKEN_ENV = "SPLICE_API_TOKEN"


class ConfigError(Exception):
    """Raised when configuration loading or validation fails."""


@dataclass(frozen=True)
class AssistantConfig:
    enabled: bool = False
    api_token: str = ""
    analyze_on_save: bool = True

    def __repr__(self) -> str:
        token_display = f"***{self.api_token[-4:]}" if self.api_token else ""
        return (
            f"AssistantConfig(enabled={self.enabled!r}, "
            f"api_token={token_display!r}, "
            f"analyze_on_save={self.analyze_on_save!r})"
        )


@dataclass(frozen=True)
class JobConfig:
    """Remote generation job settings."""

    base_url: str = DEFAULT_BASE_URL
    model_version: str = DEFAULT_MODEL_VERSION
    max_tokens: int = 4096
    system_prompt: str = DEFAULT_SYSTEM_PROMPT
    poll_interval_seconds: float = 1.0
    max_poll_attempts: int = 60
    request_timeout_seconds: float | None = None  # None = no per-request timeout


@dataclass(frozen=True)
class MergeConfig:
    wholesale_length_ratio: float = 0.8
    wholesale_overlap: float = 0.5
    line_overlap_floor: float = 0.3


@dataclass(frozen=True)
class LoggingConfig:
    level: str = "INFO"


@dataclass(frozen=True)
class Config:
    """Top-level Splice configuration."""

    assistant: AssistantConfig = field(default_factory=AssistantConfig)
    job: JobConfig = field(default_factory=JobConfig)
    merge: MergeConfig = field(default_factory=MergeConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def _as_float(value, default: float) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _as_int(value, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _parse_assistant_config(data: dict) -> AssistantConfig:
    return AssistantConfig(
        enabled=bool(data.get("enabled", False)),
        api_token=str(data.get("api_token", "") or ""),
        analyze_on_save=bool(data.get("analyze_on_save", True)),
    )


def _parse_job_config(data: dict) -> JobConfig:
    interval = max(0.0, _as_float(data.get("poll_interval_seconds", 1.0), 1.0))
    attempts = max(1, _as_int(data.get("max_poll_attempts", 60), 60))
    max_tokens = max(1, _as_int(data.get("max_tokens", 4096), 4096))

    timeout = data.get("request_timeout_seconds")
    if timeout is not None:
        timeout = _as_float(timeout, 0.0)
        if timeout <= 0:
            timeout = None

    return JobConfig(
        base_url=str(data.get("base_url", DEFAULT_BASE_URL)),
        model_version=str(data.get("model_version", DEFAULT_MODEL_VERSION)),
        max_tokens=max_tokens,
        system_prompt=str(data.get("system_prompt", DEFAULT_SYSTEM_PROMPT)),
        poll_interval_seconds=interval,
        max_poll_attempts=attempts,
        request_timeout_seconds=timeout,
    )


def _parse_merge_config(data: dict) -> MergeConfig:
    def ratio(key: str, default: float) -> float:
        return min(1.0, max(0.0, _as_float(data.get(key, default), default)))

    return MergeConfig(
        wholesale_length_ratio=max(0.0, _as_float(
            data.get("wholesale_length_ratio", 0.8), 0.8,
        )),
        wholesale_overlap=ratio("wholesale_overlap", 0.5),
        line_overlap_floor=ratio("line_overlap_floor", 0.3),
    )


def _parse_logging_config(data: dict) -> LoggingConfig:
    return LoggingConfig(level=str(data.get("level", "INFO")).upper())


_SECTION_PARSERS = {
    "assistant": _parse_assistant_config,
    "job": _parse_job_config,
    "merge": _parse_merge_config,
    "logging": _parse_logging_config,
}


def load_config(path: Path | None = None) -> Config:
    """Load configuration from a TOML file.

    If path is None, searches for splice.toml in current directory then
    ~/.splice/. Returns default config if no file is found. An empty
    ``api_token`` is filled from ``SPLICE_API_TOKEN`` when that is set.
    """
    if path is None:
        candidates = [
            Path.cwd() / "splice.toml",
            Path.home() / ".splice" / "splice.toml",
        ]
        for candidate in candidates:
            if candidate.exists():
                path = candidate
                break

    raw: dict = {}
    if path is not None and path.exists():
        try:
            with open(path, "rb") as f:
                raw = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ConfigError(f"Invalid TOML in {path}: {e}") from e
        except OSError as e:
            raise ConfigError(f"Cannot read config {path}: {e}") from e
        logger.debug("Loaded configuration from %s", path)

    assistant = _parse_assistant_config(raw.get("assistant", {}))
    if not assistant.api_token:
        env_token = os.environ.get(API_TOKEN_ENV, "").strip()
        if env_token:
            assistant = dataclasses.replace(assistant, api_token=env_token)

    return Config(
        assistant=assistant,
        job=_parse_job_config(raw.get("job", {})),
        merge=_parse_merge_config(raw.get("merge", {})),
        logging=_parse_logging_config(raw.get("logging", {})),
    )


class SettingsStore:
    """Owns the live configuration and announces changes.

    Sections are frozen, so an update swaps in a new section object. Every
    successful update emits ``settings_changed`` on the bus with the section
    name and the changed keys.
    """

    def __init__(self, config: Config | None = None, bus: EventBus | None = None):
        self._config = config or Config()
        self._bus = bus

    @property
    def config(self) -> Config:
        return self._config

    def update(self, section: str, **changes) -> Config:
        """Replace fields of one config section and return the new config.

        Values go through the same coercion and clamping as ``load_config``.
        """
        if section not in {f.name for f in dataclasses.fields(Config)}:
            raise ConfigError(f"Unknown config section: {section}")
        current = getattr(self._config, section)
        known = {f.name for f in dataclasses.fields(current)}
        unknown = sorted(set(changes) - known)
        if unknown:
            raise ConfigError(
                f"Unknown setting(s) for [{section}]: {', '.join(unknown)}"
            )

        updated = _SECTION_PARSERS[section]({**dataclasses.asdict(current), **changes})
        if updated == current:
            return self._config
        self._config = dataclasses.replace(self._config, **{section: updated})

        if self._bus is not None:
            self._bus.emit(Event(
                event_type=SETTINGS_CHANGED,
                job_id="",
                data={"section": section, "keys": sorted(changes)},
            ))
        return self._config
