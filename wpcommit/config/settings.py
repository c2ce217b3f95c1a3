"""Typed application settings loaded from static environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import TYPE_CHECKING
from urllib.parse import urlsplit

if TYPE_CHECKING:
    from collections.abc import Mapping

LogLevel = str

ENV_TRAC_BASE_URL = "WPCOMMIT_TRAC_BASE_URL"
ENV_PROFILES_BASE_URL = "WPCOMMIT_PROFILES_BASE_URL"
ENV_LOG_LEVEL = "WPCOMMIT_LOG_LEVEL"
ENV_HTTP_TIMEOUT_SECONDS = "WPCOMMIT_HTTP_TIMEOUT_SECONDS"
ENV_MIN_REQUEST_INTERVAL_MS = "WPCOMMIT_MIN_REQUEST_INTERVAL_MS"
ENV_DEBOUNCE_MS = "WPCOMMIT_DEBOUNCE_MS"
ENV_CACHE_MAX_ENTRIES = "WPCOMMIT_CACHE_MAX_ENTRIES"
ENV_ENABLED = "WPCOMMIT_ENABLED"
ENV_ADDITIONAL_PATTERNS = "WPCOMMIT_ADDITIONAL_PATTERNS"

DEFAULT_TRAC_BASE_URL = "https://core.trac.wordpress.org"
DEFAULT_PROFILES_BASE_URL = "https://profiles.wordpress.org"
DEFAULT_LOG_LEVEL: LogLevel = "INFO"
DEFAULT_HTTP_TIMEOUT_SECONDS = 10.0
DEFAULT_MIN_REQUEST_INTERVAL_MS = 100
DEFAULT_DEBOUNCE_MS = 100
DEFAULT_CACHE_MAX_ENTRIES = 1000
DEFAULT_FILE_PATTERNS: tuple[str, ...] = ("COMMIT_EDITMSG", "svn-commit.tmp")

VALID_LOG_LEVELS: frozenset[LogLevel] = frozenset(
    {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"},
)
_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})
_FALSE_VALUES = frozenset({"0", "false", "no", "off"})


class SettingsValidationError(ValueError):
    """Raised when static settings env vars contain invalid values."""

    @classmethod
    def for_empty_value(cls, env_var: str) -> SettingsValidationError:
        """Build error for empty non-optional env var values."""
        message = f"Invalid {env_var}: value cannot be empty."
        return cls(message)

    @classmethod
    def for_invalid_choice(
        cls,
        env_var: str,
        value: str,
        allowed_values: str,
    ) -> SettingsValidationError:
        """Build error for enum-like env vars with fixed allowlists."""
        message = f"Invalid {env_var}: {value!r}. Allowed values: {allowed_values}."
        return cls(message)

    @classmethod
    def for_invalid_number(
        cls,
        env_var: str,
        value: str,
        *,
        minimum: float,
    ) -> SettingsValidationError:
        """Build error for numeric env vars that fail parsing or bounds."""
        message = (
            f"Invalid {env_var}: {value!r}. Expected a number >= {minimum:g}."
        )
        return cls(message)

    @classmethod
    def for_invalid_url(cls, env_var: str, value: str) -> SettingsValidationError:
        """Build error for base URLs without an http(s) scheme and host."""
        message = f"Invalid {env_var}: {value!r}. Expected an http(s) base URL."
        return cls(message)


@dataclass(frozen=True, slots=True)
class AppSettings:
    """Resolved static configuration values for process startup."""

    trac_base_url: str = DEFAULT_TRAC_BASE_URL
    profiles_base_url: str = DEFAULT_PROFILES_BASE_URL
    log_level: LogLevel = DEFAULT_LOG_LEVEL
    http_timeout_seconds: float = DEFAULT_HTTP_TIMEOUT_SECONDS
    min_request_interval_ms: int = DEFAULT_MIN_REQUEST_INTERVAL_MS
    debounce_ms: int = DEFAULT_DEBOUNCE_MS
    cache_max_entries: int = DEFAULT_CACHE_MAX_ENTRIES
    enabled: bool = True
    file_patterns: tuple[str, ...] = DEFAULT_FILE_PATTERNS

    @property
    def min_request_interval_seconds(self) -> float:
        """Return limiter spacing in seconds."""
        return self.min_request_interval_ms / 1000

    @property
    def debounce_seconds(self) -> float:
        """Return debounce window in seconds."""
        return self.debounce_ms / 1000


def load_settings(environ: Mapping[str, str] | None = None) -> AppSettings:
    """Load and validate static settings from process environment."""
    env = os.environ if environ is None else environ

    return AppSettings(
        trac_base_url=_read_base_url(env, ENV_TRAC_BASE_URL, DEFAULT_TRAC_BASE_URL),
        profiles_base_url=_read_base_url(
            env,
            ENV_PROFILES_BASE_URL,
            DEFAULT_PROFILES_BASE_URL,
        ),
        log_level=_read_log_level(env),
        http_timeout_seconds=_read_float(
            env,
            ENV_HTTP_TIMEOUT_SECONDS,
            DEFAULT_HTTP_TIMEOUT_SECONDS,
            minimum=0.1,
        ),
        min_request_interval_ms=_read_int(
            env,
            ENV_MIN_REQUEST_INTERVAL_MS,
            DEFAULT_MIN_REQUEST_INTERVAL_MS,
            minimum=0,
        ),
        debounce_ms=_read_int(env, ENV_DEBOUNCE_MS, DEFAULT_DEBOUNCE_MS, minimum=0),
        cache_max_entries=_read_int(
            env,
            ENV_CACHE_MAX_ENTRIES,
            DEFAULT_CACHE_MAX_ENTRIES,
            minimum=1,
        ),
        enabled=_read_enabled(env),
        file_patterns=_read_file_patterns(env),
    )


def _read_base_url(environ: Mapping[str, str], env_var: str, default: str) -> str:
    raw = environ.get(env_var)
    if raw is None:
        return default
    value = raw.strip()
    if not value:
        raise SettingsValidationError.for_empty_value(env_var)
    split = urlsplit(value)
    if split.scheme not in {"http", "https"} or not split.netloc:
        raise SettingsValidationError.for_invalid_url(env_var, value)
    return value.rstrip("/")


def _read_log_level(environ: Mapping[str, str]) -> LogLevel:
    raw = environ.get(ENV_LOG_LEVEL)
    if raw is None:
        return DEFAULT_LOG_LEVEL
    value = raw.strip().upper()
    if value in VALID_LOG_LEVELS:
        return value
    allowed = ", ".join(sorted(VALID_LOG_LEVELS))
    raise SettingsValidationError.for_invalid_choice(ENV_LOG_LEVEL, raw, allowed)


def _read_float(
    environ: Mapping[str, str],
    env_var: str,
    default: float,
    *,
    minimum: float,
) -> float:
    raw = environ.get(env_var)
    if raw is None:
        return default
    value = raw.strip()
    if not value:
        raise SettingsValidationError.for_empty_value(env_var)
    try:
        parsed = float(value)
    except ValueError as exc:
        raise SettingsValidationError.for_invalid_number(
            env_var,
            value,
            minimum=minimum,
        ) from exc
    if parsed < minimum:
        raise SettingsValidationError.for_invalid_number(
            env_var,
            value,
            minimum=minimum,
        )
    return parsed


def _read_int(
    environ: Mapping[str, str],
    env_var: str,
    default: int,
    *,
    minimum: int,
) -> int:
    raw = environ.get(env_var)
    if raw is None:
        return default
    value = raw.strip()
    if not value:
        raise SettingsValidationError.for_empty_value(env_var)
    try:
        parsed = int(value)
    except ValueError as exc:
        raise SettingsValidationError.for_invalid_number(
            env_var,
            value,
            minimum=minimum,
        ) from exc
    if parsed < minimum:
        raise SettingsValidationError.for_invalid_number(
            env_var,
            value,
            minimum=minimum,
        )
    return parsed


def _read_enabled(environ: Mapping[str, str]) -> bool:
    raw = environ.get(ENV_ENABLED)
    if raw is None:
        return True
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    allowed = ", ".join(sorted(_TRUE_VALUES | _FALSE_VALUES))
    raise SettingsValidationError.for_invalid_choice(ENV_ENABLED, raw, allowed)


def _read_file_patterns(environ: Mapping[str, str]) -> tuple[str, ...]:
    raw = environ.get(ENV_ADDITIONAL_PATTERNS)
    if raw is None:
        return DEFAULT_FILE_PATTERNS
    extra = tuple(pattern.strip() for pattern in raw.split(",") if pattern.strip())
    return DEFAULT_FILE_PATTERNS + extra
