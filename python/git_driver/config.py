#!/usr/bin/env python3
"""
Configuration for the git driver.

Settings come from defaults, an optional JSON file, and ``GIT_DRIVER_*``
environment variables, in that order of precedence (later wins).
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .exceptions import GitConfigError

DEFAULT_TIMEOUT_MS = 30000
DEFAULT_POLL_INTERVAL_MS = 10

_ENV_PREFIX = "GIT_DRIVER_"
_ENV_FIELDS = {
    "GIT": "git_executable",
    "TIMEOUT_MS": "timeout_ms",
    "POLL_INTERVAL_MS": "poll_interval_ms",
    "LOG_LEVEL": "log_level",
}
_LOG_LEVELS = {"TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"}


class GitDriverConfig(BaseModel):
    """Validated settings for the executor, dispatcher and CLI."""

    model_config = ConfigDict(
        extra="forbid", validate_assignment=True, str_strip_whitespace=True
    )

    git_executable: str = Field(
        default="git", min_length=1, description="Program name or path of git"
    )
    timeout_ms: int = Field(
        default=DEFAULT_TIMEOUT_MS, gt=0, description="Wall-clock timeout per invocation"
    )
    poll_interval_ms: int = Field(
        default=DEFAULT_POLL_INTERVAL_MS,
        ge=1,
        le=1000,
        description="Sleep between pipe polls",
    )
    read_chunk_size: int = Field(
        default=4096, ge=64, description="Bytes read from a pipe per call"
    )
    kill_grace_ms: int = Field(
        default=2000,
        ge=0,
        description="Time allowed after SIGTERM before the child is killed",
    )
    max_workers: int = Field(
        default=4, ge=1, le=64, description="Threads for background invocations"
    )
    environment: Dict[str, str] = Field(
        default_factory=dict, description="Environment overrides for child processes"
    )
    log_level: str = Field(default="INFO", description="loguru level for the CLI")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in _LOG_LEVELS:
            raise ValueError(f"Unknown log level '{v}', valid options: {sorted(_LOG_LEVELS)}")
        return level


def _env_overrides(environ: Mapping[str, str]) -> Dict[str, Any]:
    overrides: Dict[str, Any] = {}
    for suffix, field_name in _ENV_FIELDS.items():
        value = environ.get(_ENV_PREFIX + suffix)
        if value is not None and value != "":
            overrides[field_name] = value
    return overrides


def load_config(
    path: Optional[Union[str, Path]] = None,
    environ: Optional[Mapping[str, str]] = None,
    **overrides: Any,
) -> GitDriverConfig:
    """
    Build a GitDriverConfig.

    Args:
        path: Optional JSON file holding any subset of the config fields.
        environ: Environment mapping to read ``GIT_DRIVER_*`` variables from
            (defaults to ``os.environ``).
        **overrides: Explicit values that take precedence over everything else.

    Raises:
        GitConfigError: If the file cannot be read or a value fails validation.
    """
    data: Dict[str, Any] = {}

    if path is not None:
        config_path = Path(path)
        try:
            with config_path.open("r", encoding="utf-8") as f:
                loaded = json.load(f)
        except FileNotFoundError as e:
            raise GitConfigError(
                f"Config file not found: {config_path}", original_error=e
            ) from e
        except (OSError, json.JSONDecodeError) as e:
            raise GitConfigError(
                f"Failed to read config file {config_path}: {e}", original_error=e
            ) from e
        if not isinstance(loaded, dict):
            raise GitConfigError(
                f"Config file {config_path} must contain a JSON object",
                config_value=type(loaded).__name__,
            )
        data.update(loaded)
        logger.debug(f"Loaded git driver config from {config_path}")

    data.update(_env_overrides(os.environ if environ is None else environ))
    data.update({k: v for k, v in overrides.items() if v is not None})

    try:
        return GitDriverConfig(**data)
    except ValidationError as e:
        first = e.errors()[0]
        key = ".".join(str(p) for p in first.get("loc", ()))
        raise GitConfigError(
            f"Invalid git driver configuration: {key}: {first.get('msg')}",
            config_key=key or None,
            config_value=first.get("input"),
            original_error=e,
        ) from e


__all__ = ["GitDriverConfig", "load_config", "DEFAULT_TIMEOUT_MS", "DEFAULT_POLL_INTERVAL_MS"]
