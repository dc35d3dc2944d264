"""
Settings for imgcache.

Values come from, in increasing precedence: field defaults, a YAML file
(explicit path or ``IMGCACHE_CONFIG``), ``IMGCACHE_*`` environment variables,
and explicit overrides passed to ``CacheSettings.load``.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml
from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from imgcache.exceptions import ConfigError

CONFIG_ENV_VAR = "IMGCACHE_CONFIG"

_DAY_MS = 24 * 60 * 60 * 1000
_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


class CacheSettings(BaseSettings):
    """Configuration for the image cache and its loaders"""

    model_config = SettingsConfigDict(env_prefix="IMGCACHE_", extra="forbid")

    storage_key: str = Field("image_cache", pattern=r"^[A-Za-z0-9_][A-Za-z0-9_.-]*$")
    storage_dir: str = "~/.cache/imgcache"
    max_entries: int = Field(50, ge=1)
    expiry_days: float = Field(7.0, gt=0)
    preload_delay: float = Field(0.1, ge=0)  # seconds
    request_timeout: float = Field(10.0, gt=0)  # seconds
    verify_images: bool = True
    # typical browser local storage quota; 0 disables the check
    quota_bytes: int = Field(5 * 1024 * 1024, ge=0)
    log_level: str = "WARNING"

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        value = value.upper()
        if value not in _LOG_LEVELS:
            raise ValueError(f"unknown log level '{value}'")
        return value

    @property
    def expiry_ms(self) -> int:
        return int(self.expiry_days * _DAY_MS)

    @property
    def storage_path(self) -> Path:
        return Path(self.storage_dir).expanduser()

    def save(self, path: str | Path) -> None:
        """Save configuration to YAML file"""
        with open(path, "w", encoding="utf-8") as f:
            yaml.safe_dump(self.model_dump(), f, default_flow_style=False, sort_keys=False)

    @classmethod
    def load(
        cls,
        path: str | Path | None = None,
        overrides: Optional[Mapping[str, Any]] = None,
    ) -> "CacheSettings":
        """Load configuration from YAML (if any), the environment and ``overrides``."""
        if path is None:
            path = os.environ.get(CONFIG_ENV_VAR) or None
        values: dict[str, Any] = _read_yaml(Path(path)) if path is not None else {}

        try:
            from_env = cls()
            values.update(from_env.model_dump(include=from_env.model_fields_set))
            values.update({k: v for k, v in (overrides or {}).items() if v is not None})
            return cls(**values)
        except ValidationError as exc:
            raise ConfigError(_describe(exc)) from exc


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as exc:
        raise ConfigError(f"Cannot read config file '{path}': {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in config file '{path}': {exc}") from exc

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config file '{path}' must contain a mapping")
    return data


def _describe(exc: ValidationError) -> str:
    problems = []
    for error in exc.errors():
        field = ".".join(str(part) for part in error["loc"]) or "settings"
        problems.append(f"{field}: {error['msg']}")
    return "Invalid settings: " + "; ".join(problems)
