from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError

CONFIG_PATH_ENV = "LETTERBOXD_STATS_CONFIG"
DEFAULT_SESSION_PATH = Path.home() / ".local" / "share" / "letterboxd-stats" / "session.json"


class Settings(BaseModel):
    """Application configuration resolved from env vars and optional TOML files."""

    tmdb_api_key: str | None = Field(default=None, alias="TMDB_API_KEY")
    tmdb_base_url: str = Field(default="https://api.themoviedb.org/3", alias="TMDB_BASE_URL")
    tmdb_language: str | None = Field(default=None, alias="TMDB_LANGUAGE")
    tmdb_timeout: float = Field(default=20.0, gt=0, alias="TMDB_TIMEOUT")
    tmdb_max_attempts: int = Field(default=3, ge=1, alias="TMDB_MAX_ATTEMPTS")

    max_cast: int = Field(default=30, ge=0)

    session_path: Path = Field(default=DEFAULT_SESSION_PATH, alias="LETTERBOXD_STATS_SESSION_PATH")
    session_quota_bytes: int | None = Field(default=None, ge=1, alias="LETTERBOXD_STATS_SESSION_QUOTA")

    log_level: str = Field(default="WARNING", alias="LOG_LEVEL")

    model_config = {
        "populate_by_name": True,
        "str_strip_whitespace": True,
        "extra": "ignore",
    }

    def require_tmdb(self) -> None:
        """Ensure the TMDB credentials are available."""
        if not self.tmdb_api_key:
            raise SettingsError(
                "Missing TMDB_API_KEY. Configure environment or TOML file.",
            )


class SettingsError(RuntimeError):
    """Raised when configuration cannot be resolved."""


@dataclass(frozen=True)
class SettingsLoadResult:
    settings: Settings
    source_path: Path | None


def load_settings(config_path: Path | None = None, *, load_env: bool = True) -> SettingsLoadResult:
    """Load settings from .env files, environment variables, and optional TOML configuration."""

    if load_env:
        load_dotenv()

    resolved_path = _determine_config_path(config_path)
    config_data: dict[str, Any] = {}

    if resolved_path and resolved_path.exists():
        try:
            with resolved_path.open("rb") as handle:
                toml_payload = tomllib.load(handle)
        except (OSError, tomllib.TOMLDecodeError) as exc:
            raise SettingsError(f"Unable to read config file {resolved_path}: {exc}") from exc
        config_data = _flatten_toml(toml_payload)

    try:
        env_data = _collect_env_overrides()
    except ValueError as exc:
        raise SettingsError(f"Invalid environment override: {exc}") from exc
    merged = {**config_data, **env_data}

    try:
        settings = Settings.model_validate(merged)
    except ValidationError as exc:  # pragma: no cover - surfaced via CLI messaging
        raise SettingsError(str(exc)) from exc

    return SettingsLoadResult(settings=settings, source_path=resolved_path)


def _determine_config_path(config_path: Path | None) -> Path | None:
    if config_path:
        return config_path

    env_override = os.getenv(CONFIG_PATH_ENV)
    if env_override:
        return Path(env_override).expanduser().resolve()

    default_path = Path.home() / ".config" / "letterboxd-stats" / "config.toml"
    return default_path if default_path.exists() else None


def _flatten_toml(payload: dict[str, Any]) -> dict[str, Any]:
    result: dict[str, Any] = {}

    tmdb_cfg = payload.get("tmdb", {})
    if "api_key" in tmdb_cfg:
        result["tmdb_api_key"] = tmdb_cfg.get("api_key")
    if "base_url" in tmdb_cfg:
        result["tmdb_base_url"] = tmdb_cfg.get("base_url")
    if "language" in tmdb_cfg:
        result["tmdb_language"] = tmdb_cfg.get("language")
    if "timeout" in tmdb_cfg:
        result["tmdb_timeout"] = float(tmdb_cfg.get("timeout"))
    if "max_attempts" in tmdb_cfg:
        result["tmdb_max_attempts"] = int(tmdb_cfg.get("max_attempts"))
    if "max_cast" in tmdb_cfg:
        result["max_cast"] = int(tmdb_cfg.get("max_cast"))

    session_cfg = payload.get("session", {})
    if "path" in session_cfg:
        result["session_path"] = Path(str(session_cfg.get("path"))).expanduser()
    if "quota_bytes" in session_cfg:
        result["session_quota_bytes"] = int(session_cfg.get("quota_bytes"))

    if "log_level" in payload:
        result["log_level"] = str(payload.get("log_level"))

    return result


def _collect_env_overrides() -> dict[str, Any]:
    mapping: dict[str, str] = {
        "TMDB_API_KEY": "tmdb_api_key",
        "TMDB_BASE_URL": "tmdb_base_url",
        "TMDB_LANGUAGE": "tmdb_language",
        "TMDB_TIMEOUT": "tmdb_timeout",
        "TMDB_MAX_ATTEMPTS": "tmdb_max_attempts",
        "TMDB_MAX_CAST": "max_cast",
        "LETTERBOXD_STATS_SESSION_PATH": "session_path",
        "LETTERBOXD_STATS_SESSION_QUOTA": "session_quota_bytes",
        "LOG_LEVEL": "log_level",
    }

    result: dict[str, Any] = {}
    for env_name, field in mapping.items():
        if env_name not in os.environ:
            continue
        value = os.environ[env_name]
        if field in {"tmdb_max_attempts", "max_cast", "session_quota_bytes"}:
            result[field] = int(value)
        elif field == "tmdb_timeout":
            result[field] = float(value)
        elif field == "session_path":
            result[field] = Path(value).expanduser()
        else:
            result[field] = value
    return result


__all__ = ["Settings", "SettingsError", "SettingsLoadResult", "load_settings"]
