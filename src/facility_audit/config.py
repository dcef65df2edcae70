"""Configuration management for the facility audit application."""

from __future__ import annotations

import logging
import os
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator

_config_logger = logging.getLogger(__name__)

DEFAULT_FACILITIES: tuple[str, ...] = (
    "Chrucho Creek",
    "Becky's Gardens",
    "Oklahoma House",
    "Quilters Home",
    "Sunset Senior Living",
)


class LoggingSettings(BaseModel):
    level: str = Field(default="INFO", description="Python logging level name")
    file: str | None = Field(default=None, description="Optional log file path")


class StorageSettings(BaseModel):
    cache_dir: str = Field(default="./data/cache")


class RemoteSettings(BaseModel):
    """Remote spreadsheet store settings.

    ``endpoint`` overrides the URL saved in the local endpoint slot. When
    neither is set the local cache is the only storage.
    """

    endpoint: str | None = Field(default=None)
    timeout_seconds: float = Field(default=5.0, ge=0.1, le=60.0)
    max_retries: int = Field(default=3, ge=1, le=10)

    @field_validator("endpoint")
    @classmethod
    def _strip_endpoint(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return value.strip() or None


class AISettings(BaseModel):
    api_key: str | None = Field(default=None)
    text_model: str = Field(default="gemini-2.5-flash")
    vision_model: str = Field(default="gemini-2.5-flash-image")
    timeout_seconds: float = Field(default=30.0, ge=1.0, le=300.0)


class CatalogSettings(BaseModel):
    path: str | None = Field(default=None, description="Optional YAML question catalog")
    facilities: tuple[str, ...] = Field(default=DEFAULT_FACILITIES, min_length=1)


class Settings(BaseModel):
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    remote: RemoteSettings = Field(default_factory=RemoteSettings)
    ai: AISettings = Field(default_factory=AISettings)
    catalog: CatalogSettings = Field(default_factory=CatalogSettings)


ENV_KEYS = {
    "log_level": "LOG_LEVEL",
    "log_file": "LOG_FILE",
    "cache_dir": "AUDIT_CACHE_DIR",
    "remote_endpoint": "AUDIT_REMOTE_ENDPOINT",
    "remote_timeout": "AUDIT_REMOTE_TIMEOUT_SECONDS",
    "remote_retries": "AUDIT_REMOTE_MAX_RETRIES",
    "ai_api_key": "GOOGLE_API_KEY",
    "ai_api_key_fallback": "API_KEY",
    "ai_text_model": "AUDIT_AI_TEXT_MODEL",
    "ai_vision_model": "AUDIT_AI_VISION_MODEL",
    "ai_timeout": "AUDIT_AI_TIMEOUT_SECONDS",
    "catalog_path": "AUDIT_CATALOG_PATH",
    "facilities": "AUDIT_FACILITIES",
}


def _split_csv_preserve_case(value: str | None) -> list[str]:
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


def _project_root() -> Path:
    return Path(__file__).resolve().parents[2]


def _resolve_path(path: str) -> str:
    candidate = Path(path).expanduser()
    if candidate.is_absolute():
        return str(candidate.resolve())
    return str((_project_root() / candidate).resolve())


def _env_int(key: str, default: int) -> int:
    value = os.getenv(key)
    if value is None or value.strip() == "":
        return default
    try:
        return int(value)
    except ValueError:
        _config_logger.warning(
            "Invalid integer value for %s: %r, using default %d", key, value, default
        )
        return default


def _env_float(key: str, default: float) -> float:
    value = os.getenv(key)
    if value is None or value.strip() == "":
        return default
    try:
        return float(value)
    except ValueError:
        _config_logger.warning(
            "Invalid float value for %s: %r, using default %s", key, value, default
        )
        return default


def load_settings() -> Settings:
    """Load configuration and cache the result."""

    return _load_settings_cached()


@lru_cache(maxsize=1)
def _load_settings_cached() -> Settings:
    load_dotenv(dotenv_path=_project_root() / ".env")
    log_file_env = os.getenv(ENV_KEYS["log_file"])
    catalog_path_env = os.getenv(ENV_KEYS["catalog_path"])
    facilities = _split_csv_preserve_case(os.getenv(ENV_KEYS["facilities"]))

    settings_data: dict[str, object] = {
        "logging": {
            "level": os.getenv(ENV_KEYS["log_level"], LoggingSettings().level),
            "file": _resolve_path(log_file_env) if log_file_env else None,
        },
        "storage": {
            "cache_dir": _resolve_path(
                os.getenv(ENV_KEYS["cache_dir"], StorageSettings().cache_dir)
            ),
        },
        "remote": {
            "endpoint": os.getenv(ENV_KEYS["remote_endpoint"]),
            "timeout_seconds": _env_float(
                ENV_KEYS["remote_timeout"],
                RemoteSettings().timeout_seconds,
            ),
            "max_retries": _env_int(
                ENV_KEYS["remote_retries"],
                RemoteSettings().max_retries,
            ),
        },
        "ai": {
            "api_key": (
                os.getenv(ENV_KEYS["ai_api_key"])
                or os.getenv(ENV_KEYS["ai_api_key_fallback"])
                or None
            ),
            "text_model": os.getenv(ENV_KEYS["ai_text_model"], AISettings().text_model),
            "vision_model": os.getenv(ENV_KEYS["ai_vision_model"], AISettings().vision_model),
            "timeout_seconds": _env_float(
                ENV_KEYS["ai_timeout"],
                AISettings().timeout_seconds,
            ),
        },
        "catalog": {
            "path": _resolve_path(catalog_path_env) if catalog_path_env else None,
            "facilities": tuple(facilities) if facilities else DEFAULT_FACILITIES,
        },
    }

    try:
        settings = Settings.model_validate(settings_data)
    except ValidationError as exc:
        raise RuntimeError(f"Invalid configuration: {exc}") from exc

    Path(settings.storage.cache_dir).mkdir(parents=True, exist_ok=True)

    return settings
