from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

_DEFAULT_BASE_URL = "https://api.twitter.com/1.1/"
_DEFAULT_TOKEN_ENV_VAR = "MICROBLOG_API_TOKEN"
_SOURCE_KEYS = {"id", "type"}
_POLLING_KEYS = {"min_interval_seconds", "max_interval_seconds", "fallback_interval_seconds"}


class ConfigError(ValueError):
    """Raised when configuration is invalid or required collaborators are missing."""


@dataclass(slots=True)
class ApiSettings:
    base_url: str = _DEFAULT_BASE_URL
    token_env_var: str = _DEFAULT_TOKEN_ENV_VAR
    timeout_seconds: int = 15


@dataclass(slots=True)
class PollingSettings:
    min_interval_seconds: int = 15
    max_interval_seconds: int = 900
    fallback_interval_seconds: int = 60


@dataclass(slots=True)
class SourceSettings:
    id: str
    type: str
    polling: PollingSettings | None = None


@dataclass(slots=True)
class StorageSettings:
    type: str = "sqlite"
    path: str = "data/markers.sqlite"


@dataclass(slots=True)
class AppConfig:
    sources: list[SourceSettings]
    api: ApiSettings = field(default_factory=ApiSettings)
    polling: PollingSettings = field(default_factory=PollingSettings)
    storage: StorageSettings = field(default_factory=StorageSettings)
    log_level: str = "INFO"


def _as_int(value: Any, *, field_name: str, minimum: int | None = None) -> int:
    if isinstance(value, bool):
        raise ConfigError(f"{field_name} must be an integer")

    try:
        parsed = int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{field_name} must be an integer") from exc

    if minimum is not None and parsed < minimum:
        raise ConfigError(f"{field_name} must be >= {minimum}")
    return parsed


def _as_mapping(parsed: dict[str, Any], name: str) -> dict[str, Any]:
    raw = parsed.get(name, {}) or {}
    if not isinstance(raw, dict):
        raise ConfigError(f"{name} must be a mapping")
    return raw


def _parse_polling(
    raw: dict[str, Any], defaults: PollingSettings, prefix: str
) -> PollingSettings:
    settings = PollingSettings(
        min_interval_seconds=_as_int(
            raw.get("min_interval_seconds", defaults.min_interval_seconds),
            field_name=f"{prefix}.min_interval_seconds",
            minimum=1,
        ),
        max_interval_seconds=_as_int(
            raw.get("max_interval_seconds", defaults.max_interval_seconds),
            field_name=f"{prefix}.max_interval_seconds",
            minimum=1,
        ),
        fallback_interval_seconds=_as_int(
            raw.get("fallback_interval_seconds", defaults.fallback_interval_seconds),
            field_name=f"{prefix}.fallback_interval_seconds",
            minimum=1,
        ),
    )
    if settings.max_interval_seconds < settings.min_interval_seconds:
        raise ConfigError(
            f"{prefix}.max_interval_seconds must be >= {prefix}.min_interval_seconds"
        )
    return settings


def _resolve_relative_path(config_path: Path, raw_path: str) -> str:
    candidate = Path(raw_path).expanduser()
    if candidate.is_absolute():
        return str(candidate)
    return str((config_path.parent / candidate).resolve())


def load_config(path: str | Path) -> AppConfig:
    config_path = Path(path).expanduser().resolve()
    if not config_path.exists():
        raise ConfigError(f"Config file not found: {config_path}")

    with config_path.open("r", encoding="utf-8") as handle:
        parsed = yaml.safe_load(handle) or {}

    if not isinstance(parsed, dict):
        raise ConfigError("Config root must be a mapping")

    polling_settings = _parse_polling(_as_mapping(parsed, "polling"), PollingSettings(), "polling")

    raw_sources = parsed.get("sources", [])
    if not isinstance(raw_sources, list) or not raw_sources:
        raise ConfigError("Config must define at least one source")

    sources: list[SourceSettings] = []
    seen_ids: set[str] = set()
    for index, source in enumerate(raw_sources, start=1):
        if not isinstance(source, dict):
            raise ConfigError(f"Source entry #{index} must be a mapping")

        source_id = str(source.get("id", "")).strip()
        source_type = str(source.get("type", "")).strip()
        if not source_id or not source_type:
            raise ConfigError(f"Source entry #{index} missing one of: id, type")
        if source_id in seen_ids:
            raise ConfigError(f"Duplicate source id: {source_id}")
        seen_ids.add(source_id)

        unknown = sorted(set(source) - _SOURCE_KEYS - _POLLING_KEYS)
        if unknown:
            raise ConfigError(f"Source {source_id} has unknown keys: {', '.join(unknown)}")

        # interval keys on a source override the global polling section
        source_polling = None
        if _POLLING_KEYS & set(source):
            source_polling = _parse_polling(source, polling_settings, f"sources.{source_id}")

        sources.append(SourceSettings(id=source_id, type=source_type, polling=source_polling))

    raw_api = _as_mapping(parsed, "api")
    api_settings = ApiSettings(
        base_url=str(raw_api.get("base_url", _DEFAULT_BASE_URL)).strip()
        or _DEFAULT_BASE_URL,
        token_env_var=str(raw_api.get("token_env_var", _DEFAULT_TOKEN_ENV_VAR)).strip()
        or _DEFAULT_TOKEN_ENV_VAR,
        timeout_seconds=_as_int(
            raw_api.get("timeout_seconds", 15),
            field_name="api.timeout_seconds",
            minimum=1,
        ),
    )

    raw_storage = _as_mapping(parsed, "storage")
    storage_type = str(raw_storage.get("type", "sqlite")).strip() or "sqlite"
    if storage_type not in {"sqlite", "memory"}:
        raise ConfigError(f"Unsupported storage type: {storage_type}")

    storage_path = (
        str(raw_storage.get("path", "data/markers.sqlite")).strip() or "data/markers.sqlite"
    )
    storage_settings = StorageSettings(
        type=storage_type,
        path=_resolve_relative_path(config_path, storage_path),
    )

    return AppConfig(
        sources=sources,
        api=api_settings,
        polling=polling_settings,
        storage=storage_settings,
        log_level=str(parsed.get("log_level", "INFO")).upper(),
    )
