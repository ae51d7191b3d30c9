from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any

import yaml


class ConfigError(ValueError):
    """Raised when YAML config or environment overrides are invalid."""


@dataclass(frozen=True)
class AppConfig:
    base_url: str = "https://hacker-news.firebaseio.com/v0/"
    timeout_sec: float = 30.0
    retries: int = 3
    backoff_base_sec: float = 1.0
    backoff_cap_sec: float = 10.0
    breaker_failure_threshold: int = 8
    breaker_reset_sec: float = 30.0
    ranked_ids_ttl_sec: float = 30.0
    item_ttl_sec: float = 60.0
    max_parallelism: int = 8
    default_count: int = 10
    max_count: int = 500


def _optional_section(data: dict[str, Any], key: str) -> dict[str, Any]:
    value = data.get(key, {})
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ConfigError(f"{key} must be a mapping")
    return value


def _optional_str(data: dict[str, Any], key: str, default: str, path: str) -> str:
    value = data.get(key, default)
    if not isinstance(value, str) or not value.strip():
        raise ConfigError(f"{path}.{key} must be a non-empty string")
    return value.strip()


def _optional_int(data: dict[str, Any], key: str, default: int, minimum: int, path: str) -> int:
    value = data.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int) or value < minimum:
        raise ConfigError(f"{path}.{key} must be int >= {minimum}")
    return value


def _optional_seconds(data: dict[str, Any], key: str, default: float, path: str) -> float:
    value = data.get(key, default)
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
        raise ConfigError(f"{path}.{key} must be a positive number")
    return float(value)


def _validate_base_url(url: str, path: str) -> str:
    if not (url.startswith("http://") or url.startswith("https://")):
        raise ConfigError(f"{path} must start with http:// or https://")
    # urljoin drops the last path segment unless the base ends with a slash.
    return url if url.endswith("/") else f"{url}/"


def _read_yaml(path: str | Path) -> dict[str, Any]:
    resolved = Path(path)
    if not resolved.exists():
        raise ConfigError(f"Config file does not exist: {resolved}")
    with resolved.open("r", encoding="utf-8") as handle:
        payload = yaml.safe_load(handle) or {}
    if not isinstance(payload, dict):
        raise ConfigError(f"Config root must be a mapping: {resolved}")
    return payload


def _parse_positive_int_env(key: str, default: int) -> int:
    raw = os.getenv(key)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw.strip())
    except ValueError as exc:
        raise ConfigError(f"{key} must be positive integer") from exc
    if value <= 0:
        raise ConfigError(f"{key} must be positive integer")
    return value


def apply_env_overrides(config: AppConfig) -> AppConfig:
    base_url = (os.getenv("HN_API_BASE_URL") or "").strip()
    if base_url:
        config = replace(config, base_url=_validate_base_url(base_url, "HN_API_BASE_URL"))
    return replace(
        config,
        max_parallelism=_parse_positive_int_env("HN_MAX_PARALLELISM", config.max_parallelism),
    )


def load_app_config(path: str | Path | None = None) -> AppConfig:
    defaults = AppConfig()
    if path is None:
        return apply_env_overrides(defaults)

    payload = _read_yaml(path)
    api = _optional_section(payload, "api")
    breaker = _optional_section(payload, "circuit_breaker")
    cache = _optional_section(payload, "cache")
    pipeline = _optional_section(payload, "pipeline")

    max_count = _optional_int(pipeline, "max_count", defaults.max_count, 1, "pipeline")
    default_count = _optional_int(pipeline, "default_count", defaults.default_count, 1, "pipeline")
    if default_count > max_count:
        raise ConfigError("pipeline.default_count must be <= pipeline.max_count")

    backoff_base_sec = _optional_seconds(api, "backoff_base_sec", defaults.backoff_base_sec, "api")
    backoff_cap_sec = _optional_seconds(api, "backoff_cap_sec", defaults.backoff_cap_sec, "api")
    if backoff_base_sec > backoff_cap_sec:
        raise ConfigError("api.backoff_base_sec must be <= api.backoff_cap_sec")

    config = AppConfig(
        base_url=_validate_base_url(
            _optional_str(api, "base_url", defaults.base_url, "api"),
            "api.base_url",
        ),
        timeout_sec=_optional_seconds(api, "timeout_sec", defaults.timeout_sec, "api"),
        retries=_optional_int(api, "retries", defaults.retries, 0, "api"),
        backoff_base_sec=backoff_base_sec,
        backoff_cap_sec=backoff_cap_sec,
        breaker_failure_threshold=_optional_int(
            breaker, "failure_threshold", defaults.breaker_failure_threshold, 1, "circuit_breaker"
        ),
        breaker_reset_sec=_optional_seconds(
            breaker, "reset_sec", defaults.breaker_reset_sec, "circuit_breaker"
        ),
        ranked_ids_ttl_sec=_optional_seconds(
            cache, "ranked_ids_ttl_sec", defaults.ranked_ids_ttl_sec, "cache"
        ),
        item_ttl_sec=_optional_seconds(cache, "item_ttl_sec", defaults.item_ttl_sec, "cache"),
        max_parallelism=_optional_int(pipeline, "max_parallelism", defaults.max_parallelism, 1, "pipeline"),
        default_count=default_count,
        max_count=max_count,
    )
    return apply_env_overrides(config)
