"""Configuration loading from environment variables."""

from __future__ import annotations

import os

from kuberoot.models.config import (
    AgentConfig,
    APIConfig,
    AuthConfig,
    KuberootConfig,
    LogConfig,
    StoreConfig,
)


def _env(key: str, default: str = "") -> str:
    return os.environ.get(f"KUBEROOT_{key}", default)


def _env_int(key: str, default: int, min_val: int | None = None, max_val: int | None = None) -> int:
    val = int(_env(key, str(default)))
    if min_val is not None:
        val = max(val, min_val)
    if max_val is not None:
        val = min(val, max_val)
    return val


def _env_float(key: str, default: float, min_val: float | None = None) -> float:
    val = float(_env(key, str(default)))
    if min_val is not None:
        val = max(val, min_val)
    return val


def _validate_log_level(value: str) -> str:
    valid = {"debug", "info", "warning", "error"}
    if value.lower() not in valid:
        raise ValueError(f"Invalid log level: {value}. Must be one of {valid}")
    return value.lower()


def _validate_backend_url(value: str) -> str:
    if not value:
        raise ValueError("KUBEROOT_BACKEND_URL is required")
    if not value.startswith(("http://", "https://")):
        raise ValueError(f"Invalid backend URL: {value}. Must start with http:// or https://")
    return value.rstrip("/")


def load_config() -> KuberootConfig:
    """Load server configuration from KUBEROOT_* environment variables.

    ``DATABASE_URL`` is read unprefixed; when it is empty the server runs
    with the no-op store and local (trusted) authentication.
    """
    pool_min = _env_int("DB_POOL_MIN", 1, min_val=1, max_val=50)
    return KuberootConfig(
        cluster_id=_env("CLUSTER_ID", "") or "local",
        store=StoreConfig(
            database_url=os.environ.get("DATABASE_URL", ""),
            pool_min_size=pool_min,
            pool_max_size=_env_int("DB_POOL_MAX", 10, min_val=pool_min, max_val=100),
            timeout_seconds=_env_float("STORE_TIMEOUT", 15.0, min_val=0.1),
        ),
        auth=AuthConfig(
            timeout_seconds=_env_float("AUTH_TIMEOUT", 5.0, min_val=0.1),
        ),
        api=APIConfig(
            port=_env_int("API_PORT", 8080, min_val=1024, max_val=65535),
        ),
        log=LogConfig(
            level=_validate_log_level(_env("LOG_LEVEL", "info")),
        ),
    )


def load_agent_config() -> AgentConfig:
    """Load collector agent configuration from KUBEROOT_* environment variables."""
    api_key = _env("API_KEY", "").strip()
    if not api_key:
        raise ValueError("KUBEROOT_API_KEY is required")
    report_timeout = _env_float("REPORT_TIMEOUT", 10.0, min_val=1.0)
    return AgentConfig(
        backend_url=_validate_backend_url(_env("BACKEND_URL", "")),
        api_key=api_key,
        cluster_id=_env("CLUSTER_ID", "") or "local",
        poll_interval=_env_int("POLL_INTERVAL", 30, min_val=5, max_val=3600),
        report_timeout=report_timeout,
        # Never shorter than the report timeout.
        cycle_timeout=_env_float("CYCLE_TIMEOUT", max(30.0, report_timeout), min_val=report_timeout),
    )
