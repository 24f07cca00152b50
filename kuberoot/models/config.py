"""Configuration data structures."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class StoreConfig:
    """Persistence configuration.  An empty ``database_url`` selects the no-op store."""

    database_url: str = ""
    pool_min_size: int = 1
    pool_max_size: int = 10
    timeout_seconds: float = 15.0


@dataclass
class AuthConfig:
    """Auth gateway configuration."""

    timeout_seconds: float = 5.0


@dataclass
class AgentConfig:
    """Remote collector (push agent) configuration."""

    backend_url: str = ""
    api_key: str = ""
    cluster_id: str = "local"
    poll_interval: int = 30
    report_timeout: float = 10.0
    cycle_timeout: float = 30.0


@dataclass
class APIConfig:
    """REST API configuration."""

    port: int = 8080


@dataclass
class LogConfig:
    """Logging configuration."""

    level: str = "info"


@dataclass
class KuberootConfig:
    """Top-level server configuration."""

    cluster_id: str = "local"
    store: StoreConfig = field(default_factory=StoreConfig)
    auth: AuthConfig = field(default_factory=AuthConfig)
    api: APIConfig = field(default_factory=APIConfig)
    log: LogConfig = field(default_factory=LogConfig)
