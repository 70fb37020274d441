"""Controller configuration and defaults."""

from __future__ import annotations

import os
from dataclasses import dataclass, field


def _env(name: str, default: str) -> str:
    """Read a controller setting, accepting both prefixed and bare names."""
    return os.environ.get(f"REDPANDA_CONTROLLER_{name}", os.environ.get(name, default))


def _env_float(name: str, default: float) -> float:
    raw = _env(name, "")
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


@dataclass
class Settings:
    chart_repository: str = field(
        default_factory=lambda: _env("CHART_REPOSITORY", "https://charts.redpanda.com/")
    )
    chart_name: str = "redpanda"
    default_repository_name: str = "redpanda-repository"

    # Durations below are Go-style duration strings, as Flux expects them
    repository_interval: str = field(default_factory=lambda: _env("REPOSITORY_INTERVAL", "30s"))
    release_interval: str = field(default_factory=lambda: _env("RELEASE_INTERVAL", "30s"))
    chart_interval: str = field(default_factory=lambda: _env("CHART_INTERVAL", "1m"))
    default_timeout: str = field(default_factory=lambda: _env("RELEASE_TIMEOUT", "15m"))

    # Seconds
    requeue_helm_deps: float = field(default_factory=lambda: _env_float("REQUEUE_HELM_DEPS", 10.0))
    deletion_requeue: float = field(default_factory=lambda: _env_float("DELETION_REQUEUE", 1.0))
    resync_interval: float = field(default_factory=lambda: _env_float("RESYNC_INTERVAL", 60.0))
    request_timeout: float = field(default_factory=lambda: _env_float("REQUEST_TIMEOUT", 30.0))

    event_component: str = "redpanda-controller"
    log_level: str = field(default_factory=lambda: _env("LOG_LEVEL", "INFO"))


# Global singleton
settings = Settings()
