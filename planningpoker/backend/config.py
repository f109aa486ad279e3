"""Configuration helpers for backend runtime."""

from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import timedelta


@dataclass(frozen=True)
class BackendSettings:
    host_password: str
    server_salt: str
    database_url: str | None
    host: str
    port: int
    max_users_per_session: int = 50
    user_cleanup_hours: int = 24
    host_session_timeout_seconds: int = 3600
    user_cleanup_interval_seconds: int = 3600
    host_sweep_interval_seconds: int = 300
    log_json: bool = True

    @property
    def user_retention(self) -> timedelta:
        return timedelta(hours=self.user_cleanup_hours)


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


def load_settings() -> BackendSettings:
    return BackendSettings(
        host_password=os.getenv("PLANNINGPOKER_HOST_PASSWORD", "admin123"),
        server_salt=os.getenv("PLANNINGPOKER_SERVER_SALT", "dev-salt"),
        database_url=os.getenv("PLANNINGPOKER_DATABASE_URL") or None,
        host=os.getenv("PLANNINGPOKER_HOST", "127.0.0.1"),
        port=int(os.getenv("PLANNINGPOKER_PORT", "3000")),
        max_users_per_session=int(os.getenv("PLANNINGPOKER_MAX_USERS_PER_SESSION", "50")),
        user_cleanup_hours=int(os.getenv("PLANNINGPOKER_USER_CLEANUP_HOURS", "24")),
        host_session_timeout_seconds=int(os.getenv("PLANNINGPOKER_HOST_SESSION_TIMEOUT", "3600")),
        user_cleanup_interval_seconds=int(os.getenv("PLANNINGPOKER_USER_CLEANUP_INTERVAL", "3600")),
        host_sweep_interval_seconds=int(os.getenv("PLANNINGPOKER_HOST_SWEEP_INTERVAL", "300")),
        log_json=_env_bool("PLANNINGPOKER_LOG_JSON", "true"),
    )
