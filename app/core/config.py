from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()

def _get_env(name: str, default: str | None = None) -> str | None:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return value


def _get_env_bool(name: str, default: bool) -> bool:
    raw = _get_env(name, None)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _get_env_int(name: str, default: int) -> int:
    raw = _get_env(name, None)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _get_env_list(name: str, default: list[str]) -> tuple[str, ...]:
    raw = _get_env(name, None)
    if raw is None:
        return tuple(default)
    values = [item.strip() for item in raw.split(",")]
    clean = [item for item in values if item]
    return tuple(clean) if clean else tuple(default)


@dataclass(frozen=True)
class Settings:
    recruiter_api_key: str | None
    admin_api_key: str | None
    rate_limit: str
    rate_limit_enabled: bool
    log_level: str
    sentry_dsn: str | None
    cors_allowed_origins: tuple[str, ...]
    cors_allow_origin_regex: str | None
    cors_allow_credentials: bool
    trust_x_forwarded_for: bool
    resume_db_path: str
    resume_retention_days: int
    retention_sweep_interval_seconds: int
    download_limit: int
    download_limit_enabled: bool
    max_upload_mb: int
    session_cookie_name: str


settings = Settings(
    recruiter_api_key=_get_env("RECRUITER_API_KEY"),
    admin_api_key=_get_env("ADMIN_API_KEY"),
    rate_limit=_get_env("RATE_LIMIT", "60/minute") or "60/minute",
    rate_limit_enabled=_get_env_bool("RATE_LIMIT_ENABLED", True),
    log_level=_get_env("LOG_LEVEL", "INFO") or "INFO",
    sentry_dsn=_get_env("SENTRY_DSN"),
    cors_allowed_origins=_get_env_list(
        "CORS_ALLOWED_ORIGINS",
        [
            "http://localhost:5173",
            "http://127.0.0.1:5173",
            "http://localhost:3000",
        ],
    ),
    cors_allow_origin_regex=_get_env("CORS_ALLOW_ORIGIN_REGEX"),
    cors_allow_credentials=_get_env_bool("CORS_ALLOW_CREDENTIALS", True),
    trust_x_forwarded_for=_get_env_bool("TRUST_X_FORWARDED_FOR", False),
    resume_db_path=_get_env("RESUME_DB_PATH", "data/resumes.db") or "data/resumes.db",
    resume_retention_days=_get_env_int("RESUME_RETENTION_DAYS", 180),
    retention_sweep_interval_seconds=_get_env_int("RETENTION_SWEEP_INTERVAL_SECONDS", 86400),
    download_limit=_get_env_int("DOWNLOAD_LIMIT", 3),
    download_limit_enabled=_get_env_bool("DOWNLOAD_LIMIT_ENABLED", True),
    max_upload_mb=_get_env_int("MAX_UPLOAD_MB", 100),
    session_cookie_name=_get_env("SESSION_COOKIE_NAME", "resume_session") or "resume_session",
)

if settings.download_limit < 0:
    raise RuntimeError("DOWNLOAD_LIMIT must be zero or a positive integer.")
