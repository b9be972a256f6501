# config.py — Process configuration for Kanbex
# Read once from the environment at import; missing required values abort startup.

import os
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Mapping

logger = logging.getLogger("kanbex.config")

MIN_SECRET_LENGTH = 32


class ConfigError(RuntimeError):
    """Raised when the environment cannot produce a usable configuration."""


@dataclass(frozen=True)
class Settings:
    database_url: str
    jwt_secret_key: str
    access_token_expire_minutes: int = 1440
    bcrypt_rounds: int = 12
    log_level: str = "INFO"
    sql_echo: bool = False
    environment: str = "development"
    port: int = 8000
    cors_origins: List[str] = field(default_factory=list)
    otel_endpoint: str = ""
    otel_service_name: str = "kanbex-api"


def _int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {raw!r}")


def load_settings(env: Optional[Mapping[str, str]] = None) -> Settings:
    """Build Settings from ``env`` (defaults to ``os.environ``).

    DATABASE_URL and JWT_SECRET_KEY are required. Everything else has a default.
    """
    env = os.environ if env is None else env

    missing = [name for name in ("DATABASE_URL", "JWT_SECRET_KEY") if not env.get(name)]
    if missing:
        raise ConfigError(f"Missing required environment variables: {', '.join(missing)}")

    bcrypt_rounds = _int(env, "BCRYPT_ROUNDS", 12)
    if not 4 <= bcrypt_rounds <= 31:
        raise ConfigError("BCRYPT_ROUNDS must be between 4 and 31")

    return Settings(
        database_url=env["DATABASE_URL"],
        jwt_secret_key=env["JWT_SECRET_KEY"],
        access_token_expire_minutes=_int(env, "ACCESS_TOKEN_EXPIRE_MINUTES", 1440),
        bcrypt_rounds=bcrypt_rounds,
        log_level=env.get("LOG_LEVEL", "INFO").upper(),
        sql_echo=env.get("SQL_ECHO", "false").lower() == "true",
        environment=env.get("ENVIRONMENT", "development"),
        port=_int(env, "PORT", 8000),
        cors_origins=[
            origin.strip()
            for origin in env.get(
                "CORS_ORIGINS",
                "http://localhost:3000,http://localhost:5173",
            ).split(",")
            if origin.strip()
        ],
        otel_endpoint=env.get("OTEL_EXPORTER_OTLP_ENDPOINT", ""),
        otel_service_name=env.get("OTEL_SERVICE_NAME", "kanbex-api"),
    )


def check_startup_config(settings: Settings) -> bool:
    """Log warnings for settings that work but should not reach production."""
    warnings = []

    if len(settings.jwt_secret_key) < MIN_SECRET_LENGTH:
        warnings.append(
            "JWT_SECRET_KEY is shorter than 32 characters. Generate one with: "
            "python -c \"import secrets; print(secrets.token_urlsafe(48))\""
        )
    if settings.environment == "production" and settings.database_url.startswith("sqlite"):
        warnings.append("SQLite DATABASE_URL configured in production")

    for w in warnings:
        logger.warning(w)

    return len(warnings) == 0


settings = load_settings()
