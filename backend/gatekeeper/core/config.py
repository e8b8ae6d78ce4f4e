"""Settings classes, one per environment, read from the process environment.

``APP_ENV`` picks the class; a ``.env`` file next to the working directory
is loaded first when present.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from typing import Final

from dotenv import load_dotenv

ENV_VAR: Final[str] = "APP_ENV"  # development | testing | production
TRUTHY: Final[frozenset[str]] = frozenset({"1", "true", "yes", "y", "on"})

load_dotenv()


def env_bool(name: str, default: bool = False) -> bool:
    """``True`` for 1/true/yes/y/on (any case), ``default`` when unset."""
    raw = os.getenv(name)
    return default if raw is None else raw.strip().lower() in TRUTHY


def env_int(name: str, default: int) -> int:
    """Integer value of ``name``; blank or unset gives ``default``.

    :raises ValueError: The variable holds something other than an integer.
    """
    raw = (os.getenv(name) or "").strip()
    return int(raw) if raw else default


class BaseConfig:
    """Settings shared by every environment.

    Token lifetimes
    ---------------
    ``ACCESS_TOKEN_EXPIRES_IN`` (1 hour), ``REFRESH_TOKEN_EXPIRES_IN``
    (30 days) and ``CONFIRMATION_TOKEN_EXPIRES_IN`` (24 hours) are seconds.
    The JWT manager derives its own expiry from the first one.

    Mail
    ----
    ``EMAIL_BACKEND`` is ``smtp`` or ``memory``. SMTP credentials are only
    sent when both username and password are set, and ``SMTP_TIMEOUT`` bounds
    one whole dispatch. Links in emails are built on ``APP_URL``.

    Sweep
    -----
    ``TOKEN_CLEANUP_ENABLED`` starts a background job deleting expired
    refresh tokens every ``TOKEN_CLEANUP_INTERVAL_SECONDS``.
    """

    API_BASE_PREFIX = "/api"
    APP_VERSION = os.getenv("APP_VERSION", "dev")

    SECRET_KEY = os.getenv("SECRET_KEY", "CHANGE_ME")
    JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "CHANGE_ME_JWT")
    JWT_TOKEN_LOCATION = ["headers"]
    CONFIRMATION_TOKEN_SECRET = os.getenv("CONFIRMATION_TOKEN_SECRET", "CHANGE_ME_CONFIRMATION")

    ACCESS_TOKEN_EXPIRES_IN = env_int("ACCESS_TOKEN_EXPIRES_IN", 3600)
    REFRESH_TOKEN_EXPIRES_IN = env_int("REFRESH_TOKEN_EXPIRES_IN", 2_592_000)
    CONFIRMATION_TOKEN_EXPIRES_IN = env_int("CONFIRMATION_TOKEN_EXPIRES_IN", 86_400)
    REFRESH_TOKEN_COOKIE_NAME = os.getenv("REFRESH_TOKEN_COOKIE_NAME", "refresh_token")

    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", "sqlite:///./dev.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ECHO = env_bool("SQLALCHEMY_ECHO", False)

    EMAIL_BACKEND = os.getenv("EMAIL_BACKEND", "smtp")
    EMAIL_FROM = os.getenv("EMAIL_FROM", "app@example.com")
    APP_URL = os.getenv("APP_URL", "http://localhost:8000")
    SMTP_HOST = os.getenv("SMTP_HOST", "localhost")
    SMTP_PORT = env_int("SMTP_PORT", 1025)
    SMTP_USERNAME = os.getenv("SMTP_USERNAME", "")
    SMTP_PASSWORD = os.getenv("SMTP_PASSWORD", "")
    SMTP_USE_TLS = env_bool("SMTP_USE_TLS", False)
    SMTP_TIMEOUT = env_int("SMTP_TIMEOUT", 30)

    TOKEN_CLEANUP_ENABLED = env_bool("TOKEN_CLEANUP_ENABLED", True)
    TOKEN_CLEANUP_INTERVAL_SECONDS = env_int("TOKEN_CLEANUP_INTERVAL_SECONDS", 86_400)

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "http://localhost:5173")
    CORS_MAX_AGE = 600

    JSON_SORT_KEYS = False
    PROPAGATE_EXCEPTIONS = False
    DEBUG = False
    TESTING = False


class DevelopmentConfig(BaseConfig):
    """Debug on; mail goes to a local catcher on port 1025."""

    DEBUG = env_bool("FLASK_DEBUG", True)


class TestingConfig(BaseConfig):
    """In-memory SQLite (or ``TEST_DATABASE_URL``), in-memory outbox, no sweep."""

    TESTING = True
    SQLALCHEMY_DATABASE_URI = os.getenv("TEST_DATABASE_URL", "sqlite:///:memory:")
    TOKEN_CLEANUP_ENABLED = False
    EMAIL_BACKEND = "memory"
    PROPAGATE_EXCEPTIONS = True


class ProductionConfig(BaseConfig):
    """SMTP over TLS unless told otherwise; SQL echo forced off."""

    SQLALCHEMY_ECHO = False
    SMTP_USE_TLS = env_bool("SMTP_USE_TLS", True)


CONFIG_MAP: Mapping[str, type[BaseConfig]] = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
}


def get_config() -> type[BaseConfig]:
    """Settings class named by ``APP_ENV``; unknown or unset means development."""
    name = os.getenv(ENV_VAR, "development").strip().lower()
    return CONFIG_MAP.get(name, DevelopmentConfig)
