"""
Centralised configuration for heroku_pg.

Values are read from environment variables (and an optional ``.env`` file)
into a typed ``settings`` singleton. Every field is optional so importing the
library never fails on a machine without configuration.
"""

import os
from pathlib import Path
from typing import Any, Callable, Optional, TypeVar
from urllib.parse import quote

from pydantic import Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _discover_env_file(start: Path) -> Path:
    """Return the nearest ``.env`` at or above ``start``.

    Falls back to ``start / ".env"`` when none exists; pydantic-settings
    silently skips env files that are missing.
    """

    for parent in (start, *start.parents):
        env_file = parent / ".env"
        if env_file.exists():
            return env_file
    return start / ".env"


ENV_FILE_PATH = _discover_env_file(Path.cwd())


T = TypeVar("T")


class Settings(BaseSettings):
    """
    Validated settings for connecting and logging.
    """
    model_config = SettingsConfigDict(
        env_file=ENV_FILE_PATH, env_file_encoding="utf-8", case_sensitive=False, extra="ignore"
    )

    # --- CONNECTION ---
    DATABASE_URL: Optional[str] = Field(None, validate_default=True)
    HEROKU_PG_CONNECT_TIMEOUT: float = 10.0

    # --- DISCRETE CREDENTIALS (used only when DATABASE_URL is unset) ---
    POSTGRES_USER: Optional[str] = None
    POSTGRES_PASSWORD: Optional[SecretStr] = None
    POSTGRES_HOST: Optional[str] = None
    POSTGRES_PORT: int = 5432
    POSTGRES_DB: Optional[str] = None

    # --- LOGGING ---
    HEROKU_PG_LOG_LEVEL: str = "INFO"
    HEROKU_PG_LOG_TO_CONSOLE: bool = False
    HEROKU_PG_LOG_FILE: Optional[Path] = None

    @model_validator(mode="after")
    def build_database_url(self) -> "Settings":
        """Construct ``DATABASE_URL`` from the ``POSTGRES_*`` values if needed."""
        if self.DATABASE_URL or not (self.POSTGRES_HOST and self.POSTGRES_DB and self.POSTGRES_USER):
            return self

        password = self.POSTGRES_PASSWORD.get_secret_value() if self.POSTGRES_PASSWORD else ""
        self.DATABASE_URL = _build_database_url(
            user=self.POSTGRES_USER,
            password=password,
            host=self.POSTGRES_HOST,
            port=self.POSTGRES_PORT,
            dbname=self.POSTGRES_DB,
        )
        return self

    @property
    def log_path(self) -> Optional[Path]:
        """Rotating log file location, or ``None`` when file logging is off."""
        if self.HEROKU_PG_LOG_FILE is None:
            return None
        return Path(self.HEROKU_PG_LOG_FILE).expanduser()


def _build_database_url(*, user: str, password: str, host: str, port: int, dbname: str) -> str:
    """Return a ``postgres://`` URL with every component percent-encoded."""

    if ":" in host and not host.startswith("["):
        host = f"[{host}]"
    credentials = quote(user, safe="")
    if password:
        credentials = f"{credentials}:{quote(password, safe='')}"
    return f"postgres://{credentials}@{host}:{port}/{quote(dbname, safe='')}"


# Create a single, importable instance of the settings for the entire library.
settings = Settings()


def _coerce_secret(value: Any) -> Any:
    if isinstance(value, SecretStr):
        return value.get_secret_value()
    return value


def _to_bool(raw: str) -> bool:
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _coerce_type(raw: str, template: Any) -> Any:
    if isinstance(template, bool):
        return _to_bool(raw)
    if isinstance(template, int) and not isinstance(template, bool):
        return int(raw)
    if isinstance(template, float):
        return float(raw)
    if isinstance(template, Path):
        return Path(raw)
    return raw


def get_env(
    name: str,
    default: T | None = None,
    *,
    parser: Callable[[str], T] | None = None,
) -> T | Any | None:
    """Return a configuration value resolving environment overrides consistently.

    The resolution order is:

    1. Explicit environment variable overrides at runtime.
    2. Typed values provided by the Pydantic ``settings`` object.
    3. The supplied ``default`` value.

    When an override is read directly from :mod:`os.environ`, ``parser`` (or the
    inferred type from ``settings``) is used to coerce the string into the
    expected type.
    """

    if name in os.environ:
        raw_value = os.environ[name]
        if parser is not None:
            return parser(raw_value)
        if hasattr(settings, name):
            template = _coerce_secret(getattr(settings, name))
            try:
                return _coerce_type(raw_value, template)
            except (TypeError, ValueError):
                return template
        return raw_value

    if hasattr(settings, name):
        value = _coerce_secret(getattr(settings, name))
        if value is not None:
            return value

    return default
