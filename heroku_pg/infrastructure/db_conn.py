"""Utility helpers for locating the database URL."""

from __future__ import annotations

import os

from heroku_pg.application.exceptions import ConfigurationError


def get_database_url() -> str:
    """Return the configured PostgreSQL connection URL.

    The ``DATABASE_URL`` environment variable wins so that Heroku's config
    vars (and one-off overrides) take effect at runtime. Otherwise the value
    from settings is used, which may have been assembled from the
    ``POSTGRES_*`` variables.
    """

    env_url = os.getenv("DATABASE_URL")
    if env_url:
        return env_url

    from heroku_pg.config.config import settings

    settings_url = settings.DATABASE_URL
    if settings_url:
        return settings_url

    raise ConfigurationError(
        "Database connection information is missing. Set the DATABASE_URL "
        "environment variable or configure the POSTGRES_* variables."
    )
