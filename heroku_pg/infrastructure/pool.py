"""Connection pool factory using the same URL parsing and TLS policy as ``get_client``."""
from __future__ import annotations

from typing import Optional

from psycopg_pool import ConnectionPool, PoolTimeout

from heroku_pg.application.exceptions import ConfigurationError, TransportError
from heroku_pg.domain.connection_params import parse
from heroku_pg.domain.trust_policy import TlsTrustPolicy, build_trust_policy
from heroku_pg.infrastructure import log_utils
from heroku_pg.infrastructure.client_factory import build_conninfo, ensure_encrypted

DEFAULT_POOL_TIMEOUT = 30.0


def get_pool(
    url: str,
    max_size: int,
    *,
    policy: Optional[TlsTrustPolicy] = None,
    min_size: int = 1,
    timeout: float = DEFAULT_POOL_TIMEOUT,
    connect_timeout: Optional[float] = None,
) -> ConnectionPool:
    """Open a pool of encrypted connections and wait for ``min_size`` of them.

    Every new connection goes through :func:`ensure_encrypted` before the pool
    hands it out. If the pool cannot fill up within ``timeout`` seconds it is
    closed and :class:`TransportError` is raised.
    """

    if max_size < 1:
        raise ConfigurationError(f"max_size must be at least 1, got {max_size}")
    if min_size < 0 or min_size > max_size:
        raise ConfigurationError(f"min_size must be between 0 and max_size ({max_size}), got {min_size}")

    params = parse(url)
    policy = policy or build_trust_policy()
    conninfo = build_conninfo(params, policy, connect_timeout=connect_timeout)

    def _configure(conn) -> None:
        ensure_encrypted(conn, params)

    pool = ConnectionPool(
        conninfo,
        min_size=min_size,
        max_size=max_size,
        open=False,
        configure=_configure,
        name=f"heroku_pg:{params.host}/{params.database}",
    )
    try:
        pool.open(wait=True, timeout=timeout)
    except PoolTimeout as exc:
        pool.close()
        log_utils.error(f"Pool for {params.describe()} could not open {min_size} connection(s) in {timeout}s.")
        raise TransportError(
            f"Could not open {min_size} connection(s) to {params.describe()} within {timeout}s",
            host=params.host,
            port=params.port,
            database=params.database,
            user=params.user,
        ) from exc

    log_utils.info(f"Opened pool for {params.describe()} (min={min_size}, max={max_size}).")
    return pool


def close_pool(pool: Optional[ConnectionPool]) -> None:
    """Close ``pool`` if it is still open."""
    if pool is not None and not pool.closed:
        pool.close()
        log_utils.info("Database connection pool closed.")
