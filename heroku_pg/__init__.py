"""Dead simple connections to Heroku Postgres.

Heroku Postgres needs TLS but serves certificates that cannot be verified, so
connecting means enabling encryption while turning verification off::

    from heroku_pg import get_client

    with get_client(os.environ["DATABASE_URL"]) as conn:
        conn.execute("SELECT 1")

``get_pool(url, max_size)`` returns a ``psycopg_pool.ConnectionPool`` set up
the same way; ``close_pool(pool)`` shuts it down.
"""

from heroku_pg.application.exceptions import (
    AuthenticationError,
    ConfigurationError,
    ConnectError,
    HerokuPostgresError,
    ParseError,
    TlsHandshakeError,
    TransportError,
    TrustPolicyError,
)
from heroku_pg.application.smoke_test import smoke_test
from heroku_pg.domain.connection_params import ConnectionParams, parse, parse_url, redact_url
from heroku_pg.domain.trust_policy import TlsTrustPolicy, build_trust_policy
from heroku_pg.infrastructure.client_factory import get_client
from heroku_pg.infrastructure.db_conn import get_database_url
from heroku_pg.infrastructure.pool import close_pool, get_pool

__all__ = [
    "AuthenticationError",
    "ConfigurationError",
    "ConnectError",
    "ConnectionParams",
    "HerokuPostgresError",
    "ParseError",
    "TlsHandshakeError",
    "TlsTrustPolicy",
    "TransportError",
    "TrustPolicyError",
    "build_trust_policy",
    "close_pool",
    "get_client",
    "get_database_url",
    "get_pool",
    "parse",
    "parse_url",
    "redact_url",
    "smoke_test",
]
