"""Open an encrypted psycopg connection from a Heroku ``DATABASE_URL``.

The URL is parsed locally, the TLS trust policy is turned into libpq options
and psycopg performs the TCP connect, TLS handshake and authentication. libpq
failures are mapped onto :class:`TransportError`, :class:`TlsHandshakeError`
and :class:`AuthenticationError` so callers can react to each separately.
"""
from __future__ import annotations

import math
import re
from typing import Any, Dict, Optional

import psycopg
from psycopg.conninfo import make_conninfo

from heroku_pg.application.exceptions import (
    AuthenticationError,
    ConnectError,
    ParseError,
    TlsHandshakeError,
    TransportError,
)
from heroku_pg.config import get_env
from heroku_pg.domain.connection_params import ConnectionParams, parse
from heroku_pg.domain.trust_policy import TlsTrustPolicy, build_trust_policy
from heroku_pg.infrastructure import log_utils

CONNECT_TIMEOUT_SETTING = "HEROKU_PG_CONNECT_TIMEOUT"
DEFAULT_CONNECT_TIMEOUT = 10.0
# libpq treats anything below two seconds as two.
MIN_CONNECT_TIMEOUT = 2

# URL query options that would change how TLS is negotiated. The trust policy
# always decides these.
TLS_QUERY_OPTIONS = frozenset(
    {
        "sslmode",
        "requiressl",
        "sslrootcert",
        "sslcert",
        "sslkey",
        "sslcrl",
        "sslcrldir",
        "sslpassword",
        "sslsni",
        "sslnegotiation",
        "sslcertmode",
    }
)
# Query options that would shadow what the URL itself says.
RESERVED_QUERY_OPTIONS = frozenset({"host", "hostaddr", "port", "user", "password", "dbname"})

_AUTH_MESSAGES = (
    "password authentication failed",
    "authentication failed",
    "no password supplied",
    "no pg_hba.conf entry",
    "pg_hba.conf rejects",
    "permission denied for database",
)
_AUTH_PATTERN = re.compile(r'(role|database) "[^"]*" does not exist')
_TLS_MESSAGES = (
    "ssl error",
    "ssl syscall",
    "does not support ssl",
    "ssl connection has been closed",
    "could not establish ssl",
    "ssl negotiation",
    "ssl routines",
    "tlsv1",
    "wrong version number",
    "unsupported protocol",
    "certificate verify failed",
    "server certificate",
    "root certificate file",
)


def _resolve_connect_timeout(params: ConnectionParams, connect_timeout: Optional[float]) -> Optional[int]:
    if connect_timeout is None:
        if "connect_timeout" in params.options:
            return None
        connect_timeout = get_env(CONNECT_TIMEOUT_SETTING, default=DEFAULT_CONNECT_TIMEOUT)
    if connect_timeout is None or float(connect_timeout) <= 0:
        return None
    return max(MIN_CONNECT_TIMEOUT, math.ceil(float(connect_timeout)))


def build_conninfo(
    params: ConnectionParams,
    policy: TlsTrustPolicy,
    *,
    connect_timeout: Optional[float] = None,
) -> str:
    """Return the libpq conninfo string for ``params`` under ``policy``.

    TLS options and options shadowing URL components found in the query
    string are dropped with a warning. Unknown options raise
    :class:`ParseError`.
    """

    options: Dict[str, Any] = {}
    ignored_tls = []
    ignored_reserved = []
    for key, value in params.query:
        if key in TLS_QUERY_OPTIONS:
            ignored_tls.append(key)
        elif key in RESERVED_QUERY_OPTIONS:
            ignored_reserved.append(key)
        elif key == "connect_timeout" and not _is_integer(value):
            raise ParseError(f"Invalid connect_timeout {value!r} in the URL for {params.describe()}")
        else:
            options[key] = value

    if ignored_tls:
        log_utils.warn(
            f"Ignoring TLS option(s) {', '.join(sorted(set(ignored_tls)))} in the URL for "
            f"{params.describe()}; sslmode={policy.sslmode} is enforced."
        )
    if ignored_reserved:
        log_utils.warn(
            f"Ignoring query option(s) {', '.join(sorted(set(ignored_reserved)))} in the URL for "
            f"{params.describe()}; the URL components take precedence."
        )

    options.update(
        host=params.host,
        port=params.port,
        user=params.user,
        password=params.password.get_secret_value(),
        dbname=params.database,
    )
    timeout = _resolve_connect_timeout(params, connect_timeout)
    if timeout is not None:
        options["connect_timeout"] = timeout
    options.update(policy.libpq_options())

    try:
        return make_conninfo(**options)
    except psycopg.ProgrammingError as exc:
        raise ParseError(f"Invalid connection option in the URL for {params.describe()}: {exc}") from None


def _is_integer(value: str) -> bool:
    try:
        int(value)
    except ValueError:
        return False
    return True


def _first_line(exc: BaseException) -> str:
    message = str(exc).strip()
    if not message:
        return exc.__class__.__name__
    return message.splitlines()[0]


def _error_context(params: ConnectionParams) -> Dict[str, Any]:
    return {
        "host": params.host,
        "port": params.port,
        "database": params.database,
        "user": params.user,
    }


def classify_connect_error(exc: psycopg.Error, params: ConnectionParams) -> ConnectError:
    """Map a psycopg connection failure onto the heroku_pg error taxonomy."""

    context = _error_context(params)
    message = str(exc).lower()
    sqlstate = getattr(exc, "sqlstate", None) or ""
    target = params.describe()

    if (
        sqlstate.startswith("28")
        or sqlstate == "3D000"
        or any(fragment in message for fragment in _AUTH_MESSAGES)
        or _AUTH_PATTERN.search(message)
    ):
        return AuthenticationError(f"Server rejected the login for {target}: {_first_line(exc)}", **context)
    if any(fragment in message for fragment in _TLS_MESSAGES):
        return TlsHandshakeError(f"TLS negotiation with {target} failed: {_first_line(exc)}", **context)
    return TransportError(f"Could not reach {target}: {_first_line(exc)}", **context)


def ensure_encrypted(conn: psycopg.Connection, params: ConnectionParams) -> None:
    """Close ``conn`` and raise unless it runs over TLS."""

    if conn.pgconn.ssl_in_use:
        return
    conn.close()
    raise TlsHandshakeError(
        f"Connection to {params.describe()} was established without TLS",
        **_error_context(params),
    )


def get_client(
    url: str,
    *,
    policy: Optional[TlsTrustPolicy] = None,
    connect_timeout: Optional[float] = None,
) -> psycopg.Connection:
    """Get a working, encrypted client from a postgres URL.

    The returned connection belongs to the caller; use it as a context
    manager (``with get_client(url) as conn: ...``) so the socket is released
    on every exit path. ``policy`` defaults to :func:`build_trust_policy`.
    """

    params = parse(url)
    policy = policy or build_trust_policy()
    conninfo = build_conninfo(params, policy, connect_timeout=connect_timeout)

    log_utils.debug(f"Connecting to {params.describe()} with sslmode={policy.sslmode}.")
    try:
        conn = psycopg.connect(conninfo)
    except psycopg.Error as exc:
        # Rejected by libpq before any socket was opened: a bad URL option.
        if isinstance(exc, psycopg.ProgrammingError) and exc.sqlstate is None:
            raise ParseError(f"Invalid connection option in the URL for {params.describe()}: {_first_line(exc)}") from None
        error = classify_connect_error(exc, params)
        log_utils.warn(f"Connection to {params.describe()} failed ({error.kind}): {_first_line(exc)}")
        raise error from exc

    ensure_encrypted(conn, params)
    log_utils.info(f"Connected to {params.describe()} over TLS.")
    return conn


__all__ = [
    "build_conninfo",
    "classify_connect_error",
    "ensure_encrypted",
    "get_client",
]
