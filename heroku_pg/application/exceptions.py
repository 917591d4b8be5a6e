"""Exception hierarchy for establishing Heroku Postgres connections."""

from __future__ import annotations

from typing import Optional


class HerokuPostgresError(Exception):
    """Base exception for every failure raised by heroku_pg."""


class ParseError(HerokuPostgresError, ValueError):
    """Raised when a connection URL is malformed or uses an unsupported scheme."""


class ConfigurationError(HerokuPostgresError):
    """Raised when required configuration is missing or inconsistent."""


class TrustPolicyError(ConfigurationError, ValueError):
    """Raised when a TLS trust policy describes an unsupported combination."""


class ConnectError(HerokuPostgresError):
    """Base for failures while opening a connection to the server.

    Only the non-secret parts of the target are kept on the exception so it
    can be logged or shown to users as is.
    """

    kind = "connect"

    def __init__(
        self,
        message: str,
        *,
        host: Optional[str] = None,
        port: Optional[int] = None,
        database: Optional[str] = None,
        user: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.host = host
        self.port = port
        self.database = database
        self.user = user


class TransportError(ConnectError):
    """Raised when the TCP connection cannot be established."""

    kind = "transport"


class TlsHandshakeError(ConnectError):
    """Raised when an encrypted channel cannot be negotiated."""

    kind = "tls"


class AuthenticationError(ConnectError):
    """Raised when the server rejects the credentials or the database."""

    kind = "auth"


__all__ = [
    "HerokuPostgresError",
    "ParseError",
    "ConfigurationError",
    "TrustPolicyError",
    "ConnectError",
    "TransportError",
    "TlsHandshakeError",
    "AuthenticationError",
]
