"""TLS trust policy for connections to Heroku Postgres.

Heroku requires an encrypted connection but serves certificates that do not
chain to a public root and whose subject does not match the host name in
``DATABASE_URL``. Verifying either would make every connection fail, so the
default policy encrypts without verifying. Encryption itself is never
optional.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional

from heroku_pg.application.exceptions import TrustPolicyError

# libpq sslmode for each (verify chain, verify hostname) pair. libpq has no
# mode that checks the host name without checking the chain.
_SSLMODES = {
    (False, False): "require",
    (True, False): "verify-ca",
    (True, True): "verify-full",
}

# With sslmode=require libpq still loads ~/.postgresql/root.crt or PGSSLROOTCERT when
# present and then checks the chain. Pointing sslrootcert at a file that cannot
# exist keeps the chain unchecked on such hosts.
NO_ROOT_CERT = "/nonexistent/heroku_pg/root.crt"


@dataclass(frozen=True)
class TlsTrustPolicy:
    """How the server certificate is treated during the TLS handshake."""

    encryption_required: bool = True
    verify_certificate_chain: bool = False
    verify_hostname: bool = False
    root_cert: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.encryption_required:
            raise TrustPolicyError("Plaintext connections are not supported; encryption_required must be True")
        if self.verify_hostname and not self.verify_certificate_chain:
            raise TrustPolicyError("Hostname verification requires certificate chain verification")
        if self.root_cert and not self.verify_certificate_chain:
            raise TrustPolicyError("root_cert is only used with certificate chain verification")

    @property
    def sslmode(self) -> str:
        return _SSLMODES[(self.verify_certificate_chain, self.verify_hostname)]

    def libpq_options(self) -> Dict[str, str]:
        """Connection options that make libpq enforce this policy."""
        options = {"sslmode": self.sslmode}
        if not self.verify_certificate_chain:
            options["sslrootcert"] = NO_ROOT_CERT
        elif self.root_cert:
            options["sslrootcert"] = self.root_cert
        return options


def build_trust_policy() -> TlsTrustPolicy:
    """Return the Heroku policy: always encrypt, verify neither chain nor host."""
    return TlsTrustPolicy(
        encryption_required=True,
        verify_certificate_chain=False,
        verify_hostname=False,
    )


__all__ = ["NO_ROOT_CERT", "TlsTrustPolicy", "build_trust_policy"]
