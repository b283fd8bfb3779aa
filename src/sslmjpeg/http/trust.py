"""Pluggable TLS trust policies.

A ``TrustPolicy`` pairs a ``TrustManager`` (which certificates to accept)
with a ``HostnameVerifier`` (whether the certificate matches the host) and
pins the TLS protocol version. The default policy accepts any certificate,
which is what most IP cameras with self-signed certificates need. Use
``TrustPolicy.system()`` or ``TrustPolicy.pinned()`` for stricter checking.
"""

import hashlib
import hmac
import ssl
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional

from sslmjpeg.errors import InvalidArgumentError, PeerVerificationError, SecurityInitError


class TrustManager(ABC):
    """Decides which server certificates are trusted."""

    @abstractmethod
    def configure(self, context: ssl.SSLContext) -> None:
        """Set verification mode and trust anchors on a TLS context."""

    def check_server_trusted(self, certificate: Optional[bytes]) -> None:
        """Check the peer certificate after the handshake.

        Args:
            certificate: DER-encoded leaf certificate, or None if the
                transport exposes no TLS session

        Raises:
            PeerVerificationError: If the certificate is not trusted
        """


class HostnameVerifier(ABC):
    """Decides whether a server certificate matches the requested host."""

    # When True the TLS handshake itself enforces the hostname match
    uses_builtin_check = False

    @abstractmethod
    def verify(self, hostname: str, certificate: Optional[bytes]) -> bool:
        """Return True if the certificate is acceptable for hostname."""


class AcceptAllTrustManager(TrustManager):
    """Trust every certificate, including self-signed and expired ones."""

    def configure(self, context: ssl.SSLContext) -> None:
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE


class SystemTrustManager(TrustManager):
    """Verify the chain against the system store or a CA bundle."""

    def __init__(self, ca_file: Optional[str] = None):
        self.ca_file = ca_file

    def configure(self, context: ssl.SSLContext) -> None:
        context.verify_mode = ssl.CERT_REQUIRED
        if self.ca_file:
            context.load_verify_locations(cafile=self.ca_file)
        else:
            context.load_default_certs(ssl.Purpose.SERVER_AUTH)


class FingerprintTrustManager(TrustManager):
    """Trust exactly one certificate, identified by its SHA-256 fingerprint."""

    def __init__(self, fingerprint: str):
        normalized = fingerprint.replace(":", "").strip().lower()
        if len(normalized) != 64 or any(c not in "0123456789abcdef" for c in normalized):
            raise InvalidArgumentError(f"Invalid SHA-256 fingerprint: {fingerprint!r}")
        self.fingerprint = normalized

    def configure(self, context: ssl.SSLContext) -> None:
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE

    def check_server_trusted(self, certificate: Optional[bytes]) -> None:
        if certificate is None:
            raise PeerVerificationError("No peer certificate available to check fingerprint")
        actual = hashlib.sha256(certificate).hexdigest()
        if not hmac.compare_digest(actual, self.fingerprint):
            raise PeerVerificationError(
                f"Certificate fingerprint mismatch: expected {self.fingerprint}, got {actual}"
            )


class AcceptAllHostnameVerifier(HostnameVerifier):
    """Accept any hostname."""

    def verify(self, hostname: str, certificate: Optional[bytes]) -> bool:
        return True


class StrictHostnameVerifier(HostnameVerifier):
    """Require the certificate to match the host during the handshake.

    Only valid together with a trust manager that verifies certificates.
    """

    uses_builtin_check = True

    def verify(self, hostname: str, certificate: Optional[bytes]) -> bool:
        return True


@dataclass(frozen=True)
class TrustPolicy:
    """Trust manager, hostname verifier and pinned protocol version."""

    trust_manager: TrustManager = field(default_factory=AcceptAllTrustManager)
    hostname_verifier: HostnameVerifier = field(default_factory=AcceptAllHostnameVerifier)
    protocol: ssl.TLSVersion = ssl.TLSVersion.TLSv1_2

    @classmethod
    def insecure(cls) -> "TrustPolicy":
        return cls()

    @classmethod
    def system(cls, ca_file: Optional[str] = None) -> "TrustPolicy":
        return cls(
            trust_manager=SystemTrustManager(ca_file),
            hostname_verifier=StrictHostnameVerifier(),
        )

    @classmethod
    def pinned(cls, fingerprint: str) -> "TrustPolicy":
        return cls(trust_manager=FingerprintTrustManager(fingerprint))

    def create_ssl_context(self) -> ssl.SSLContext:
        """Build a client TLS context pinned to ``protocol``.

        Raises:
            SecurityInitError: If the context cannot be configured
        """
        try:
            context = ssl.SSLContext(ssl.PROTOCOL_TLS_CLIENT)
            context.check_hostname = False
            context.verify_mode = ssl.CERT_NONE
            context.minimum_version = self.protocol
            context.maximum_version = self.protocol

            self.trust_manager.configure(context)

            if self.hostname_verifier.uses_builtin_check:
                if context.verify_mode == ssl.CERT_NONE:
                    raise SecurityInitError(
                        "Hostname checking requires a trust manager that verifies certificates"
                    )
                context.check_hostname = True
        except SecurityInitError:
            raise
        except (ssl.SSLError, ValueError, OSError) as e:
            raise SecurityInitError(f"Failed to initialise TLS context: {e}") from e

        return context

    def verify_peer(self, hostname: str, certificate: Optional[bytes]) -> None:
        """Apply the post-handshake trust and hostname checks.

        Raises:
            PeerVerificationError: If the peer is rejected
        """
        self.trust_manager.check_server_trusted(certificate)
        if not self.hostname_verifier.verify(hostname, certificate):
            raise PeerVerificationError(f"Hostname '{hostname}' rejected by verifier")
