"""Configuration management for sslmjpeg."""

import os
from dataclasses import dataclass, field
from typing import List, Optional, Union

from sslmjpeg.errors import InvalidArgumentError
from sslmjpeg.models import Variant
from sslmjpeg.streams.base import DEFAULT_CHUNK_SIZE, DEFAULT_MAX_FRAME_SIZE

TRUST_MODES = ("insecure", "system", "fingerprint")


@dataclass
class Config:
    """Configuration for an MJPEG client.

    This class gathers everything needed to build a configured client:
    decoder variant, authentication, cookies, TLS trust and stream settings.
    """

    # Decoder
    variant: Union[Variant, str] = Variant.DEFAULT

    # Authentication
    username: Optional[str] = None
    password: Optional[str] = None

    # Cookies
    cookies: List[str] = field(default_factory=list)
    cookie_file: Optional[str] = None

    # Request shaping
    send_connection_close: bool = False

    # Connection settings
    timeout: Optional[float] = None  # seconds, None = unbounded

    # TLS trust
    trust: str = "insecure"  # insecure, system, fingerprint
    fingerprint: Optional[str] = None  # SHA-256 of the server certificate
    ca_file: Optional[str] = None

    # Stream reading
    read_chunk_size: int = DEFAULT_CHUNK_SIZE
    max_frame_size: int = DEFAULT_MAX_FRAME_SIZE

    # Caller-side retry settings (using tenacity); the client never retries
    max_retries: int = 1  # total attempts
    retry_wait_min: float = 1.0
    retry_wait_max: float = 10.0
    retry_multiplier: float = 2.0

    def __post_init__(self):
        """Normalise and validate configuration."""
        self.variant = Variant.coerce(self.variant)

        # Credentials from environment if not specified
        if not self.username:
            self.username = os.environ.get('SSLMJPEG_USERNAME')
        if not self.password:
            self.password = os.environ.get('SSLMJPEG_PASSWORD')

        self.trust = self.trust.lower()
        if self.trust not in TRUST_MODES:
            raise InvalidArgumentError(
                f"Invalid trust mode: {self.trust}. Available: {list(TRUST_MODES)}"
            )
        if self.trust == "fingerprint" and not self.fingerprint:
            raise InvalidArgumentError("trust mode 'fingerprint' requires a fingerprint")

        if self.timeout is not None and self.timeout <= 0:
            raise InvalidArgumentError(f"Invalid timeout: {self.timeout}")
        if self.read_chunk_size <= 0:
            raise InvalidArgumentError(f"Invalid read chunk size: {self.read_chunk_size}")
        if self.max_frame_size <= 0:
            raise InvalidArgumentError(f"Invalid max frame size: {self.max_frame_size}")
        if self.max_retries < 1:
            raise InvalidArgumentError(f"max_retries must be at least 1, got {self.max_retries}")

    @property
    def has_credentials(self) -> bool:
        return bool(self.username) and bool(self.password)
