"""
sslmjpeg - Open Motion-JPEG camera streams over TLS.

This package connects to HTTP multipart MJPEG sources such as IP cameras and
embedded servers, including devices with self-signed certificates, and hands
back an async stream of JPEG frames. TLS trust, cookies, credentials and the
frame decoding strategy are configurable.
"""

__version__ = "1.0.0"
__license__ = "AGPL-3.0"

from sslmjpeg.client import MjpegClient, new_client
from sslmjpeg.config import Config
from sslmjpeg.errors import (
    ConnectTimeoutError,
    CookieParseError,
    InvalidArgumentError,
    InvariantViolation,
    MjpegError,
    PeerVerificationError,
    SecurityInitError,
    TransportError,
)
from sslmjpeg.http.session import Session, default_session
from sslmjpeg.http.trust import TrustPolicy
from sslmjpeg.models import Frame, Variant
from sslmjpeg.pipeline import OpenHandle, OpenResult
from sslmjpeg.streams.base import FrameStream

__all__ = [
    "Config",
    "ConnectTimeoutError",
    "CookieParseError",
    "Frame",
    "FrameStream",
    "InvalidArgumentError",
    "InvariantViolation",
    "MjpegClient",
    "MjpegError",
    "OpenHandle",
    "OpenResult",
    "PeerVerificationError",
    "SecurityInitError",
    "Session",
    "TransportError",
    "TrustPolicy",
    "Variant",
    "__version__",
    "default_session",
    "new_client",
]
