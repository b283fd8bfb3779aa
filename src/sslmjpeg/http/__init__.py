"""HTTP connection infrastructure for sslmjpeg (async-only).

Uses httpx directly for the transport.
"""

from sslmjpeg.http.auth import SessionBasicAuth
from sslmjpeg.http.client import ConnectionBuilder
from sslmjpeg.http.cookies import format_cookie, load_cookies_from_file, parse_cookie
from sslmjpeg.http.session import CookieStore, Credentials, Session, default_session
from sslmjpeg.http.trust import (
    AcceptAllHostnameVerifier,
    AcceptAllTrustManager,
    FingerprintTrustManager,
    HostnameVerifier,
    StrictHostnameVerifier,
    SystemTrustManager,
    TrustManager,
    TrustPolicy,
)

__all__ = [
    "AcceptAllHostnameVerifier",
    "AcceptAllTrustManager",
    "ConnectionBuilder",
    "CookieStore",
    "Credentials",
    "FingerprintTrustManager",
    "HostnameVerifier",
    "Session",
    "SessionBasicAuth",
    "StrictHostnameVerifier",
    "SystemTrustManager",
    "TrustManager",
    "TrustPolicy",
    "default_session",
    "format_cookie",
    "load_cookies_from_file",
    "parse_cookie",
]
