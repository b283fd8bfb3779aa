"""Shared session state: the cookie store and the credential slot.

A ``Session`` is what several clients share when they should see the same
cookies and credentials. ``default_session()`` returns the process-wide
instance used by clients that are not given one explicitly.

Cookies are not scoped by domain: every stored cookie is sent to every host
the session connects to.
"""

import logging
import threading
from dataclasses import dataclass
from http.cookiejar import Cookie
from typing import List, Optional

from sslmjpeg.http.cookies import format_cookie, load_cookies_from_file, parse_cookie

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Credentials:
    """Username/password pair answered to authentication challenges."""

    username: str
    password: str

    def __repr__(self):
        return f"Credentials(username={self.username!r}, password='***')"


class CookieStore:
    """Ordered, append-only cookie collection guarded by a lock."""

    def __init__(self):
        self._lock = threading.Lock()
        self._cookies: List[Cookie] = []

    def add(self, cookie: Cookie) -> None:
        with self._lock:
            self._cookies.append(cookie)

    def add_string(self, cookie: str) -> Cookie:
        """Parse and append a cookie string.

        Raises:
            CookieParseError: If the string is malformed
        """
        parsed = parse_cookie(cookie)
        self.add(parsed)
        return parsed

    def load_file(self, cookie_file: str) -> int:
        """Append all cookies from a Netscape cookie file.

        Returns:
            Number of cookies loaded
        """
        cookies = load_cookies_from_file(cookie_file)
        with self._lock:
            self._cookies.extend(cookies)
        logger.debug(f"Loaded {len(cookies)} cookies from {cookie_file}")
        return len(cookies)

    def snapshot(self) -> List[Cookie]:
        """Return a copy of the stored cookies in addition order."""
        with self._lock:
            return list(self._cookies)

    def header_value(self) -> Optional[str]:
        """Return the ``Cookie`` header value, or None when empty."""
        cookies = self.snapshot()
        if not cookies:
            return None
        return ";".join(format_cookie(c) for c in cookies)

    def clear(self) -> None:
        with self._lock:
            self._cookies.clear()

    def __len__(self):
        with self._lock:
            return len(self._cookies)


class Session:
    """Cookies and credentials shared by every client bound to it.

    Credentials are a single slot: installing a new pair replaces the old one
    for all clients sharing the session (last write wins).
    """

    def __init__(self):
        self.cookies = CookieStore()
        self._credentials: Optional[Credentials] = None
        self._lock = threading.Lock()

    @property
    def credentials(self) -> Optional[Credentials]:
        with self._lock:
            return self._credentials

    def set_credentials(self, username: Optional[str], password: Optional[str]) -> bool:
        """Install a credential pair.

        Empty usernames or passwords are ignored.

        Returns:
            True if the pair was installed
        """
        if not username or not password:
            return False
        with self._lock:
            if self._credentials is not None and self._credentials.username != username:
                logger.warning(
                    f"Replacing credentials for '{self._credentials.username}' "
                    f"with '{username}' on shared session"
                )
            self._credentials = Credentials(username, password)
        return True

    def clear(self) -> None:
        """Drop all cookies and credentials."""
        self.cookies.clear()
        with self._lock:
            self._credentials = None


_default_session = Session()


def default_session() -> Session:
    """Return the process-wide session."""
    return _default_session
