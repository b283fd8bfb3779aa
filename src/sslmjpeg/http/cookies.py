"""Cookie parsing utilities.

Supports single cookie header values (``sid=abc123; Path=/``) added one at a
time and the Netscape cookie file format used by browsers and tools like curl.
Both produce ``http.cookiejar.Cookie`` objects.
"""

import re
from http.cookiejar import Cookie
from pathlib import Path
from typing import Dict, List, Optional

from sslmjpeg.errors import CookieParseError

# RFC 7230 token characters
_TOKEN_RE = re.compile(r"^[!#$%&'*+\-.^_`|~0-9A-Za-z]+$")

# RFC 6265 cookie-value: printable ASCII except whitespace, DQUOTE, comma,
# semicolon and backslash, optionally wrapped in double quotes
_OCTETS = r"[\x21\x23-\x2b\x2d-\x3a\x3c-\x5b\x5d-\x7e]*"
_VALUE_RE = re.compile(rf'^(?:"{_OCTETS}"|{_OCTETS})$')

_PREFIX_RE = re.compile(r"^set-cookie2?:", re.IGNORECASE)

# Attribute names that cannot be used as a cookie name
_RESERVED_NAMES = {
    "comment", "commenturl", "discard", "domain", "expires",
    "httponly", "max-age", "path", "port", "secure", "version",
}


def _make_cookie(
    name: str,
    value: str,
    domain: str = "",
    path: str = "/",
    secure: bool = False,
    expires: Optional[int] = None,
    rest: Optional[Dict[str, str]] = None,
) -> Cookie:
    return Cookie(
        version=0,
        name=name,
        value=value,
        port=None,
        port_specified=False,
        domain=domain,
        domain_specified=bool(domain),
        domain_initial_dot=domain.startswith('.'),
        path=path,
        path_specified=path != "/",
        secure=secure,
        expires=expires,
        discard=expires is None,
        comment=None,
        comment_url=None,
        rest=rest or {},
        rfc2109=False,
    )


def parse_cookie(cookie: str) -> Cookie:
    """Parse a single cookie header value.

    Only the first ``name=value`` pair names the cookie; the remaining
    ``;``-separated segments are treated as attributes.

    Args:
        cookie: Cookie string, e.g. ``"sid=abc123; Path=/"``. A leading
            ``Set-Cookie:`` is tolerated.

    Returns:
        Parsed Cookie object

    Raises:
        CookieParseError: If the string has no valid ``name=value`` pair or
            the value holds characters a ``Cookie`` header cannot carry
    """
    text = _PREFIX_RE.sub("", cookie.strip(), count=1).strip()
    if not text:
        raise CookieParseError(cookie, "empty cookie string")

    first, *attributes = text.split(';')
    if '=' not in first:
        raise CookieParseError(cookie, "missing '=' between name and value")

    name, value = first.split('=', 1)
    name = name.strip()
    value = value.strip()

    if not name:
        raise CookieParseError(cookie, "empty cookie name")
    if not _TOKEN_RE.match(name) or name.startswith('$'):
        raise CookieParseError(cookie, f"illegal cookie name {name!r}")
    if name.lower() in _RESERVED_NAMES:
        raise CookieParseError(cookie, f"reserved cookie name {name!r}")
    if not _VALUE_RE.match(value):
        raise CookieParseError(cookie, f"illegal characters in cookie value {value!r}")

    domain = ""
    path = "/"
    secure = False
    expires = None
    rest: Dict[str, str] = {}

    for attribute in attributes:
        attribute = attribute.strip()
        if not attribute:
            continue
        key, _, attr_value = attribute.partition('=')
        key = key.strip().lower()
        attr_value = attr_value.strip()

        if key == "domain":
            domain = attr_value
        elif key == "path":
            path = attr_value or "/"
        elif key == "secure":
            secure = True
        elif key == "max-age":
            try:
                expires = int(attr_value)
            except ValueError:
                raise CookieParseError(cookie, f"invalid Max-Age {attr_value!r}")
        else:
            rest[key] = attr_value

    return _make_cookie(name, value, domain, path, secure, expires, rest)


def format_cookie(cookie: Cookie) -> str:
    """Render a cookie as it appears in a ``Cookie`` request header."""
    if cookie.value is None:
        return cookie.name
    return f"{cookie.name}={cookie.value}"


def load_cookies_from_file(cookie_file: str) -> List[Cookie]:
    """Load cookies from Netscape cookie file format.

    The Netscape cookie format is:
    # domain flag path secure expiration name value

    Malformed lines and cookies that cannot be sent in a request header
    are skipped.

    Args:
        cookie_file: Path to cookie file

    Returns:
        List of Cookie objects, in file order

    Example file format:
        # Netscape HTTP Cookie File
        camera.local    FALSE    /    TRUE    0    sid    abc123
    """
    cookies = []
    cookie_path = Path(cookie_file)

    if not cookie_path.exists():
        return cookies

    with open(cookie_path, 'r') as f:
        for line in f:
            line = line.strip()

            # Skip comments and empty lines
            if not line or line.startswith('#'):
                continue

            parts = line.split('\t')
            if len(parts) < 7:
                continue

            domain, _flag, path, secure, expiration, name, value = parts[:7]
            if not _TOKEN_RE.match(name) or not _VALUE_RE.match(value):
                continue

            try:
                expires = int(expiration) or None
            except ValueError:
                expires = None

            cookies.append(
                _make_cookie(
                    name=name,
                    value=value,
                    domain=domain,
                    path=path,
                    secure=secure.upper() == 'TRUE',
                    expires=expires,
                )
            )

    return cookies
