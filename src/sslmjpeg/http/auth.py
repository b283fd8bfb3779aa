"""Challenge-driven Basic authentication backed by a Session."""

import logging
from base64 import b64encode

import httpx

from sslmjpeg.http.session import Session

logger = logging.getLogger(__name__)


class SessionBasicAuth(httpx.Auth):
    """Answer a ``401`` Basic challenge with the session's credentials.

    The request is first sent without credentials. Credentials are looked up
    when the challenge arrives, so the pair installed most recently on the
    session is the one used.
    """

    def __init__(self, session: Session):
        self.session = session

    def auth_flow(self, request: httpx.Request):
        response = yield request

        if response.status_code != 401:
            return

        credentials = self.session.credentials
        if credentials is None:
            return

        challenge = response.headers.get("WWW-Authenticate", "")
        scheme = challenge.split(" ", 1)[0].lower()
        if scheme != "basic":
            logger.warning(f"Unsupported authentication scheme '{scheme}' from {request.url.host}")
            return

        token = b64encode(f"{credentials.username}:{credentials.password}".encode()).decode()
        request.headers["Authorization"] = f"Basic {token}"
        yield request
