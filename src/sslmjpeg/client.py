"""Fluent MJPEG client.

Example:
    >>> import asyncio
    >>> from sslmjpeg import new_client
    >>> async def show():
    ...     client = new_client().add_cookie("sid=abc123")
    ...     async with await client.open("https://camera.local/video", 5) as stream:
    ...         async for frame in stream:
    ...             print(frame.index, len(frame.data))
    >>> asyncio.run(show())
"""

import logging
from typing import Callable, Dict, Optional, Union

import httpx

from sslmjpeg.config import Config
from sslmjpeg.errors import InvalidArgumentError
from sslmjpeg.http.client import ConnectionBuilder
from sslmjpeg.http.session import Session, default_session
from sslmjpeg.http.trust import TrustPolicy
from sslmjpeg.models import ConnectionRequest, Variant
from sslmjpeg.pipeline import OpenHandle, OpenResult, open_stream, submit
from sslmjpeg.streams.base import DEFAULT_CHUNK_SIZE, DEFAULT_MAX_FRAME_SIZE, FrameStream

logger = logging.getLogger(__name__)


class MjpegClient:
    """Configures and opens MJPEG streams over TLS.

    The variant is fixed at construction. Cookies and credentials live in
    ``session``, which defaults to the process-wide session shared by every
    client created without one. Configuration methods return the client for
    chaining and are not safe to call concurrently; configure the client
    before issuing concurrent ``open`` calls.
    """

    def __init__(
        self,
        variant: Union[Variant, str],
        session: Optional[Session] = None,
        trust_policy: Optional[TrustPolicy] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._variant = Variant.coerce(variant)
        self.session = session if session is not None else default_session()
        self.trust_policy = trust_policy or TrustPolicy()
        self.transport = transport
        self.send_connection_close = False
        self.read_chunk_size = DEFAULT_CHUNK_SIZE
        self.max_frame_size = DEFAULT_MAX_FRAME_SIZE

    @property
    def variant(self) -> Variant:
        return self._variant

    @classmethod
    def from_config(
        cls,
        config: Config,
        session: Optional[Session] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "MjpegClient":
        """Create a configured client from a Config object.

        Args:
            config: Configuration object
            session: Session to bind to (defaults to the process-wide session)
            transport: Optional httpx transport replacing the network

        Raises:
            InvalidArgumentError: On invalid trust settings
            CookieParseError: If a configured cookie is malformed
        """
        if config.trust == "system":
            trust_policy = TrustPolicy.system(config.ca_file)
        elif config.trust == "fingerprint":
            trust_policy = TrustPolicy.pinned(config.fingerprint)
        else:
            trust_policy = TrustPolicy.insecure()

        client = cls(config.variant, session=session, trust_policy=trust_policy, transport=transport)
        client.read_chunk_size = config.read_chunk_size
        client.max_frame_size = config.max_frame_size

        client.with_credentials(config.username, config.password)
        for cookie in config.cookies:
            client.add_cookie(cookie)
        if config.cookie_file:
            client.load_cookie_file(config.cookie_file)
        if config.send_connection_close:
            client.with_connection_close_header()

        return client

    def with_credentials(self, username: Optional[str], password: Optional[str]) -> "MjpegClient":
        """Configure authentication.

        Installs the pair on the session, replacing any previous pair for
        every client sharing it. A no-op if either value is empty.
        """
        if self.session.set_credentials(username, password):
            logger.debug(f"Installed credentials for '{username}'")
        return self

    def add_cookie(self, cookie: Optional[str]) -> "MjpegClient":
        """Add a cookie sent with every request of the session.

        Raises:
            CookieParseError: If the cookie string is malformed
        """
        if cookie:
            self.session.cookies.add_string(cookie)
        return self

    def load_cookie_file(self, cookie_file: str) -> "MjpegClient":
        """Add all cookies from a Netscape cookie file."""
        self.session.cookies.load_file(cookie_file)
        return self

    def with_connection_close_header(self) -> "MjpegClient":
        """Send ``Connection: close`` with every request.

        Works around servers that answer reused persistent connections with
        malformed status lines.
        """
        self.send_connection_close = True
        return self

    def with_trust_policy(self, trust_policy: TrustPolicy) -> "MjpegClient":
        self.trust_policy = trust_policy
        return self

    def builder(self) -> ConnectionBuilder:
        """Return a connection builder snapshotting this client's settings."""
        return ConnectionBuilder(
            session=self.session,
            trust_policy=self.trust_policy,
            send_connection_close=self.send_connection_close,
            transport=self.transport,
            read_chunk_size=self.read_chunk_size,
            max_frame_size=self.max_frame_size,
        )

    def load_connection_properties(self) -> Dict[str, str]:
        """Return the headers the next request would carry."""
        return self.builder().load_connection_properties()

    def _request(self, url: str, timeout: Optional[float]) -> ConnectionRequest:
        if timeout is not None and timeout <= 0:
            raise InvalidArgumentError(f"Invalid timeout: {timeout}")
        return ConnectionRequest(url=url, variant=self._variant, timeout=timeout)

    async def connect(self, url: str) -> FrameStream:
        """Open ``url`` in the current task, without timeout."""
        return await self.builder().connect(self._request(url, None))

    async def open(self, url: str, timeout: Optional[float] = None) -> FrameStream:
        """Connect to an MJPEG stream.

        The connection is established in a background task.

        Args:
            url: https URL of the stream
            timeout: Optional bound in seconds on the connection attempt

        Returns:
            Open frame stream; close it to release the connection

        Raises:
            ConnectTimeoutError: If timeout expired before the stream opened
            MjpegError: Any other failure
        """
        return await open_stream(self.builder(), self._request(url, timeout))

    def submit(
        self,
        url: str,
        timeout: Optional[float] = None,
        callback: Optional[Callable[[OpenResult], None]] = None,
    ) -> OpenHandle:
        """Start opening ``url`` in the background.

        ``callback`` receives the OpenResult on the running event loop.
        Must be called from a coroutine or loop callback.
        """
        return submit(self.builder(), self._request(url, timeout), callback)


def new_client(
    variant: Union[Variant, str] = Variant.DEFAULT,
    *,
    session: Optional[Session] = None,
    trust_policy: Optional[TrustPolicy] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> MjpegClient:
    """Create a client for the given decoder variant.

    Raises:
        InvalidArgumentError: If variant is None or unknown
    """
    return MjpegClient(variant, session=session, trust_policy=trust_policy, transport=transport)
