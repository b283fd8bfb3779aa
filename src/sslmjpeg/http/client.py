"""Connection establishment using httpx directly (async-only).

``ConnectionBuilder`` turns a ``ConnectionRequest`` into an open
``FrameStream``: it builds the pinned TLS context from the trust policy,
shapes the request headers from the session, opens a streaming response,
checks the peer and hands the body to the variant's frame stream.

No retries happen here. See ``sslmjpeg.retry`` for caller-side retries.
"""

import logging
import ssl
from typing import Dict, Optional

import httpx

from sslmjpeg.errors import InvalidArgumentError, MjpegError, TransportError
from sslmjpeg.http.auth import SessionBasicAuth
from sslmjpeg.http.session import Session
from sslmjpeg.http.trust import TrustPolicy
from sslmjpeg.models import ConnectionRequest
from sslmjpeg.streams.base import (
    DEFAULT_CHUNK_SIZE,
    DEFAULT_MAX_FRAME_SIZE,
    FrameStream,
    ResponseByteSource,
)
from sslmjpeg.streams.registry import FrameStreamRegistry

logger = logging.getLogger(__name__)

# Redirect hops followed before giving up
MAX_REDIRECTS = 5


class ConnectionBuilder:
    """Opens one streaming connection per ``connect`` call.

    Attributes:
        session: Cookies and credentials applied to every request
        trust_policy: TLS trust manager and hostname verifier
        send_connection_close: Add ``Connection: close`` to requests
        transport: Optional httpx transport replacing the network
    """

    def __init__(
        self,
        session: Session,
        trust_policy: TrustPolicy,
        send_connection_close: bool = False,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        read_chunk_size: int = DEFAULT_CHUNK_SIZE,
        max_frame_size: int = DEFAULT_MAX_FRAME_SIZE,
    ):
        self.session = session
        self.trust_policy = trust_policy
        self.send_connection_close = send_connection_close
        self.transport = transport
        self.read_chunk_size = read_chunk_size
        self.max_frame_size = max_frame_size

    def load_connection_properties(self) -> Dict[str, str]:
        """Build the request headers from client state and the cookie store.

        Returns:
            Header name to value, in the order they are applied
        """
        headers = {"Cache-Control": "no-cache"}

        if self.send_connection_close:
            headers["Connection"] = "close"

        cookie = self.session.cookies.header_value()
        if cookie:
            headers["Cookie"] = cookie

        return headers

    def create_client(self, ssl_context: ssl.SSLContext) -> httpx.AsyncClient:
        """Create an async httpx client bound to one TLS context.

        The stream itself has no read timeout; the time to connect is bounded
        by the caller through ``open(url, timeout)``.
        """
        kwargs = dict(
            verify=ssl_context,
            auth=SessionBasicAuth(self.session),
            timeout=httpx.Timeout(None),
            follow_redirects=False,
        )
        if self.transport is not None:
            kwargs["transport"] = self.transport

        return httpx.AsyncClient(**kwargs)

    async def connect(self, request: ConnectionRequest) -> FrameStream:
        """Open ``request.url`` and wrap the body in a frame stream.

        Nothing is cached: every call performs a new connection attempt.
        Redirects are followed up to ``MAX_REDIRECTS`` hops, only to https
        URLs, and every hop carries freshly shaped headers.

        Args:
            request: Connection attempt description

        Returns:
            Frame stream owning the open connection

        Raises:
            InvalidArgumentError: If the URL is not an https URL
            SecurityInitError: If the TLS context cannot be built
            TransportError: On network, TLS peer, redirect or HTTP status failure
            InvariantViolation: If the variant has no frame stream
        """
        url = request.url
        self._validate_url(url)

        logger.info(f"Connecting to {url} (variant: {request.variant.value})")

        ssl_context = self.trust_policy.create_ssl_context()
        client = self.create_client(ssl_context)
        response = None

        try:
            target = url
            for _ in range(MAX_REDIRECTS + 1):
                http_request = client.build_request(
                    "GET", target, headers=self.load_connection_properties()
                )
                response = await client.send(http_request, stream=True)

                self._verify_peer(response)

                if not response.is_redirect:
                    break
                target = self._redirect_target(response)
                await response.aclose()
                logger.info(f"Following HTTP {response.status_code} redirect to {target}")
            else:
                raise TransportError(
                    f"Too many redirects opening {url} (limit {MAX_REDIRECTS})",
                    url=url,
                    status_code=response.status_code,
                )

            if response.status_code >= 300:
                raise TransportError(
                    f"Server returned HTTP {response.status_code} for {url}",
                    url=url,
                    status_code=response.status_code,
                )

            source = ResponseByteSource(response, client, chunk_size=self.read_chunk_size)
            stream = FrameStreamRegistry.wrap(
                request.variant, source, max_frame_size=self.max_frame_size
            )

        except MjpegError as e:
            await self._close(client, response)
            logger.error(f"Error during connection to {url}: {e}")
            raise

        except (httpx.HTTPError, ssl.SSLError, OSError) as e:
            await self._close(client, response)
            logger.error(f"Error during connection to {url}: {e}", exc_info=True)
            raise TransportError(f"Error connecting to {url}: {e}", url=url) from e

        except BaseException:
            # Cancelled or timed out while connecting
            await self._close(client, response)
            raise

        logger.info(
            f"Connected to {url}: HTTP {response.status_code} "
            f"({response.headers.get('content-type', 'unknown content type')})"
        )
        return stream

    def _validate_url(self, url: str) -> None:
        try:
            scheme = httpx.URL(url).scheme
        except (httpx.InvalidURL, TypeError) as e:
            raise InvalidArgumentError(f"Invalid URL {url!r}: {e}") from e
        if scheme != "https":
            raise InvalidArgumentError(f"Only https URLs are supported, got {url!r}")

    def _redirect_target(self, response: httpx.Response) -> str:
        """Resolve a redirect ``Location``, refusing to leave https."""
        location = response.headers["location"]
        try:
            target = response.url.join(location)
        except httpx.InvalidURL as e:
            raise TransportError(
                f"Invalid redirect location {location!r}: {e}",
                url=str(response.url),
                status_code=response.status_code,
            ) from e
        if target.scheme != "https":
            raise TransportError(
                f"Refusing redirect from {response.url} to non-https {target}",
                url=str(response.url),
                status_code=response.status_code,
            )
        return str(target)

    def _verify_peer(self, response: httpx.Response) -> None:
        stream = response.extensions.get("network_stream")
        ssl_object = stream.get_extra_info("ssl_object") if stream is not None else None
        certificate = ssl_object.getpeercert(binary_form=True) if ssl_object is not None else None

        self.trust_policy.verify_peer(response.url.host, certificate)

    async def _close(self, client: httpx.AsyncClient, response: Optional[httpx.Response]) -> None:
        if response is not None:
            await response.aclose()
        await client.aclose()
