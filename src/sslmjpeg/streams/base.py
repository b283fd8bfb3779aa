"""Base classes for frame streams and the byte sources they read from."""

import logging
from abc import ABC, abstractmethod
from typing import Optional

import httpx

from sslmjpeg.errors import TransportError
from sslmjpeg.models import Frame

logger = logging.getLogger(__name__)

SOI = b"\xff\xd8"  # JPEG start of image
EOI = b"\xff\xd9"  # JPEG end of image

DEFAULT_CHUNK_SIZE = 8192
DEFAULT_MAX_FRAME_SIZE = 2_000_000

# Room for boundary and part header lines on top of one frame
HEADER_HEADROOM = 4096


class ByteSource(ABC):
    """Readable byte transport owned by a frame stream."""

    @abstractmethod
    async def read(self) -> bytes:
        """Return the next chunk of bytes, or ``b""`` at end of stream."""

    @abstractmethod
    async def aclose(self) -> None:
        """Close the underlying transport."""


class ResponseByteSource(ByteSource):
    """Byte source over a streaming httpx response.

    Owns both the response and the client that produced it; closing the
    source closes the connection.
    """

    def __init__(
        self,
        response: httpx.Response,
        client: Optional[httpx.AsyncClient] = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ):
        self.response = response
        self.client = client
        self._chunks = response.aiter_bytes(chunk_size=chunk_size)
        self._closed = False

    @property
    def content_type(self) -> str:
        return self.response.headers.get("content-type", "")

    async def read(self) -> bytes:
        if self._closed:
            return b""
        try:
            return await self._chunks.__anext__()
        except StopAsyncIteration:
            return b""
        except httpx.HTTPError as e:
            raise TransportError(
                f"Error reading stream: {e}", url=str(self.response.url)
            ) from e

    async def aclose(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            await self.response.aclose()
        finally:
            if self.client is not None:
                await self.client.aclose()


class FrameStream(ABC):
    """Async sequence of JPEG frames read from an MJPEG body.

    Frame streams own their byte source exclusively. Closing the stream
    closes the source.

    Usage:
        async with stream:
            async for frame in stream:
                ...
    """

    def __init__(self, source: ByteSource, max_frame_size: int = DEFAULT_MAX_FRAME_SIZE):
        self.source = source
        self.max_frame_size = max_frame_size
        self.frame_count = 0
        self._buffer = bytearray()
        self._eof = False
        self._closed = False

    @classmethod
    def wrap(cls, source: ByteSource, **kwargs) -> "FrameStream":
        """Create a frame stream of this variant over ``source``."""
        return cls(source, **kwargs)

    @property
    def closed(self) -> bool:
        return self._closed

    @abstractmethod
    def _extract_frame(self) -> Optional[Frame]:
        """Remove and return one complete frame from the buffer, if any."""

    async def _fill(self) -> bool:
        """Read one chunk into the buffer. Returns False at end of stream."""
        if self._eof:
            return False
        chunk = await self.source.read()
        if not chunk:
            self._eof = True
            return False

        self._buffer.extend(chunk)

        # Before this chunk the buffer held no complete frame, so a frame of
        # up to max_frame_size plus its headers always fits within the limit
        limit = self.max_frame_size + HEADER_HEADROOM + len(chunk)
        if len(self._buffer) > limit:
            logger.warning(
                f"No complete frame within {self.max_frame_size} bytes; dropping oldest data"
            )
            del self._buffer[: len(self._buffer) - limit]
        return True

    async def read_frame(self) -> Optional[Frame]:
        """Return the next frame, or None once the stream has ended.

        Raises:
            TransportError: If the transport fails while reading
        """
        while not self._closed:
            frame = self._extract_frame()
            if frame is not None:
                self.frame_count += 1
                return frame
            if not await self._fill():
                return None
        return None

    def _next_index(self) -> int:
        return self.frame_count + 1

    def __aiter__(self):
        return self

    async def __anext__(self) -> Frame:
        frame = await self.read_frame()
        if frame is None:
            raise StopAsyncIteration
        return frame

    async def aclose(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._buffer.clear()
        await self.source.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()
