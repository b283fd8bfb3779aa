"""Shared fixtures: fake JPEG frames, multipart bodies and transport doubles."""

from __future__ import annotations

from typing import Callable, List

import httpx
import pytest

from sslmjpeg.http.session import Session
from sslmjpeg.streams.base import ByteSource

BOUNDARY = "myboundary"


def jpeg(payload: bytes) -> bytes:
    return b"\xff\xd8" + payload + b"\xff\xd9"


def multipart_body(frames: List[bytes], content_length: bool = True) -> bytes:
    body = b""
    for data in frames:
        body += f"--{BOUNDARY}\r\nContent-Type: image/jpeg\r\n".encode()
        if content_length:
            body += f"Content-Length: {len(data)}\r\n".encode()
        body += b"\r\n" + data + b"\r\n"
    return body


class RecordingSource(ByteSource):
    """Byte source over fixed chunks that records close calls."""

    def __init__(self, chunks: List[bytes]):
        self.chunks = list(chunks)
        self.close_calls = 0

    async def read(self) -> bytes:
        if not self.chunks:
            return b""
        return self.chunks.pop(0)

    async def aclose(self) -> None:
        self.close_calls += 1


class RecordingStream(httpx.AsyncByteStream):
    """Response body that records whether the connection was closed."""

    def __init__(self, chunks: List[bytes]):
        self.chunks = list(chunks)
        self.closed = False

    async def __aiter__(self):
        for chunk in self.chunks:
            yield chunk

    async def aclose(self) -> None:
        self.closed = True


class FakeSSLObject:
    def __init__(self, certificate: bytes):
        self.certificate = certificate

    def getpeercert(self, binary_form: bool = False):
        return self.certificate if binary_form else {}


class FakeNetworkStream:
    def __init__(self, certificate: bytes):
        self.ssl_object = FakeSSLObject(certificate)

    def get_extra_info(self, info: str):
        if info == "ssl_object":
            return self.ssl_object
        return None


@pytest.fixture
def frames() -> List[bytes]:
    return [jpeg(b"frame-one"), jpeg(b"frame-two" * 50), jpeg(b"frame-three")]


@pytest.fixture
def session() -> Session:
    return Session()


@pytest.fixture
def mjpeg_transport(frames) -> Callable[..., httpx.MockTransport]:
    """Factory for a mock camera serving ``frames`` and recording requests."""

    def factory(requests: list, stream: RecordingStream | None = None) -> httpx.MockTransport:
        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            body = stream if stream is not None else RecordingStream([multipart_body(frames)])
            return httpx.Response(
                200,
                headers={"Content-Type": f"multipart/x-mixed-replace; boundary={BOUNDARY}"},
                stream=body,
            )

        return httpx.MockTransport(handler)

    return factory
