from __future__ import annotations

import asyncio
import hashlib
from base64 import b64encode

import httpx
import pytest

from conftest import BOUNDARY, FakeNetworkStream, RecordingStream, multipart_body
from sslmjpeg import new_client
from sslmjpeg.errors import (
    CookieParseError,
    InvalidArgumentError,
    PeerVerificationError,
    SecurityInitError,
    TransportError,
)
from sslmjpeg.http.client import MAX_REDIRECTS
from sslmjpeg.http.session import Session
from sslmjpeg.http.trust import TrustPolicy
from sslmjpeg.models import Variant
from sslmjpeg.streams.base import ResponseByteSource
from sslmjpeg.streams.default import DefaultFrameStream
from sslmjpeg.streams.native import NativeFrameStream

URL = "https://camera.local/video"


def test_shaping_defaults_to_cache_control_only(session: Session) -> None:
    assert new_client(session=session).load_connection_properties() == {"Cache-Control": "no-cache"}


def test_connection_close_header_is_opt_in(session: Session) -> None:
    client = new_client(session=session)
    assert "Connection" not in client.load_connection_properties()
    client.with_connection_close_header()
    assert client.load_connection_properties() == {
        "Cache-Control": "no-cache",
        "Connection": "close",
    }


def test_shaping_reflects_cookies_added_later(session: Session) -> None:
    client = new_client(session=session).add_cookie("sid=abc123")
    assert client.load_connection_properties()["Cookie"] == "sid=abc123"
    client.add_cookie("lang=en")
    assert client.load_connection_properties()["Cookie"] == "sid=abc123;lang=en"


def test_request_carries_cookie_and_cache_control(session: Session, mjpeg_transport, frames) -> None:
    requests = []
    client = new_client(session=session, transport=mjpeg_transport(requests))
    client.add_cookie("sid=abc123")

    async def scenario():
        async with await client.open(URL) as stream:
            return await stream.read_frame()

    frame = asyncio.run(scenario())

    assert len(requests) == 1
    assert requests[0].headers["Cookie"] == "sid=abc123"
    assert requests[0].headers["Cache-Control"] == "no-cache"
    assert requests[0].headers.get("Connection") != "close"
    assert frame.data == frames[0]


def test_request_carries_connection_close_when_configured(session: Session, mjpeg_transport) -> None:
    requests = []
    client = new_client(session=session, transport=mjpeg_transport(requests))
    client.with_connection_close_header()

    async def scenario():
        stream = await client.open(URL)
        await stream.aclose()

    asyncio.run(scenario())
    assert requests[0].headers["Connection"] == "close"


def test_connection_refused_is_transport_error_after_one_attempt(session: Session) -> None:
    attempts = []

    def refuse(request: httpx.Request) -> httpx.Response:
        attempts.append(request)
        raise httpx.ConnectError("[Errno 111] Connection refused", request=request)

    client = new_client(session=session, transport=httpx.MockTransport(refuse))
    client.add_cookie("sid=abc123")

    with pytest.raises(TransportError) as e:
        asyncio.run(client.open(URL))

    assert len(attempts) == 1
    assert attempts[0].headers["Cookie"] == "sid=abc123"
    assert e.value.url == URL
    assert isinstance(e.value.__cause__, httpx.ConnectError)


@pytest.mark.parametrize("variant,stream_class", [
    (Variant.DEFAULT, DefaultFrameStream),
    (Variant.NATIVE, NativeFrameStream),
])
def test_variant_selects_frame_stream(session: Session, mjpeg_transport, frames, variant, stream_class) -> None:
    client = new_client(variant, session=session, transport=mjpeg_transport([]))

    async def scenario():
        async with await client.open(URL) as stream:
            return stream, [frame.data async for frame in stream]

    stream, data = asyncio.run(scenario())
    assert type(stream) is stream_class
    assert data == frames


def test_closing_frame_stream_closes_the_connection(session: Session, mjpeg_transport, frames) -> None:
    body = RecordingStream([multipart_body(frames)])
    client = new_client(session=session, transport=mjpeg_transport([], stream=body))

    async def scenario():
        stream = await client.open(URL)
        assert isinstance(stream.source, ResponseByteSource)
        assert stream.source.content_type.startswith("multipart/x-mixed-replace")
        assert not body.closed
        await stream.aclose()
        return stream

    stream = asyncio.run(scenario())
    assert body.closed
    assert stream.source.client.is_closed


def test_each_connect_is_an_independent_attempt(session: Session, mjpeg_transport) -> None:
    requests = []
    client = new_client(session=session, transport=mjpeg_transport(requests))

    async def scenario():
        pending = client.connect(URL)
        await asyncio.sleep(0)
        assert requests == []
        first = await pending
        second = await client.connect(URL)
        await first.aclose()
        await second.aclose()
        return first, second

    first, second = asyncio.run(scenario())
    assert len(requests) == 2
    assert first is not second


def test_http_error_status_is_transport_error_and_closes_response(session: Session) -> None:
    body = RecordingStream([b"not found"])

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404, stream=body)

    client = new_client(session=session, transport=httpx.MockTransport(handler))

    with pytest.raises(TransportError) as e:
        asyncio.run(client.open(URL))

    assert e.value.status_code == 404
    assert body.closed


def test_basic_credentials_answer_challenge(session: Session, frames) -> None:
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.headers.get("Authorization"))
        if "Authorization" not in request.headers:
            return httpx.Response(401, headers={"WWW-Authenticate": 'Basic realm="camera"'})
        return httpx.Response(
            200,
            headers={"Content-Type": f"multipart/x-mixed-replace; boundary={BOUNDARY}"},
            stream=RecordingStream([multipart_body(frames)]),
        )

    client = new_client(session=session, transport=httpx.MockTransport(handler))
    client.with_credentials("admin", "s3cret")

    async def scenario():
        stream = await client.open(URL)
        await stream.aclose()

    asyncio.run(scenario())

    token = b64encode(b"admin:s3cret").decode()
    assert seen == [None, f"Basic {token}"]


def test_unanswered_challenge_is_transport_error(session: Session) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, headers={"WWW-Authenticate": 'Basic realm="camera"'})

    client = new_client(session=session, transport=httpx.MockTransport(handler))

    with pytest.raises(TransportError) as e:
        asyncio.run(client.open(URL))
    assert e.value.status_code == 401


def test_non_https_url_fails_before_any_io(session: Session) -> None:
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200)

    client = new_client(session=session, transport=httpx.MockTransport(handler))

    for url in ("http://camera.local/video", "camera.local/video"):
        with pytest.raises(InvalidArgumentError):
            asyncio.run(client.open(url))
    assert requests == []


def test_security_init_failure_is_reported_before_any_io(session: Session, mjpeg_transport, tmp_path) -> None:
    requests = []
    client = new_client(
        session=session,
        trust_policy=TrustPolicy.system(str(tmp_path / "missing.pem")),
        transport=mjpeg_transport(requests),
    )

    with pytest.raises(SecurityInitError):
        asyncio.run(client.open(URL))
    assert requests == []


def test_pinned_certificate_is_checked_on_the_live_connection(session: Session, frames) -> None:
    certificate = b"camera-der-certificate"
    body = RecordingStream([multipart_body(frames)])

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            stream=body,
            extensions={"network_stream": FakeNetworkStream(certificate)},
        )

    transport = httpx.MockTransport(handler)

    trusted = new_client(
        session=session,
        trust_policy=TrustPolicy.pinned(hashlib.sha256(certificate).hexdigest()),
        transport=transport,
    )

    async def open_and_close():
        stream = await trusted.open(URL)
        await stream.aclose()

    asyncio.run(open_and_close())

    rejected = new_client(
        session=session,
        trust_policy=TrustPolicy.pinned(hashlib.sha256(b"other").hexdigest()),
        transport=transport,
    )
    body.closed = False

    with pytest.raises(PeerVerificationError):
        asyncio.run(rejected.open(URL))
    assert body.closed


def redirecting_camera(requests: list, frames, redirects: dict) -> httpx.MockTransport:
    """Camera answering paths in ``redirects`` with a 302 and others with frames."""

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        if request.url.path in redirects:
            return httpx.Response(302, headers={"Location": redirects[request.url.path]})
        return httpx.Response(
            200,
            headers={"Content-Type": f"multipart/x-mixed-replace; boundary={BOUNDARY}"},
            stream=RecordingStream([multipart_body(frames)]),
        )

    return httpx.MockTransport(handler)


def test_same_origin_redirect_keeps_session_headers(session: Session, frames) -> None:
    requests = []
    client = new_client(
        session=session,
        transport=redirecting_camera(requests, frames, {"/": "/video"}),
    )
    client.add_cookie("sid=abc123").with_connection_close_header()

    async def scenario():
        async with await client.open("https://camera.local/") as stream:
            return await stream.read_frame()

    frame = asyncio.run(scenario())

    assert [str(r.url) for r in requests] == ["https://camera.local/", URL]
    for request in requests:
        assert request.headers["Cookie"] == "sid=abc123"
        assert request.headers["Cache-Control"] == "no-cache"
        assert request.headers["Connection"] == "close"
    assert frame.data == frames[0]


def test_redirect_to_plain_http_is_refused(session: Session, frames) -> None:
    requests = []
    client = new_client(
        session=session,
        transport=redirecting_camera(requests, frames, {"/video": "http://camera.local/video"}),
    )
    client.add_cookie("sid=abc123")

    with pytest.raises(TransportError) as e:
        asyncio.run(client.open(URL))

    assert e.value.status_code == 302
    assert "non-https" in str(e.value)
    assert [str(r.url) for r in requests] == [URL]


def test_redirect_loop_gives_up_after_limit(session: Session, frames) -> None:
    requests = []
    client = new_client(
        session=session,
        transport=redirecting_camera(requests, frames, {"/video": "/video"}),
    )

    with pytest.raises(TransportError) as e:
        asyncio.run(client.open(URL))

    assert "Too many redirects" in str(e.value)
    assert len(requests) == MAX_REDIRECTS + 1


def test_unfollowable_redirect_status_is_transport_error(session: Session) -> None:
    body = RecordingStream([b""])

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(304, stream=body)

    client = new_client(session=session, transport=httpx.MockTransport(handler))

    with pytest.raises(TransportError) as e:
        asyncio.run(client.open(URL))
    assert e.value.status_code == 304
    assert body.closed


def test_rejected_cookie_leaves_later_opens_working(session: Session, mjpeg_transport) -> None:
    requests = []
    client = new_client(session=session, transport=mjpeg_transport(requests))
    client.add_cookie("sid=abc123")

    with pytest.raises(CookieParseError):
        client.add_cookie("lang=café")

    async def scenario():
        stream = await client.open(URL)
        await stream.aclose()

    asyncio.run(scenario())
    assert requests[0].headers["Cookie"] == "sid=abc123"
