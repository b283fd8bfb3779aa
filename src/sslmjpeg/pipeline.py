"""Background execution of connection attempts.

Each ``open`` runs ``ConnectionBuilder.connect`` as its own asyncio task and
delivers exactly one terminal outcome to the caller: the awaiting coroutine
for ``open_stream``, or a callback scheduled on the caller's event loop for
``submit``. Timeouts and cancellation close any partially opened connection.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, Optional

from sslmjpeg.errors import ConnectTimeoutError, InvariantViolation, MjpegError
from sslmjpeg.http.client import ConnectionBuilder
from sslmjpeg.models import ConnectionRequest
from sslmjpeg.streams.base import FrameStream

logger = logging.getLogger(__name__)


@dataclass
class OpenResult:
    """Terminal outcome of a background open: a stream or an error."""

    url: str
    stream: Optional[FrameStream] = None
    error: Optional[MjpegError] = None

    @property
    def success(self) -> bool:
        return self.error is None


async def _discard(task: asyncio.Task) -> None:
    """Cancel a connect task and close the stream it may have produced."""
    if not task.done():
        task.cancel()
    await asyncio.gather(task, return_exceptions=True)

    if task.cancelled() or task.exception() is not None:
        return

    stream = task.result()
    logger.debug("Closing stream that completed after its open was abandoned")
    await stream.aclose()


async def open_stream(builder: ConnectionBuilder, request: ConnectionRequest) -> FrameStream:
    """Run ``builder.connect`` in a background task and await its outcome.

    Args:
        builder: Configured connection builder
        request: Connection attempt; ``request.timeout`` bounds the attempt

    Returns:
        Open frame stream

    Raises:
        ConnectTimeoutError: If the timeout expired first
        MjpegError: Any other connection failure
    """
    task = asyncio.ensure_future(builder.connect(request))

    try:
        if request.timeout is None:
            return await task
        return await asyncio.wait_for(task, request.timeout)

    except MjpegError:
        raise

    except asyncio.TimeoutError:
        await _discard(task)
        logger.warning(f"Connection to {request.url} timed out after {request.timeout}s")
        raise ConnectTimeoutError(request.url, request.timeout) from None

    except asyncio.CancelledError:
        await _discard(task)
        raise

    except Exception as e:
        raise InvariantViolation(f"Unexpected error opening {request.url}: {e}") from e


class OpenHandle:
    """Cancellable handle for an open running in the background.

    The handle can be awaited for the stream. Cancelling it before it
    completes closes any partially opened connection; no result is delivered
    for a cancelled open.
    """

    def __init__(
        self,
        builder: ConnectionBuilder,
        request: ConnectionRequest,
        callback: Optional[Callable[[OpenResult], None]] = None,
    ):
        self.request = request
        self._callback = callback
        self._task = asyncio.ensure_future(open_stream(builder, request))
        self._task.add_done_callback(self._deliver)

    @property
    def url(self) -> str:
        return self.request.url

    def _deliver(self, task: asyncio.Task) -> None:
        if task.cancelled():
            logger.debug(f"Open of {self.url} cancelled by caller")
            return

        error = task.exception()
        if error is not None:
            result = OpenResult(url=self.url, error=error)
        else:
            result = OpenResult(url=self.url, stream=task.result())

        if self._callback is not None:
            self._callback(result)

    def cancel(self) -> bool:
        """Abandon the open. Returns False if it had already completed."""
        return self._task.cancel()

    def done(self) -> bool:
        return self._task.done()

    def cancelled(self) -> bool:
        return self._task.cancelled()

    def __await__(self):
        return self._task.__await__()


def submit(
    builder: ConnectionBuilder,
    request: ConnectionRequest,
    callback: Optional[Callable[[OpenResult], None]] = None,
) -> OpenHandle:
    """Start an open in the background and return its handle.

    Must be called with a running event loop; ``callback`` runs on that loop.
    """
    return OpenHandle(builder, request, callback)
