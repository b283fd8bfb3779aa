"""Caller-side retries for opening streams.

The client itself never retries. These helpers build tenacity decorators
from a Config for callers that want exponential backoff between attempts.
"""

import logging

from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from sslmjpeg.client import MjpegClient
from sslmjpeg.config import Config
from sslmjpeg.errors import ConnectTimeoutError, PeerVerificationError, TransportError
from sslmjpeg.streams.base import FrameStream

logger = logging.getLogger(__name__)


def create_retry_decorator(config: Config):
    """Create a tenacity retry decorator from config.

    Transport failures and timeouts are retried; rejected certificates or
    hostnames are not.

    Args:
        config: Configuration object

    Returns:
        Configured retry decorator
    """
    return retry(
        stop=stop_after_attempt(config.max_retries),
        wait=wait_exponential(
            multiplier=config.retry_multiplier,
            min=config.retry_wait_min,
            max=config.retry_wait_max,
        ),
        retry=(
            retry_if_exception_type((TransportError, ConnectTimeoutError))
            & retry_if_not_exception_type(PeerVerificationError)
        ),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )


async def open_with_retry(client: MjpegClient, url: str, config: Config) -> FrameStream:
    """Open ``url`` retrying per ``config``; each attempt is bounded by ``config.timeout``.

    Raises:
        MjpegError: The last failure once attempts are exhausted
    """
    retry_decorator = create_retry_decorator(config)

    @retry_decorator
    async def _open_with_retry():
        return await client.open(url, config.timeout)

    return await _open_with_retry()
