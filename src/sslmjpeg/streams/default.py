"""Multipart MJPEG parsing driven by part headers.

Each part of a ``multipart/x-mixed-replace`` body looks like::

    --boundary
    Content-Type: image/jpeg
    Content-Length: 12345

    <JPEG bytes>

When a part carries ``Content-Length`` exactly that many bytes are taken as
the frame; otherwise the frame runs to the JPEG end-of-image marker.
"""

import logging
from typing import Dict, Optional

from sslmjpeg.models import Frame, Variant
from sslmjpeg.streams.base import EOI, SOI, FrameStream
from sslmjpeg.streams.registry import register_variant

logger = logging.getLogger(__name__)


def parse_part_headers(raw: bytes) -> Dict[str, str]:
    """Parse ``Name: value`` lines preceding a frame.

    Boundary lines and anything else without a colon are ignored. Header
    names are lower-cased.
    """
    headers = {}
    for line in raw.decode("latin-1").splitlines():
        if ":" not in line:
            continue
        name, value = line.split(":", 1)
        headers[name.strip().lower()] = value.strip()
    return headers


@register_variant(Variant.DEFAULT)
class DefaultFrameStream(FrameStream):
    """Frame stream that honours per-part ``Content-Length`` headers."""

    def _extract_frame(self) -> Optional[Frame]:
        start = self._buffer.find(SOI)
        if start == -1:
            return None

        headers = parse_part_headers(bytes(self._buffer[:start]))
        length = self._content_length(headers)

        if length is not None:
            end = start + length
            if len(self._buffer) < end:
                return None
        else:
            eoi = self._buffer.find(EOI, start + 2)
            if eoi == -1:
                return None
            end = eoi + 2

        data = bytes(self._buffer[start:end])
        del self._buffer[:end]
        return Frame(index=self._next_index(), data=data, headers=headers)

    def _content_length(self, headers: Dict[str, str]) -> Optional[int]:
        value = headers.get("content-length")
        if value is None:
            return None
        try:
            length = int(value)
        except ValueError:
            logger.debug(f"Ignoring invalid Content-Length {value!r}")
            return None
        if length <= 0 or length > self.max_frame_size:
            logger.debug(f"Ignoring out-of-range Content-Length {length}")
            return None
        return length
