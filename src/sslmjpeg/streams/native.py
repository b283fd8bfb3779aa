"""Marker-scanning MJPEG reader.

Frames are extracted by scanning for JPEG SOI/EOI markers in the byte
stream, ignoring multipart headers entirely. This works across most MJPEG
implementations, including servers that send no ``Content-Length``.
"""

from typing import Optional

from sslmjpeg.models import Frame, Variant
from sslmjpeg.streams.base import EOI, SOI, FrameStream
from sslmjpeg.streams.registry import register_variant


@register_variant(Variant.NATIVE)
class NativeFrameStream(FrameStream):
    """Frame stream that splits on JPEG start/end markers."""

    def _extract_frame(self) -> Optional[Frame]:
        start = self._buffer.find(SOI)
        if start == -1:
            # Keep a trailing 0xff in case a marker straddles two chunks
            keep = 1 if self._buffer.endswith(b"\xff") else 0
            del self._buffer[: len(self._buffer) - keep]
            return None

        end = self._buffer.find(EOI, start + 2)
        if end == -1:
            if start:
                del self._buffer[:start]
            return None

        data = bytes(self._buffer[start : end + 2])
        del self._buffer[: end + 2]
        return Frame(index=self._next_index(), data=data)
