"""Frame stream implementations, one per decoding variant.

Available variants:
- default: multipart part parsing using Content-Length
- native: JPEG SOI/EOI marker scanning
"""

from sslmjpeg.streams.base import ByteSource, FrameStream, ResponseByteSource
from sslmjpeg.streams.registry import FrameStreamRegistry, register_variant

__all__ = [
    "ByteSource",
    "FrameStream",
    "FrameStreamRegistry",
    "ResponseByteSource",
    "register_variant",
]
