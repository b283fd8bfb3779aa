"""Frame stream registry mapping each Variant to its implementation."""

import logging
from typing import Dict, List, Type

from sslmjpeg.errors import InvariantViolation
from sslmjpeg.models import Variant
from sslmjpeg.streams.base import ByteSource, FrameStream

logger = logging.getLogger(__name__)


class FrameStreamRegistry:
    """Registry of frame stream classes by variant.

    Every ``Variant`` member must have exactly one registered class; this is
    checked when the built-in streams are first loaded.
    """

    _streams: Dict[Variant, Type[FrameStream]] = {}
    _initialized: bool = False

    @classmethod
    def register(cls, variant: Variant, stream_class: Type[FrameStream]):
        """Register a frame stream class for a variant.

        Args:
            variant: Variant handled by the class
            stream_class: FrameStream subclass to register
        """
        cls._streams[variant] = stream_class
        logger.debug(f"Registered frame stream '{variant.value}': {stream_class.__name__}")

    @classmethod
    def _initialize_streams(cls):
        """Import the built-in stream modules to trigger their registration."""
        if cls._initialized:
            return

        from sslmjpeg.streams import default, native  # noqa: F401

        missing = [v.value for v in Variant if v not in cls._streams]
        if missing:
            raise InvariantViolation(f"No frame stream registered for variants: {missing}")

        cls._initialized = True

    @classmethod
    def get(cls, variant: Variant) -> Type[FrameStream]:
        """Return the frame stream class for a variant.

        Raises:
            InvariantViolation: If no class is registered for the variant
        """
        cls._initialize_streams()

        stream_class = cls._streams.get(variant)
        if stream_class is None:
            raise InvariantViolation(f"invalid variant: {variant!r}")
        return stream_class

    @classmethod
    def wrap(cls, variant: Variant, source: ByteSource, **kwargs) -> FrameStream:
        """Construct the frame stream for ``variant`` over ``source``."""
        return cls.get(variant).wrap(source, **kwargs)

    @classmethod
    def list_available_variants(cls) -> List[str]:
        cls._initialize_streams()
        return sorted(v.value for v in cls._streams)


def register_variant(variant: Variant):
    """Decorator for registering frame stream classes.

    Usage:
        @register_variant(Variant.NATIVE)
        class NativeFrameStream(FrameStream):
            ...
    """
    def decorator(stream_class: Type[FrameStream]):
        FrameStreamRegistry.register(variant, stream_class)
        return stream_class
    return decorator
