"""Value types shared across sslmjpeg."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional, Union

from sslmjpeg.errors import InvalidArgumentError


class Variant(Enum):
    """Frame decoding strategy selected at client construction."""

    DEFAULT = "default"  # multipart part parsing, Content-Length driven
    NATIVE = "native"  # raw JPEG marker scanning

    @classmethod
    def coerce(cls, value: Union["Variant", str, None]) -> "Variant":
        """Return a Variant for an enum member or a variant name.

        Args:
            value: Variant member or its name/value (case-insensitive)

        Returns:
            The matching Variant

        Raises:
            InvalidArgumentError: If value is None or names no variant
        """
        if value is None:
            raise InvalidArgumentError("null variant not allowed")
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            key = value.strip().lower()
            for member in cls:
                if member.value == key:
                    return member
        raise InvalidArgumentError(
            f"Unknown variant {value!r}. Available: {[m.value for m in cls]}"
        )


@dataclass(frozen=True)
class ConnectionRequest:
    """One connection attempt, created per ``open`` call."""

    url: str
    variant: Variant
    timeout: Optional[float] = None


@dataclass
class Frame:
    """A single JPEG frame read from an MJPEG stream."""

    index: int
    data: bytes
    headers: Dict[str, str] = field(default_factory=dict)

    def __len__(self):
        return len(self.data)
