"""Utility functions for sslmjpeg."""

from sslmjpeg.utils.file import save_frame

__all__ = [
    "save_frame",
]
