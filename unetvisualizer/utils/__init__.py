"""Utils module - Common utilities and helper functions."""

from .image import ImageUtils
from .system import SystemUtils

__all__ = [
    "ImageUtils",
    "SystemUtils",
]
