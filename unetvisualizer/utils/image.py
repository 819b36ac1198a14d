"""Image utilities for loading, conversion, validation and fingerprinting."""

from __future__ import annotations

import hashlib
import logging
from pathlib import Path

import cv2
import numpy as np

from unetvisualizer.core.constants import CACHE_KEY_SAMPLE_BYTES, RGBA_CHANNELS
from unetvisualizer.core.models import ValidationResult

logger = logging.getLogger(__name__)

GRAY_CHANNELS = 1
RGB_CHANNELS = 3
MIN_RECOMMENDED_DIMENSION = 16
MAX_RECOMMENDED_DIMENSION = 8192


class ImageUtils:
    """Utilities for the images flowing into and out of the visualizer."""

    @staticmethod
    def load_image(image_path: Path) -> np.ndarray:
        """Load an image file as an RGB numpy array."""
        if not image_path.exists():
            msg = f"Image file not found: {image_path}"
            logger.error(msg)
            raise FileNotFoundError(msg)

        try:
            image = cv2.imread(str(image_path), cv2.IMREAD_COLOR)
            if image is None:
                msg = f"Failed to load image: {image_path}"
                raise ValueError(msg)

            image = cv2.cvtColor(image, cv2.COLOR_BGR2RGB)
            logger.debug("Loaded image: %s, shape: %s", image_path, image.shape)

        except Exception as e:
            msg = f"Error loading image {image_path}: {e}"
            logger.exception(msg)
            raise RuntimeError(msg) from e
        return image

    @staticmethod
    def save_image(image: np.ndarray, output_path: Path) -> None:
        """Save an RGB or RGBA buffer, e.g. a rendered visualization."""
        if not isinstance(image, np.ndarray):
            msg = "Image must be a numpy array"
            raise TypeError(msg)
        if image.size == 0:
            msg = "Cannot save empty image"
            raise ValueError(msg)

        output_path.parent.mkdir(parents=True, exist_ok=True)

        if image.ndim == 3 and image.shape[2] == RGBA_CHANNELS:
            encoded = cv2.cvtColor(image, cv2.COLOR_RGBA2BGRA)
        elif image.ndim == 3 and image.shape[2] == RGB_CHANNELS:
            encoded = cv2.cvtColor(image, cv2.COLOR_RGB2BGR)
        else:
            encoded = image

        try:
            success = cv2.imwrite(str(output_path), encoded)
            if not success:
                msg = f"Failed to save image to: {output_path}"
                logger.error(msg)
                raise RuntimeError(msg)
            logger.debug("Saved image to: %s", output_path)

        except Exception as e:
            msg = f"Error saving image to {output_path}: {e}"
            logger.exception(msg)
            raise RuntimeError(msg) from e

    @staticmethod
    def channel_count(image: np.ndarray) -> int:
        """Number of color channels of an image array."""
        return int(image.shape[2]) if image.ndim == 3 else GRAY_CHANNELS

    @staticmethod
    def to_rgba(image: np.ndarray) -> np.ndarray:
        """Convert a grayscale, RGB or RGBA uint8 image to RGBA."""
        if image.size == 0:
            msg = "Cannot convert empty image"
            raise ValueError(msg)
        if image.dtype != np.uint8:
            msg = f"Expected a uint8 image, got {image.dtype}"
            raise ValueError(msg)

        if image.ndim == 2 or (image.ndim == 3 and image.shape[2] == GRAY_CHANNELS):
            return cv2.cvtColor(image.reshape(image.shape[:2]), cv2.COLOR_GRAY2RGBA)
        if image.ndim == 3 and image.shape[2] == RGB_CHANNELS:
            return cv2.cvtColor(image, cv2.COLOR_RGB2RGBA)
        if image.ndim == 3 and image.shape[2] == RGBA_CHANNELS:
            return image.copy()

        msg = f"Unsupported image shape: {image.shape}"
        raise ValueError(msg)

    @staticmethod
    def validate_image(image: object) -> ValidationResult:
        """Validate an input image before it is sent to the model."""
        result = ValidationResult(is_valid=True)

        if not isinstance(image, np.ndarray):
            result.add_error(f"Image must be a numpy array, got {type(image).__name__}")
            return result

        if image.size == 0:
            result.add_error("Image is empty")
            return result

        if image.ndim not in (2, 3):
            result.add_error(f"Image must be 2-D or 3-D, got shape {image.shape}")
            return result

        channels = ImageUtils.channel_count(image)
        if channels not in (GRAY_CHANNELS, RGB_CHANNELS, RGBA_CHANNELS):
            result.add_error(f"Unsupported channel count: {channels}")

        if image.dtype != np.uint8:
            result.add_error(f"Image must be uint8, got {image.dtype}")

        height, width = image.shape[:2]
        result.context["width"] = int(width)
        result.context["height"] = int(height)
        result.context["channels"] = channels

        if width < MIN_RECOMMENDED_DIMENSION or height < MIN_RECOMMENDED_DIMENSION:
            result.add_warning(f"Very small image dimensions: {width}x{height}")
        if width > MAX_RECOMMENDED_DIMENSION or height > MAX_RECOMMENDED_DIMENSION:
            result.add_warning(f"Very large image dimensions: {width}x{height}")

        return result

    @staticmethod
    def calculate_cache_key(
        image: np.ndarray, sample_bytes: int = CACHE_KEY_SAMPLE_BYTES
    ) -> str:
        """Fingerprint an image from its size and leading pixel bytes.

        Only the first ``sample_bytes`` bytes are hashed, so images that share
        dimensions and a leading region collide.
        """
        if image.size == 0:
            msg = "Cannot fingerprint empty image"
            raise ValueError(msg)

        height, width = image.shape[:2]
        flat = np.ascontiguousarray(image).reshape(-1).view(np.uint8)
        sample = flat[:sample_bytes].tobytes()
        digest = hashlib.sha256(sample).hexdigest()[:16]
        return f"{width}x{height}_{digest}"
