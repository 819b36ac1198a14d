"""Composite visualizations rendered from multi-channel predictions."""

from __future__ import annotations

import logging
import math
from enum import Enum

import cv2
import numpy as np

from unetvisualizer.core.constants import (
    DEFAULT_OVERLAY_ALPHA,
    GRID_BACKGROUND_RGBA,
    GRID_PADDING,
    RGBA_CHANNELS,
)
from unetvisualizer.core.models import ChannelData, Prediction
from unetvisualizer.utils.image import ImageUtils
from unetvisualizer.visualization.colormap import ColorMap

logger = logging.getLogger(__name__)


class ChannelVisualizationMode(str, Enum):
    """How prediction channels are laid out in the rendered image."""

    HEATMAP = "heatmap"
    OVERLAY = "overlay"
    SIDE_BY_SIDE = "side_by_side"
    GRID = "grid"
    # Single frame only; cycling through channels is left to the caller
    ANIMATED = "animated"


class VisualizationError(Exception):
    """Base exception for visualization failures."""

    def __init__(self, message: str, error_code: str | None = None) -> None:
        super().__init__(message)
        self.error_code = error_code


class NoChannelsToVisualizeError(VisualizationError):
    """Raised when a prediction carries no channels."""


class ContextCreationError(VisualizationError):
    """Raised when an output pixel buffer cannot be allocated."""


class ImageGenerationError(VisualizationError):
    """Raised for any other rendering failure."""


def grid_dimension(channel_count: int) -> int:
    """Rows and columns of the square grid holding ``channel_count`` cells."""
    return math.ceil(math.sqrt(channel_count))


def _allocate_canvas(width: int, height: int) -> np.ndarray:
    """Allocate a transparent RGBA canvas."""
    if width <= 0 or height <= 0:
        msg = f"Invalid canvas dimensions: {width}x{height}"
        raise ContextCreationError(msg, error_code="invalid_dimensions")
    try:
        return np.zeros((height, width, RGBA_CHANNELS), dtype=np.uint8)
    except (MemoryError, ValueError) as e:
        msg = f"Cannot allocate {width}x{height} canvas: {e}"
        raise ContextCreationError(msg, error_code="allocation_failed") from e


def _draw(canvas: np.ndarray, image: np.ndarray, x: int, y: int) -> None:
    """Copy ``image`` onto ``canvas`` at native size, clipped to the canvas."""
    canvas_height, canvas_width = canvas.shape[:2]
    width = min(image.shape[1], canvas_width - x)
    height = min(image.shape[0], canvas_height - y)
    if width <= 0 or height <= 0:
        return
    canvas[y : y + height, x : x + width] = image[:height, :width]


class VisualizationGenerator:
    """Render predictions into RGBA pixel buffers.

    Every path draws at native resolution; no resampling happens here. The
    generator holds no state and can be shared between threads.
    """

    def generate(
        self,
        prediction: Prediction,
        original_image: np.ndarray | None = None,
        mode: ChannelVisualizationMode = ChannelVisualizationMode.HEATMAP,
        color_map: ColorMap | None = None,
        overlay_alpha: float = DEFAULT_OVERLAY_ALPHA,
    ) -> np.ndarray:
        """Render ``prediction`` in the requested mode."""
        if not prediction.channels:
            msg = "No channels available for visualization"
            raise NoChannelsToVisualizeError(msg, error_code="no_channels")

        color_map = color_map or ColorMap()
        try:
            mode = ChannelVisualizationMode(mode)
        except ValueError as e:
            msg = f"Unsupported visualization mode: {mode}"
            raise ImageGenerationError(msg, error_code="unsupported_mode") from e

        try:
            if mode == ChannelVisualizationMode.HEATMAP:
                image = self.heatmap(prediction, color_map)
            elif mode == ChannelVisualizationMode.OVERLAY:
                image = self.overlay(prediction, original_image, color_map, overlay_alpha)
            elif mode == ChannelVisualizationMode.SIDE_BY_SIDE:
                image = self.side_by_side(prediction, original_image, color_map)
            elif mode == ChannelVisualizationMode.GRID:
                image = self.grid(prediction, color_map)
            elif mode == ChannelVisualizationMode.ANIMATED:
                image = self.heatmap(prediction, color_map)
            else:
                msg = f"Unsupported visualization mode: {mode}"
                raise ImageGenerationError(msg, error_code="unsupported_mode")
        except VisualizationError:
            raise
        except Exception as e:
            msg = f"Failed to generate {mode.value} visualization: {e}"
            logger.exception(msg)
            raise ImageGenerationError(msg, error_code="render_failed") from e

        logger.debug(
            "Rendered %s visualization: %sx%s from %s channel(s)",
            mode.value,
            image.shape[1],
            image.shape[0],
            prediction.channel_count,
        )
        return image

    def heatmap(self, prediction: Prediction, color_map: ColorMap) -> np.ndarray:
        """Color-map a single channel, or the argmax aggregate of several."""
        if not prediction.channels:
            msg = "No channels available for visualization"
            raise NoChannelsToVisualizeError(msg, error_code="no_channels")

        if prediction.channel_count == 1:
            return prediction.channels[0].to_rgba(color_map)

        aggregated = prediction.aggregate_prediction()
        normalized = aggregated / np.float32(prediction.channel_count - 1)
        aggregate_channel = ChannelData(
            index=0,
            values=normalized,
            width=prediction.width,
            height=prediction.height,
            min_value=0.0,
            max_value=1.0,
        )
        return aggregate_channel.to_rgba(color_map)

    def overlay(
        self,
        prediction: Prediction,
        original_image: np.ndarray | None,
        color_map: ColorMap,
        alpha: float = DEFAULT_OVERLAY_ALPHA,
    ) -> np.ndarray:
        """Blend the heatmap over the original image with a global alpha."""
        base = self._require_original(original_image, "overlay")
        heatmap = self.heatmap(prediction, color_map)
        alpha = max(0.0, min(1.0, float(alpha)))

        canvas = _allocate_canvas(base.shape[1], base.shape[0])
        _draw(canvas, base, 0, 0)

        height = min(heatmap.shape[0], canvas.shape[0])
        width = min(heatmap.shape[1], canvas.shape[1])
        region = canvas[:height, :width]
        canvas[:height, :width] = cv2.addWeighted(
            heatmap[:height, :width], alpha, region, 1.0 - alpha, 0.0
        )
        return canvas

    def side_by_side(
        self,
        prediction: Prediction,
        original_image: np.ndarray | None,
        color_map: ColorMap,
    ) -> np.ndarray:
        """Original image on the left, heatmap on the right."""
        base = self._require_original(original_image, "side-by-side")
        heatmap = self.heatmap(prediction, color_map)

        original_height, original_width = base.shape[:2]
        canvas = _allocate_canvas(original_width * 2, original_height)
        _draw(canvas, base, 0, 0)
        _draw(canvas, heatmap, original_width, 0)
        return canvas

    def grid(self, prediction: Prediction, color_map: ColorMap) -> np.ndarray:
        """Tile each channel's own heatmap into a square grid."""
        channels = prediction.channels
        if not channels:
            msg = "No channels available for visualization"
            raise NoChannelsToVisualizeError(msg, error_code="no_channels")

        size = grid_dimension(len(channels))
        cell_width = channels[0].width
        cell_height = channels[0].height

        total_width = (cell_width + GRID_PADDING) * size - GRID_PADDING
        total_height = (cell_height + GRID_PADDING) * size - GRID_PADDING
        canvas = _allocate_canvas(total_width, total_height)
        canvas[:] = GRID_BACKGROUND_RGBA

        for index, channel in enumerate(channels):
            row, col = divmod(index, size)
            x = col * (cell_width + GRID_PADDING)
            y = row * (cell_height + GRID_PADDING)
            _draw(canvas, channel.to_rgba(color_map), x, y)

        return canvas

    @staticmethod
    def _require_original(original_image: np.ndarray | None, mode: str) -> np.ndarray:
        if original_image is None:
            msg = f"The {mode} mode requires the original image"
            raise ImageGenerationError(msg, error_code="missing_original")
        try:
            return ImageUtils.to_rgba(original_image)
        except ValueError as e:
            msg = f"Unsupported original image for {mode} mode: {e}"
            raise ImageGenerationError(msg, error_code="invalid_original") from e
