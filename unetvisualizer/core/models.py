"""Core data models for U-Net prediction visualization."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING

import numpy as np
from pydantic import BaseModel, Field, field_validator

from unetvisualizer.core.constants import (
    BYTES_PER_MB,
    FLOAT32_BYTES,
    OPAQUE_ALPHA,
    RGBA_CHANNELS,
)
from unetvisualizer.core.statistics import channel_min_max, normalize_values

if TYPE_CHECKING:
    from unetvisualizer.visualization.colormap import ColorMap

# Tensor layouts accepted by Prediction.from_tensor
SINGLE_PLANE_NDIM = 2
HWC_NDIM = 3
BATCHED_HWC_NDIM = 4


def _readonly(array: np.ndarray, dtype: type) -> np.ndarray:
    """Return a private, non-writeable copy of an array."""
    copied = np.array(array, dtype=dtype, copy=True)
    copied.setflags(write=False)
    return copied


class RGBColor(BaseModel):
    """An 8-bit RGB triple."""

    r: int = Field(..., ge=0, le=255, description="Red component")
    g: int = Field(..., ge=0, le=255, description="Green component")
    b: int = Field(..., ge=0, le=255, description="Blue component")

    model_config = {"frozen": True}

    @classmethod
    def from_tuple(cls, rgb: tuple[int, int, int]) -> RGBColor:
        """Create a color from an ``(r, g, b)`` tuple."""
        r, g, b = rgb
        return cls(r=int(r), g=int(g), b=int(b))

    def as_tuple(self) -> tuple[int, int, int]:
        """Return the color as an ``(r, g, b)`` tuple."""
        return (self.r, self.g, self.b)

    def __str__(self) -> str:
        """Return string representation."""
        return f"RGBColor({self.r}, {self.g}, {self.b})"


class ColorStop(BaseModel):
    """A color anchored at a position of a piecewise-linear palette."""

    position: float = Field(..., ge=0.0, le=1.0, description="Position in [0, 1]")
    color: RGBColor = Field(..., description="Color at this position")

    model_config = {"frozen": True}


@dataclass(frozen=True, eq=False)
class ChannelData:
    """One output plane of a prediction, stored row-major."""

    index: int
    values: np.ndarray
    width: int
    height: int
    min_value: float
    max_value: float

    def __post_init__(self) -> None:
        if self.index < 0:
            msg = f"Channel index must be >= 0, got {self.index}"
            raise ValueError(msg)
        if self.width <= 0 or self.height <= 0:
            msg = f"Channel dimensions must be positive: {self.width}x{self.height}"
            raise ValueError(msg)

        values = _readonly(np.ravel(self.values), np.float32)
        if values.size != self.width * self.height:
            msg = (
                f"Channel {self.index} has {values.size} values, expected "
                f"{self.width}x{self.height}={self.width * self.height}"
            )
            raise ValueError(msg)
        object.__setattr__(self, "values", values)

    @classmethod
    def from_values(
        cls,
        index: int,
        values: np.ndarray,
        width: int | None = None,
        height: int | None = None,
    ) -> ChannelData:
        """Build a channel, computing its statistics once.

        A 2-D ``values`` array supplies its own ``(height, width)``.
        """
        array = np.asarray(values, dtype=np.float32)
        if array.ndim == SINGLE_PLANE_NDIM:
            height, width = array.shape
        if width is None or height is None:
            msg = "width and height are required for flat channel values"
            raise ValueError(msg)

        min_value, max_value = channel_min_max(array)
        return cls(
            index=index,
            values=array,
            width=int(width),
            height=int(height),
            min_value=min_value,
            max_value=max_value,
        )

    @property
    def pixel_count(self) -> int:
        """Number of samples in the channel."""
        return int(self.values.size)

    @property
    def normalized_values(self) -> np.ndarray:
        """Values rescaled to [0, 1]; raw values when the range collapses."""
        return normalize_values(self.values, self.min_value, self.max_value)

    def as_image(self) -> np.ndarray:
        """Return the raw values as a ``(height, width)`` array."""
        return self.values.reshape(self.height, self.width)

    def to_rgba(self, color_map: ColorMap) -> np.ndarray:
        """Render the channel as an opaque RGBA buffer at native resolution."""
        rgb = color_map.apply(self.normalized_values)
        rgba = np.empty((self.height, self.width, RGBA_CHANNELS), dtype=np.uint8)
        rgba[..., :3] = rgb.reshape(self.height, self.width, 3)
        rgba[..., 3] = OPAQUE_ALPHA
        return rgba


@dataclass(frozen=True, eq=False)
class Prediction:
    """Full model output for one inference call."""

    channels: tuple[ChannelData, ...]
    inference_time_ms: float
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    def __post_init__(self) -> None:
        object.__setattr__(self, "channels", tuple(self.channels))

        if self.inference_time_ms < 0:
            msg = f"inference_time_ms must be >= 0, got {self.inference_time_ms}"
            raise ValueError(msg)

        sizes = {(channel.width, channel.height) for channel in self.channels}
        if len(sizes) > 1:
            msg = f"All channels must share the same dimensions, got {sorted(sizes)}"
            raise ValueError(msg)

    @classmethod
    def from_tensor(
        cls,
        tensor: np.ndarray,
        inference_time_ms: float,
        timestamp: datetime | None = None,
    ) -> Prediction:
        """Split a ``[height, width, channels]`` tensor into channels.

        A leading batch dimension of size one and plain 2-D planes are also
        accepted.
        """
        array = np.asarray(tensor, dtype=np.float32)
        if array.ndim == BATCHED_HWC_NDIM and array.shape[0] == 1:
            array = array[0]
        if array.ndim == SINGLE_PLANE_NDIM:
            array = array[..., np.newaxis]
        if array.ndim != HWC_NDIM:
            msg = f"Expected a [height, width, channels] tensor, got {array.shape}"
            raise ValueError(msg)

        channels = tuple(
            ChannelData.from_values(index, array[..., index])
            for index in range(array.shape[2])
        )
        return cls(
            channels=channels,
            inference_time_ms=inference_time_ms,
            timestamp=timestamp or datetime.now(UTC),
        )

    @property
    def channel_count(self) -> int:
        """Number of output channels."""
        return len(self.channels)

    @property
    def width(self) -> int:
        """Shared channel width (0 when there are no channels)."""
        return self.channels[0].width if self.channels else 0

    @property
    def height(self) -> int:
        """Shared channel height (0 when there are no channels)."""
        return self.channels[0].height if self.channels else 0

    def channel(self, index: int) -> ChannelData | None:
        """Get a channel by index, or None when out of range."""
        if 0 <= index < len(self.channels):
            return self.channels[index]
        return None

    def aggregate_prediction(self) -> np.ndarray:
        """Per-pixel index of the strongest channel; the first channel wins ties."""
        if not self.channels:
            return np.empty(0, dtype=np.float32)

        stacked = np.stack([channel.values for channel in self.channels])
        # NaN never beats a real value
        stacked = np.where(np.isnan(stacked), -np.inf, stacked)
        return np.argmax(stacked, axis=0).astype(np.float32)

    def estimated_nbytes(self) -> int:
        """Approximate float footprint of all channels."""
        return sum(channel.pixel_count * FLOAT32_BYTES for channel in self.channels)


class PerformanceMetrics(BaseModel):
    """Point-in-time snapshot of the performance monitor."""

    current_fps: float = Field(default=0.0, ge=0.0)
    average_fps: float = Field(default=0.0, ge=0.0)
    min_fps: float = Field(default=0.0, ge=0.0)
    max_fps: float = Field(default=0.0, ge=0.0)
    average_inference_time: float = Field(default=0.0, description="Milliseconds")
    min_inference_time: float = Field(default=0.0, description="Milliseconds")
    max_inference_time: float = Field(default=0.0, description="Milliseconds")
    total_frames_processed: int = Field(default=0, ge=0)
    memory_usage_mb: float = Field(default=0.0, ge=0.0)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))

    model_config = {"frozen": True}

    def is_performance_acceptable(self, target_fps: float) -> bool:
        """Check whether the current FPS is within 90% of the target."""
        return self.current_fps >= target_fps * 0.9

    def report(self) -> str:
        """Generate a human-readable performance report."""
        rule = "=" * 48
        return "\n".join(
            [
                f"Performance Report - {self.timestamp.isoformat(timespec='seconds')}",
                rule,
                f"FPS: {self.current_fps:.1f} (avg: {self.average_fps:.1f})",
                f"Range: {self.min_fps:.1f} - {self.max_fps:.1f}",
                "",
                f"Inference Time: {self.average_inference_time:.1f}ms",
                (
                    f"Range: {self.min_inference_time:.1f} - "
                    f"{self.max_inference_time:.1f}ms"
                ),
                "",
                f"Total Frames: {self.total_frames_processed}",
                f"Memory Usage: {self.memory_usage_mb:.1f}MB",
                rule,
            ]
        )


@dataclass(frozen=True, eq=False)
class VisualizationResult:
    """A rendered visualization with the prediction and metrics behind it."""

    prediction: Prediction
    visualized_image: np.ndarray
    performance_metrics: PerformanceMetrics

    def __post_init__(self) -> None:
        image = np.asarray(self.visualized_image)
        if image.ndim != 3 or image.shape[2] != RGBA_CHANNELS:
            msg = f"Visualized image must be (height, width, 4) RGBA, got {image.shape}"
            raise ValueError(msg)
        object.__setattr__(self, "visualized_image", _readonly(image, np.uint8))

    @property
    def width(self) -> int:
        """Width of the visualized image in pixels."""
        return int(self.visualized_image.shape[1])

    @property
    def height(self) -> int:
        """Height of the visualized image in pixels."""
        return int(self.visualized_image.shape[0])

    def estimated_nbytes(self) -> int:
        """Approximate memory held by the pixel buffer and prediction."""
        return self.width * self.height * RGBA_CHANNELS + (
            self.prediction.estimated_nbytes()
        )


class CacheStatistics(BaseModel):
    """Counters describing the result cache."""

    entry_count: int = Field(..., ge=0)
    total_size: int = Field(..., ge=0, description="Estimated bytes held")
    hit_count: int = Field(..., ge=0)
    miss_count: int = Field(..., ge=0)
    hit_rate: float = Field(..., ge=0.0, le=1.0)

    model_config = {"frozen": True}

    @property
    def formatted_size(self) -> str:
        """Total size in megabytes, e.g. ``12.3 MB``."""
        return f"{self.total_size / BYTES_PER_MB:.1f} MB"

    @property
    def formatted_hit_rate(self) -> str:
        """Hit rate as a percentage, e.g. ``45.6%``."""
        return f"{self.hit_rate * 100:.1f}%"


class ValidationResult(BaseModel):
    """Result of validation operations with errors and warnings."""

    is_valid: bool = Field(..., description="Whether validation passed")
    errors: list[str] = Field(
        default_factory=list, description="List of validation errors"
    )
    warnings: list[str] = Field(
        default_factory=list, description="List of validation warnings"
    )
    context: dict[str, str | int | float | bool] = Field(
        default_factory=dict,
        description="Additional context about validation",
    )

    def add_error(self, error: str) -> None:
        """Add an error message and mark as invalid."""
        self.errors.append(error)
        self.is_valid = False

    def add_warning(self, warning: str) -> None:
        """Add a warning message without affecting validity."""
        self.warnings.append(warning)

    @field_validator("errors", "warnings")
    @classmethod
    def validate_messages(cls, v: list[str]) -> list[str]:
        """Ensure all messages are non-empty strings."""
        return [msg for msg in v if msg and isinstance(msg, str)]

    @property
    def has_errors(self) -> bool:
        """Check if there are any errors."""
        return len(self.errors) > 0

    @property
    def has_warnings(self) -> bool:
        """Check if there are any warnings."""
        return len(self.warnings) > 0

    def raise_if_invalid(self, exception_class: type[Exception] = ValueError) -> None:
        """Raise an exception if validation failed."""
        if not self.is_valid:
            error_msg = f"Validation failed: {'; '.join(self.errors)}"
            raise exception_class(error_msg)

    def __str__(self) -> str:
        """Return string representation."""
        status = "valid" if self.is_valid else "invalid"
        return (
            f"ValidationResult({status}, {len(self.errors)} errors, "
            f"{len(self.warnings)} warnings)"
        )
