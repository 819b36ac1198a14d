"""Color maps turning normalized scalars into RGB pixels."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from enum import Enum

import numpy as np
from pydantic import BaseModel, Field, ValidationInfo, field_validator

from unetvisualizer.core.constants import (
    INFERNO_STOPS,
    MAGMA_STOPS,
    PLASMA_STOPS,
    RAINBOW_MAX_HUE,
    VIRIDIS_STOPS,
)
from unetvisualizer.core.models import ColorStop, RGBColor

logger = logging.getLogger(__name__)


class ColorMapType(str, Enum):
    """Palettes known to the color map engine."""

    GRAYSCALE = "grayscale"
    HEATMAP = "heatmap"
    VIRIDIS = "viridis"
    PLASMA = "plasma"
    INFERNO = "inferno"
    MAGMA = "magma"
    RAINBOW = "rainbow"
    CUSTOM = "custom"


def _build_stops(table: Sequence[tuple[float, tuple[int, int, int]]]) -> tuple:
    return tuple(
        ColorStop(position=position, color=RGBColor.from_tuple(rgb))
        for position, rgb in table
    )


_NAMED_STOPS = {
    ColorMapType.VIRIDIS: _build_stops(VIRIDIS_STOPS),
    ColorMapType.PLASMA: _build_stops(PLASMA_STOPS),
    ColorMapType.INFERNO: _build_stops(INFERNO_STOPS),
    ColorMapType.MAGMA: _build_stops(MAGMA_STOPS),
}


def _to_bytes(channels: np.ndarray) -> np.ndarray:
    """Round half-up and saturate float color components to uint8."""
    return np.clip(np.floor(channels + 0.5), 0, 255).astype(np.uint8)


def _interpolate_stops(values: np.ndarray, stops: Sequence[ColorStop]) -> np.ndarray:
    """Piecewise-linear interpolation between sorted color stops.

    ``values`` must already be clamped to [0, 1]. Each value uses the first
    stop pair with ``lower <= value <= upper``; values outside the stop range
    take the nearest boundary color.
    """
    if not stops:
        return np.zeros((*values.shape, 3), dtype=np.uint8)

    positions = np.array([stop.position for stop in stops], dtype=np.float64)
    colors = np.array([stop.color.as_tuple() for stop in stops], dtype=np.float64)
    last = len(stops) - 1

    upper = np.searchsorted(positions, values, side="left")
    nearest = np.clip(upper, 0, last)
    result = colors[nearest]

    inside = (upper > 0) & (upper <= last) & (values < positions[nearest])
    if np.any(inside):
        hi = upper[inside]
        lo = hi - 1
        t = (values[inside] - positions[lo]) / (positions[hi] - positions[lo])
        result[inside] = colors[lo] + t[:, np.newaxis] * (colors[hi] - colors[lo])

    return _to_bytes(result)


def _heatmap(values: np.ndarray) -> np.ndarray:
    """Blue -> cyan -> green -> yellow -> red over four quarter segments."""
    segment = np.minimum((values * 4).astype(np.int64), 3)
    rising = (values * 4 - segment) * 255
    falling = 255 - rising
    segments = [segment == quarter for quarter in range(4)]

    r = np.select(segments, [0, 0, rising, 255])
    g = np.select(segments, [rising, 255, 255, falling])
    b = np.select(segments, [255, falling, 0, 0])
    return _to_bytes(np.stack([r, g, b], axis=-1).astype(np.float64))


def _rainbow(values: np.ndarray) -> np.ndarray:
    """Full saturation/value HSV sweep from 0 to 300 degrees of hue."""
    hue = values * RAINBOW_MAX_HUE
    sector = np.minimum((hue // 60).astype(np.int64), 5)
    x = 1 - np.abs(np.mod(hue / 60, 2) - 1)
    one = np.ones_like(x)
    zero = np.zeros_like(x)

    # (r, g, b) for each 60-degree sector with chroma = 1
    r = np.choose(sector, [one, x, zero, zero, x, one])
    g = np.choose(sector, [x, one, one, x, zero, zero])
    b = np.choose(sector, [zero, zero, x, one, one, x])
    return _to_bytes(np.stack([r, g, b], axis=-1) * 255)


class ColorMap(BaseModel):
    """A palette mapping values in [0, 1] to RGB colors.

    Named palettes compare equal by kind alone. Custom palettes compare equal
    when their stop sequences match element-wise.
    """

    kind: ColorMapType = Field(default=ColorMapType.GRAYSCALE)
    stops: tuple[ColorStop, ...] = Field(
        default=(), description="Sorted stops, only used by custom maps"
    )

    model_config = {"frozen": True}

    @field_validator("stops")
    @classmethod
    def sort_stops(cls, v: tuple[ColorStop, ...]) -> tuple[ColorStop, ...]:
        """Keep stops ordered by position; equal positions keep their order."""
        return tuple(sorted(v, key=lambda stop: stop.position))

    @field_validator("stops")
    @classmethod
    def stops_only_for_custom(
        cls, v: tuple[ColorStop, ...], info: ValidationInfo
    ) -> tuple[ColorStop, ...]:
        """Reject stops attached to a named palette."""
        kind = info.data.get("kind")
        if v and kind is not None and kind != ColorMapType.CUSTOM:
            msg = f"Color stops are only valid for custom maps, not {kind.value}"
            raise ValueError(msg)
        return v

    @classmethod
    def named(cls, kind: ColorMapType | str) -> ColorMap:
        """Create one of the built-in palettes."""
        kind = ColorMapType(kind)
        if kind == ColorMapType.CUSTOM:
            msg = "Custom maps need stops; use ColorMap.custom()"
            raise ValueError(msg)
        return cls(kind=kind)

    @classmethod
    def custom(
        cls,
        stops: Sequence[ColorStop | tuple[float, RGBColor | tuple[int, int, int]]],
    ) -> ColorMap:
        """Create a piecewise-linear palette from ``(position, color)`` stops."""
        converted = []
        for stop in stops:
            if isinstance(stop, ColorStop):
                converted.append(stop)
                continue
            position, color = stop
            if not isinstance(color, RGBColor):
                color = RGBColor.from_tuple(color)
            converted.append(ColorStop(position=position, color=color))
        return cls(kind=ColorMapType.CUSTOM, stops=tuple(converted))

    @classmethod
    def diverging(
        cls, negative: RGBColor, neutral: RGBColor, positive: RGBColor
    ) -> ColorMap:
        """Three-stop palette centered on ``neutral`` at 0.5."""
        return cls.custom([(0.0, negative), (0.5, neutral), (1.0, positive)])

    @classmethod
    def discrete(cls, colors: Sequence[RGBColor]) -> ColorMap:
        """Evenly spaced stops at ``i / (n - 1)``.

        Colors between stops are still linearly interpolated.
        """
        if not colors:
            return cls.named(ColorMapType.GRAYSCALE)
        if len(colors) == 1:
            return cls.custom([(0.0, colors[0])])

        last = len(colors) - 1
        return cls.custom([(index / last, color) for index, color in enumerate(colors)])

    @property
    def name(self) -> str:
        """Display label of the palette."""
        if self.kind == ColorMapType.CUSTOM:
            return f"custom ({len(self.stops)} stops)"
        return self.kind.value

    def apply(self, values: np.ndarray | Sequence[float] | float) -> np.ndarray:
        """Map an array of values to a ``(..., 3)`` uint8 RGB array.

        Values are clamped to [0, 1] first; NaN is treated as 0.
        """
        array = np.nan_to_num(
            np.asarray(values, dtype=np.float64), nan=0.0, posinf=1.0, neginf=0.0
        )
        clamped = np.clip(array, 0.0, 1.0).reshape(-1)

        if self.kind == ColorMapType.GRAYSCALE:
            gray = _to_bytes(clamped * 255)
            rgb = np.stack([gray, gray, gray], axis=-1)
        elif self.kind == ColorMapType.HEATMAP:
            rgb = _heatmap(clamped)
        elif self.kind == ColorMapType.RAINBOW:
            rgb = _rainbow(clamped)
        elif self.kind == ColorMapType.CUSTOM:
            rgb = _interpolate_stops(clamped, self.stops)
        else:
            rgb = _interpolate_stops(clamped, _NAMED_STOPS[self.kind])
        return rgb.reshape(*array.shape, 3)

    def color(self, value: float) -> RGBColor:
        """Map a single value to a color."""
        r, g, b = self.apply(np.array([value], dtype=np.float64))[0]
        return RGBColor(r=int(r), g=int(g), b=int(b))

    def __str__(self) -> str:
        """Return string representation."""
        return f"ColorMap({self.name})"


GRAYSCALE = ColorMap.named(ColorMapType.GRAYSCALE)
HEATMAP = ColorMap.named(ColorMapType.HEATMAP)
VIRIDIS = ColorMap.named(ColorMapType.VIRIDIS)
PLASMA = ColorMap.named(ColorMapType.PLASMA)
INFERNO = ColorMap.named(ColorMapType.INFERNO)
MAGMA = ColorMap.named(ColorMapType.MAGMA)
RAINBOW = ColorMap.named(ColorMapType.RAINBOW)
