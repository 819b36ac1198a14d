"""Per-channel statistics and normalization helpers."""

from __future__ import annotations

import math

import numpy as np


def channel_min_max(values: np.ndarray) -> tuple[float, float]:
    """Return ``(min, max)`` of a channel in a single pass.

    Empty arrays yield the sentinel ``(+inf, -inf)``; callers must check for
    it before using the pair.
    """
    flat = np.asarray(values, dtype=np.float32).ravel()
    if flat.size == 0:
        return (math.inf, -math.inf)
    return (float(flat.min()), float(flat.max()))


def has_defined_range(min_value: float, max_value: float) -> bool:
    """Check whether a statistics pair describes a non-empty channel."""
    return min_value <= max_value


def normalize_values(
    values: np.ndarray, min_value: float, max_value: float
) -> np.ndarray:
    """Map values into [0, 1] using the channel's min/max.

    A collapsed range (``max == min``) or the empty-channel sentinel passes
    the raw values through unchanged.
    """
    raw = np.asarray(values, dtype=np.float32)
    value_range = max_value - min_value
    if not value_range > 0:
        return raw.copy()
    return ((raw - np.float32(min_value)) / np.float32(value_range)).astype(
        np.float32
    )
