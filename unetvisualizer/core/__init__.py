"""Core module - Fundamental data structures and models."""

from unetvisualizer.core.constants import (
    ALERT_COLORS,
    ALERT_THRESHOLDS,
    GRID_BACKGROUND_RGBA,
)
from unetvisualizer.core.models import (
    CacheStatistics,
    ChannelData,
    ColorStop,
    PerformanceMetrics,
    Prediction,
    RGBColor,
    ValidationResult,
    VisualizationResult,
)

__all__ = [
    # Models
    "CacheStatistics",
    "ChannelData",
    "ColorStop",
    "PerformanceMetrics",
    "Prediction",
    "RGBColor",
    "ValidationResult",
    "VisualizationResult",
    # Constants
    "ALERT_COLORS",
    "ALERT_THRESHOLDS",
    "GRID_BACKGROUND_RGBA",
]
