"""Visualization module - Color maps and composite rendering."""

from .colormap import (
    GRAYSCALE,
    HEATMAP,
    INFERNO,
    MAGMA,
    PLASMA,
    RAINBOW,
    VIRIDIS,
    ColorMap,
    ColorMapType,
)
from .generator import (
    ChannelVisualizationMode,
    ContextCreationError,
    ImageGenerationError,
    NoChannelsToVisualizeError,
    VisualizationError,
    VisualizationGenerator,
    grid_dimension,
)

__all__ = [
    # Color maps
    "ColorMap",
    "ColorMapType",
    "GRAYSCALE",
    "HEATMAP",
    "INFERNO",
    "MAGMA",
    "PLASMA",
    "RAINBOW",
    "VIRIDIS",
    # Rendering
    "ChannelVisualizationMode",
    "VisualizationGenerator",
    "grid_dimension",
    # Errors
    "ContextCreationError",
    "ImageGenerationError",
    "NoChannelsToVisualizeError",
    "VisualizationError",
]
