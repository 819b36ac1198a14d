"""Pipeline module - End-to-end processing of frames."""

from .visualizer import ProcessingError, UNetVisualizer, VisualizerConfig

__all__ = [
    "ProcessingError",
    "UNetVisualizer",
    "VisualizerConfig",
]
