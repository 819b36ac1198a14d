"""Real-time visualization of U-Net segmentation predictions."""

from unetvisualizer.pipeline.visualizer import (
    ProcessingError,
    UNetVisualizer,
    VisualizerConfig,
)

__all__ = [
    "ProcessingError",
    "UNetVisualizer",
    "VisualizerConfig",
]
