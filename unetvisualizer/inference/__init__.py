"""Inference engines producing predictions from images."""

from unetvisualizer.inference.base import (
    ArrayModelEngine,
    InferenceEngine,
    InferenceError,
    ModelLoadingError,
    OutputProcessingError,
    PredictionError,
)

__all__ = [
    "ArrayModelEngine",
    "InferenceEngine",
    # Errors
    "InferenceError",
    "ModelLoadingError",
    "OutputProcessingError",
    "PredictionError",
]
