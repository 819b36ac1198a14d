"""Inference engine interface and an adapter for array-in/array-out models."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from typing import Protocol, runtime_checkable

import numpy as np

from unetvisualizer.core.models import Prediction

logger = logging.getLogger(__name__)

DEFAULT_INPUT_SIZE = (512, 512)


class InferenceError(Exception):
    """Base exception for inference engine failures."""

    def __init__(self, message: str, error_code: str | None = None) -> None:
        super().__init__(message)
        self.error_code = error_code


class ModelLoadingError(InferenceError):
    """Raised when a model cannot be loaded."""


class PredictionError(InferenceError):
    """Raised when the model fails to produce an output."""


class OutputProcessingError(InferenceError):
    """Raised when model output cannot be turned into a prediction."""


@runtime_checkable
class InferenceEngine(Protocol):
    """Segmentation model producing per-channel predictions."""

    @property
    def input_size(self) -> tuple[int, int]:
        """Expected ``(width, height)`` of input images."""
        ...

    @property
    def output_channels(self) -> int:
        """Number of channels the model emits."""
        ...

    async def predict(self, image: np.ndarray) -> Prediction:
        """Run the model on an image."""
        ...


class ArrayModelEngine:
    """Wrap a synchronous ``model(image) -> ndarray`` callable as an engine.

    The callable runs on a worker thread. Its output must be a
    ``[height, width, channels]`` tensor, optionally with a leading batch
    dimension of one.
    """

    def __init__(
        self,
        model: Callable[[np.ndarray], np.ndarray],
        input_size: tuple[int, int] = DEFAULT_INPUT_SIZE,
        output_channels: int = 1,
    ) -> None:
        if not callable(model):
            msg = f"Model must be callable, got {type(model).__name__}"
            raise ModelLoadingError(msg, error_code="not_callable")
        self._model = model
        self._input_size = input_size
        self._output_channels = output_channels

    @property
    def input_size(self) -> tuple[int, int]:
        """Expected ``(width, height)`` of input images."""
        return self._input_size

    @property
    def output_channels(self) -> int:
        """Number of channels the model emits."""
        return self._output_channels

    async def predict(self, image: np.ndarray) -> Prediction:
        """Run the model off the event loop and convert its output."""
        output, elapsed_ms = await asyncio.to_thread(self._run_model, image)

        try:
            prediction = Prediction.from_tensor(output, inference_time_ms=elapsed_ms)
        except (TypeError, ValueError) as e:
            msg = f"Failed to process model output: {e}"
            logger.exception(msg)
            raise OutputProcessingError(msg, error_code="bad_output") from e

        logger.debug(
            "Inference finished in %.2fms with %s channel(s)",
            elapsed_ms,
            prediction.channel_count,
        )
        return prediction

    def _run_model(self, image: np.ndarray) -> tuple[np.ndarray, float]:
        start = time.perf_counter()
        try:
            output = self._model(image)
        except Exception as e:
            msg = f"Prediction failed: {e}"
            logger.exception(msg)
            raise PredictionError(msg, error_code="model_failed") from e

        if output is None:
            msg = "Prediction returned no output"
            raise PredictionError(msg, error_code="empty_output")
        return output, (time.perf_counter() - start) * 1000
