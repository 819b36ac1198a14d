"""End-to-end orchestration: cache lookup, inference, rendering, caching."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterable
from threading import Lock
from typing import Any

import numpy as np
from pydantic import BaseModel, Field

from unetvisualizer.core.constants import (
    BYTES_PER_MB,
    DEFAULT_MAX_CACHE_MB,
    DEFAULT_OVERLAY_ALPHA,
    DEFAULT_TARGET_FPS,
)
from unetvisualizer.core.models import (
    CacheStatistics,
    PerformanceMetrics,
    Prediction,
    VisualizationResult,
)
from unetvisualizer.inference.base import InferenceEngine, InferenceError
from unetvisualizer.monitoring.performance import PerformanceMonitor
from unetvisualizer.storage.cache_manager import CacheConfig, ResultCache
from unetvisualizer.utils.image import ImageUtils
from unetvisualizer.visualization.colormap import VIRIDIS, ColorMap
from unetvisualizer.visualization.generator import (
    ChannelVisualizationMode,
    VisualizationError,
    VisualizationGenerator,
)

logger = logging.getLogger(__name__)

# Fields that change how a cached prediction would be rendered
RENDERING_FIELDS = ("channel_visualization", "color_map", "overlay_alpha")


class ProcessingError(Exception):
    """Raised when an image cannot be processed into a prediction."""

    def __init__(self, message: str, error_code: str | None = None) -> None:
        super().__init__(message)
        self.error_code = error_code


class VisualizerConfig(BaseModel):
    """Options recognized by the visualizer.

    Values are not range-checked; ``overlay_alpha`` is clamped when rendering.
    """

    channel_visualization: ChannelVisualizationMode = Field(
        default=ChannelVisualizationMode.HEATMAP
    )
    color_map: ColorMap = Field(default=VIRIDIS)
    overlay_alpha: float = Field(default=DEFAULT_OVERLAY_ALPHA)
    target_fps: int = Field(default=DEFAULT_TARGET_FPS)
    enable_caching: bool = Field(default=True)
    max_cache_size: int = Field(default=DEFAULT_MAX_CACHE_MB, description="MB")
    show_performance_overlay: bool = Field(
        default=True, description="UI hint only, not used for rendering"
    )

    model_config = {"frozen": True}


class UNetVisualizer:
    """Runs a segmentation model on images and renders its predictions."""

    def __init__(
        self,
        engine: InferenceEngine,
        config: VisualizerConfig | None = None,
        cache: ResultCache | None = None,
        monitor: PerformanceMonitor | None = None,
        generator: VisualizationGenerator | None = None,
    ) -> None:
        self.engine = engine
        self._config = config or VisualizerConfig()
        self._config_lock = Lock()
        self.cache = cache or ResultCache(
            CacheConfig.from_megabytes(self._config.max_cache_size)
        )
        self.monitor = monitor or PerformanceMonitor()
        self.generator = generator or VisualizationGenerator()

        self._in_flight = 0
        self.last_prediction: Prediction | None = None
        self.last_result: VisualizationResult | None = None

    @property
    def config(self) -> VisualizerConfig:
        """Current configuration snapshot."""
        with self._config_lock:
            return self._config

    def configure(self, **changes: Any) -> VisualizerConfig:
        """Replace configuration fields and resize the cache to match.

        Cached results are keyed on the image alone, so changing a rendering
        field clears the cache.
        """
        unknown = set(changes) - set(VisualizerConfig.model_fields)
        if unknown:
            msg = f"Unknown configuration fields: {sorted(unknown)}"
            raise ValueError(msg)

        with self._config_lock:
            previous = self._config
            self._config = VisualizerConfig.model_validate(
                {**dict(previous), **changes}
            )
            config = self._config

        self.cache.max_size = int(config.max_cache_size * BYTES_PER_MB)
        if any(getattr(previous, f) != getattr(config, f) for f in RENDERING_FIELDS):
            self.cache.clear()
            logger.debug("Rendering changed, cleared cached results")
        logger.debug("Visualizer configured: %s", changes)
        return config

    @property
    def model_input_size(self) -> tuple[int, int]:
        """Input size reported by the inference engine."""
        return self.engine.input_size

    @property
    def model_output_channels(self) -> int:
        """Channel count reported by the inference engine."""
        return self.engine.output_channels

    @property
    def is_processing(self) -> bool:
        """Whether any ``process`` call is in flight."""
        return self._in_flight > 0

    @property
    def visualization_image(self) -> np.ndarray | None:
        """The most recent successfully rendered image."""
        return self.last_result.visualized_image if self.last_result else None

    def performance_metrics(self) -> PerformanceMetrics:
        """Current performance snapshot."""
        return self.monitor.current_metrics()

    def cache_statistics(self) -> CacheStatistics:
        """Current cache statistics."""
        return self.cache.statistics()

    async def process(self, image: np.ndarray) -> VisualizationResult:
        """Visualize one image, reusing a cached result when available.

        A frame is recorded with the monitor only once its rendering succeeds.
        Cache hits run no inference and record nothing, but still become the
        last result.
        """
        config = self.config

        validation = ImageUtils.validate_image(image)
        if not validation.is_valid:
            msg = f"Invalid input image: {'; '.join(validation.errors)}"
            raise ProcessingError(msg, error_code="invalid_image")
        for warning in validation.warnings:
            logger.debug("Input image warning: %s", warning)

        self._in_flight += 1
        try:
            cache_key = (
                ImageUtils.calculate_cache_key(image) if config.enable_caching else None
            )
            if cache_key is not None:
                cached = self.cache.get(cache_key)
                if cached is not None:
                    self.last_prediction = cached.prediction
                    self.last_result = cached
                    return cached

            try:
                prediction = await self.engine.predict(image)
            except InferenceError as e:
                msg = f"Processing failed: {e}"
                logger.exception(msg)
                raise ProcessingError(msg, error_code=e.error_code) from e

            visualized = await asyncio.to_thread(
                self.generator.generate,
                prediction,
                image,
                config.channel_visualization,
                config.color_map,
                config.overlay_alpha,
            )
            self.monitor.record_inference(prediction.inference_time_ms)

            result = VisualizationResult(
                prediction=prediction,
                visualized_image=visualized,
                performance_metrics=self.monitor.current_metrics(),
            )
            self.last_prediction = prediction
            self.last_result = result

            if cache_key is not None:
                self.cache.set(cache_key, result)
            return result
        finally:
            self._in_flight -= 1

    async def process_stream(self, images: AsyncIterable[np.ndarray]) -> int:
        """Process frames as they arrive, paced to the target FPS.

        Failed frames are logged and skipped; the last good result stays
        available. Returns the number of frames processed successfully.
        """
        processed = 0
        async for image in images:
            try:
                await self.process(image)
                processed += 1
            except (ProcessingError, VisualizationError):
                logger.warning("Dropped stream frame", exc_info=True)

            target_fps = self.config.target_fps
            if target_fps > 0:
                await asyncio.sleep(1.0 / target_fps)

        return processed
