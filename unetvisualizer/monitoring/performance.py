"""Rolling-window performance monitoring for the visualization pipeline."""

from __future__ import annotations

import logging
import threading
import time
from collections import deque
from collections.abc import Callable
from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, Field

from unetvisualizer.core.constants import (
    ALERT_COLORS,
    ALERT_THRESHOLDS,
    CURRENT_FPS_SPAN_SECONDS,
    DEFAULT_UPDATE_INTERVAL,
    DEFAULT_WARNING_FPS,
    DEFAULT_WINDOW_SIZE,
)
from unetvisualizer.core.models import PerformanceMetrics
from unetvisualizer.utils.system import SystemUtils

logger = logging.getLogger(__name__)


class PerformanceAlert(str, Enum):
    """Severity of an FPS shortfall relative to the target."""

    NONE = "none"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def color(self) -> str:
        """Display color for this severity."""
        return ALERT_COLORS[self.value]

    @classmethod
    def level(cls, fps: float, target: float) -> PerformanceAlert:
        """Classify ``fps`` against ``target``; a non-positive target never alerts."""
        if target <= 0:
            return cls.NONE

        ratio = fps / target
        if ratio >= ALERT_THRESHOLDS["none"]:
            return cls.NONE
        if ratio >= ALERT_THRESHOLDS["low"]:
            return cls.LOW
        if ratio >= ALERT_THRESHOLDS["medium"]:
            return cls.MEDIUM
        return cls.HIGH


class PerformanceMonitorConfig(BaseModel):
    """Configuration for the performance monitor."""

    window_size: int = Field(
        default=DEFAULT_WINDOW_SIZE,
        gt=0,
        description="Inference samples kept, and seconds of frame history kept",
    )
    update_interval: float = Field(
        default=DEFAULT_UPDATE_INTERVAL,
        gt=0,
        description="Seconds between published snapshot refreshes",
    )
    enable_warnings: bool = Field(default=True, description="Log low FPS warnings")
    warning_fps_threshold: float = Field(
        default=DEFAULT_WARNING_FPS, ge=0, description="FPS below which to warn"
    )

    model_config = {"frozen": True}


class PerformanceMonitor:
    """Aggregates frame arrivals and inference durations from many threads.

    Frame timestamps are pruned by age (``window_size`` seconds) while
    inference durations are pruned by count (``window_size`` samples).
    """

    def __init__(
        self,
        config: PerformanceMonitorConfig | None = None,
        clock: Callable[[], float] = time.monotonic,
        memory_probe: Callable[[], float] = SystemUtils.get_memory_usage_mb,
    ) -> None:
        self.config = config or PerformanceMonitorConfig()
        self._clock = clock
        self._memory_probe = memory_probe
        self._lock = threading.Lock()
        self._frame_timestamps: deque[float] = deque()
        self._inference_times: deque[float] = deque(maxlen=self.config.window_size)
        self._total_frames = 0

        # Published snapshot, refreshed periodically for observers
        self.current_fps = 0.0
        self.average_inference_time = 0.0
        self.memory_usage_mb = self._memory_probe()

        self._stop_event = threading.Event()
        self._update_thread: threading.Thread | None = None

    def record_frame(self) -> None:
        """Record a processed frame at the current time."""
        with self._lock:
            self._append_frame(self._clock())

    def record_inference(self, time_ms: float) -> None:
        """Record an inference duration; it also counts as a processed frame."""
        with self._lock:
            self._inference_times.append(float(time_ms))
            self._append_frame(self._clock())

    def current_metrics(self) -> PerformanceMetrics:
        """Compute a consistent snapshot from the live windows."""
        now = self._clock()
        with self._lock:
            timestamps = list(self._frame_timestamps)
            inference_times = list(self._inference_times)
            total_frames = self._total_frames

        current_fps, average_fps, min_fps, max_fps = self._calculate_fps(
            timestamps, now
        )

        if inference_times:
            average_inference = sum(inference_times) / len(inference_times)
            min_inference = min(inference_times)
            max_inference = max(inference_times)
        else:
            average_inference = min_inference = max_inference = 0.0

        return PerformanceMetrics(
            current_fps=current_fps,
            average_fps=average_fps,
            min_fps=min_fps,
            max_fps=max_fps,
            average_inference_time=average_inference,
            min_inference_time=min_inference,
            max_inference_time=max_inference,
            total_frames_processed=total_frames,
            memory_usage_mb=self.memory_usage_mb,
            timestamp=datetime.now(UTC),
        )

    def reset(self) -> None:
        """Clear both windows and the frame counter."""
        with self._lock:
            self._frame_timestamps.clear()
            self._inference_times.clear()
            self._total_frames = 0
        logger.info("Performance metrics reset")

    def alert_level(self, target_fps: float) -> PerformanceAlert:
        """Alert level of the current FPS against ``target_fps``."""
        return PerformanceAlert.level(self.current_metrics().current_fps, target_fps)

    def refresh(self) -> PerformanceMetrics:
        """Update the published snapshot and warn about low FPS."""
        self.memory_usage_mb = self._memory_probe()
        metrics = self.current_metrics()
        self.current_fps = metrics.current_fps
        self.average_inference_time = metrics.average_inference_time

        if (
            self.config.enable_warnings
            and 0 < metrics.current_fps < self.config.warning_fps_threshold
        ):
            logger.warning("Low FPS detected: %.1f FPS", metrics.current_fps)

        return metrics

    def start(self) -> None:
        """Refresh the published snapshot every ``update_interval`` seconds."""
        if self._update_thread is not None and self._update_thread.is_alive():
            return

        self._stop_event.clear()
        self._update_thread = threading.Thread(
            target=self._run_updates, name="performance-monitor", daemon=True
        )
        self._update_thread.start()
        logger.debug(
            "Performance monitor started (interval: %ss)", self.config.update_interval
        )

    def stop(self) -> None:
        """Stop periodic refreshes."""
        self._stop_event.set()
        if self._update_thread is not None:
            self._update_thread.join(timeout=self.config.update_interval * 2)
            self._update_thread = None

    @property
    def is_running(self) -> bool:
        """Whether periodic refreshes are active."""
        return self._update_thread is not None and self._update_thread.is_alive()

    def _run_updates(self) -> None:
        while not self._stop_event.wait(self.config.update_interval):
            self.refresh()

    def _append_frame(self, now: float) -> None:
        """Append a frame timestamp and prune by age; caller holds the lock."""
        self._frame_timestamps.append(now)
        self._total_frames += 1

        cutoff = now - self.config.window_size
        while self._frame_timestamps and self._frame_timestamps[0] < cutoff:
            self._frame_timestamps.popleft()

    @staticmethod
    def _calculate_fps(
        timestamps: list[float], now: float
    ) -> tuple[float, float, float, float]:
        """Return current, average, min and max FPS.

        Current FPS counts frames in the last second; the others are taken over
        the inverse of consecutive inter-frame intervals across the window.
        """
        if not timestamps:
            return (0.0, 0.0, 0.0, 0.0)

        current_fps = float(
            sum(1 for stamp in timestamps if now - stamp <= CURRENT_FPS_SPAN_SECONDS)
        )

        interval_fps = [
            1.0 / (later - earlier)
            for earlier, later in zip(timestamps, timestamps[1:], strict=False)
            if later - earlier > 0
        ]
        if not interval_fps:
            return (current_fps, 0.0, 0.0, 0.0)

        return (
            current_fps,
            sum(interval_fps) / len(interval_fps),
            min(interval_fps),
            max(interval_fps),
        )
