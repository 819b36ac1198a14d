"""Monitoring module - Frame rate and inference time tracking."""

from .performance import (
    PerformanceAlert,
    PerformanceMonitor,
    PerformanceMonitorConfig,
)

__all__ = [
    "PerformanceAlert",
    "PerformanceMonitor",
    "PerformanceMonitorConfig",
]
