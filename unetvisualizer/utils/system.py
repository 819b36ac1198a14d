"""System utilities for process memory and environment reporting."""

from __future__ import annotations

import importlib.metadata
import logging
import platform
import sys
from typing import Any

import psutil

from unetvisualizer.core.constants import BYTES_PER_MB

logger = logging.getLogger(__name__)


class SystemUtils:
    """Utilities for system information used by performance reporting."""

    @staticmethod
    def get_memory_usage_mb() -> float:
        """Resident memory of the current process in megabytes."""
        try:
            return psutil.Process().memory_info().rss / BYTES_PER_MB
        except psutil.Error:
            logger.exception("Failed to read process memory usage")
            return 0.0

    @staticmethod
    def get_system_info() -> dict[str, Any]:
        """Get platform, interpreter and resource information."""
        memory = psutil.virtual_memory()

        return {
            "platform": {
                "system": platform.system(),
                "release": platform.release(),
                "machine": platform.machine(),
            },
            "python": {
                "version": sys.version,
                "executable": sys.executable,
                "implementation": platform.python_implementation(),
            },
            "resources": {
                "cpu_cores": psutil.cpu_count(),
                "memory": {
                    "total": memory.total,
                    "available": memory.available,
                    "percent": memory.percent,
                },
                "process_memory_mb": round(SystemUtils.get_memory_usage_mb(), 2),
            },
            "packages": {
                name: SystemUtils._package_version(name)
                for name in ("numpy", "opencv-python", "pydantic", "psutil")
            },
        }

    @staticmethod
    def _package_version(package_name: str) -> str | None:
        """Installed version of a distribution, or None when missing."""
        try:
            return importlib.metadata.version(package_name)
        except importlib.metadata.PackageNotFoundError:
            return None
