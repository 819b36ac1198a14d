"""Library-wide constants for U-Net prediction visualization."""

# Control stops (position, (r, g, b)) for the matplotlib-derived palettes
VIRIDIS_STOPS = (
    (0.0, (68, 1, 84)),
    (0.25, (59, 82, 139)),
    (0.5, (33, 145, 140)),
    (0.75, (94, 201, 98)),
    (1.0, (253, 231, 37)),
)

PLASMA_STOPS = (
    (0.0, (13, 8, 135)),
    (0.25, (126, 3, 168)),
    (0.5, (204, 71, 120)),
    (0.75, (248, 149, 64)),
    (1.0, (240, 249, 33)),
)

INFERNO_STOPS = (
    (0.0, (0, 0, 4)),
    (0.25, (87, 16, 110)),
    (0.5, (188, 55, 84)),
    (0.75, (249, 142, 9)),
    (1.0, (252, 255, 164)),
)

MAGMA_STOPS = (
    (0.0, (0, 0, 4)),
    (0.25, (81, 18, 124)),
    (0.5, (183, 55, 121)),
    (0.75, (251, 136, 97)),
    (1.0, (252, 253, 191)),
)

# Rainbow hue sweep stops short of the wrap back to red
RAINBOW_MAX_HUE = 300.0

# Rendering
RGBA_CHANNELS = 4
GRID_PADDING = 2
GRID_BACKGROUND_RGBA = (26, 26, 26, 255)
OPAQUE_ALPHA = 255
DEFAULT_OVERLAY_ALPHA = 0.5

# Result cache
BYTES_PER_MB = 1024 * 1024
DEFAULT_MAX_CACHE_MB = 100
CACHE_EVICTION_TARGET_RATIO = 0.9
FLOAT32_BYTES = 4
CACHE_KEY_SAMPLE_BYTES = 1024

# Performance monitoring
DEFAULT_WINDOW_SIZE = 30
DEFAULT_UPDATE_INTERVAL = 0.5
DEFAULT_TARGET_FPS = 30
DEFAULT_WARNING_FPS = 20.0
CURRENT_FPS_SPAN_SECONDS = 1.0

# Alert thresholds as fractions of the target FPS, most lenient first
ALERT_THRESHOLDS = {
    "none": 0.9,
    "low": 0.7,
    "medium": 0.5,
}

ALERT_COLORS = {
    "none": "green",
    "low": "yellow",
    "medium": "orange",
    "high": "red",
}
