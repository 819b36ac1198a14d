"""Tests for core data models."""

from datetime import UTC, datetime

import numpy as np
import pytest
from hypothesis import given
from hypothesis import strategies as st
from pydantic import ValidationError

from unetvisualizer.core.models import (
    CacheStatistics,
    ChannelData,
    ColorStop,
    PerformanceMetrics,
    Prediction,
    RGBColor,
    ValidationResult,
    VisualizationResult,
)
from unetvisualizer.visualization.colormap import GRAYSCALE, VIRIDIS


def make_prediction(*planes: np.ndarray, inference_time_ms: float = 5.0) -> Prediction:
    channels = tuple(
        ChannelData.from_values(index, plane) for index, plane in enumerate(planes)
    )
    return Prediction(channels=channels, inference_time_ms=inference_time_ms)


class TestRGBColor:
    """Tests for RGBColor model."""

    def test_valid_creation(self):
        """Test creating a valid color."""
        color = RGBColor(r=10, g=20, b=30)
        assert color.as_tuple() == (10, 20, 30)
        assert str(color) == "RGBColor(10, 20, 30)"

    def test_immutability(self):
        """Test that colors are immutable."""
        color = RGBColor(r=10, g=20, b=30)
        with pytest.raises(ValidationError, match="Instance is frozen"):
            color.r = 0

    def test_out_of_range_component(self):
        """Components must fit in a byte."""
        with pytest.raises(ValidationError):
            RGBColor(r=256, g=0, b=0)
        with pytest.raises(ValidationError):
            RGBColor(r=0, g=-1, b=0)

    def test_equality_by_value(self):
        """Colors compare component-wise."""
        assert RGBColor.from_tuple((1, 2, 3)) == RGBColor(r=1, g=2, b=3)


class TestColorStop:
    """Tests for ColorStop model."""

    def test_position_bounds(self):
        """Positions outside [0, 1] are rejected."""
        black = RGBColor(r=0, g=0, b=0)
        assert ColorStop(position=0.5, color=black).position == 0.5
        with pytest.raises(ValidationError):
            ColorStop(position=1.5, color=black)


class TestChannelData:
    """Tests for ChannelData."""

    def test_from_values_computes_statistics(self):
        """Statistics are computed once at construction."""
        channel = ChannelData.from_values(0, np.array([[0.0, 2.0], [4.0, 8.0]]))
        assert channel.width == 2
        assert channel.height == 2
        assert channel.min_value == 0.0
        assert channel.max_value == 8.0
        assert channel.pixel_count == 4

    def test_from_flat_values_requires_dimensions(self):
        """Flat values need an explicit shape."""
        with pytest.raises(ValueError, match="width and height"):
            ChannelData.from_values(0, np.zeros(4))

        channel = ChannelData.from_values(1, np.zeros(6), width=3, height=2)
        assert channel.as_image().shape == (2, 3)

    def test_value_count_must_match_dimensions(self):
        """Length of values equals width times height."""
        with pytest.raises(ValueError, match="expected"):
            ChannelData(
                index=0,
                values=np.zeros(5),
                width=2,
                height=2,
                min_value=0.0,
                max_value=0.0,
            )

    def test_negative_index_rejected(self):
        """Channel indices are non-negative."""
        with pytest.raises(ValueError, match="index"):
            ChannelData.from_values(-1, np.zeros((2, 2)))

    def test_values_are_read_only_copy(self):
        """Mutating the source array does not affect the channel."""
        source = np.zeros((2, 2), dtype=np.float32)
        channel = ChannelData.from_values(0, source)
        source[0, 0] = 9.0

        assert channel.values[0] == 0.0
        with pytest.raises(ValueError):
            channel.values[0] = 1.0

    def test_normalized_values(self):
        """Values are rescaled against the channel range."""
        channel = ChannelData.from_values(0, np.array([[1.0, 3.0]]))
        np.testing.assert_allclose(channel.normalized_values, [0.0, 1.0])

    def test_all_zero_channel_renders_uniform_color(self):
        """A constant zero channel renders as color(0) everywhere."""
        channel = ChannelData.from_values(0, np.zeros((3, 4)))
        rgba = channel.to_rgba(VIRIDIS)

        expected = VIRIDIS.color(0.0).as_tuple()
        assert rgba.shape == (3, 4, 4)
        assert np.all(rgba[..., :3] == expected)
        assert np.all(rgba[..., 3] == 255)

    def test_constant_channel_uses_clamped_raw_value(self):
        """A constant channel outside [0, 1] clamps its raw value."""
        channel = ChannelData.from_values(0, np.full((2, 2), 5.0))
        rgba = channel.to_rgba(GRAYSCALE)
        assert np.all(rgba[..., :3] == 255)

    def test_to_rgba_is_row_major(self):
        """Pixel (x, y) comes from values[y * width + x]."""
        channel = ChannelData.from_values(0, np.array([[0.0, 1.0, 0.0]]))
        rgba = channel.to_rgba(GRAYSCALE)
        assert rgba[0, 0, 0] == 0
        assert rgba[0, 1, 0] == 255
        assert rgba[0, 2, 0] == 0


class TestPrediction:
    """Tests for Prediction."""

    def test_from_tensor_hwc(self):
        """A [H, W, C] tensor splits into C channels."""
        tensor = np.zeros((4, 6, 3), dtype=np.float32)
        tensor[..., 2] = 1.0
        prediction = Prediction.from_tensor(tensor, inference_time_ms=12.5)

        assert prediction.channel_count == 3
        assert prediction.width == 6
        assert prediction.height == 4
        assert prediction.channel(2).max_value == 1.0
        assert prediction.inference_time_ms == 12.5
        assert prediction.timestamp.tzinfo is UTC

    def test_from_tensor_with_batch_dimension(self):
        """A leading batch of one is dropped."""
        prediction = Prediction.from_tensor(np.zeros((1, 4, 4, 2)), 1.0)
        assert prediction.channel_count == 2

    def test_from_tensor_plane(self):
        """A 2-D plane becomes a single channel."""
        prediction = Prediction.from_tensor(np.zeros((5, 7)), 1.0)
        assert prediction.channel_count == 1
        assert (prediction.width, prediction.height) == (7, 5)

    def test_from_tensor_rejects_other_shapes(self):
        """One-dimensional tensors are rejected."""
        with pytest.raises(ValueError, match="tensor"):
            Prediction.from_tensor(np.zeros(10), 1.0)

    def test_timestamp_is_preserved(self):
        """An explicit timestamp is kept."""
        stamp = datetime(2024, 1, 1, tzinfo=UTC)
        prediction = Prediction.from_tensor(np.zeros((2, 2)), 1.0, timestamp=stamp)
        assert prediction.timestamp == stamp

    def test_channels_must_share_dimensions(self):
        """Mixed channel sizes are rejected."""
        with pytest.raises(ValueError, match="same dimensions"):
            make_prediction(np.zeros((2, 2)), np.zeros((3, 3)))

    def test_negative_inference_time_rejected(self):
        """Inference time is non-negative."""
        with pytest.raises(ValueError, match="inference_time_ms"):
            make_prediction(np.zeros((2, 2)), inference_time_ms=-1.0)

    def test_channel_lookup_out_of_range(self):
        """Missing channels return None."""
        prediction = make_prediction(np.zeros((2, 2)))
        assert prediction.channel(0) is not None
        assert prediction.channel(1) is None
        assert prediction.channel(-1) is None

    def test_empty_prediction(self):
        """Predictions without channels report zero size."""
        prediction = Prediction(channels=(), inference_time_ms=0.0)
        assert prediction.channel_count == 0
        assert prediction.width == 0
        assert prediction.aggregate_prediction().size == 0

    def test_aggregate_prediction_argmax(self):
        """Each pixel takes the index of its strongest channel."""
        prediction = make_prediction(
            np.array([[0.9, 0.1, 0.2]]),
            np.array([[0.1, 0.8, 0.2]]),
            np.array([[0.0, 0.1, 0.7]]),
        )
        np.testing.assert_array_equal(prediction.aggregate_prediction(), [0, 1, 2])

    def test_aggregate_prediction_ties_favor_lowest_index(self):
        """Equal values resolve to the first channel."""
        prediction = make_prediction(np.full((1, 2), 0.5), np.full((1, 2), 0.5))
        np.testing.assert_array_equal(prediction.aggregate_prediction(), [0, 0])

    def test_aggregate_prediction_ignores_nan(self):
        """NaN never wins the argmax."""
        prediction = make_prediction(
            np.array([[np.nan, 0.2]]), np.array([[0.1, 0.1]])
        )
        np.testing.assert_array_equal(prediction.aggregate_prediction(), [1, 0])

    @given(
        st.integers(min_value=1, max_value=5),
        st.integers(min_value=1, max_value=8),
        st.integers(min_value=1, max_value=8),
    )
    def test_property_estimated_nbytes(self, channel_count, width, height):
        """Float footprint is four bytes per sample."""
        prediction = Prediction.from_tensor(
            np.zeros((height, width, channel_count)), 0.0
        )
        assert prediction.estimated_nbytes() == channel_count * width * height * 4


class TestPerformanceMetrics:
    """Tests for PerformanceMetrics."""

    def test_defaults(self):
        """A fresh snapshot is all zeros."""
        metrics = PerformanceMetrics()
        assert metrics.current_fps == 0.0
        assert metrics.total_frames_processed == 0

    def test_is_performance_acceptable(self):
        """Acceptable means at least 90% of target."""
        assert PerformanceMetrics(current_fps=28.0).is_performance_acceptable(30)
        assert not PerformanceMetrics(current_fps=26.9).is_performance_acceptable(30)

    def test_report(self):
        """The report lists FPS, inference time and memory."""
        metrics = PerformanceMetrics(
            current_fps=29.5,
            average_fps=30.1,
            average_inference_time=12.34,
            total_frames_processed=42,
            memory_usage_mb=256.0,
        )
        report = metrics.report()

        assert "FPS: 29.5 (avg: 30.1)" in report
        assert "Inference Time: 12.3ms" in report
        assert "Total Frames: 42" in report
        assert "Memory Usage: 256.0MB" in report


class TestVisualizationResult:
    """Tests for VisualizationResult."""

    def test_valid_creation(self):
        """Dimensions come from the rendered image."""
        prediction = make_prediction(np.zeros((3, 5)))
        image = np.zeros((3, 5, 4), dtype=np.uint8)
        result = VisualizationResult(
            prediction=prediction,
            visualized_image=image,
            performance_metrics=PerformanceMetrics(),
        )

        assert (result.width, result.height) == (5, 3)
        assert result.estimated_nbytes() == 5 * 3 * 4 + 5 * 3 * 4
        assert not result.visualized_image.flags.writeable

    def test_requires_rgba_image(self):
        """Rendered images must have four channels."""
        with pytest.raises(ValueError, match="RGBA"):
            VisualizationResult(
                prediction=make_prediction(np.zeros((2, 2))),
                visualized_image=np.zeros((2, 2, 3), dtype=np.uint8),
                performance_metrics=PerformanceMetrics(),
            )


class TestCacheStatistics:
    """Tests for CacheStatistics."""

    def test_formatting(self):
        """Size and hit rate format for display."""
        stats = CacheStatistics(
            entry_count=2,
            total_size=3 * 1024 * 1024,
            hit_count=1,
            miss_count=3,
            hit_rate=0.25,
        )
        assert stats.formatted_size == "3.0 MB"
        assert stats.formatted_hit_rate == "25.0%"

    def test_hit_rate_bounds(self):
        """Hit rate is a fraction."""
        with pytest.raises(ValidationError):
            CacheStatistics(
                entry_count=0, total_size=0, hit_count=0, miss_count=0, hit_rate=1.5
            )


class TestValidationResult:
    """Tests for ValidationResult model."""

    def test_valid_creation(self):
        """Test creating a valid ValidationResult."""
        result = ValidationResult(is_valid=True)
        assert result.is_valid is True
        assert not result.has_errors
        assert not result.has_warnings

    def test_add_error_marks_invalid(self):
        """Errors flip validity."""
        result = ValidationResult(is_valid=True)
        result.add_error("bad input")
        assert result.is_valid is False
        assert result.has_errors

    def test_add_warning_keeps_valid(self):
        """Warnings do not affect validity."""
        result = ValidationResult(is_valid=True)
        result.add_warning("small image")
        assert result.is_valid is True
        assert result.has_warnings

    def test_empty_messages_filtered(self):
        """Empty messages are dropped."""
        result = ValidationResult(is_valid=False, errors=["", "real error"])
        assert result.errors == ["real error"]

    def test_raise_if_invalid(self):
        """Invalid results raise the requested exception."""
        result = ValidationResult(is_valid=False, errors=["broken"])
        with pytest.raises(RuntimeError, match="Validation failed: broken"):
            result.raise_if_invalid(RuntimeError)

        ValidationResult(is_valid=True).raise_if_invalid()

    def test_string_representation(self):
        """Test string representation."""
        result = ValidationResult(is_valid=False, errors=["a"], warnings=["b", "c"])
        assert str(result) == "ValidationResult(invalid, 1 errors, 2 warnings)"
