"""
Unit tests for the restoration domain models and frame sizing rules.

These tests verify the core rules without touching external services
(no decoder, no API calls, no file system).
"""

import base64

import pytest

from clearstream.core.restoration.errors import (
    DownloadError,
    ExtractionTimeoutError,
    UnsupportedFileTypeError,
    ZeroDimensionError,
)
from clearstream.core.restoration.frames import (
    fit_within,
    quality_to_pillow,
    safe_seek_timestamp,
    strip_data_url_prefix,
)
from clearstream.core.restoration.models import (
    STYLE_DIRECTIVE,
    AspectRatio,
    ExtractedFrame,
    GenerationRequest,
    Operation,
    ProcessingState,
    ProcessingStatus,
)

from .fakes import FAKE_JPEG, make_frame


# ---------------------------------------------------------------------------
# Aspect Ratio Tests
# ---------------------------------------------------------------------------

class TestAspectRatio:
    """Tests for bucketing frames into wide or tall."""

    def test_landscape_is_wide(self):
        assert AspectRatio.from_dimensions(1920, 1080) is AspectRatio.WIDE
        assert AspectRatio.WIDE.value == "16:9"

    def test_portrait_is_tall(self):
        assert AspectRatio.from_dimensions(1080, 1920) is AspectRatio.TALL
        assert AspectRatio.TALL.value == "9:16"

    def test_square_counts_as_wide(self):
        assert AspectRatio.from_dimensions(800, 800) is AspectRatio.WIDE


# ---------------------------------------------------------------------------
# Extracted Frame Tests
# ---------------------------------------------------------------------------

class TestExtractedFrame:
    """Tests for the ExtractedFrame value object."""

    def test_frame_derives_aspect_ratio(self):
        assert make_frame(1024, 512).aspect_ratio is AspectRatio.WIDE
        assert make_frame(576, 1024).aspect_ratio is AspectRatio.TALL

    def test_image_bytes_decodes_payload(self):
        assert make_frame().image_bytes == FAKE_JPEG

    def test_frame_rejects_zero_dimensions(self):
        with pytest.raises(ValueError, match="positive"):
            ExtractedFrame(encoded_image="abc", mime_type="image/jpeg", width=0, height=10)

    def test_frame_rejects_empty_payload(self):
        with pytest.raises(ValueError, match="empty"):
            ExtractedFrame(encoded_image="", mime_type="image/jpeg", width=10, height=10)

    def test_frame_is_immutable(self):
        frame = make_frame()
        with pytest.raises(AttributeError):
            frame.width = 10


# ---------------------------------------------------------------------------
# Generation Request Tests
# ---------------------------------------------------------------------------

class TestGenerationRequest:
    """Tests for request construction and prompt composition."""

    def test_prompt_combines_directive_and_description(self):
        request = GenerationRequest(frame=make_frame(), description="  a red car  ")

        assert "no watermarks" in request.prompt
        assert "preserve original scene structure" in request.prompt
        assert request.prompt.endswith("a red car")

    def test_prompt_starts_with_directive(self):
        request = GenerationRequest(frame=make_frame(), description="a red car")
        assert request.prompt.lower().startswith(STYLE_DIRECTIVE)

    def test_blank_description_is_rejected(self):
        with pytest.raises(ValueError, match="cannot be empty"):
            GenerationRequest(frame=make_frame(), description="   ")


# ---------------------------------------------------------------------------
# Operation and State Tests
# ---------------------------------------------------------------------------

class TestOperation:

    def test_pending_operation_has_not_succeeded(self):
        assert not Operation(identifier="operations/1").succeeded

    def test_done_with_locator_succeeded(self):
        op = Operation(identifier="operations/1", done=True, result_video_locator="https://x/v")
        assert op.succeeded

    def test_done_without_locator_did_not_succeed(self):
        op = Operation(identifier="operations/1", done=True, failure="blocked")
        assert not op.succeeded


class TestProcessingState:

    def test_default_state_is_idle(self):
        state = ProcessingState()
        assert state.status is ProcessingStatus.IDLE
        assert state.message is None
        assert state.error is None

    def test_busy_states(self):
        assert ProcessingState.analyzing("...").is_busy
        assert ProcessingState.generating("...").is_busy
        assert not ProcessingState.completed().is_busy
        assert not ProcessingState.failed("boom").is_busy

    def test_failed_state_carries_error(self):
        state = ProcessingState.failed("boom")
        assert state.status is ProcessingStatus.ERROR
        assert state.error == "boom"


# ---------------------------------------------------------------------------
# Frame Sizing Tests
# ---------------------------------------------------------------------------

class TestFitWithin:
    """Tests for downscaling the reference frame."""

    def test_large_landscape_is_scaled_to_1024(self):
        assert fit_within(4000, 2000) == (1024, 512)

    def test_large_portrait_is_scaled_to_1024(self):
        assert fit_within(1080, 1920) == (576, 1024)

    def test_frames_within_bounds_are_unchanged(self):
        assert fit_within(640, 360) == (640, 360)
        assert fit_within(1024, 1024) == (1024, 1024)
        assert fit_within(1024, 768) == (1024, 768)

    def test_uses_floor_rounding(self):
        # 1025 * 1024 / 1366 = 768.37...
        assert fit_within(1366, 1025) == (1024, 768)

    def test_extreme_ratio_keeps_at_least_one_pixel(self):
        assert fit_within(100_000, 10) == (1024, 1)

    def test_zero_dimension_is_rejected(self):
        with pytest.raises(ZeroDimensionError):
            fit_within(0, 1080)

    def test_output_is_bounded_and_preserves_aspect_ratio(self):
        """Every size stays within bounds and keeps its ratio up to rounding."""
        for width in (1, 17, 640, 1023, 1024, 1025, 1920, 2160, 3840, 7680):
            for height in (1, 9, 480, 1024, 1080, 1999, 4320):
                out_w, out_h = fit_within(width, height)

                assert 1 <= out_w <= 1024
                assert 1 <= out_h <= 1024

                if width <= 1024 and height <= 1024:
                    assert (out_w, out_h) == (width, height)
                else:
                    assert max(out_w, out_h) == 1024
                    # one pixel of floor rounding on the short side
                    scale = 1024 / max(width, height)
                    assert abs(out_w - width * scale) < 1 or out_w == 1
                    assert abs(out_h - height * scale) < 1 or out_h == 1


class TestSafeSeekTimestamp:

    def test_normal_clip_seeks_to_100ms(self):
        assert safe_seek_timestamp(30.0) == 0.1

    def test_very_short_clip_seeks_to_half_duration(self):
        assert safe_seek_timestamp(0.1) == pytest.approx(0.05)

    def test_unknown_duration_seeks_to_start(self):
        assert safe_seek_timestamp(0) == 0.0
        assert safe_seek_timestamp(None) == 0.0
        assert safe_seek_timestamp(float("nan")) == 0.0


class TestEncodingHelpers:

    def test_quality_maps_to_pillow_scale(self):
        assert quality_to_pillow(0.85) == 85
        assert quality_to_pillow(1.0) == 95

    def test_quality_out_of_range_is_rejected(self):
        with pytest.raises(ValueError):
            quality_to_pillow(0)

    def test_strip_data_url_prefix(self):
        payload = base64.b64encode(FAKE_JPEG).decode("ascii")
        assert strip_data_url_prefix(f"data:image/jpeg;base64,{payload}") == payload

    def test_plain_payload_is_unchanged(self):
        assert strip_data_url_prefix("abc123") == "abc123"


# ---------------------------------------------------------------------------
# Error Message Tests
# ---------------------------------------------------------------------------

class TestErrorMessages:
    """User-facing errors should say what happened."""

    def test_unsupported_type_names_the_type(self):
        assert "video/quicktime" in str(UnsupportedFileTypeError("video/quicktime"))

    def test_timeout_names_the_bound(self):
        assert "15s" in str(ExtractionTimeoutError(15.0))

    def test_download_error_includes_status(self):
        error = DownloadError(403, "Forbidden")
        assert "403 Forbidden" in str(error)
        assert error.status_code == 403
