"""
Unit tests for the FFmpeg frame extractor.

FFmpeg itself is not required: the subprocess runner is replaced with
canned ffprobe output and a PNG drawn with Pillow, so the probe
parsing, seek choice, downscaling and cleanup are tested for real.
"""

import asyncio
import base64
import io
import json
import os
import sys
import tempfile

import pytest
from PIL import Image

from clearstream.core.restoration.errors import (
    DecoderUnavailableError,
    ExtractionTimeoutError,
    FrameExtractionError,
    RasterizationError,
    VideoDecodeError,
    ZeroDimensionError,
)
from clearstream.infrastructure.video.extractor import FFmpegFrameExtractor

from .fakes import FAKE_MP4


def _png(width: int, height: int) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (width, height), color=(200, 30, 30)).save(buffer, format="PNG")
    return buffer.getvalue()


def _probe(width: int = 1920, height: int = 1080, duration: str = "12.5", video: bool = True) -> bytes:
    streams = [{"codec_type": "audio", "codec_name": "aac"}]
    if video:
        streams.append({"codec_type": "video", "codec_name": "h264", "width": width, "height": height})
    return json.dumps({"streams": streams, "format": {"duration": duration}}).encode()


class ScriptedExtractor(FFmpegFrameExtractor):
    """Extractor whose subprocesses are answered from a script."""

    def __init__(self, probe=None, frame=None, hang: bool = False, **kwargs) -> None:
        super().__init__(**kwargs)
        self.probe_result = probe if probe is not None else (0, _probe(), b"")
        self.frame_result = frame if frame is not None else (0, _png(1920, 1080), b"")
        self.hang = hang
        self.commands: list[list[str]] = []
        self.seen_paths: list[str] = []

    def is_available(self) -> bool:
        return True

    async def _run(self, cmd):
        self.commands.append(cmd)
        self.seen_paths.append(cmd[-1] if cmd[0] == self._ffprobe else cmd[cmd.index("-i") + 1])
        if self.hang:
            await asyncio.sleep(10)
        if cmd[0] == self._ffprobe:
            return self.probe_result
        return self.frame_result


def _decode(frame) -> Image.Image:
    return Image.open(io.BytesIO(base64.b64decode(frame.encoded_image)))


# ---------------------------------------------------------------------------
# Successful Extraction
# ---------------------------------------------------------------------------

class TestExtraction:
    """Tests for the happy path through probe, decode and rasterize."""

    @pytest.mark.asyncio
    async def test_large_landscape_frame_is_downscaled(self):
        extractor = ScriptedExtractor(
            probe=(0, _probe(4000, 2000), b""),
            frame=(0, _png(4000, 2000), b""),
        )

        frame = await extractor.extract(FAKE_MP4)

        assert (frame.width, frame.height) == (1024, 512)
        assert frame.mime_type == "image/jpeg"
        image = _decode(frame)
        assert image.format == "JPEG"
        assert image.size == (1024, 512)

    @pytest.mark.asyncio
    async def test_small_frame_keeps_its_size(self):
        extractor = ScriptedExtractor(
            probe=(0, _probe(640, 360), b""),
            frame=(0, _png(640, 360), b""),
        )

        frame = await extractor.extract(FAKE_MP4)

        assert (frame.width, frame.height) == (640, 360)
        assert _decode(frame).size == (640, 360)

    @pytest.mark.asyncio
    async def test_portrait_frame_is_tall(self):
        extractor = ScriptedExtractor(
            probe=(0, _probe(1080, 1920), b""),
            frame=(0, _png(1080, 1920), b""),
        )

        frame = await extractor.extract(FAKE_MP4)

        assert (frame.width, frame.height) == (576, 1024)
        assert frame.aspect_ratio.value == "9:16"

    @pytest.mark.asyncio
    async def test_seeks_100ms_into_normal_clip(self):
        extractor = ScriptedExtractor()

        await extractor.extract(FAKE_MP4)

        decode_cmd = extractor.commands[1]
        assert decode_cmd[decode_cmd.index("-ss") + 1] == "0.100"
        assert decode_cmd[decode_cmd.index("-frames:v") + 1] == "1"

    @pytest.mark.asyncio
    async def test_seeks_to_half_duration_for_short_clip(self):
        extractor = ScriptedExtractor(probe=(0, _probe(duration="0.1"), b""))

        await extractor.extract(FAKE_MP4)

        decode_cmd = extractor.commands[1]
        assert decode_cmd[decode_cmd.index("-ss") + 1] == "0.050"

    @pytest.mark.asyncio
    async def test_temporary_file_is_removed_after_success(self):
        extractor = ScriptedExtractor()

        await extractor.extract(FAKE_MP4)

        assert extractor.seen_paths
        assert all(not os.path.exists(path) for path in extractor.seen_paths)


# ---------------------------------------------------------------------------
# Failure Modes
# ---------------------------------------------------------------------------

class TestExtractionFailures:
    """Each failure surfaces as a specific FrameExtractionError."""

    @pytest.mark.asyncio
    async def test_missing_decoder(self):
        extractor = FFmpegFrameExtractor(
            ffmpeg_path="/nonexistent/ffmpeg",
            ffprobe_path="/nonexistent/ffprobe",
        )

        assert not extractor.is_available()
        with pytest.raises(DecoderUnavailableError):
            await extractor.extract(FAKE_MP4)

    @pytest.mark.asyncio
    async def test_zero_dimensions(self):
        extractor = ScriptedExtractor(probe=(0, _probe(0, 0), b""))

        with pytest.raises(ZeroDimensionError):
            await extractor.extract(FAKE_MP4)

        # never got as far as decoding
        assert len(extractor.commands) == 1

    @pytest.mark.asyncio
    async def test_probe_failure(self):
        extractor = ScriptedExtractor(probe=(1, b"", b"moov atom not found"))

        with pytest.raises(VideoDecodeError, match="moov atom not found"):
            await extractor.extract(FAKE_MP4)

    @pytest.mark.asyncio
    async def test_probe_returns_garbage(self):
        extractor = ScriptedExtractor(probe=(0, b"not json", b""))

        with pytest.raises(VideoDecodeError):
            await extractor.extract(FAKE_MP4)

    @pytest.mark.asyncio
    async def test_no_video_stream(self):
        extractor = ScriptedExtractor(probe=(0, _probe(video=False), b""))

        with pytest.raises(VideoDecodeError, match="No video stream"):
            await extractor.extract(FAKE_MP4)

    @pytest.mark.asyncio
    async def test_decoder_produces_nothing(self):
        extractor = ScriptedExtractor(frame=(0, b"", b""))

        with pytest.raises(VideoDecodeError):
            await extractor.extract(FAKE_MP4)

    @pytest.mark.asyncio
    async def test_undrawable_frame(self):
        extractor = ScriptedExtractor(frame=(0, b"definitely not a png", b""))

        with pytest.raises(RasterizationError):
            await extractor.extract(FAKE_MP4)

    @pytest.mark.asyncio
    async def test_timeout_cleans_up(self):
        extractor = ScriptedExtractor(hang=True, timeout_seconds=0.05)

        with pytest.raises(ExtractionTimeoutError):
            await extractor.extract(FAKE_MP4)

        assert extractor.seen_paths
        assert not os.path.exists(extractor.seen_paths[0])

    @pytest.mark.asyncio
    async def test_timeout_error_hides_asyncio_context(self):
        extractor = ScriptedExtractor(hang=True, timeout_seconds=0.05)

        with pytest.raises(ExtractionTimeoutError) as excinfo:
            await extractor.extract(FAKE_MP4)

        assert excinfo.value.__cause__ is None
        assert excinfo.value.__suppress_context__

    @pytest.mark.asyncio
    async def test_non_numeric_probe_dimensions(self):
        probe = json.dumps({
            "streams": [{"codec_type": "video", "codec_name": "h264", "width": "wide", "height": 1080}],
            "format": {"duration": "12.5"},
        }).encode()
        extractor = ScriptedExtractor(probe=(0, probe, b""))

        with pytest.raises(VideoDecodeError, match="metadata"):
            await extractor.extract(FAKE_MP4)

    @pytest.mark.asyncio
    async def test_temporary_file_write_failure(self, monkeypatch):
        def no_space(*args, **kwargs):
            raise OSError("No space left on device")

        monkeypatch.setattr(tempfile, "NamedTemporaryFile", no_space)
        extractor = ScriptedExtractor()

        with pytest.raises(FrameExtractionError, match="No space left on device"):
            await extractor.extract(FAKE_MP4)

        assert extractor.commands == []

    @pytest.mark.asyncio
    async def test_unexpected_runner_error_is_classified(self):
        class BrokenRunner(ScriptedExtractor):
            async def _run(self, cmd):
                self.seen_paths.append(cmd[-1])
                raise RuntimeError("pipe closed")

        extractor = BrokenRunner()

        with pytest.raises(FrameExtractionError, match="pipe closed") as excinfo:
            await extractor.extract(FAKE_MP4)

        assert isinstance(excinfo.value.__cause__, RuntimeError)
        assert not os.path.exists(extractor.seen_paths[0])

    @pytest.mark.asyncio
    async def test_temporary_file_is_removed_after_failure(self):
        extractor = ScriptedExtractor(probe=(1, b"", b"bad"))

        with pytest.raises(VideoDecodeError):
            await extractor.extract(FAKE_MP4)

        assert not os.path.exists(extractor.seen_paths[0])


# ---------------------------------------------------------------------------
# Subprocess Runner
# ---------------------------------------------------------------------------

class TestSubprocessRunner:

    @pytest.mark.asyncio
    async def test_run_collects_output_and_return_code(self):
        extractor = FFmpegFrameExtractor()

        returncode, stdout, stderr = await extractor._run(
            [sys.executable, "-c", "import sys; sys.stdout.write('out'); sys.stderr.write('err'); sys.exit(3)"]
        )

        assert returncode == 3
        assert stdout == b"out"
        assert stderr == b"err"
