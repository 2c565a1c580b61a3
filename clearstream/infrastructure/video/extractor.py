"""
Reference frame extraction using FFmpeg and Pillow.

Turns an uploaded MP4 into one ExtractedFrame:
1. Probe duration and dimensions with FFprobe
2. Decode a single frame at a safe timestamp with FFmpeg (PNG on stdout)
3. Load it into a Pillow image, downscale to at most 1024px
4. Encode as JPEG and base64 it for the generation service

The whole run is bounded by a timeout. The temporary video file and any
FFmpeg child processes are released on success, failure and timeout
alike.
"""

import asyncio
import base64
import io
import json
import logging
import os
import shutil
import tempfile
from dataclasses import dataclass

from PIL import Image, UnidentifiedImageError

from ...core.restoration.errors import (
    DecoderUnavailableError,
    ExtractionTimeoutError,
    FrameExtractionError,
    RasterizationError,
    VideoDecodeError,
    ZeroDimensionError,
)
from ...core.restoration.frames import (
    MAX_FRAME_DIMENSION,
    fit_within,
    quality_to_pillow,
    safe_seek_timestamp,
)
from ...core.restoration.models import ExtractedFrame

logger = logging.getLogger(__name__)


FRAME_MIME_TYPE = "image/jpeg"
DEFAULT_TIMEOUT_SECONDS = 15.0
DEFAULT_JPEG_QUALITY = 0.85


@dataclass(frozen=True)
class VideoInfo:
    """Video metadata extracted via FFprobe."""
    duration_seconds: float
    width: int
    height: int
    codec: str
    file_size_bytes: int


class FFmpegFrameExtractor:
    """
    Frame extractor backed by the ffmpeg/ffprobe binaries.

    FFmpeg works best with file paths, so the upload is written to a
    temporary file for the duration of one extraction.
    """

    def __init__(
        self,
        ffmpeg_path: str = "ffmpeg",
        ffprobe_path: str = "ffprobe",
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        max_dimension: int = MAX_FRAME_DIMENSION,
        jpeg_quality: float = DEFAULT_JPEG_QUALITY,
    ) -> None:
        self._ffmpeg = ffmpeg_path
        self._ffprobe = ffprobe_path
        self._timeout = timeout_seconds
        self._max_dimension = max_dimension
        self._quality = quality_to_pillow(jpeg_quality)

    def is_available(self) -> bool:
        """True when both binaries can be found."""
        return shutil.which(self._ffmpeg) is not None and shutil.which(self._ffprobe) is not None

    async def extract(self, video_data: bytes) -> ExtractedFrame:
        """
        Extract one downscaled, JPEG-encoded frame from the video.

        Raises a FrameExtractionError subclass describing what went wrong.
        """
        if not self.is_available():
            raise DecoderUnavailableError(
                "No video decoder available. Install FFmpeg (ffmpeg and ffprobe) on the server."
            )

        tmp_path = None
        try:
            with tempfile.NamedTemporaryFile(suffix=".mp4", delete=False) as tmp:
                tmp_path = tmp.name
                tmp.write(video_data)

            return await asyncio.wait_for(
                self._extract_from_path(tmp_path, len(video_data)),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(
                "Frame extraction timed out",
                extra={"timeout_seconds": self._timeout, "size_bytes": len(video_data)},
            )
            raise ExtractionTimeoutError(self._timeout) from None
        except FrameExtractionError:
            raise
        except Exception as e:
            # disk, probe parsing or Pillow failures not classified above
            logger.error(
                "Unexpected error during frame extraction",
                extra={"error": str(e), "size_bytes": len(video_data)},
                exc_info=e,
            )
            raise FrameExtractionError(f"Error loading video file: {e}") from e
        finally:
            if tmp_path and os.path.exists(tmp_path):
                os.unlink(tmp_path)

    async def get_video_info(self, video_path: str, file_size_bytes: int = 0) -> VideoInfo:
        """
        Extract video metadata using FFprobe.

        FFprobe outputs JSON with stream info; we take the first video
        stream and the container duration.
        """
        cmd = [
            self._ffprobe,
            "-v", "quiet",
            "-print_format", "json",
            "-show_format",
            "-show_streams",
            video_path,
        ]
        returncode, stdout, stderr = await self._run(cmd)

        if returncode != 0:
            raise VideoDecodeError(
                f"Could not read the video file. It may be corrupt or unsupported. ({stderr.decode(errors='replace').strip()})"
            )

        try:
            info = json.loads(stdout or b"{}")
        except json.JSONDecodeError:
            raise VideoDecodeError("Could not read the video file metadata.")

        video_stream = None
        for stream in info.get("streams", []):
            if stream.get("codec_type") == "video":
                video_stream = stream
                break

        if not video_stream:
            raise VideoDecodeError("No video stream found in the uploaded file.")

        try:
            # get duration from format or stream
            duration = float(info.get("format", {}).get("duration", 0) or 0)
            if duration == 0:
                duration = float(video_stream.get("duration", 0) or 0)
            width = int(video_stream.get("width", 0) or 0)
            height = int(video_stream.get("height", 0) or 0)
        except (TypeError, ValueError):
            raise VideoDecodeError("Could not read the video file metadata.") from None

        return VideoInfo(
            duration_seconds=duration,
            width=width,
            height=height,
            codec=video_stream.get("codec_name", "unknown"),
            file_size_bytes=file_size_bytes,
        )

    async def _extract_from_path(self, video_path: str, file_size_bytes: int) -> ExtractedFrame:
        info = await self.get_video_info(video_path, file_size_bytes)

        if info.width <= 0 or info.height <= 0:
            raise ZeroDimensionError(info.width, info.height)

        timestamp = safe_seek_timestamp(info.duration_seconds)
        logger.debug(
            "Seeking for reference frame",
            extra={
                "timestamp": timestamp,
                "duration": info.duration_seconds,
                "resolution": f"{info.width}x{info.height}",
                "codec": info.codec,
            },
        )

        png_data = await self._decode_frame(video_path, timestamp)
        return await asyncio.to_thread(self._rasterize, png_data)

    async def _decode_frame(self, video_path: str, timestamp: float) -> bytes:
        # -ss before -i for fast seeking, single frame as PNG to stdout
        cmd = [
            self._ffmpeg,
            "-v", "error",
            "-ss", f"{timestamp:.3f}",
            "-i", video_path,
            "-frames:v", "1",
            "-f", "image2pipe",
            "-vcodec", "png",
            "-",
        ]
        returncode, stdout, stderr = await self._run(cmd)

        if returncode != 0 or not stdout:
            raise VideoDecodeError(
                f"Error loading video file: could not decode a frame. ({stderr.decode(errors='replace').strip()})"
            )
        return stdout

    def _rasterize(self, png_data: bytes) -> ExtractedFrame:
        """Draw the decoded frame onto a Pillow surface, downscale and encode."""
        try:
            image = Image.open(io.BytesIO(png_data))
            image.load()
        except (UnidentifiedImageError, OSError) as e:
            raise RasterizationError(f"Could not draw the decoded frame: {e}") from e

        source_width, source_height = image.size
        width, height = fit_within(source_width, source_height, self._max_dimension)

        buffer = io.BytesIO()
        try:
            with image:
                surface = image.convert("RGB")
                if (width, height) != surface.size:
                    surface = surface.resize((width, height), Image.Resampling.LANCZOS)
                surface.save(buffer, format="JPEG", quality=self._quality)
        except (OSError, ValueError) as e:
            raise RasterizationError(f"Could not encode the reference frame: {e}") from e

        logger.info(
            "Reference frame extracted",
            extra={
                "source_resolution": f"{source_width}x{source_height}",
                "resolution": f"{width}x{height}",
                "size_bytes": buffer.tell(),
            },
        )

        return ExtractedFrame(
            encoded_image=base64.b64encode(buffer.getvalue()).decode("ascii"),
            mime_type=FRAME_MIME_TYPE,
            width=width,
            height=height,
        )

    async def _run(self, cmd: list[str]) -> tuple[int, bytes, bytes]:
        """
        Run a subprocess and collect its output.

        The child is killed if the awaiting task is cancelled, which is
        how the extraction timeout reaches FFmpeg.
        """
        process = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        try:
            stdout, stderr = await process.communicate()
        finally:
            if process.returncode is None:
                process.kill()
                await process.wait()
        return process.returncode, stdout, stderr


def create_frame_extractor(
    ffmpeg_path: str = "ffmpeg",
    ffprobe_path: str = "ffprobe",
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    max_dimension: int = MAX_FRAME_DIMENSION,
    jpeg_quality: float = DEFAULT_JPEG_QUALITY,
) -> FFmpegFrameExtractor:
    """Factory function for the frame extractor."""
    extractor = FFmpegFrameExtractor(
        ffmpeg_path=ffmpeg_path,
        ffprobe_path=ffprobe_path,
        timeout_seconds=timeout_seconds,
        max_dimension=max_dimension,
        jpeg_quality=jpeg_quality,
    )
    if not extractor.is_available():
        logger.warning(
            "FFmpeg not found, frame extraction will fail",
            extra={"ffmpeg": ffmpeg_path, "ffprobe": ffprobe_path},
        )
    return extractor
