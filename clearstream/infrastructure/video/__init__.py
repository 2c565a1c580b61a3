"""
Video decoding infrastructure.

Extracts a single reference frame from an uploaded video using
FFmpeg for decoding and Pillow for resizing and JPEG encoding.
"""

from .extractor import (
    FFmpegFrameExtractor,
    VideoInfo,
    create_frame_extractor,
)

__all__ = [
    "FFmpegFrameExtractor",
    "VideoInfo",
    "create_frame_extractor",
]
