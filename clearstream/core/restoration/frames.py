"""
Frame sampling and sizing rules.

Pure functions only, so the rules can be tested without a decoder:
- where to seek in the clip
- how far to shrink the frame before sending it
- how to turn an encoder quality fraction into Pillow's scale
"""

import math

from .errors import ZeroDimensionError


MAX_FRAME_DIMENSION = 1024

# Far enough in to skip a black leading frame on most encodes
PREFERRED_SEEK_SECONDS = 0.1


def safe_seek_timestamp(duration_seconds: float | None) -> float:
    """
    Timestamp to grab the reference frame from.

    Uses min(0.1s, duration / 2) so very short clips still land inside
    the video. Unknown or non-positive durations seek to the start.
    """
    if not duration_seconds or duration_seconds <= 0 or math.isnan(duration_seconds):
        return 0.0
    return min(PREFERRED_SEEK_SECONDS, duration_seconds / 2)


def fit_within(width: int, height: int, max_dimension: int = MAX_FRAME_DIMENSION) -> tuple[int, int]:
    """
    Scale dimensions down so the longer side is at most max_dimension.

    Frames already within bounds are returned unchanged. Otherwise the
    longer side becomes exactly max_dimension and the other side is
    floored, never below one pixel.
    """
    if width <= 0 or height <= 0:
        raise ZeroDimensionError(width, height)

    if width <= max_dimension and height <= max_dimension:
        return width, height

    # integer floor of side * max / longest, exact for any input size
    longest = max(width, height)
    scaled_width = max(1, width * max_dimension // longest)
    scaled_height = max(1, height * max_dimension // longest)

    return scaled_width, scaled_height


def quality_to_pillow(quality: float) -> int:
    """Map a 0..1 encoder quality (canvas style) to Pillow's 1..95 JPEG scale."""
    if not 0 < quality <= 1:
        raise ValueError("quality must be in (0, 1]")
    return max(1, min(95, round(quality * 100)))


def strip_data_url_prefix(encoded: str) -> str:
    """
    Drop a "data:<mime>;base64," header, keeping only the payload.

    Plain base64 input is returned as is.
    """
    if encoded.startswith("data:") and "," in encoded:
        return encoded.split(",", 1)[1]
    return encoded
