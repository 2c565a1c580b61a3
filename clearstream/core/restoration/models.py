"""
Domain models for watermark-free video restoration.

These models represent the core concepts of one restoration attempt:
the frame sampled from the upload, the request sent to the generation
service, the remote operation we poll, and the state the user sees.
They have no dependencies on FastAPI, FFmpeg or the Gemini SDK.
"""

import base64
from dataclasses import dataclass
from enum import Enum
from typing import Optional


STYLE_DIRECTIVE = (
    "cinematic, high quality, no watermarks, no overlay text, clean composition, "
    "photorealistic, preserve original scene structure"
)


class AspectRatio(Enum):
    """
    Coarse output shape sent to the generation service.

    The service only offers landscape and portrait, so every upload is
    bucketed into one of the two.
    """
    WIDE = "16:9"
    TALL = "9:16"

    @classmethod
    def from_dimensions(cls, width: int, height: int) -> "AspectRatio":
        """Square frames count as wide."""
        return cls.WIDE if width >= height else cls.TALL


class ProcessingStatus(Enum):
    """Where a session is in its lifecycle."""
    IDLE = "idle"
    ANALYZING = "analyzing"
    GENERATING = "generating"
    COMPLETED = "completed"
    ERROR = "error"


@dataclass(frozen=True)
class ExtractedFrame:
    """
    A single still sampled from an uploaded video.

    Frozen because a frame is produced once per upload and never
    changes afterwards. encoded_image is plain base64 with no data-URL
    prefix, which is what the generation service expects.
    """
    encoded_image: str
    mime_type: str
    width: int
    height: int

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise ValueError("Frame dimensions must be positive")
        if not self.encoded_image:
            raise ValueError("Frame image data cannot be empty")

    @property
    def aspect_ratio(self) -> AspectRatio:
        return AspectRatio.from_dimensions(self.width, self.height)

    @property
    def image_bytes(self) -> bytes:
        return base64.b64decode(self.encoded_image)


@dataclass(frozen=True)
class GenerationRequest:
    """
    Everything the generation service needs for one attempt.

    Built right before submission and not kept once the remote
    operation has started.
    """
    frame: ExtractedFrame
    description: str
    aspect_ratio: AspectRatio = AspectRatio.WIDE

    def __post_init__(self) -> None:
        if not self.description.strip():
            raise ValueError("Description cannot be empty")

    @property
    def prompt(self) -> str:
        """Stylistic directive followed by the user's description of the scene."""
        return f"{STYLE_DIRECTIVE.capitalize()}. {self.description.strip()}"


@dataclass(frozen=True)
class Operation:
    """
    Snapshot of a long-running generation job.

    The server owns the real object. We only keep its identifier and
    read fresh snapshots by polling.
    """
    identifier: str
    done: bool = False
    result_video_locator: Optional[str] = None
    failure: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.done and self.result_video_locator is not None


@dataclass(frozen=True)
class GeneratedVideo:
    """The downloaded result of a finished operation."""
    data: bytes
    source_locator: str
    mime_type: str = "video/mp4"

    @property
    def size_bytes(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class ResourceHandle:
    """
    Opaque reference to a temporary in-memory blob.

    Handles are single-owner: whoever creates one is responsible for
    revoking it.
    """
    id: str
    mime_type: str
    size_bytes: int
    filename: str = ""


@dataclass(frozen=True)
class ProcessingState:
    """What the user sees: a status plus an optional progress or error message."""
    status: ProcessingStatus = ProcessingStatus.IDLE
    message: Optional[str] = None
    error: Optional[str] = None

    @classmethod
    def idle(cls) -> "ProcessingState":
        return cls()

    @classmethod
    def analyzing(cls, message: str) -> "ProcessingState":
        return cls(status=ProcessingStatus.ANALYZING, message=message)

    @classmethod
    def generating(cls, message: str) -> "ProcessingState":
        return cls(status=ProcessingStatus.GENERATING, message=message)

    @classmethod
    def completed(cls) -> "ProcessingState":
        return cls(status=ProcessingStatus.COMPLETED)

    @classmethod
    def failed(cls, error: str) -> "ProcessingState":
        return cls(status=ProcessingStatus.ERROR, error=error)

    @property
    def is_busy(self) -> bool:
        return self.status in (ProcessingStatus.ANALYZING, ProcessingStatus.GENERATING)
