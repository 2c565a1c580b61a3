"""
Video restoration logic.

Contains the domain models, error taxonomy, frame sizing rules and the
session state machine.
"""

from .errors import (
    ClearStreamError,
    FrameExtractionError,
    GenerationError,
    InvalidInputError,
)
from .models import (
    AspectRatio,
    ExtractedFrame,
    GeneratedVideo,
    GenerationRequest,
    Operation,
    ProcessingState,
    ProcessingStatus,
    ResourceHandle,
)
from .session import RestorationSession, GenerationJob

__all__ = [
    "ClearStreamError",
    "FrameExtractionError",
    "GenerationError",
    "InvalidInputError",
    "AspectRatio",
    "ExtractedFrame",
    "GeneratedVideo",
    "GenerationRequest",
    "Operation",
    "ProcessingState",
    "ProcessingStatus",
    "ResourceHandle",
    "RestorationSession",
    "GenerationJob",
]
