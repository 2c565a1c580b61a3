"""
Error taxonomy for video restoration.

Every failure a user can see is one of these. They are grouped the way
the session controller reacts to them:

- Input errors are raised synchronously and never change session state
- Extraction, configuration and generation errors end the current
  attempt and put the session into the error state

None of them are retried automatically. The message of each exception
is the human-readable text shown to the user.
"""


class ClearStreamError(Exception):
    """Base class for all expected, user-facing failures."""
    pass


# ---------------------------------------------------------------------------
# Input validation
# ---------------------------------------------------------------------------

class InvalidInputError(ClearStreamError):
    """Raised when a request is rejected before any processing starts."""
    pass


class UnsupportedFileTypeError(InvalidInputError):
    """Raised when the uploaded file is not declared as MP4."""

    def __init__(self, content_type: str | None) -> None:
        self.content_type = content_type
        super().__init__(
            f"Unsupported file type: {content_type or 'unknown'}. Please upload an MP4 video."
        )


class EmptyDescriptionError(InvalidInputError):
    """Raised when generation is requested without a description."""

    def __init__(self) -> None:
        super().__init__(
            "Please describe the video content briefly to help the model rebuild the scene."
        )


class NoFrameError(InvalidInputError):
    """Raised when generation is requested before a frame was extracted."""

    def __init__(self) -> None:
        super().__init__("No reference frame available. Upload an MP4 video first.")


class SessionBusyError(ClearStreamError):
    """Raised when a new action is requested while one is still running."""

    def __init__(self, status: str) -> None:
        self.status = status
        super().__init__(f"Session is busy ({status}). Wait for it to finish or reset.")


# ---------------------------------------------------------------------------
# Frame extraction
# ---------------------------------------------------------------------------

class FrameExtractionError(ClearStreamError):
    """Raised when a reference frame cannot be extracted from the upload."""
    pass


class DecoderUnavailableError(FrameExtractionError):
    """Raised when no video decoder is available on this host."""
    pass


class ExtractionTimeoutError(FrameExtractionError):
    """Raised when extraction does not finish within the time bound."""

    def __init__(self, timeout_seconds: float) -> None:
        self.timeout_seconds = timeout_seconds
        super().__init__(
            f"Timed out after {timeout_seconds:g}s while reading the video. "
            "The file may be corrupt or unsupported."
        )


class VideoDecodeError(FrameExtractionError):
    """Raised when the file cannot be decoded as video."""
    pass


class ZeroDimensionError(FrameExtractionError):
    """Raised when the decoder reports a zero width or height."""

    def __init__(self, width: int, height: int) -> None:
        self.width = width
        self.height = height
        super().__init__(
            f"Video reports invalid dimensions ({width}x{height}). "
            "The file may be corrupt or unsupported."
        )


class RasterizationError(FrameExtractionError):
    """Raised when a decoded frame cannot be drawn onto an image surface."""
    pass


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

class MissingCredentialError(ClearStreamError):
    """Raised when generation is attempted without an API key."""

    def __init__(self) -> None:
        super().__init__(
            "No API key configured. Set GEMINI_API_KEY to enable video generation."
        )


# ---------------------------------------------------------------------------
# Generation
# ---------------------------------------------------------------------------

class GenerationError(ClearStreamError):
    """Raised when the generation service fails to produce a video."""
    pass


class SubmissionError(GenerationError):
    """Raised when the generation request is not accepted."""
    pass


class OperationLostError(GenerationError):
    """Raised when the service no longer knows the operation being polled."""

    def __init__(self, operation_name: str) -> None:
        self.operation_name = operation_name
        super().__init__(
            "The video operation was lost by the server (404). Please try again."
        )


class NoResultError(GenerationError):
    """Raised when a finished operation carries no video."""
    pass


class DownloadError(GenerationError):
    """Raised when the generated video cannot be downloaded."""

    def __init__(self, status_code: int, reason: str) -> None:
        self.status_code = status_code
        super().__init__(f"Failed to download generated video: {status_code} {reason}".rstrip())


class ModelAccessError(GenerationError):
    """Raised when the model or operation is unknown to the service."""
    pass


class QuotaExceededError(GenerationError):
    """Raised when the service rejects the call for quota or rate limits."""
    pass
