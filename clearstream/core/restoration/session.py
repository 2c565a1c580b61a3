"""
Restoration session: the state machine behind one user's workflow.

    idle --select_file--> analyzing --> idle (frame ready) | error
    idle --generate-----> generating --> completed | error
    any  --reset--------> idle

The session owns every temporary resource handle it creates (the
uploaded preview and the generated video) and releases them on reset
and teardown. It talks to the decoder, the generation service and the
resource store only through the protocols below, so it can be driven
by fakes in tests.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Protocol
from uuid import UUID, uuid4

from .errors import (
    ClearStreamError,
    EmptyDescriptionError,
    NoFrameError,
    SessionBusyError,
    UnsupportedFileTypeError,
)
from .models import (
    ExtractedFrame,
    GeneratedVideo,
    GenerationRequest,
    ProcessingState,
    ProcessingStatus,
    ResourceHandle,
)

logger = logging.getLogger(__name__)


ACCEPTED_CONTENT_TYPE = "video/mp4"

ANALYZING_MESSAGE = "Analyzing video and extracting reference frame..."
GENERATING_MESSAGE = "Rebuilding the video without the watermark..."


# ---------------------------------------------------------------------------
# Protocols (interfaces)
# ---------------------------------------------------------------------------

class FrameExtractor(Protocol):
    """Anything that can turn raw video bytes into one ExtractedFrame."""

    async def extract(self, video_data: bytes) -> ExtractedFrame:
        ...


class VideoGenerator(Protocol):
    """Anything that can turn a GenerationRequest into a finished video."""

    async def generate(self, request: GenerationRequest) -> GeneratedVideo:
        ...


class ResourceStore(Protocol):
    """Registry of temporary blobs addressed by opaque handles."""

    def create(self, data: bytes, mime_type: str, filename: str = "") -> ResourceHandle:
        ...

    def read(self, handle_id: str) -> bytes:
        ...

    def revoke(self, handle_id: str) -> bool:
        ...


@dataclass(frozen=True)
class GenerationJob:
    """
    A generation attempt that passed validation.

    attempt ties the job to the session generation it was started in,
    so a result arriving after a reset can be recognised and dropped.
    """
    request: GenerationRequest
    attempt: int


# ---------------------------------------------------------------------------
# Session
# ---------------------------------------------------------------------------

class RestorationSession:
    """
    One user's upload -> extract -> generate -> download workflow.

    At most one frame and one in-flight generation exist at a time.
    Starting a new upload or resetting discards the previous frame and
    revokes every handle the session holds.
    """

    def __init__(
        self,
        extractor: FrameExtractor,
        generator: VideoGenerator,
        resources: ResourceStore,
        session_id: Optional[UUID] = None,
    ) -> None:
        self.session_id = session_id or uuid4()
        self._extractor = extractor
        self._generator = generator
        self._resources = resources

        self._state = ProcessingState.idle()
        self._frame: Optional[ExtractedFrame] = None
        self._description = ""
        self._filename: Optional[str] = None
        self._preview: Optional[ResourceHandle] = None
        self._result: Optional[ResourceHandle] = None

        # bumped whenever in-flight work must be forgotten
        self._attempt = 0

    # -- read-only views -----------------------------------------------------

    @property
    def state(self) -> ProcessingState:
        return self._state

    @property
    def frame(self) -> Optional[ExtractedFrame]:
        return self._frame

    @property
    def description(self) -> str:
        return self._description

    @property
    def filename(self) -> Optional[str]:
        return self._filename

    @property
    def preview_handle(self) -> Optional[ResourceHandle]:
        return self._preview

    @property
    def result_handle(self) -> Optional[ResourceHandle]:
        return self._result

    @property
    def can_generate(self) -> bool:
        return (
            self._state.status == ProcessingStatus.IDLE
            and self._frame is not None
            and bool(self._description.strip())
        )

    # -- transitions -----------------------------------------------------------

    async def select_file(self, filename: str, content_type: Optional[str], data: bytes) -> ProcessingState:
        """
        Accept a new upload and extract its reference frame.

        Anything not declared as video/mp4 is rejected before the
        session changes in any way.
        """
        if content_type != ACCEPTED_CONTENT_TYPE:
            logger.info(
                "Rejected upload with unsupported type",
                extra={"session_id": str(self.session_id), "content_type": content_type},
            )
            raise UnsupportedFileTypeError(content_type)

        self._ensure_not_busy()

        self._discard_outputs()
        self._filename = filename
        self._preview = self._resources.create(data, ACCEPTED_CONTENT_TYPE, filename)
        self._state = ProcessingState.analyzing(ANALYZING_MESSAGE)
        attempt = self._attempt

        logger.info(
            "Extracting reference frame",
            extra={
                "session_id": str(self.session_id),
                "video_filename": filename,
                "size_bytes": len(data),
            },
        )

        try:
            frame = await self._extractor.extract(data)
        except ClearStreamError as e:
            if attempt == self._attempt:
                logger.warning(
                    "Frame extraction failed",
                    extra={"session_id": str(self.session_id), "error": str(e)},
                )
                self._fail_extraction(str(e))
            return self._state
        except Exception as e:
            if attempt == self._attempt:
                logger.error(
                    "Unexpected error during frame extraction",
                    extra={"session_id": str(self.session_id), "error": str(e)},
                    exc_info=e,
                )
                self._fail_extraction(f"Error loading video file: {e}")
            return self._state

        if attempt != self._attempt:
            logger.info("Discarding frame from abandoned upload", extra={"session_id": str(self.session_id)})
            return self._state

        self._frame = frame
        self._state = ProcessingState.idle()
        logger.info(
            "Reference frame ready",
            extra={
                "session_id": str(self.session_id),
                "width": frame.width,
                "height": frame.height,
                "aspect_ratio": frame.aspect_ratio.value,
            },
        )
        return self._state

    def set_description(self, text: str) -> None:
        self._description = text

    def begin_generation(self, description: Optional[str] = None) -> GenerationJob:
        """
        Validate a generation request and move to the generating state.

        Raises input errors without touching the state. The returned job
        is handed to run_generation, which may run in the background.
        """
        if description is not None:
            self._description = description

        if self._frame is None:
            raise NoFrameError()
        if not self._description.strip():
            raise EmptyDescriptionError()
        if self._state.status != ProcessingStatus.IDLE:
            raise SessionBusyError(self._state.status.value)

        request = GenerationRequest(
            frame=self._frame,
            description=self._description,
            aspect_ratio=self._frame.aspect_ratio,
        )
        self._state = ProcessingState.generating(GENERATING_MESSAGE)

        logger.info(
            "Generation started",
            extra={
                "session_id": str(self.session_id),
                "aspect_ratio": request.aspect_ratio.value,
            },
        )
        return GenerationJob(request=request, attempt=self._attempt)

    async def run_generation(self, job: GenerationJob) -> ProcessingState:
        """Drive a validated job to completion or failure."""
        try:
            video = await self._generator.generate(job.request)
        except ClearStreamError as e:
            if job.attempt == self._attempt:
                logger.warning(
                    "Generation failed",
                    extra={"session_id": str(self.session_id), "error": str(e)},
                )
                self._state = ProcessingState.failed(str(e))
            return self._state
        except Exception as e:
            if job.attempt == self._attempt:
                logger.error(
                    "Unexpected error during generation",
                    extra={"session_id": str(self.session_id), "error": str(e)},
                    exc_info=e,
                )
                self._state = ProcessingState.failed(f"Generation failed: {e}")
            return self._state

        if job.attempt != self._attempt:
            # the remote job was abandoned by a reset; drop its output
            logger.info(
                "Discarding result of abandoned generation",
                extra={"session_id": str(self.session_id), "size_bytes": video.size_bytes},
            )
            return self._state

        self._result = self._resources.create(video.data, video.mime_type)
        self._state = ProcessingState.completed()
        logger.info(
            "Generation completed",
            extra={"session_id": str(self.session_id), "size_bytes": video.size_bytes},
        )
        return self._state

    async def generate(self, description: Optional[str] = None) -> ProcessingState:
        job = self.begin_generation(description)
        return await self.run_generation(job)

    def reset(self) -> ProcessingState:
        """
        Return to idle from any state.

        Drops the frame, the description and every handle. A generation
        still running remotely is not cancelled; its result is ignored.
        """
        if self._state.status == ProcessingStatus.GENERATING:
            logger.info(
                "Reset during generation, remote operation left running",
                extra={"session_id": str(self.session_id)},
            )

        self._discard_outputs()
        self._description = ""
        self._filename = None
        self._state = ProcessingState.idle()
        return self._state

    def close(self) -> None:
        """Teardown: release everything the session still holds."""
        self.reset()
        logger.debug("Session closed", extra={"session_id": str(self.session_id)})

    # -- helpers ---------------------------------------------------------------

    def _ensure_not_busy(self) -> None:
        if self._state.is_busy:
            raise SessionBusyError(self._state.status.value)

    def _fail_extraction(self, message: str) -> None:
        # the upload is unusable, so its preview goes too
        self._discard_outputs()
        self._state = ProcessingState.failed(message)

    def _discard_outputs(self) -> None:
        self._attempt += 1
        self._frame = None
        for handle in (self._preview, self._result):
            if handle is not None:
                self._resources.revoke(handle.id)
        self._preview = None
        self._result = None
