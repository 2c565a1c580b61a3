"""
Restoration session API endpoints.

One session follows one user through the workflow:
1. Create a session
2. Upload an MP4 -> reference frame is extracted
3. Describe the scene and request generation (runs in the background)
4. Poll the session until it is completed or failed
5. Download the clean video, or reset and start over

Sessions live in memory only. Nothing is persisted between restarts.
"""

import logging
from typing import Annotated, Optional
from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, File, HTTPException, Response, UploadFile, status
from pydantic import BaseModel, Field

from ...core.restoration.errors import (
    ClearStreamError,
    InvalidInputError,
    SessionBusyError,
    UnsupportedFileTypeError,
)
from ...core.restoration.registry import SessionNotFoundError, SessionRegistry
from ...core.restoration.session import RestorationSession
from ...infrastructure.storage.client import StorageError
from ..dependencies import ResourceStoreDep, SessionRegistryDep, SettingsDep

logger = logging.getLogger(__name__)

router = APIRouter()


# ---------------------------------------------------------------------------
# Request/Response Models
# ---------------------------------------------------------------------------

class DescriptionRequest(BaseModel):
    """Scene description used to guide the reconstruction."""
    description: str = Field(
        default="",
        max_length=2000,
        description="Short description of the video content, e.g. 'a red sports car on a road'",
    )


class SessionStateResponse(BaseModel):
    """Current state of a restoration session."""
    session_id: UUID = Field(description="Session identifier")
    status: str = Field(description="idle, analyzing, generating, completed or error")
    message: Optional[str] = Field(None, description="Progress message while busy")
    error: Optional[str] = Field(None, description="Error text when status is error")

    filename: Optional[str] = Field(None, description="Uploaded video filename")
    has_frame: bool = Field(description="Whether a reference frame is ready")
    frame_width: Optional[int] = Field(None, description="Reference frame width after downscaling")
    frame_height: Optional[int] = Field(None, description="Reference frame height after downscaling")
    aspect_ratio: Optional[str] = Field(None, description="Aspect ratio sent to the generator")
    description: str = Field(description="Current scene description")

    has_preview: bool = Field(description="Whether the uploaded video can be previewed")
    has_result: bool = Field(description="Whether a generated video can be downloaded")
    can_generate: bool = Field(description="Whether generation can be started now")


# ---------------------------------------------------------------------------
# Helper Functions
# ---------------------------------------------------------------------------

def _state_response(session: RestorationSession) -> SessionStateResponse:
    state = session.state
    frame = session.frame
    return SessionStateResponse(
        session_id=session.session_id,
        status=state.status.value,
        message=state.message,
        error=state.error,
        filename=session.filename,
        has_frame=frame is not None,
        frame_width=frame.width if frame else None,
        frame_height=frame.height if frame else None,
        aspect_ratio=frame.aspect_ratio.value if frame else None,
        description=session.description,
        has_preview=session.preview_handle is not None,
        has_result=session.result_handle is not None,
        can_generate=session.can_generate,
    )


def _get_session(registry: SessionRegistry, session_id: UUID) -> RestorationSession:
    try:
        return registry.get(session_id)
    except SessionNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Session not found",
        )


def _input_error(error: ClearStreamError) -> HTTPException:
    """Translate synchronous input errors into HTTP responses."""
    if isinstance(error, UnsupportedFileTypeError):
        code = status.HTTP_415_UNSUPPORTED_MEDIA_TYPE
    elif isinstance(error, SessionBusyError):
        code = status.HTTP_409_CONFLICT
    elif isinstance(error, InvalidInputError):
        code = status.HTTP_400_BAD_REQUEST
    else:
        code = status.HTTP_500_INTERNAL_SERVER_ERROR
    return HTTPException(status_code=code, detail=str(error))


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.post(
    "",
    response_model=SessionStateResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create session",
)
async def create_session(registry: SessionRegistryDep) -> SessionStateResponse:
    """Start a new, idle restoration session."""
    session = registry.create()
    return _state_response(session)


@router.get(
    "/{session_id}",
    response_model=SessionStateResponse,
    summary="Get session state",
)
async def get_session(session_id: UUID, registry: SessionRegistryDep) -> SessionStateResponse:
    """Poll this while a session is analyzing or generating."""
    return _state_response(_get_session(registry, session_id))


@router.post(
    "/{session_id}/video",
    response_model=SessionStateResponse,
    summary="Upload video",
    description="Upload an MP4 and extract its reference frame",
)
async def upload_video(
    session_id: UUID,
    video: Annotated[UploadFile, File(description="Video to clean (MP4 only)")],
    registry: SessionRegistryDep,
    settings: SettingsDep,
) -> SessionStateResponse:
    """
    Upload a video and extract the reference frame.

    Extraction runs inline and is bounded by the extraction timeout.
    Extraction failures are reported through the session state, not as
    HTTP errors, so the client sees them the same way it sees
    generation failures.
    """
    session = _get_session(registry, session_id)

    video_data = await video.read()
    if len(video_data) > settings.max_upload_size_bytes:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"Video too large. Maximum size: {settings.max_upload_size_mb}MB",
        )

    try:
        await session.select_file(video.filename or "video.mp4", video.content_type, video_data)
    except (InvalidInputError, SessionBusyError) as e:
        raise _input_error(e)

    return _state_response(session)


@router.put(
    "/{session_id}/description",
    response_model=SessionStateResponse,
    summary="Update scene description",
)
async def update_description(
    session_id: UUID,
    request: DescriptionRequest,
    registry: SessionRegistryDep,
) -> SessionStateResponse:
    session = _get_session(registry, session_id)
    session.set_description(request.description)
    return _state_response(session)


@router.post(
    "/{session_id}/generate",
    response_model=SessionStateResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Generate clean video",
    description="Start Veo generation in the background; poll the session for the outcome",
)
async def generate_video(
    session_id: UUID,
    request: DescriptionRequest,
    background_tasks: BackgroundTasks,
    registry: SessionRegistryDep,
) -> SessionStateResponse:
    """
    Validate and start generation.

    Validation errors (no frame, empty description, busy session) are
    returned immediately. Everything after submission is reported via
    the session state.
    """
    session = _get_session(registry, session_id)

    try:
        job = session.begin_generation(request.description or None)
    except (InvalidInputError, SessionBusyError) as e:
        raise _input_error(e)

    background_tasks.add_task(session.run_generation, job)
    return _state_response(session)


@router.get(
    "/{session_id}/preview",
    summary="Stream uploaded video",
    responses={200: {"content": {"video/mp4": {}}}},
)
async def get_preview(
    session_id: UUID,
    registry: SessionRegistryDep,
    resources: ResourceStoreDep,
) -> Response:
    session = _get_session(registry, session_id)
    handle = session.preview_handle
    if handle is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No video uploaded")

    try:
        data = resources.read(handle.id)
    except StorageError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Uploaded video expired")

    return Response(content=data, media_type=handle.mime_type)


@router.get(
    "/{session_id}/result",
    summary="Download clean video",
    responses={200: {"content": {"video/mp4": {}}}},
)
async def download_result(
    session_id: UUID,
    registry: SessionRegistryDep,
    resources: ResourceStoreDep,
    settings: SettingsDep,
) -> Response:
    """Generated video as an attachment with a fixed filename."""
    session = _get_session(registry, session_id)
    handle = session.result_handle
    if handle is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No generated video yet")

    try:
        data = resources.read(handle.id)
    except StorageError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Generated video expired")

    return Response(
        content=data,
        media_type=handle.mime_type,
        headers={"Content-Disposition": f'attachment; filename="{settings.download_filename}"'},
    )


@router.post(
    "/{session_id}/reset",
    response_model=SessionStateResponse,
    summary="Reset session",
)
async def reset_session(session_id: UUID, registry: SessionRegistryDep) -> SessionStateResponse:
    """Back to idle, discarding the frame, description and any videos."""
    session = _get_session(registry, session_id)
    session.reset()
    return _state_response(session)


@router.delete(
    "/{session_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete session",
)
async def delete_session(session_id: UUID, registry: SessionRegistryDep) -> Response:
    try:
        registry.remove(session_id)
    except SessionNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Session not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
