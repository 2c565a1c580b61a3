"""
Liveness and readiness endpoints.

- /health: the process is up
- /health/ready: uploads can be taken all the way to a clean video

Readiness needs two things: the FFmpeg binaries (for frame extraction)
and a Gemini API key (for generation). Either one missing gives 503.
"""

import logging
from typing import Any, Optional

from fastapi import APIRouter, Response, status
from pydantic import BaseModel

from ... import __version__
from ...config.settings import Settings
from ...infrastructure.video.extractor import FFmpegFrameExtractor
from ..dependencies import FrameExtractorDep, SessionRegistryDep, SettingsDep

logger = logging.getLogger(__name__)

router = APIRouter()


class HealthResponse(BaseModel):
    status: str
    version: str
    details: dict[str, Any] = {}


class ReadinessCheck(BaseModel):
    """Outcome of one readiness probe."""
    name: str
    status: str  # "ok" | "error"
    error: Optional[str] = None


class ReadinessResponse(BaseModel):
    status: str  # "ready" | "not_ready"
    version: str
    checks: list[ReadinessCheck]


def _configuration_check(settings: Settings) -> ReadinessCheck:
    missing = settings.validate_required_fields()
    if missing:
        return ReadinessCheck(
            name="configuration",
            status="error",
            error=f"Missing required fields: {', '.join(missing)}",
        )
    return ReadinessCheck(name="configuration", status="ok")


def _decoder_check(settings: Settings, extractor: FFmpegFrameExtractor) -> ReadinessCheck:
    if extractor.is_available():
        return ReadinessCheck(name="decoder", status="ok")
    return ReadinessCheck(
        name="decoder",
        status="error",
        error=f"ffmpeg/ffprobe not found ({settings.ffmpeg_path}, {settings.ffprobe_path})",
    )


@router.get(
    "",
    response_model=HealthResponse,
    summary="Liveness check",
    description="200 whenever the process is serving requests.",
)
async def health_check(settings: SettingsDep, registry: SessionRegistryDep) -> HealthResponse:
    return HealthResponse(
        status="ok",
        version=__version__,
        details={
            "model": settings.veo_model,
            "active_sessions": len(registry),
        },
    )


@router.get(
    "/ready",
    response_model=ReadinessResponse,
    summary="Readiness check",
    description="200 when both extraction and generation can run, 503 otherwise.",
    responses={503: {"description": "Decoder or credential missing", "model": ReadinessResponse}},
)
async def readiness_check(
    response: Response,
    settings: SettingsDep,
    extractor: FrameExtractorDep,
) -> ReadinessResponse:
    checks = [
        _configuration_check(settings),
        _decoder_check(settings, extractor),
    ]
    failed = [check for check in checks if check.status != "ok"]

    if failed:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        logger.warning(
            "Service not ready",
            extra={"failed_checks": {check.name: check.error for check in failed}},
        )

    return ReadinessResponse(
        status="not_ready" if failed else "ready",
        version=__version__,
        checks=checks,
    )
