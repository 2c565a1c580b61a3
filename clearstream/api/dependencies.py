"""
FastAPI dependency injection.

Dependencies provide the session registry, the frame extractor, the
Veo client and configuration to route handlers. Routes never build
their own collaborators, so tests can override any of these with
app.dependency_overrides.

The registry and resource store are process-wide singletons: sessions
live in memory for as long as the process runs.
"""

import logging
from typing import Annotated, Optional

from fastapi import Depends

from ..config.settings import Settings, get_settings
from ..core.restoration.registry import SessionRegistry
from ..core.restoration.session import RestorationSession
from ..infrastructure.gemini.client import VeoConfig, VeoGenerationClient
from ..infrastructure.storage.client import InMemoryResourceStore, create_resource_store
from ..infrastructure.video.extractor import FFmpegFrameExtractor, create_frame_extractor

logger = logging.getLogger(__name__)

# Global instances (shared across requests)
_resource_store: Optional[InMemoryResourceStore] = None
_session_registry: Optional[SessionRegistry] = None


# ---------------------------------------------------------------------------
# Service Dependencies
# ---------------------------------------------------------------------------

def get_frame_extractor(
    settings: Annotated[Settings, Depends(get_settings)],
) -> FFmpegFrameExtractor:
    """Provide a frame extractor configured from settings."""
    return create_frame_extractor(
        ffmpeg_path=settings.ffmpeg_path,
        ffprobe_path=settings.ffprobe_path,
        timeout_seconds=settings.extraction_timeout_seconds,
        max_dimension=settings.max_frame_dimension,
        jpeg_quality=settings.frame_jpeg_quality,
    )


def get_video_generator(
    settings: Annotated[Settings, Depends(get_settings)],
) -> VeoGenerationClient:
    """
    Provide a Veo client.

    Built even without an API key: the missing credential is reported
    when generation is attempted, not when the app starts.
    """
    config = VeoConfig(
        api_key=settings.gemini_api_key,
        model=settings.veo_model,
        resolution=settings.veo_resolution,
        poll_interval_seconds=settings.poll_interval_seconds,
        download_timeout_seconds=settings.download_timeout_seconds,
    )
    return VeoGenerationClient(config)


def get_resource_store() -> InMemoryResourceStore:
    """Provide the shared resource store."""
    global _resource_store

    if _resource_store is None:
        _resource_store = create_resource_store()
    return _resource_store


def get_session_registry(
    settings: Annotated[Settings, Depends(get_settings)],
) -> SessionRegistry:
    """
    Provide the shared session registry.

    Sessions created by the registry get their own extractor and Veo
    client built from the settings seen at first use.
    """
    global _session_registry

    if _session_registry is None:
        extractor = get_frame_extractor(settings)
        generator = get_video_generator(settings)
        resources = get_resource_store()

        _session_registry = SessionRegistry(
            factory=lambda: RestorationSession(
                extractor=extractor,
                generator=generator,
                resources=resources,
            )
        )
        logger.info("Created session registry")

    return _session_registry


def shutdown_registry() -> None:
    """Tear down every live session and release all handles."""
    global _session_registry, _resource_store

    if _session_registry is not None:
        _session_registry.close_all()
    if _resource_store is not None:
        released = _resource_store.clear()
        if released:
            logger.warning("Released leaked resource handles", extra={"count": released})

    _session_registry = None
    _resource_store = None


# ---------------------------------------------------------------------------
# Convenience Type Aliases
# ---------------------------------------------------------------------------

# These type aliases make route signatures cleaner
SettingsDep = Annotated[Settings, Depends(get_settings)]
SessionRegistryDep = Annotated[SessionRegistry, Depends(get_session_registry)]
ResourceStoreDep = Annotated[InMemoryResourceStore, Depends(get_resource_store)]
FrameExtractorDep = Annotated[FFmpegFrameExtractor, Depends(get_frame_extractor)]
