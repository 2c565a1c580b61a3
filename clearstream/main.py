"""
ClearStream HTTP service.

create_app() builds the FastAPI app; the module-level `app` is what
uvicorn serves:

    uvicorn clearstream.main:app --reload
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import __version__
from .api.dependencies import shutdown_registry
from .api.routes import health, sessions
from .config.settings import get_settings

logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=get_settings().log_level.upper(),
)

logger = logging.getLogger(__name__)


API_DESCRIPTION = """
Rebuilds an uploaded video without its watermark using Gemini Veo.

1. `POST /api/v1/sessions` creates a session
2. `POST /api/v1/sessions/{session_id}/video` uploads an MP4 and extracts the reference frame
3. `POST /api/v1/sessions/{session_id}/generate` starts generation from a short scene description
4. `GET /api/v1/sessions/{session_id}` reports progress until completed or error
5. `GET /api/v1/sessions/{session_id}/result` downloads the clean video
6. `POST /api/v1/sessions/{session_id}/reset` starts over
"""


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Report missing configuration on startup; release all sessions on shutdown."""
    settings = get_settings()
    logger.info(
        "ClearStream API starting",
        extra={"version": __version__, "model": settings.veo_model},
    )

    # generation is the only thing that needs the key, so keep serving
    missing_fields = settings.validate_required_fields()
    if missing_fields:
        logger.error(
            "Video generation disabled, configuration missing",
            extra={"missing_fields": missing_fields},
        )

    yield

    shutdown_registry()
    logger.info("ClearStream API stopped")


def create_app() -> FastAPI:
    settings = get_settings()

    app = FastAPI(
        title=settings.api_title,
        version=__version__,
        description=API_DESCRIPTION,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # the download filename travels in Content-Disposition
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["Content-Disposition"],
    )

    app.include_router(health.router, prefix="/health", tags=["Health"])
    app.include_router(sessions.router, prefix="/api/v1/sessions", tags=["Sessions"])

    @app.get("/", include_in_schema=False)
    async def root():
        return {
            "message": settings.api_title,
            "version": __version__,
            "docs": "/docs",
            "health": "/health",
        }

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request, exc):
        """Log anything unexpected and answer with a generic 500."""
        logger.error(
            "Unhandled exception",
            extra={
                "path": request.url.path,
                "method": request.method,
                "error": str(exc),
            },
            exc_info=exc,
        )
        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error. Please try again."},
        )

    logger.info("FastAPI application created", extra={"title": settings.api_title, "version": __version__})
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "clearstream.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level=get_settings().log_level.lower(),
    )
