"""
ClearStream configuration.

Values come from environment variables or a .env file and are
validated by pydantic-settings when first loaded.

The Gemini API key is the only secret. Without it the service still
starts and frame extraction still works; only generation fails.
"""

from functools import lru_cache

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Every field maps to the upper-case environment variable of the
    same name. cors_origins is a comma-separated string.
    """

    # API
    api_title: str = "ClearStream AI API"
    api_version: str = "v1"

    # Gemini / Veo Configuration
    gemini_api_key: str = Field(
        default="",
        validation_alias=AliasChoices("GEMINI_API_KEY", "API_KEY"),
        description="Gemini API key used for Veo generation and result download."
    )
    veo_model: str = Field(
        default="veo-3.1-fast-generate-preview",
        description="Veo model used for image-to-video generation."
    )
    veo_resolution: str = Field(
        default="720p",
        description="Output resolution requested from Veo."
    )
    poll_interval_seconds: float = Field(
        default=5.0,
        ge=0,
        description="Wait between operation status polls. Generation has no overall deadline."
    )
    download_timeout_seconds: float = Field(
        default=120.0,
        gt=0,
        description="HTTP timeout for downloading the generated video."
    )

    # Frame Extraction
    ffmpeg_path: str = Field(default="ffmpeg", description="Path to the ffmpeg binary")
    ffprobe_path: str = Field(default="ffprobe", description="Path to the ffprobe binary")
    extraction_timeout_seconds: float = Field(
        default=15.0,
        gt=0,
        description="Upper bound for extracting the reference frame from an upload."
    )
    max_frame_dimension: int = Field(
        default=1024,
        ge=16,
        description="Longest side of the reference frame. Keeps the request payload small."
    )
    frame_jpeg_quality: float = Field(
        default=0.85,
        gt=0,
        le=1,
        description="JPEG quality (0..1) of the encoded reference frame."
    )

    # Uploads and downloads
    max_upload_size_mb: int = Field(
        default=100,
        description="Maximum upload size in MB."
    )
    download_filename: str = Field(
        default="clearstream_clean_video.mp4",
        description="Suggested filename for the generated video download."
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )

    # CORS
    cors_origins: str = Field(
        default="http://localhost:3000,http://localhost:5173",
        description="Comma-separated list of allowed CORS origins. Use * for development only."
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        populate_by_name=True,
        extra="ignore",
    )

    @property
    def cors_origins_list(self) -> list[str]:
        """cors_origins split on commas, or ["*"]."""
        if self.cors_origins == "*":
            return ["*"]
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def max_upload_size_bytes(self) -> int:
        return self.max_upload_size_mb * 1024 * 1024

    def validate_required_fields(self) -> list[str]:
        """
        Return the names of missing settings.

        Only the generation path has requirements, so a non-empty list
        is logged at startup rather than treated as fatal.
        """
        missing = []

        if not self.gemini_api_key:
            missing.append("GEMINI_API_KEY")

        return missing


@lru_cache()
def get_settings() -> Settings:
    """
    Settings are read once per process.

    For tests, call get_settings.cache_clear() or override the
    FastAPI dependency.
    """
    return Settings()
