"""
Gemini Veo video generation client.

This module wraps the google-genai SDK to:
1. Submit an image-to-video generation request
2. Poll the long-running operation until it is done
3. Download the generated video bytes
4. Translate provider errors into our error taxonomy

Polling always goes through the operation *name* captured right after
submission. Passing the previous, mutated operation object back to the
service is what produced spurious "entity not found" errors, so every
poll builds a fresh handle from the name.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

import httpx
from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from ...core.restoration.errors import (
    ClearStreamError,
    DownloadError,
    GenerationError,
    MissingCredentialError,
    ModelAccessError,
    NoResultError,
    OperationLostError,
    QuotaExceededError,
    SubmissionError,
)
from ...core.restoration.models import GeneratedVideo, GenerationRequest, Operation
from ...core.restoration.session import VideoGenerator


logger = logging.getLogger(__name__)


DEFAULT_MODEL = "veo-3.1-fast-generate-preview"


@dataclass
class VeoConfig:
    """
    Configuration for the Veo client.

    The API key may be empty: the client can still be built, but every
    generate() call fails before touching the network.
    """
    api_key: str = ""
    model: str = DEFAULT_MODEL
    resolution: str = "720p"
    number_of_videos: int = 1
    poll_interval_seconds: float = 5.0
    download_timeout_seconds: float = 120.0

    def __post_init__(self) -> None:
        if not self.model:
            raise ValueError("model is required")
        if self.number_of_videos < 1:
            raise ValueError("number_of_videos must be positive")
        if self.poll_interval_seconds < 0:
            raise ValueError("poll_interval_seconds cannot be negative")


def _classify_message(message: str, code: Optional[int] = None) -> Optional[GenerationError]:
    """Recognise model-access and quota problems from a code or message text."""
    lowered = message.lower()

    if (code == 404 or "404" in message) and ("entity" in lowered or "not found" in lowered):
        return ModelAccessError(
            "The video model or operation was not found. "
            "Check that your account has access to the Veo model."
        )
    if code == 429 or "429" in message or "resource_exhausted" in lowered or "quota" in lowered:
        return QuotaExceededError(
            "Request limit exceeded (quota). Try again in a few moments."
        )
    return None


def translate_provider_error(error: Exception) -> GenerationError:
    """
    Map a provider or transport error to a user-facing GenerationError.

    Errors we already classified pass through untouched.
    """
    if isinstance(error, GenerationError):
        return error

    message = str(error) or "Unknown error communicating with the Gemini API."
    classified = _classify_message(message, getattr(error, "code", None))
    return classified or GenerationError(message)


def _is_not_found(error: Exception) -> bool:
    if isinstance(error, genai_errors.APIError):
        return error.code == 404
    return "404" in str(error)


class VeoGenerationClient(VideoGenerator):
    """
    Implementation of VideoGenerator using Gemini Veo.

    Knows about the SDK's request and operation shapes but nothing
    about sessions or watermarks beyond the prompt it is handed.
    """

    def __init__(
        self,
        config: VeoConfig,
        client: Optional[Any] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._config = config
        self._client = client
        self._http_client = http_client
        self._sleep = sleep

    @property
    def has_credential(self) -> bool:
        return bool(self._config.api_key)

    async def generate(self, request: GenerationRequest) -> GeneratedVideo:
        """
        Run one generation attempt end to end.

        Raises MissingCredentialError without any network call when no
        API key is configured. Every other failure surfaces as a
        GenerationError subclass.
        """
        if not self.has_credential:
            raise MissingCredentialError()

        try:
            operation = await self.submit(request)
            operation = await self.wait_until_done(operation)
            locator = self._require_locator(operation)
            return await self.download(locator)
        except ClearStreamError:
            raise
        except Exception as e:
            logger.error("Veo service error", extra={"error": str(e)}, exc_info=e)
            raise translate_provider_error(e) from e

    async def submit(self, request: GenerationRequest) -> Operation:
        """Send the generation request and return the first operation snapshot."""
        client = self._get_client()

        raw = await client.aio.models.generate_videos(
            model=self._config.model,
            prompt=request.prompt,
            image=types.Image(
                image_bytes=request.frame.image_bytes,
                mime_type=request.frame.mime_type,
            ),
            config=types.GenerateVideosConfig(
                number_of_videos=self._config.number_of_videos,
                resolution=self._config.resolution,
                aspect_ratio=request.aspect_ratio.value,
            ),
        )

        # capture the name before anything else touches the operation
        operation_name = getattr(raw, "name", None)
        if not operation_name:
            raise SubmissionError("The API did not return a valid operation ID.")

        logger.info(
            "Video generation started",
            extra={
                "operation": operation_name,
                "model": self._config.model,
                "aspect_ratio": request.aspect_ratio.value,
            },
        )
        return self._snapshot(raw, operation_name)

    async def wait_until_done(self, operation: Operation) -> Operation:
        """
        Poll by operation name until the service reports done.

        A not-found answer ends the loop with OperationLostError; any
        other error propagates. There is no overall deadline.
        """
        client = self._get_client()
        operation_name = operation.identifier
        polls = 0

        while not operation.done:
            await self._sleep(self._config.poll_interval_seconds)
            polls += 1

            try:
                raw = await client.aio.operations.get(
                    types.GenerateVideosOperation(name=operation_name)
                )
            except Exception as e:
                logger.warning(
                    "Error while polling operation",
                    extra={"operation": operation_name, "poll": polls, "error": str(e)},
                )
                if _is_not_found(e):
                    raise OperationLostError(operation_name) from e
                raise

            operation = self._snapshot(raw, operation_name)
            logger.debug(
                "Polled operation",
                extra={"operation": operation_name, "poll": polls, "done": operation.done},
            )

        logger.info("Operation finished", extra={"operation": operation_name, "polls": polls})
        return operation

    async def download(self, locator: str) -> GeneratedVideo:
        """Fetch the generated video, passing the API key as the service requires."""
        params = {"key": self._config.api_key}

        if self._http_client is not None:
            response = await self._http_client.get(locator, params=params)
        else:
            async with httpx.AsyncClient(
                timeout=self._config.download_timeout_seconds,
                follow_redirects=True,
            ) as http_client:
                response = await http_client.get(locator, params=params)

        if not response.is_success:
            raise DownloadError(response.status_code, response.reason_phrase)

        logger.info("Downloaded generated video", extra={"size_bytes": len(response.content)})
        return GeneratedVideo(data=response.content, source_locator=locator)

    def _require_locator(self, operation: Operation) -> str:
        if not operation.result_video_locator:
            if operation.failure:
                # the operation can fail for quota or access reasons too
                classified = _classify_message(operation.failure)
                if classified is not None:
                    raise classified
            failure = operation.failure or "No video URI returned."
            raise NoResultError(f"Generation failed: {failure}")
        return operation.result_video_locator

    def _get_client(self) -> Any:
        if self._client is None:
            self._client = genai.Client(api_key=self._config.api_key)
        return self._client

    def _snapshot(self, raw: Any, operation_name: str) -> Operation:
        """Read the parts of an SDK operation we care about."""
        locator = None
        response = getattr(raw, "response", None)
        videos = getattr(response, "generated_videos", None) or []
        if videos:
            video = getattr(videos[0], "video", None)
            locator = getattr(video, "uri", None)

        failure = None
        error = getattr(raw, "error", None)
        if error:
            failure = error.get("message") if isinstance(error, dict) else str(error)
            failure = failure or str(error)

        return Operation(
            identifier=operation_name,
            done=bool(getattr(raw, "done", False)),
            result_video_locator=locator,
            failure=failure,
        )
