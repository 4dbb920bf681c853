"""Veo video generation client (long-running operation, polled to completion)."""

import asyncio
import base64
import time
from collections.abc import Awaitable, Callable
from typing import Any, Optional

import httpx
import structlog

from mediagen.executor.ports import FrameReference, GeneratedPayload, VideoFrames
from mediagen.services.exceptions import ConfigurationError, PermanentError, TransientError

logger = structlog.get_logger(__name__)

VEO_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_MODEL = "veo-3.1-generate-preview"


def _classify(status_code: int, context: str, body: str) -> Exception:
    if status_code == 429:
        return TransientError(f"{context}: rate limit exceeded (429)")
    if status_code >= 500:
        return TransientError(f"{context}: server error {status_code} {body}")
    return PermanentError(f"{context}: {status_code} {body}")


class VeoVideoClient:
    """Starts a predictLongRunning operation and polls it until done."""

    def __init__(
        self,
        api_key: str,
        model: str = DEFAULT_MODEL,
        aspect_ratio: str = "",
        resolution: str = "",
        poll_interval_ms: int = 10_000,
        poll_timeout_ms: int = 240_000,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.api_key = api_key
        self.model = model or DEFAULT_MODEL
        self.aspect_ratio = aspect_ratio
        self.resolution = resolution
        self.poll_interval = poll_interval_ms / 1000
        self.poll_timeout = poll_timeout_ms / 1000
        self.transport = transport
        self.sleep = sleep
        self.clock = clock

    async def generate(self, prompt: str, frames: VideoFrames, model: str) -> GeneratedPayload:
        """Generate a clip for a motion prompt.

        The end frame is only sent together with a start frame.

        Raises:
            ConfigurationError: GOOGLE_AI_API_KEY not configured
            TransientError: Rate limit, 5xx or network failure
            PermanentError: Rejected request, failed operation or poll timeout
        """
        if not self.api_key:
            raise ConfigurationError("GOOGLE_AI_API_KEY not configured")

        headers = {"x-goog-api-key": self.api_key}

        try:
            async with httpx.AsyncClient(
                timeout=120.0, transport=self.transport, follow_redirects=True
            ) as client:
                payload = await self._build_payload(client, prompt, frames)

                response = await client.post(
                    f"{VEO_BASE_URL}/models/{self.model}:predictLongRunning",
                    headers={**headers, "Content-Type": "application/json"},
                    json=payload,
                )
                if response.status_code >= 400:
                    raise _classify(response.status_code, "Veo API error", response.text)

                operation = response.json()
                operation_name = operation.get("name")
                if not operation_name:
                    raise PermanentError("No operation name in Veo response")

                logger.info("veo.operation_started", operation=operation_name, model=self.model)
                operation = await self._poll(client, operation, operation_name, headers)

                video_uri = self._video_uri(operation)
                video_response = await client.get(video_uri, headers=headers)
                if video_response.status_code >= 400:
                    raise _classify(
                        video_response.status_code, "Failed to download video", ""
                    )
        except httpx.TimeoutException as e:
            raise TransientError(f"Veo request timed out: {e}") from e
        except httpx.HTTPError as e:
            raise TransientError(f"Veo network error: {e}") from e

        mime_type = video_response.headers.get("content-type", "video/mp4").split(";")[0].strip()
        return GeneratedPayload(data=video_response.content, mime_type=mime_type or "video/mp4")

    async def _build_payload(
        self, client: httpx.AsyncClient, prompt: str, frames: VideoFrames
    ) -> dict[str, Any]:
        instance: dict[str, Any] = {"prompt": prompt}
        parameters: dict[str, Any] = {}

        if frames.start is not None:
            instance["image"] = await self._inline_frame(client, frames.start, "start")

        if frames.end is not None:
            if frames.start is None:
                logger.warning("veo.end_frame_ignored", reason="no start frame")
            else:
                parameters["lastFrame"] = await self._inline_frame(client, frames.end, "end")

        if self.aspect_ratio:
            parameters["aspectRatio"] = self.aspect_ratio
        if self.resolution:
            parameters["resolution"] = self.resolution

        payload: dict[str, Any] = {"instances": [instance]}
        if parameters:
            payload["parameters"] = parameters
        return payload

    @staticmethod
    async def _inline_frame(
        client: httpx.AsyncClient, frame: FrameReference, label: str
    ) -> dict[str, Any]:
        response = await client.get(frame.url)
        if response.status_code >= 400:
            raise _classify(response.status_code, f"Failed to fetch {label} frame", "")
        mime_type = frame.mime_type or response.headers.get("content-type") or "image/png"
        return {
            "inlineData": {
                "mimeType": mime_type,
                "data": base64.b64encode(response.content).decode("ascii"),
            }
        }

    async def _poll(
        self,
        client: httpx.AsyncClient,
        operation: dict[str, Any],
        operation_name: str,
        headers: dict[str, str],
    ) -> dict[str, Any]:
        started_at = self.clock()
        while not operation.get("done"):
            if self.clock() - started_at > self.poll_timeout:
                raise PermanentError("Veo generation timed out")
            await self.sleep(self.poll_interval)
            response = await client.get(f"{VEO_BASE_URL}/{operation_name}", headers=headers)
            if response.status_code >= 400:
                raise _classify(response.status_code, "Veo operation error", response.text)
            operation = response.json()

        error = operation.get("error")
        if error:
            message = error.get("message") if isinstance(error, dict) else str(error)
            raise PermanentError(f"Veo operation error: {message or error}")
        return operation

    @staticmethod
    def _video_uri(operation: dict[str, Any]) -> str:
        samples = (
            (operation.get("response") or {})
            .get("generateVideoResponse", {})
            .get("generatedSamples")
            or []
        )
        uri = ((samples[0] or {}).get("video") or {}).get("uri") if samples else None
        if not uri:
            raise PermanentError("No video URI in Veo response")
        return uri
