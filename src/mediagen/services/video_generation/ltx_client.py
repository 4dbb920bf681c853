"""LTX video generation client (single synchronous request)."""

from typing import Any, Optional

import httpx

from mediagen.executor.ports import GeneratedPayload, VideoFrames
from mediagen.services.exceptions import ConfigurationError, PermanentError, TransientError

DEFAULT_BASE_URL = "https://api.ltx.video/v1"
DEFAULT_MODEL = "ltx-2-pro"
DEFAULT_DURATION = 8


class LtxVideoClient:
    """Text-to-video, or image-to-video when a start frame is given.

    End frames are not supported by the API and are ignored.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_BASE_URL,
        model: str = DEFAULT_MODEL,
        duration: float = DEFAULT_DURATION,
        resolution: str = "1920x1080",
        timeout: float = 600.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.base_url = (base_url or DEFAULT_BASE_URL).rstrip("/")
        self.model = model or DEFAULT_MODEL
        self.duration = duration if duration and duration > 0 else DEFAULT_DURATION
        self.resolution = resolution or "1920x1080"
        self.timeout = timeout
        self.transport = transport

    async def generate(self, prompt: str, frames: VideoFrames, model: str) -> GeneratedPayload:
        if not self.api_key:
            raise ConfigurationError("LTX_API_KEY not configured")

        payload: dict[str, Any] = {
            "prompt": prompt,
            "model": self.model,
            "duration": self.duration,
            "resolution": self.resolution,
        }
        endpoint = "text-to-video"
        if frames.start is not None:
            endpoint = "image-to-video"
            payload["image_uri"] = frames.start.url

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(
                    f"{self.base_url}/{endpoint}",
                    headers={
                        "Content-Type": "application/json",
                        "Authorization": f"Bearer {self.api_key}",
                    },
                    json=payload,
                )
        except httpx.TimeoutException as e:
            raise TransientError(f"LTX request timed out: {e}") from e
        except httpx.HTTPError as e:
            raise TransientError(f"LTX network error: {e}") from e

        if response.status_code == 429:
            raise TransientError("LTX API error: rate limit exceeded (429)")
        if response.status_code >= 500:
            raise TransientError(f"LTX API error: server error {response.status_code}")
        if response.status_code >= 400:
            raise PermanentError(f"LTX API error: {response.status_code} {response.text}")

        mime_type = response.headers.get("content-type", "video/mp4").split(";")[0].strip()
        return GeneratedPayload(data=response.content, mime_type=mime_type or "video/mp4")
