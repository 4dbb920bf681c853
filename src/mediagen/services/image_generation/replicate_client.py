"""Replicate image generation client with error classification."""

import asyncio
from typing import Any, Optional

import httpx
import replicate
from replicate.exceptions import ReplicateError as ReplicateAPIError

from mediagen.executor.ports import GeneratedPayload, ReferenceAsset
from mediagen.services.exceptions import (
    ConfigurationError,
    PermanentError,
    ServiceError,
    TransientError,
)

DEFAULT_MODEL = "black-forest-labs/flux-schnell"


def classify_error(exception: Exception) -> ServiceError:
    """Classify exception into retry category.

    Args:
        exception: Original exception from Replicate SDK or network layer

    Returns:
        TransientError or PermanentError instance

    Classification rules:
        - Timeout errors → TransientError
        - 429 (rate limit) → TransientError
        - 5xx / service unavailable → TransientError
        - 401/403 (authentication) → PermanentError
        - Content policy violations → PermanentError
        - Connection errors → TransientError
        - Anything else → PermanentError
    """
    error_message = str(exception)
    error_message_lower = error_message.lower()

    if "timeout" in error_message_lower or "timed out" in error_message_lower:
        return TransientError(f"Network timeout: {error_message}")

    if "429" in error_message or "rate limit" in error_message_lower:
        return TransientError(f"Rate limit exceeded: {error_message}")

    if (
        any(code in error_message for code in ("500", "502", "503", "504"))
        or "service unavailable" in error_message_lower
    ):
        return TransientError(f"Service unavailable: {error_message}")

    if (
        "401" in error_message
        or "403" in error_message
        or "unauthorized" in error_message_lower
        or "forbidden" in error_message_lower
        or "authentication" in error_message_lower
        or "invalid api token" in error_message_lower
    ):
        return PermanentError(f"Authentication failed: {error_message}")

    if (
        "content policy" in error_message_lower
        or "nsfw" in error_message_lower
        or "safety" in error_message_lower
        or "inappropriate" in error_message_lower
    ):
        return PermanentError(f"Content policy violation: {error_message}")

    if isinstance(exception, (ConnectionError, OSError)):
        return TransientError(f"Connection error: {error_message}")

    return PermanentError(f"Permanent error: {error_message}")


def _output_url(output: Any) -> str:
    # Output format varies by model: a list of URLs/FileOutputs or a single one.
    if isinstance(output, list) and len(output) > 0:
        return str(output[0])
    if isinstance(output, str):
        return output
    if hasattr(output, "url"):
        return str(output.url)
    raise PermanentError(f"Unexpected output format from Replicate: {type(output)}")


class ReplicateImageClient:
    """ImageGenerationService backed by a Replicate model.

    Text-to-image only; reference images are not forwarded.
    """

    def __init__(
        self,
        api_token: str,
        model_version: str = DEFAULT_MODEL,
        download_timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_token = api_token
        self.model_version = model_version or DEFAULT_MODEL
        self.download_timeout = download_timeout
        self.transport = transport

    async def generate(
        self,
        prompt: str,
        resolution: str,
        aspect_ratio: str,
        reference_assets: list[ReferenceAsset],
        credential: Optional[str] = None,
        model: Optional[str] = None,
    ) -> GeneratedPayload:
        """Generate one image and download it from the Replicate CDN.

        Raises:
            ConfigurationError: REPLICATE_API_TOKEN not configured
            TransientError: Temporary failure, should retry
            PermanentError: Permanent failure, should not retry
        """
        api_token = credential or self.api_token
        if not api_token:
            raise ConfigurationError("REPLICATE_API_TOKEN not configured")

        model_version = model if model and "/" in model else self.model_version
        client = replicate.Client(api_token=api_token)

        try:
            # SDK is synchronous
            output = await asyncio.to_thread(
                client.run,
                model_version,
                input={"prompt": prompt, "aspect_ratio": aspect_ratio or "16:9"},
            )
        except ReplicateAPIError as e:
            raise classify_error(e) from e
        except (ConnectionError, OSError, TimeoutError) as e:
            raise classify_error(e) from e

        image_url = _output_url(output)

        try:
            async with httpx.AsyncClient(
                timeout=self.download_timeout, transport=self.transport
            ) as http:
                response = await http.get(image_url)
        except httpx.TimeoutException as e:
            raise TransientError(f"Image download timeout: {e}") from e
        except httpx.HTTPError as e:
            raise TransientError(f"Image download network error: {e}") from e

        if response.status_code == 429 or response.status_code >= 500:
            raise TransientError(f"Image download failed ({response.status_code})")
        if response.status_code >= 400:
            raise PermanentError(f"Image download failed ({response.status_code})")

        mime_type = response.headers.get("content-type", "image/png").split(";")[0].strip()
        return GeneratedPayload(data=response.content, mime_type=mime_type or "image/png")
