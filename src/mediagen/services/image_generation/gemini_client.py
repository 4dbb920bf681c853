"""Gemini image generation client with error classification."""

import base64
from typing import Any, Optional

import httpx
import structlog

from mediagen.executor.ports import GeneratedPayload, ReferenceAsset
from mediagen.services.exceptions import ConfigurationError, PermanentError, TransientError

logger = structlog.get_logger(__name__)

GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_MODEL = "gemini-3-pro-image-preview"
SUPPORTED_RESOLUTIONS = ("2K", "4K")


def extract_inline_image(body: dict[str, Any]) -> Optional[tuple[str, str]]:
    """Return (mime_type, base64_data) of the first inline image part, if any.

    Accepts both camelCase and snake_case field spellings.
    """
    candidates = body.get("candidates") or (body.get("data") or {}).get("candidates")
    if not isinstance(candidates, list):
        return None

    for candidate in candidates:
        parts = ((candidate or {}).get("content") or {}).get("parts")
        if not isinstance(parts, list):
            continue
        for part in parts:
            inline = (part or {}).get("inlineData") or (part or {}).get("inline_data")
            if not inline:
                continue
            mime_type = inline.get("mimeType") or inline.get("mime_type")
            if inline.get("data") and mime_type:
                return mime_type, inline["data"]

    return None


class GeminiImageClient:
    """ImageGenerationService backed by the Gemini generateContent endpoint.

    Retries are not done here; the executor's RetryPolicy drives them based on
    the TransientError / PermanentError classification below.
    """

    def __init__(
        self,
        api_key: str,
        model: str = DEFAULT_MODEL,
        default_resolution: str = "4K",
        timeout: float = 300.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.model = model or DEFAULT_MODEL
        self.default_resolution = (
            default_resolution if default_resolution in SUPPORTED_RESOLUTIONS else "4K"
        )
        self.timeout = timeout
        self.transport = transport

    def _resolution(self, value: Optional[str]) -> str:
        return "2K" if value == "2K" else self.default_resolution

    async def generate(
        self,
        prompt: str,
        resolution: str,
        aspect_ratio: str,
        reference_assets: list[ReferenceAsset],
        credential: Optional[str] = None,
        model: Optional[str] = None,
    ) -> GeneratedPayload:
        """Generate one image from a prompt and reference images.

        Args:
            prompt: Final text prompt
            resolution: "2K" or "4K" (anything else uses the default)
            aspect_ratio: e.g. "16:9", "1:1", "9:16"
            reference_assets: Reference images sent before the prompt
            credential: Per-job API key overriding the configured one
            model: Model override

        Returns:
            GeneratedPayload with decoded image bytes

        Raises:
            ConfigurationError: No API key configured
            TransientError: Timeout, network failure, 429 or 5xx
            PermanentError: Access denied, unknown model, safety block, bad output
        """
        api_key = credential or self.api_key
        if not api_key:
            raise ConfigurationError("Gemini API key is not configured")

        model = model or self.model
        parts: list[dict[str, Any]] = [
            {
                "inlineData": {
                    "mimeType": asset.mime_type,
                    "data": base64.b64encode(asset.data).decode("ascii"),
                }
            }
            for asset in reference_assets
        ]
        parts.append({"text": prompt})

        payload = {
            "contents": [{"role": "user", "parts": parts}],
            "generationConfig": {
                "responseModalities": ["TEXT", "IMAGE"],
                "imageConfig": {
                    "aspectRatio": aspect_ratio or "16:9",
                    "imageSize": self._resolution(resolution),
                },
            },
        }

        logger.debug(
            "gemini.request", model=model, reference_images=len(reference_assets)
        )

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(
                    f"{GEMINI_BASE_URL}/models/{model}:generateContent",
                    headers={"Content-Type": "application/json", "x-goog-api-key": api_key},
                    json=payload,
                )
        except httpx.TimeoutException as e:
            raise TransientError(f"Gemini request timed out: {e}") from e
        except httpx.HTTPError as e:
            raise TransientError(f"Gemini network error: {e}") from e

        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}

        if response.status_code >= 400:
            self._raise_for_status(response, body, model)

        inline = extract_inline_image(body)
        if inline is None:
            raise PermanentError("Gemini response did not include image data")

        mime_type, data = inline
        return GeneratedPayload(data=base64.b64decode(data), mime_type=mime_type)

    @staticmethod
    def _raise_for_status(response: httpx.Response, body: dict[str, Any], model: str) -> None:
        error = body.get("error") if isinstance(body.get("error"), dict) else {}
        message = error.get("message") or body.get("message") or response.reason_phrase
        status = response.status_code

        logger.warning("gemini.api_error", status_code=status, error_message=message)

        if status == 429:
            raise TransientError("Rate limit exceeded (429)")
        if status >= 500:
            raise TransientError(f"Server error {status}: {message}")
        if status == 403:
            raise PermanentError("API access denied. Check your GEMINI_API_KEY permissions.")
        if status == 404:
            raise PermanentError(f'Model "{model}" not found. Check GEMINI_IMAGE_MODEL setting.')
        if status == 400 and "safety" in (message or "").lower():
            raise PermanentError("Content blocked by safety filters. Try a different prompt.")
        raise PermanentError(message or f"Gemini error {status}")
