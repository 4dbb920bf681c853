"""Thumbnail and preview renditions of generated images using Pillow."""

import asyncio
import io

from PIL import Image, ImageOps, UnidentifiedImageError

from mediagen.executor.ports import Rendition
from mediagen.services.exceptions import MediaDecodeError

THUMBNAIL_WIDTH = 480
THUMBNAIL_QUALITY = 72
PREVIEW_WIDTH = 1600
PREVIEW_QUALITY = 82


def render_webp(data: bytes, width: int, quality: int) -> Rendition:
    """Resize to `width` (never enlarging) and encode as WebP.

    EXIF orientation is applied first so rotated camera uploads render upright.

    Raises:
        MediaDecodeError: If the bytes are not a decodable image
    """
    try:
        image = Image.open(io.BytesIO(data))
        image.load()
    except (UnidentifiedImageError, OSError) as e:
        raise MediaDecodeError(f"Could not decode generated image: {e}") from e

    image = ImageOps.exif_transpose(image)
    if image.mode not in ("RGB", "RGBA"):
        image = image.convert("RGBA" if "transparency" in image.info else "RGB")

    if image.width > width:
        height = max(1, round(image.height * width / image.width))
        image = image.resize((width, height), Image.Resampling.LANCZOS)

    output = io.BytesIO()
    image.save(output, format="WEBP", quality=quality)
    return Rendition(data=output.getvalue(), mime_type="image/webp", extension="webp")


class PillowTranscoder:
    """MediaTranscoder backed by Pillow, run off the event loop."""

    def __init__(
        self,
        thumbnail_width: int = THUMBNAIL_WIDTH,
        preview_width: int = PREVIEW_WIDTH,
    ):
        self.thumbnail_width = thumbnail_width
        self.preview_width = preview_width

    async def thumbnail(self, data: bytes) -> Rendition:
        return await asyncio.to_thread(render_webp, data, self.thumbnail_width, THUMBNAIL_QUALITY)

    async def preview(self, data: bytes) -> Rendition:
        return await asyncio.to_thread(render_webp, data, self.preview_width, PREVIEW_QUALITY)
