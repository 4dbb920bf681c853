"""Storage path and filename conventions for generated media."""

import re
import time
from typing import Optional
from uuid import UUID

_NON_SLUG_CHARS = re.compile(r"[^a-z0-9\s-]")
_WHITESPACE = re.compile(r"\s+")
_DASH_RUNS = re.compile(r"-+")
_EXTENSION = re.compile(r"\.[^/.]+$")


def slugify(text: str, max_length: int = 50) -> str:
    """Lowercase, strip punctuation and dash-join words for use in filenames.

    >>> slugify("Hero Shot: red sneaker, studio light!")
    'hero-shot-red-sneaker-studio-light'
    """
    slug = _NON_SLUG_CHARS.sub("", text.lower())
    slug = _WHITESPACE.sub("-", slug)
    slug = _DASH_RUNS.sub("-", slug)
    return slug.strip("-")[:max_length]


def resolve_extension(mime_type: str) -> str:
    """File extension for a generated image mime type (png unless jpeg/webp)."""
    if mime_type == "image/jpeg":
        return "jpg"
    if mime_type == "image/webp":
        return "webp"
    return "png"


def video_extension(mime_type: str) -> str:
    """File extension for a video mime type, defaulting to mp4."""
    base = mime_type.split(";")[0].strip()
    if "/" in base:
        subtype = base.split("/", 1)[1]
        if subtype:
            return subtype
    return "mp4"


def _timestamp_ms() -> int:
    return int(time.time() * 1000)


def build_image_file_name(
    variation_number: int,
    prompt_slug: Optional[str],
    extension: str,
    timestamp_ms: Optional[int] = None,
) -> str:
    """Format: gen-{variation:02d}-{slug}-{timestamp}.{ext}"""
    slug = f"-{slugify(prompt_slug)}" if prompt_slug else ""
    timestamp = timestamp_ms if timestamp_ms is not None else _timestamp_ms()
    return f"gen-{variation_number:02d}{slug}-{timestamp}.{extension}"


def build_image_storage_path(
    product_id: UUID,
    job_id: UUID,
    variation_number: int,
    prompt_slug: Optional[str],
    extension: str,
    timestamp_ms: Optional[int] = None,
) -> str:
    file_name = build_image_file_name(variation_number, prompt_slug, extension, timestamp_ms)
    return f"products/{product_id}/jobs/{job_id}/{file_name}"


def _derived_path(storage_path: str, folder: str, extension: str) -> str:
    directory, _, file_name = storage_path.rpartition("/")
    base_name = _EXTENSION.sub("", file_name)
    suffix = f"{base_name}.{extension}"
    return f"{directory}/{folder}/{suffix}" if directory else f"{folder}/{suffix}"


def build_thumbnail_path(storage_path: str, extension: str) -> str:
    """Thumbnail lives in a thumbs/ folder next to the original."""
    return _derived_path(storage_path, "thumbs", extension)


def build_preview_path(storage_path: str, extension: str) -> str:
    """Preview lives in a previews/ folder next to the original."""
    return _derived_path(storage_path, "previews", extension)


def build_video_storage_path(
    product_id: UUID,
    scene_id: UUID,
    motion_prompt: str,
    extension: str,
    timestamp_ms: Optional[int] = None,
) -> str:
    timestamp = timestamp_ms if timestamp_ms is not None else _timestamp_ms()
    file_name = f"video-{slugify(motion_prompt)}-{timestamp}.{extension}"
    return f"products/{product_id}/scenes/{scene_id}/{file_name}"
