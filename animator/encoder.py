"""Source image loading and base64 encoding for job submission."""

from __future__ import annotations

import asyncio
import base64
import logging
from pathlib import Path

from animator.errors import EncodingError
from animator.models import SourceImage

logger = logging.getLogger(__name__)

_MIME_TYPES = {
    "png": "image/png",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "gif": "image/gif",
    "webp": "image/webp",
}


def load_source_image(path: str | Path) -> SourceImage:
    """Describe an image file as a ``SourceImage``; bytes are read at encode time."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Image not found: {path}")
    ext = path.suffix.lstrip(".").lower()
    mime = _MIME_TYPES.get(ext)
    if mime is None:
        raise ValueError(f"Unsupported image type: {path.suffix or '(none)'}")
    return SourceImage(mime_type=mime, path=path)


def _strip_data_uri(payload: str) -> str:
    if payload.startswith("data:") and "," in payload:
        return payload.split(",", 1)[1]
    return payload


async def encode(source: SourceImage) -> str:
    """Return the image as base64 text with any data-URI prefix removed.

    Raises:
        EncodingError: If the image bytes cannot be read.
    """
    if source.data is not None:
        raw = source.data
    elif source.path is not None:
        try:
            raw = await asyncio.to_thread(source.path.read_bytes)
        except OSError as exc:
            raise EncodingError(f"Could not read image {source.path}: {exc}") from exc
    else:
        raise EncodingError("Image has no data to encode")

    # Callers may hand over a data URI instead of raw bytes.
    if raw.startswith(b"data:"):
        try:
            return _strip_data_uri(raw.decode("ascii"))
        except UnicodeDecodeError as exc:
            raise EncodingError(f"Malformed data URI: {exc}") from exc

    encoded = base64.b64encode(raw).decode("ascii")
    logger.debug("Encoded image (%.1f KB)", len(raw) / 1024)
    return encoded
