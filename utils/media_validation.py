"""Validation helpers for uploaded screenshot content."""

import base64
import binascii
import io
from typing import Optional

from PIL import Image, UnidentifiedImageError

DEFAULT_IMAGE_MIME = "image/png"


def strip_data_url_prefix(image_b64: str) -> str:
    """Drop a leading `data:<mime>;base64,` prefix if present."""
    if image_b64.startswith("data:") and "," in image_b64:
        return image_b64.split(",", 1)[1]
    return image_b64


def decode_image_payload(image: str) -> bytes:
    """Return raw image bytes from a base64 string or data URL.

    Raises:
        ValueError: If the payload is empty or not valid base64.
    """
    cleaned = strip_data_url_prefix((image or "").strip())
    if not cleaned:
        raise ValueError("Image payload is required.")
    try:
        raw = base64.b64decode(cleaned, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValueError("Image payload must be base64-encoded.") from exc
    if not raw:
        raise ValueError("Image payload decoded to zero bytes.")
    return raw


def sniff_image_mime(raw: bytes) -> str:
    """Return the MIME type Pillow identifies for `raw`, or PNG if it cannot tell."""
    try:
        with Image.open(io.BytesIO(raw)) as img:
            return Image.MIME.get(img.format or "", DEFAULT_IMAGE_MIME)
    except (UnidentifiedImageError, OSError, ValueError):
        return DEFAULT_IMAGE_MIME


def to_image_data_url(image_b64: str, mime_type: Optional[str] = None) -> str:
    """Convert base64 image text into a data URL suitable for vision input.

    Without an explicit `mime_type`, a data URL keeps its own type and
    plain base64 is labelled by sniffing the decoded bytes.
    """
    body = strip_data_url_prefix(image_b64)
    if mime_type is None:
        if body != image_b64:
            mime_type = image_b64[len("data:"):].split(";", 1)[0].split(",", 1)[0] or DEFAULT_IMAGE_MIME
        else:
            try:
                mime_type = sniff_image_mime(base64.b64decode(body))
            except (binascii.Error, ValueError):
                mime_type = DEFAULT_IMAGE_MIME
    return f"data:{mime_type};base64,{body}"
