"""Inline thumbnails for screenshot history records.

Screenshots are not kept on disk; each record instead stores a small PNG
preview encoded as a `data:image/png;base64,...` URL, which viewers can
drop straight into an <img> tag.

Example:
    thumbs = ThumbnailGenerator(max_size=(320, 320))
    preview = thumbs.create_thumbnail_data_url(png_bytes)
"""
from __future__ import annotations

import base64
import io
from typing import Tuple

from PIL import Image, UnidentifiedImageError

DATA_URL_PREFIX = "data:image/png;base64,"


class ThumbnailGenerator:
    """Shrink raw screenshot bytes into an opaque PNG preview.

    Aspect ratio is preserved and images smaller than `max_size` are left at
    their original size. Transparent regions are flattened onto `background`
    (white when not given).
    """

    def __init__(self, max_size: Tuple[int, int] = (320, 320), background: Tuple[int, int, int] | None = None):
        self.max_size = max_size
        self.background = background or (255, 255, 255)

    def create_thumbnail_data_url(self, raw: bytes) -> str:
        """Return a PNG data URL previewing `raw` (PNG, JPEG, BMP, ...).

        Raises:
            ValueError: If the bytes cannot be opened as an image.
        """
        try:
            with Image.open(io.BytesIO(raw)) as opened:
                opened.load()
                rgba = opened.convert("RGBA")
        except (UnidentifiedImageError, OSError) as exc:
            raise ValueError("Bytes are not a supported image format") from exc

        rgba.thumbnail(self.max_size, Image.LANCZOS)
        flattened = Image.new("RGB", rgba.size, self.background)
        flattened.paste(rgba, mask=rgba.getchannel("A"))

        buf = io.BytesIO()
        flattened.save(buf, format="PNG", optimize=True)
        return DATA_URL_PREFIX + base64.b64encode(buf.getvalue()).decode("ascii")
