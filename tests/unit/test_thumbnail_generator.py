import base64
import io

import pytest
from PIL import Image

from services.thumbnail_generator import ThumbnailGenerator

PREFIX = "data:image/png;base64,"


def _decode(data_url: str) -> Image.Image:
    assert data_url.startswith(PREFIX)
    return Image.open(io.BytesIO(base64.b64decode(data_url[len(PREFIX):])))


class TestThumbnailGenerator:
    def test_fits_within_max_size(self, png_bytes: bytes) -> None:
        thumb = _decode(ThumbnailGenerator().create_thumbnail_data_url(png_bytes))
        assert thumb.size == (320, 100)

    def test_flattens_alpha(self, png_bytes: bytes) -> None:
        thumb = _decode(ThumbnailGenerator().create_thumbnail_data_url(png_bytes))
        assert thumb.mode == "RGB"
        assert thumb.getpixel((300, 50)) == (255, 255, 255)

    def test_custom_size_and_background(self, png_bytes: bytes) -> None:
        generator = ThumbnailGenerator(max_size=(64, 64), background=(0, 0, 0))
        thumb = _decode(generator.create_thumbnail_data_url(png_bytes))
        assert thumb.size == (64, 20)
        assert thumb.getpixel((60, 10)) == (0, 0, 0)

    def test_small_images_are_not_upscaled(self) -> None:
        buf = io.BytesIO()
        Image.new("RGB", (10, 10), (1, 2, 3)).save(buf, format="JPEG")
        thumb = _decode(ThumbnailGenerator().create_thumbnail_data_url(buf.getvalue()))
        assert thumb.size == (10, 10)

    def test_non_image_bytes_rejected(self) -> None:
        with pytest.raises(ValueError, match="not a supported image"):
            ThumbnailGenerator().create_thumbnail_data_url(b"definitely not an image")
