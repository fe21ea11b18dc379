import io
from pathlib import Path

import pytest
from PIL import Image


@pytest.fixture()
def png_bytes() -> bytes:
    """A small RGBA PNG with an opaque and a transparent half."""
    image = Image.new("RGBA", (640, 200), (255, 255, 255, 0))
    image.paste((20, 40, 200, 255), (0, 0, 320, 200))
    buf = io.BytesIO()
    image.save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture()
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "db" / "screensage.db"


@pytest.fixture()
def jpeg_bytes() -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", (32, 16), (200, 30, 30)).save(buf, format="JPEG")
    return buf.getvalue()
