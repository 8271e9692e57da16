import io

import pytest
from PIL import Image, ImageDraw


def _render_document(text: str, image_format: str) -> bytes:
    image = Image.new("RGB", (480, 160), color="white")
    draw = ImageDraw.Draw(image)
    draw.text((20, 60), text, fill="black")
    buf = io.BytesIO()
    image.save(buf, format=image_format)
    return buf.getvalue()


@pytest.fixture()
def sample_png_bytes() -> bytes:
    """Small PNG with a birth date line drawn on it."""
    return _render_document("DATA DE NASCIMENTO 15/05/2000", "PNG")


@pytest.fixture()
def sample_jpeg_bytes() -> bytes:
    """Small JPEG with a birth date line drawn on it."""
    return _render_document("DATA DE NASCIMENTO 15/05/2000", "JPEG")


@pytest.fixture()
def blank_png_bytes() -> bytes:
    """PNG with no text on it."""
    return _render_document("", "PNG")
