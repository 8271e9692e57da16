import io

import pytesseract
from PIL import Image

from app.ocr.base import BaseOcrEngine
from app.pipeline.exceptions import ExtractionUnavailableError


class TesseractAdapter(BaseOcrEngine):
    """Recognizes text locally with Tesseract through pytesseract."""

    def __init__(self, *, timeout_seconds: int = 0, config: str = "--oem 3") -> None:
        self._timeout_seconds = timeout_seconds
        self._config = config

    def recognize(self, image_bytes: bytes, language: str) -> str:
        try:
            with Image.open(io.BytesIO(image_bytes)) as image:
                text = pytesseract.image_to_string(
                    image,
                    lang=language,
                    config=self._config,
                    timeout=self._timeout_seconds,
                )
        except Exception as exc:
            raise ExtractionUnavailableError(f"tesseract recognition failed: {exc}") from exc
        return text.strip()
