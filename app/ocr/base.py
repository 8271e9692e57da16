from abc import ABC, abstractmethod


class BaseOcrEngine(ABC):
    """Contract for all OCR adapters."""

    @abstractmethod
    def recognize(self, image_bytes: bytes, language: str) -> str:
        """Recognize plain text in an image.

        Args:
            image_bytes: Raw PNG or JPEG file content.
            language: Tesseract-style language hint, e.g. "por".

        Returns:
            Recognized text, possibly empty.

        Raises:
            ExtractionUnavailableError: if the engine fails or times out.
        """
