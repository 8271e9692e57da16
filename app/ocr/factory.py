from app.config.settings import Settings
from app.ocr.base import BaseOcrEngine
from app.ocr.openai_vision_adapter import OpenAIVisionAdapter
from app.ocr.tesseract_adapter import TesseractAdapter


class OcrEngineFactory:
    """Creates the configured OCR engine adapter."""

    ENGINES = ("tesseract", "openai")

    @classmethod
    def create(cls, settings: Settings) -> BaseOcrEngine:
        engine = settings.ocr_engine.lower()
        if engine == "tesseract":
            return TesseractAdapter(timeout_seconds=settings.ocr_timeout_seconds)
        if engine == "openai":
            if not settings.ocr_openai_model_name:
                raise ValueError("ocr_openai_model_name is required for ocr_engine=openai")
            return OpenAIVisionAdapter(
                api_key=settings.ocr_openai_api_key,
                model=settings.ocr_openai_model_name,
                timeout_seconds=settings.ocr_timeout_seconds,
                base_url=settings.ocr_openai_base_url or None,
            )
        raise ValueError(
            f"Unknown OCR engine '{engine}'. Choose from: {list(cls.ENGINES)}"
        )
