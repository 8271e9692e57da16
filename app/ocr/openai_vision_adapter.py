import base64

import httpx
import openai

from app.ocr.base import BaseOcrEngine
from app.pipeline.exceptions import ExtractionUnavailableError

_LANGUAGE_NAMES = {
    "por": "Portuguese",
    "eng": "English",
    "spa": "Spanish",
}

_SYSTEM_PROMPT = (
    "You are an OCR engine. Transcribe every piece of text visible in the image "
    "exactly as printed, one line per printed line. Keep dates exactly as written. "
    "Do not translate, summarize or add commentary."
)


class OpenAIVisionAdapter(BaseOcrEngine):
    """OCR adapter built on an OpenAI-compatible vision chat API."""

    def __init__(
        self,
        *,
        api_key: str,
        model: str,
        timeout_seconds: int,
        base_url: str | None = None,
    ) -> None:
        self._model = model
        self._client = openai.OpenAI(
            api_key=api_key,
            timeout=timeout_seconds,
            base_url=base_url,
        )

    def recognize(self, image_bytes: bytes, language: str) -> str:
        try:
            response = self._client.chat.completions.create(
                model=self._model,
                temperature=0.0,
                messages=[
                    {"role": "system", "content": _SYSTEM_PROMPT},
                    {
                        "role": "user",
                        "content": [
                            {
                                "type": "text",
                                "text": f"Document language: {self._language_name(language)}.",
                            },
                            {
                                "type": "image_url",
                                "image_url": {"url": self._data_url(image_bytes)},
                            },
                        ],
                    },
                ],
            )
        except (openai.APIConnectionError, httpx.ConnectError, httpx.TimeoutException) as exc:
            raise ExtractionUnavailableError(f"OCR provider network error: {exc}") from exc
        except openai.APIError as exc:
            raise ExtractionUnavailableError(f"OCR provider API error: {exc}") from exc

        if not response.choices:
            raise ExtractionUnavailableError("OCR provider returned no choices")
        content = response.choices[0].message.content
        if content is None:
            raise ExtractionUnavailableError("OCR provider returned empty response")
        return content.strip()

    @staticmethod
    def _language_name(language: str) -> str:
        return "+".join(_LANGUAGE_NAMES.get(code, code) for code in language.split("+"))

    @staticmethod
    def _data_url(image_bytes: bytes) -> str:
        mime = "image/png" if image_bytes.startswith(b"\x89PNG") else "image/jpeg"
        encoded = base64.b64encode(image_bytes).decode("ascii")
        return f"data:{mime};base64,{encoded}"
