from typing import ClassVar

from app.pipeline.exceptions import InvalidFormatError
from app.pipeline.models import CandidateFile, Document


class IntakeValidator:
    """Accepts PNG/JPEG images and turns them into a Document.

    The declared media type is trusted; byte content is not sniffed.
    """

    ALLOWED_MEDIA_TYPES: ClassVar[frozenset[str]] = frozenset(
        {"image/png", "image/jpeg", "image/jpg"}
    )

    def __init__(self, max_size_bytes: int | None = None) -> None:
        self._max_size_bytes = max_size_bytes

    def validate(self, candidate: CandidateFile) -> Document:
        """Build a Document from a candidate file.

        Raises:
            InvalidFormatError: on unsupported media type, empty or oversized payload.
        """
        media_type = self._normalize_media_type(candidate.media_type)
        if media_type not in self.ALLOWED_MEDIA_TYPES:
            raise InvalidFormatError(
                f"Unsupported media type '{candidate.media_type}'. Use PNG, JPEG or JPG."
            )
        size = len(candidate.payload)
        if size == 0:
            raise InvalidFormatError("Document payload is empty")
        if self._max_size_bytes is not None and size > self._max_size_bytes:
            raise InvalidFormatError(
                f"Document is {size} bytes, limit is {self._max_size_bytes}"
            )
        return Document(
            payload=candidate.payload,
            media_type=media_type,
            file_name=candidate.file_name,
            size_bytes=size,
        )

    @staticmethod
    def _normalize_media_type(media_type: str) -> str:
        return media_type.split(";", 1)[0].strip().lower()
