from collections.abc import Callable
from datetime import datetime, timezone

import psycopg

from app.database.repositories.verified_documents_repository import VerifiedDocumentsRepository
from app.logging.logger import Log
from app.pipeline.exceptions import PersistenceError
from app.pipeline.models import AgeVerification, UploadRecord, VerifiedDocumentEntry


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ResultRecorder:
    """Writes the verification outcome and storage reference for a user."""

    def __init__(
        self,
        repository: VerifiedDocumentsRepository,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._repository = repository
        self._clock = clock

    def record(
        self,
        user_id: str,
        upload: UploadRecord,
        verification: AgeVerification,
    ) -> VerifiedDocumentEntry:
        """Persist a VerifiedDocumentEntry for a completed upload.

        The uploaded object is left in place if the write fails.

        Raises:
            PersistenceError: if the upload is incomplete or the write fails.
        """
        if upload.reference_url is None:
            raise PersistenceError(
                f"Upload to {upload.storage_path} has no reference URL to record"
            )
        entry = VerifiedDocumentEntry(
            user_id=user_id,
            storage_reference_url=upload.reference_url,
            is_adult=verification.is_adult,
            birth_date_text=verification.birth_date_text,
            completed_at=self._clock(),
        )
        try:
            self._repository.upsert(entry)
        except (psycopg.Error, RuntimeError) as exc:
            # RuntimeError: the connection pool was never initialized.
            Log.warning(
                "Stored object has no verification metadata",
                user_id=user_id,
                storage_path=upload.storage_path,
            )
            raise PersistenceError(f"Failed to record verification: {exc}") from exc
        Log.info("Recorded verified document", user_id=user_id)
        return entry
