from datetime import date
from pathlib import Path

import pytest

from app.database.repositories.verified_documents_repository import VerifiedDocumentsRepository
from app.intake.validator import IntakeValidator
from app.ocr.base import BaseOcrEngine
from app.pipeline.models import CandidateFile, OutcomeStatus, Session
from app.pipeline.orchestrator import UploadOrchestrator
from app.pipeline.recorder import ResultRecorder
from app.storage.local_storage import LocalObjectStorage
from app.verification.date_resolver import DateResolver
from app.verification.gate import VerificationGate


class _StaticOcr(BaseOcrEngine):
    def __init__(self, text: str) -> None:
        self._text = text

    def recognize(self, image_bytes: bytes, language: str) -> str:
        return self._text


def _orchestrator(files_root: Path, text: str) -> UploadOrchestrator:
    return UploadOrchestrator(
        validator=IntakeValidator(),
        ocr_engine=_StaticOcr(text),
        resolver=DateResolver(),
        gate=VerificationGate(),
        storage=LocalObjectStorage(files_root, chunk_size=256),
        recorder=ResultRecorder(VerifiedDocumentsRepository()),
        clock=lambda: date(2025, 5, 14),
    )


@pytest.mark.integration
class TestPipelineWithLocalStorage:
    @pytest.mark.asyncio
    async def test_adult_document_is_stored_and_recorded(
        self,
        user_id: str,
        tmp_path: Path,
        sample_png_bytes: bytes,
    ) -> None:
        orchestrator = _orchestrator(tmp_path, "NASCIMENTO 15/05/2000")
        candidate = CandidateFile(payload=sample_png_bytes, media_type="image/png", file_name="rg.png")

        outcome = await orchestrator.submit(candidate, Session(user_id=user_id))

        stored = tmp_path / "documentos" / user_id / "rg.png"
        assert outcome.status is OutcomeStatus.COMPLETED
        assert stored.read_bytes() == sample_png_bytes
        entry = VerifiedDocumentsRepository().find_by_user_id(user_id)
        assert entry is not None
        assert entry.storage_reference_url == stored.resolve().as_uri()
        assert entry.is_adult is True
        assert entry.birth_date_text == "15/05/2000"

    @pytest.mark.asyncio
    async def test_minor_document_leaves_no_trace(
        self,
        user_id: str,
        tmp_path: Path,
        sample_png_bytes: bytes,
    ) -> None:
        orchestrator = _orchestrator(tmp_path, "NASCIMENTO 10/06/2010")
        candidate = CandidateFile(payload=sample_png_bytes, media_type="image/png", file_name="rg.png")

        outcome = await orchestrator.submit(candidate, Session(user_id=user_id))

        assert outcome.status is OutcomeStatus.REJECTED
        assert not (tmp_path / "documentos").exists()
        assert VerifiedDocumentsRepository().find_by_user_id(user_id) is None
