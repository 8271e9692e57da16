"""Runs one identity document through intake, OCR, age gate, upload and recording.

Pipeline: validate -> extract -> resolve -> gate -> upload -> persist.

Every stage waits for the previous one to resolve; nothing touches storage
before the gate has passed. Blocking adapters (OCR, storage, database) run in
worker threads so the event loop stays free for other sessions.
"""

import asyncio
import functools
import threading
from collections.abc import Callable
from datetime import date, datetime
from pathlib import PurePosixPath
from typing import ClassVar
from zoneinfo import ZoneInfo

from app.config.settings import Settings
from app.database.repositories.verified_documents_repository import VerifiedDocumentsRepository
from app.intake.validator import IntakeValidator
from app.logging.logger import Log
from app.ocr.base import BaseOcrEngine
from app.ocr.factory import OcrEngineFactory
from app.pipeline.exceptions import (
    AuthRequiredError,
    ErrorKind,
    ExtractionUnavailableError,
    PipelineBusyError,
    UploadError,
    VerificationError,
)
from app.pipeline.models import (
    AgeVerification,
    CandidateFile,
    Document,
    OutcomeStatus,
    Session,
    SubmissionOutcome,
    UploadRecord,
)
from app.pipeline.progress import ProgressStream
from app.pipeline.recorder import ResultRecorder
from app.pipeline.state import RunState, RunStateMachine
from app.storage.base import BaseObjectStorage
from app.storage.factory import ObjectStorageFactory
from app.verification.date_resolver import DateResolver
from app.verification.gate import VerificationGate

_REJECTION_KINDS = frozenset(
    {
        ErrorKind.INVALID_FORMAT,
        ErrorKind.EXTRACTION_UNAVAILABLE,
        ErrorKind.DATE_NOT_FOUND,
        ErrorKind.UNDERAGE_REJECTION,
    }
)


class PipelineRun:
    """Handle on one in-flight submission."""

    def __init__(
        self,
        machine: RunStateMachine,
        progress: ProgressStream,
        task: "asyncio.Task[SubmissionOutcome]",
    ) -> None:
        self._machine = machine
        self._progress = progress
        self._task = task

    @property
    def state(self) -> RunState:
        return self._machine.state

    @property
    def machine(self) -> RunStateMachine:
        return self._machine

    @property
    def progress(self) -> ProgressStream:
        return self._progress

    def done(self) -> bool:
        return self._task.done()

    def cancel(self) -> None:
        """Abandon the run. Bytes already sent to storage are not rolled back."""
        self._task.cancel()

    def snapshot(self) -> SubmissionOutcome:
        if not self._task.done():
            return SubmissionOutcome(status=OutcomeStatus.ACCEPTED_PENDING)
        if self._task.cancelled():
            return _cancelled_outcome()
        return self._task.result()

    async def outcome(self) -> SubmissionOutcome:
        await asyncio.wait({self._task})
        return self.snapshot()


def _cancelled_outcome() -> SubmissionOutcome:
    return SubmissionOutcome(
        status=OutcomeStatus.FAILED,
        error_kind=ErrorKind.CANCELLED,
        message="Submission was cancelled",
    )


class UploadOrchestrator:
    """Drives verification runs for a single user session, one at a time."""

    EXTENSIONS: ClassVar[dict[str, str]] = {
        "image/png": "png",
        "image/jpeg": "jpeg",
        "image/jpg": "jpg",
    }
    STORAGE_PREFIX: ClassVar[str] = "documentos"

    def __init__(
        self,
        *,
        validator: IntakeValidator,
        ocr_engine: BaseOcrEngine,
        resolver: DateResolver,
        gate: VerificationGate,
        storage: BaseObjectStorage,
        recorder: ResultRecorder,
        clock: Callable[[], date] = date.today,
        ocr_language: str = "por",
        ocr_timeout_seconds: float | None = None,
        upload_timeout_seconds: float | None = None,
    ) -> None:
        self._validator = validator
        self._ocr_engine = ocr_engine
        self._resolver = resolver
        self._gate = gate
        self._storage = storage
        self._recorder = recorder
        self._clock = clock
        self._ocr_language = ocr_language
        self._ocr_timeout = ocr_timeout_seconds or None
        self._upload_timeout = upload_timeout_seconds or None
        self._active: PipelineRun | None = None
        self._abandoned_transfer: "asyncio.Future[str] | None" = None

    def start(self, candidate: CandidateFile, session: Session) -> PipelineRun:
        """Schedule a run on the running event loop and return its handle.

        Raises:
            PipelineBusyError: if a previous run of this session is still active,
                or its abandoned upload is still writing to storage.
        """
        if self._active is not None and not self._active.done():
            raise PipelineBusyError("A document submission is already in progress")
        if self._abandoned_transfer is not None and not self._abandoned_transfer.done():
            raise PipelineBusyError("The previous upload is still being abandoned")
        machine = RunStateMachine()
        progress = ProgressStream()
        task = asyncio.create_task(self._run(candidate, session, machine, progress))
        task.add_done_callback(functools.partial(self._settle, machine, progress))
        self._active = PipelineRun(machine, progress, task)
        return self._active

    async def submit(self, candidate: CandidateFile, session: Session) -> SubmissionOutcome:
        """Run the whole pipeline and return its final outcome."""
        return await self.start(candidate, session).outcome()

    async def _run(
        self,
        candidate: CandidateFile,
        session: Session,
        machine: RunStateMachine,
        progress: ProgressStream,
    ) -> SubmissionOutcome:
        verification: AgeVerification | None = None
        upload: UploadRecord | None = None
        try:
            document = self._validator.validate(candidate)
            Log.info(
                f"Accepted {document.media_type} document '{document.file_name}'",
                size_bytes=document.size_bytes,
            )

            self._advance(machine, RunState.EXTRACTING)
            text = await self._extract(document)

            self._advance(machine, RunState.RESOLVING)
            extraction = self._resolver.find_birth_date(text)
            verification = self._resolver.resolve(extraction, self._clock())
            Log.info(
                f"Resolved birth date {verification.birth_date_text}: age {verification.age}"
            )

            self._advance(machine, RunState.GATING)
            self._gate.check(verification)
            user_id = self._require_user(session)

            self._advance(machine, RunState.UPLOADING)
            upload = UploadRecord(
                storage_path=self._storage_path(user_id, document),
                total_bytes=document.size_bytes,
            )
            reference_url = await self._upload(document, upload, progress)

            self._advance(machine, RunState.PERSISTING)
            await asyncio.to_thread(self._recorder.record, user_id, upload, verification)

            self._advance(machine, RunState.COMPLETED)
            Log.info("Verification completed", user_id=user_id, reference_url=reference_url)
            return SubmissionOutcome(
                status=OutcomeStatus.COMPLETED,
                message="Document uploaded and verification completed",
                storage_reference_url=reference_url,
                age_verification=verification,
            )
        except VerificationError as exc:
            if upload is not None:
                upload.mark_failed()
            failed_in = machine.state
            machine.fail(exc.kind, str(exc))
            Log.error(
                f"Verification run failed: {exc}",
                state=failed_in.value,
                kind=exc.kind.value,
            )
            return self._failure_outcome(exc, verification)
        except asyncio.CancelledError:
            if upload is not None:
                upload.mark_failed()
            if not machine.state.is_terminal:
                machine.fail(ErrorKind.CANCELLED, "Submission was cancelled")
            Log.warning("Verification run cancelled by caller")
            raise
        except Exception as exc:
            if not machine.state.is_terminal:
                machine.fail(None, str(exc))
            Log.error(f"Verification run crashed: {exc}")
            raise
        finally:
            progress.close()

    @staticmethod
    def _settle(
        machine: RunStateMachine,
        progress: ProgressStream,
        task: "asyncio.Task[SubmissionOutcome]",
    ) -> None:
        # A task cancelled before its first step never enters _run's handlers.
        if task.cancelled() and not machine.state.is_terminal:
            machine.fail(ErrorKind.CANCELLED, "Submission was cancelled")
        progress.close()

    async def _extract(self, document: Document) -> str:
        try:
            text = await asyncio.wait_for(
                asyncio.to_thread(
                    self._ocr_engine.recognize, document.payload, self._ocr_language
                ),
                timeout=self._ocr_timeout,
            )
        except asyncio.TimeoutError as exc:
            raise ExtractionUnavailableError(
                f"OCR did not finish within {self._ocr_timeout} seconds"
            ) from exc
        Log.debug(f"OCR text:\n{text}")
        return text

    async def _upload(
        self,
        document: Document,
        upload: UploadRecord,
        progress: ProgressStream,
    ) -> str:
        """Transfer the document, publishing progress, and return its reference URL.

        The storage call keeps running in its worker thread when the run gives
        up on it. Its next progress callback raises, which makes the adapter
        abort the write, and until it returns the orchestrator refuses new runs.
        """
        loop = asyncio.get_running_loop()
        abandoned = threading.Event()

        def on_progress(bytes_transferred: int, _total: int) -> None:
            if abandoned.is_set():
                raise UploadError(f"Upload to {upload.storage_path} was abandoned")
            try:
                loop.call_soon_threadsafe(
                    self._report_progress, upload, progress, bytes_transferred
                )
            except RuntimeError as exc:
                raise UploadError(
                    f"Upload to {upload.storage_path} outlived its event loop"
                ) from exc

        progress.publish(0)
        transfer = loop.run_in_executor(
            None,
            functools.partial(
                self._storage.upload,
                upload.storage_path,
                document.payload,
                document.media_type,
                on_progress,
            ),
        )
        try:
            done, _pending = await asyncio.wait({transfer}, timeout=self._upload_timeout)
        finally:
            if not transfer.done():
                abandoned.set()
                self._abandoned_transfer = transfer
                transfer.add_done_callback(
                    functools.partial(self._log_abandoned_transfer, upload.storage_path)
                )
        if not done:
            raise UploadError(
                f"Upload to {upload.storage_path} did not finish within "
                f"{self._upload_timeout} seconds"
            )
        reference_url = transfer.result()
        upload.complete(reference_url)
        progress.publish(100)
        return reference_url

    @staticmethod
    def _log_abandoned_transfer(storage_path: str, transfer: "asyncio.Future[str]") -> None:
        if transfer.cancelled():
            return
        error = transfer.exception()
        if error is None:
            Log.warning("Abandoned upload finished writing", storage_path=storage_path)
        else:
            Log.debug(f"Abandoned upload stopped: {error}", storage_path=storage_path)

    @staticmethod
    def _report_progress(upload: UploadRecord, progress: ProgressStream, transferred: int) -> None:
        if upload.advance(transferred):
            Log.debug(
                f"Upload progress {upload.progress}%",
                storage_path=upload.storage_path,
            )
            progress.publish(upload.progress)

    @staticmethod
    def _advance(machine: RunStateMachine, state: RunState) -> None:
        machine.advance(state)
        Log.debug("Run state changed", state=state.value)

    @staticmethod
    def _require_user(session: Session) -> str:
        if not session.is_authenticated or session.user_id is None:
            raise AuthRequiredError("User is not authenticated")
        return session.user_id

    def _storage_path(self, user_id: str, document: Document) -> str:
        suffix = PurePosixPath(document.file_name).suffix.lstrip(".").lower()
        if suffix not in self.EXTENSIONS.values():
            suffix = self.EXTENSIONS[document.media_type]
        return f"{self.STORAGE_PREFIX}/{user_id}/rg.{suffix}"

    @staticmethod
    def _failure_outcome(
        exc: VerificationError,
        verification: AgeVerification | None,
    ) -> SubmissionOutcome:
        status = OutcomeStatus.REJECTED if exc.kind in _REJECTION_KINDS else OutcomeStatus.FAILED
        return SubmissionOutcome(
            status=status,
            error_kind=exc.kind,
            message=str(exc),
            age_verification=verification,
        )


def local_today(timezone_name: str) -> Callable[[], date]:
    """Clock returning the current date in the given IANA timezone."""
    zone = ZoneInfo(timezone_name)

    def _today() -> date:
        return datetime.now(zone).date()

    return _today


def build_orchestrator(settings: Settings) -> UploadOrchestrator:
    """Build an UploadOrchestrator with all configured adapters."""
    return UploadOrchestrator(
        validator=IntakeValidator(max_size_bytes=settings.max_document_size_bytes),
        ocr_engine=OcrEngineFactory.create(settings),
        resolver=DateResolver(),
        gate=VerificationGate(),
        storage=ObjectStorageFactory.create(settings),
        recorder=ResultRecorder(VerifiedDocumentsRepository()),
        clock=local_today(settings.verification_timezone),
        ocr_language=settings.ocr_language,
        ocr_timeout_seconds=settings.ocr_timeout_seconds,
        upload_timeout_seconds=settings.upload_timeout_seconds,
    )
