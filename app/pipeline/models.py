from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum

from app.pipeline.exceptions import ErrorKind

LEGAL_AGE = 18


@dataclass(frozen=True)
class Session:
    """Identity of the caller submitting a document."""

    user_id: str | None = None

    @property
    def is_authenticated(self) -> bool:
        return bool(self.user_id)


@dataclass(frozen=True)
class CandidateFile:
    """Raw file as received from the caller, before intake validation."""

    payload: bytes
    media_type: str
    file_name: str = ""


@dataclass(frozen=True)
class Document:
    """Validated identity document image owned by a single pipeline run."""

    payload: bytes
    media_type: str
    file_name: str
    size_bytes: int


@dataclass(frozen=True)
class ExtractionResult:
    """Recognized text plus the first date-shaped match found in it."""

    text: str
    matched_date: str | None = None
    match_start: int | None = None
    match_end: int | None = None

    @property
    def has_date(self) -> bool:
        return self.matched_date is not None


@dataclass(frozen=True)
class AgeVerification:
    """Birth date, age on the evaluation date and the derived adult flag."""

    birth_date: date
    age: int
    evaluated_on: date

    @property
    def is_adult(self) -> bool:
        return self.age >= LEGAL_AGE

    @property
    def birth_date_text(self) -> str:
        return self.birth_date.strftime("%d/%m/%Y")


class UploadState(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass
class UploadRecord:
    """Tracks one transfer to object storage.

    Progress is an integer percentage of bytes transferred over total bytes
    and never decreases.
    """

    storage_path: str
    total_bytes: int
    bytes_transferred: int = 0
    progress: int = 0
    state: UploadState = UploadState.PENDING
    reference_url: str | None = None

    def advance(self, bytes_transferred: int) -> bool:
        """Record transferred bytes. Returns True if the percentage increased.

        Finished records ignore late reports from a transfer that was abandoned.
        """
        if self.state in (UploadState.SUCCEEDED, UploadState.FAILED):
            return False
        bytes_transferred = min(max(bytes_transferred, 0), self.total_bytes)
        if bytes_transferred <= self.bytes_transferred:
            return False
        self.bytes_transferred = bytes_transferred
        self.state = UploadState.IN_PROGRESS
        percent = round(bytes_transferred * 100 / self.total_bytes) if self.total_bytes else 100
        if percent <= self.progress:
            return False
        self.progress = percent
        return True

    def complete(self, reference_url: str) -> None:
        self.bytes_transferred = self.total_bytes
        self.progress = 100
        self.reference_url = reference_url
        self.state = UploadState.SUCCEEDED

    def mark_failed(self) -> None:
        if self.state is not UploadState.SUCCEEDED:
            self.state = UploadState.FAILED


@dataclass(frozen=True)
class VerifiedDocumentEntry:
    """Persisted verification outcome for a user (one row per user)."""

    user_id: str
    storage_reference_url: str
    is_adult: bool
    birth_date_text: str
    completed_at: datetime


class OutcomeStatus(str, Enum):
    ACCEPTED_PENDING = "accepted_pending"
    REJECTED = "rejected"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class SubmissionOutcome:
    """What the caller sees for a submission."""

    status: OutcomeStatus
    error_kind: ErrorKind | None = None
    message: str = ""
    storage_reference_url: str | None = None
    age_verification: AgeVerification | None = None
