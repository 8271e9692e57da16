from enum import Enum


class ErrorKind(str, Enum):
    """Failure categories surfaced to callers of the verification pipeline."""

    INVALID_FORMAT = "InvalidFormat"
    EXTRACTION_UNAVAILABLE = "ExtractionUnavailable"
    DATE_NOT_FOUND = "DateNotFound"
    UNDERAGE_REJECTION = "UnderageRejection"
    UPLOAD_ERROR = "UploadError"
    PERSISTENCE_ERROR = "PersistenceError"
    AUTH_REQUIRED = "AuthRequired"
    CANCELLED = "Cancelled"


class VerificationError(Exception):
    """Base exception for all pipeline failures that are reported to the caller."""

    kind: ErrorKind
    retriable: bool = False


class InvalidFormatError(VerificationError):
    """Raised when a candidate file has an unsupported type, is empty or too large."""

    kind = ErrorKind.INVALID_FORMAT


class ExtractionUnavailableError(VerificationError):
    """Raised when the OCR engine errors or does not answer in time."""

    kind = ErrorKind.EXTRACTION_UNAVAILABLE
    retriable = True


class DateNotFoundError(VerificationError):
    """Raised when no valid DD/MM/YYYY date is present in the recognized text."""

    kind = ErrorKind.DATE_NOT_FOUND


class UnderageRejectionError(VerificationError):
    """Raised by the gate when the document holder is under the legal age."""

    kind = ErrorKind.UNDERAGE_REJECTION


class UploadError(VerificationError):
    """Raised when the transfer to object storage fails or times out."""

    kind = ErrorKind.UPLOAD_ERROR
    retriable = True


class PersistenceError(VerificationError):
    """Raised when the verification entry cannot be written after a successful upload."""

    kind = ErrorKind.PERSISTENCE_ERROR


class AuthRequiredError(VerificationError):
    """Raised when the submission carries no authenticated user."""

    kind = ErrorKind.AUTH_REQUIRED


class PipelineBusyError(RuntimeError):
    """Raised when a run is started while another run of the same session is active."""


class InvalidTransitionError(RuntimeError):
    """Raised when the run state machine is asked for a transition it does not allow."""
