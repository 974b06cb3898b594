"""
Structured exceptions for the generation pipeline.

Every error carries a machine-readable error code and an ErrorKind tag so
the orchestrator can record it in the stage-result table.
"""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorKind(str, Enum):
    """Error categories recorded on stage results."""
    MODEL_REQUEST = "model_request"
    MODEL_RESPONSE_FORMAT = "model_response_format"
    NO_FILES_EXTRACTED = "no_files_extracted"
    REVISION_FAILURE = "revision_failure"
    PERSISTENCE_REJECTED = "persistence_rejected"
    UNEXPECTED = "unexpected"


class CloneGenError(Exception):
    """
    Base exception for all pipeline errors.

    Provides consistent error code and detail handling.
    """

    error_code: str = "CLONE_GEN_ERROR"
    error_kind: ErrorKind = ErrorKind.UNEXPECTED

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        """
        Initialize the exception.

        Args:
            message: Human-readable error message
            error_code: Machine-readable error code
            details: Additional error details
        """
        super().__init__(message)
        self.message = message
        if error_code:
            self.error_code = error_code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to a dictionary."""
        return {
            "error": True,
            "error_code": self.error_code,
            "error_kind": self.error_kind.value,
            "message": self.message,
            "details": self.details,
        }

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"


class ModelRequestError(CloneGenError):
    """
    Network, timeout or HTTP failure talking to the model API.

    status_code is None for transport errors and timeouts.
    """

    error_code = "MODEL_REQUEST_ERROR"
    error_kind = ErrorKind.MODEL_REQUEST

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        body: str = "",
        details: Optional[Dict[str, Any]] = None,
    ):
        details = dict(details or {})
        details.setdefault("status_code", status_code)
        super().__init__(message, details=details)
        self.status_code = status_code
        self.body = body


class ModelResponseFormatError(CloneGenError):
    """The model API answered with an unexpected response shape."""

    error_code = "MODEL_RESPONSE_FORMAT_ERROR"
    error_kind = ErrorKind.MODEL_RESPONSE_FORMAT


class NoFilesExtractedError(CloneGenError):
    """Continuation attempts were exhausted without a single usable file."""

    error_code = "NO_FILES_EXTRACTED"
    error_kind = ErrorKind.NO_FILES_EXTRACTED

    def __init__(self, message: str, attempts: int = 0):
        super().__init__(message, details={"attempts": attempts})
        self.attempts = attempts


class RevisionFailure(CloneGenError):
    """
    The revision pass failed.

    Never propagated out of the revise stage; recorded on its stage result
    while the run continues with the pre-revision files.
    """

    error_code = "REVISION_FAILURE"
    error_kind = ErrorKind.REVISION_FAILURE


class PersistenceRejected(CloneGenError):
    """The file list reaching the persist stage is not a non-empty list."""

    error_code = "PERSISTENCE_REJECTED"
    error_kind = ErrorKind.PERSISTENCE_REJECTED


def classify_error(error: BaseException) -> ErrorKind:
    """Map any exception to its ErrorKind tag."""
    if isinstance(error, CloneGenError):
        return error.error_kind
    return ErrorKind.UNEXPECTED
