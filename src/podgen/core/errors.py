"""
Error Codes and Exceptions.

Every failure that can leave the pipeline is a ``PodgenError`` carrying a
stable code from ``ErrorCode``. The API layer renders ``to_dict()``
directly and maps the code to an HTTP status (see ``http_status``).

Hierarchy:
    PodgenError
    ├── InvalidInputError        bad topics / inputs / roster
    ├── ProviderError            a remote collaborator failed
    │   └── SynthesisError       the synthesis provider failed
    ├── EmptyResultError         source collection found nothing
    ├── FormatMismatch           fragments disagree on audio format
    ├── ContainerError
    │   ├── UnrecognizedContainer
    │   └── PayloadNotFound
    └── PipelineError            any of the above, tagged with the stage

Two conditions are recovered where they happen and only logged: a corrupt
cache record is treated as a miss, and a failed enrichment falls back to
the item's snippet.
"""
from __future__ import annotations

from typing import Any, Dict, Optional


class ErrorCode:
    """Error codes returned in API error payloads."""
    INVALID_INPUT = "INVALID_INPUT"         # Bad request data
    EMPTY_RESULT = "EMPTY_RESULT"           # No sources found
    PROVIDER_FAILED = "PROVIDER_FAILED"     # Remote collaborator error
    SYNTHESIS_FAILED = "SYNTHESIS_FAILED"   # Synthesis provider error
    FORMAT_MISMATCH = "FORMAT_MISMATCH"     # Incompatible audio fragments
    CONTAINER_INVALID = "CONTAINER_INVALID" # Unparseable audio container
    INTERNAL_ERROR = "INTERNAL_ERROR"       # Unexpected error


_HTTP_STATUS = {
    ErrorCode.INVALID_INPUT: 400,
    ErrorCode.EMPTY_RESULT: 404,
    ErrorCode.PROVIDER_FAILED: 503,
    ErrorCode.SYNTHESIS_FAILED: 503,
    ErrorCode.FORMAT_MISMATCH: 502,
    ErrorCode.CONTAINER_INVALID: 502,
}


def http_status(code: str) -> int:
    """HTTP status for an error code; 500 when unmapped."""
    return _HTTP_STATUS.get(code, 500)


class PodgenError(Exception):
    """
    Base exception with a code, a message and optional details.

    Attributes:
        message: Human-readable error message.
        code: Error code from ErrorCode.
        details: Optional dictionary with additional context.
    """
    def __init__(self, message: str, code: str = ErrorCode.INTERNAL_ERROR, details: Optional[Dict] = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Standardized error payload for API responses."""
        result = {
            "ok": False,
            "error": self.code,
            "message": self.message,
        }
        if self.details:
            result["details"] = self.details
        return result


class InvalidInputError(PodgenError):
    def __init__(self, message: str, details: Optional[Dict] = None):
        super().__init__(message, ErrorCode.INVALID_INPUT, details)


class ProviderError(PodgenError):
    """
    A remote collaborator (news search, summarizer, script writer,
    synthesis service) failed.

    Attributes:
        collaborator: Short name of the failing collaborator.
    """
    def __init__(
        self,
        message: str,
        collaborator: str = "unknown",
        details: Optional[Dict] = None,
        code: str = ErrorCode.PROVIDER_FAILED,
    ):
        details = dict(details or {})
        details.setdefault("collaborator", collaborator)
        super().__init__(message, code, details)
        self.collaborator = collaborator


class SynthesisError(ProviderError):
    """Raised by synthesis providers. Fatal for the episode; no fallback provider."""
    def __init__(self, message: str, provider: str = "unknown", details: Optional[Dict] = None):
        super().__init__(message, collaborator=provider, details=details, code=ErrorCode.SYNTHESIS_FAILED)


class EmptyResultError(PodgenError):
    def __init__(self, message: str = "No sources found for the selected topics", details: Optional[Dict] = None):
        super().__init__(message, ErrorCode.EMPTY_RESULT, details)


class FormatMismatch(PodgenError):
    """Audio fragments from one episode do not share a format."""
    def __init__(self, message: str, details: Optional[Dict] = None):
        super().__init__(message, ErrorCode.FORMAT_MISMATCH, details)


class ContainerError(PodgenError):
    def __init__(self, message: str, details: Optional[Dict] = None):
        super().__init__(message, ErrorCode.CONTAINER_INVALID, details)


class UnrecognizedContainer(ContainerError):
    """Bytes do not start with a RIFF/WAVE header."""


class PayloadNotFound(ContainerError):
    """No ``data`` sub-chunk within the scan limit."""


class PipelineError(PodgenError):
    """
    A stage failure, tagged with the stage it happened in.

    The code is taken from the underlying PodgenError when there is one,
    so an empty search still reads as EMPTY_RESULT to the caller.

    Attributes:
        stage: Pipeline state the failure happened in.
        cause: The original exception.
    """
    def __init__(self, stage: str, cause: BaseException):
        if isinstance(cause, PodgenError):
            code = cause.code
            details = dict(cause.details)
            message = cause.message
        else:
            code = ErrorCode.INTERNAL_ERROR
            details = {"exception": type(cause).__name__}
            message = str(cause) or type(cause).__name__
        details["stage"] = stage
        super().__init__(message, code, details)
        self.stage = stage
        self.cause = cause
