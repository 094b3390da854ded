"""Custom exceptions for the Angle backend.

These exceptions carry machine-readable error codes (see
``src.constants.error_codes``) and are turned into JSON error responses by
the handler registered in ``src.main``.
"""

from typing import Any

from src.constants.error_codes import get_error_spec
from src.schemas.envelope import ErrorInfo, ErrorResponse


class AngleError(Exception):
    """Base exception for all Angle application errors."""

    code: str = "INTERNAL_ERROR"
    status_code: int = 500
    message: str = "An unexpected error occurred"

    def __init__(
        self,
        message: str | None = None,
        *,
        code: str | None = None,
        status_code: int | None = None,
        details: Any | None = None,
        suggested_fix: str | None = None,
    ):
        self.message = message or self.__class__.message
        if code:
            self.code = code
        if status_code:
            self.status_code = status_code
        self.details = details
        self.suggested_fix = suggested_fix
        super().__init__(self.message)

    def to_error_info(self) -> ErrorInfo:
        """Convert exception to ErrorInfo."""
        spec = get_error_spec(self.code)
        return ErrorInfo(
            code=self.code,
            message=self.message,
            retryable=spec.get("retryable", False),
            suggested_fix=self.suggested_fix or spec.get("suggested_fix"),
        )

    def to_response(self) -> ErrorResponse:
        """Convert exception to the API error body."""
        info = self.to_error_info()
        return ErrorResponse(
            error=info.message,
            code=info.code,
            retryable=info.retryable,
            suggested_fix=info.suggested_fix,
            details=self.details,
        )


# =============================================================================
# Resource Not Found Errors (404)
# =============================================================================


class SourceNotFoundError(AngleError):
    """The export source video could not be resolved locally or remotely."""

    code = "SOURCE_NOT_FOUND"
    status_code = 404
    message = "Video file not found"

    def __init__(
        self,
        requested_path: str | None = None,
        *,
        attempted: list[str] | None = None,
        reason: str | None = None,
    ):
        self.requested_path = requested_path
        self.attempted = attempted or []
        details: dict[str, Any] = {"requestedPath": requested_path, "attempted": self.attempted}
        if reason:
            details["reason"] = reason
        super().__init__(details=details)


class ClipNotFoundError(AngleError):
    """Audio clip not found in the session."""

    code = "CLIP_NOT_FOUND"
    status_code = 404
    message = "Audio clip not found"

    def __init__(self, clip_id: str | None = None):
        message = f"Audio clip not found: {clip_id}" if clip_id else self.message
        super().__init__(message, details={"clipId": clip_id})


# =============================================================================
# Validation Errors (400)
# =============================================================================


class ValidationError(AngleError):
    """Base class for validation errors."""

    code = "VALIDATION_ERROR"
    status_code = 400


class InvalidClipError(ValidationError):
    """Malformed audio clip (missing id, payload or duration)."""

    code = "INVALID_CLIP"
    message = "Invalid audio clip"

    def __init__(self, clip_id: str | None = None, reason: str | None = None):
        self.clip_id = clip_id
        self.reason = reason
        message = f"Invalid audio clip {clip_id}" if clip_id else self.message
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message, details={"clipId": clip_id})


class InvalidTimeRangeError(ValidationError):
    """Invalid time range specified."""

    code = "INVALID_TIME_RANGE"
    message = "Invalid time range"

    def __init__(
        self,
        message: str | None = None,
        *,
        start: float | None = None,
        end: float | None = None,
    ):
        msg = message or self.message
        if start is not None and end is not None:
            msg = f"Invalid time range: {start}s to {end}s"
        super().__init__(msg, details={"start": start, "end": end})


class MissingRequiredFieldError(ValidationError):
    """A required request field is missing."""

    code = "MISSING_REQUIRED_FIELD"
    message = "Missing required field"

    def __init__(self, field: str | None = None, message: str | None = None):
        msg = message or (f"Missing required field: {field}" if field else self.message)
        super().__init__(msg, details={"field": field})


# =============================================================================
# Conflict Errors (409)
# =============================================================================


class ExportInProgressError(AngleError):
    """An export is already running for this editor session."""

    code = "EXPORT_IN_PROGRESS"
    status_code = 409
    message = "An export is already in progress"


# =============================================================================
# Export Pipeline Errors (500)
# =============================================================================


class ExportStageError(AngleError):
    """The external media tool did not produce the expected output.

    The full command is kept on the exception for logging; the user only
    sees the generic message.
    """

    message = "Failed to export video"

    def __init__(
        self,
        command: str | None = None,
        *,
        stderr: str | None = None,
        reason: str | None = None,
    ):
        self.command = command
        self.stderr = stderr
        self.reason = reason
        super().__init__(self.message)


class SegmentExtractionFailedError(ExportStageError):
    code = "SEGMENT_EXTRACTION_FAILED"


class EncodeFailedError(ExportStageError):
    code = "ENCODE_FAILED"
