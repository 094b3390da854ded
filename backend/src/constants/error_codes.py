"""Error codes dictionary for the Angle API.

Single source of truth for error codes, their retryability and the
human-readable fix hints attached to error responses.
"""

from typing import Any, TypedDict


class ErrorCodeSpec(TypedDict, total=False):
    """Specification for an error code."""

    retryable: bool
    suggested_fix: str
    parameters: dict[str, Any]


ERROR_CODES: dict[str, ErrorCodeSpec] = {
    # ==========================================================================
    # Source resolution
    # ==========================================================================
    "SOURCE_NOT_FOUND": {
        "retryable": False,
        "suggested_fix": "Check that the video was rendered and the path or URL is reachable",
    },
    "CLIP_NOT_FOUND": {
        "retryable": False,
    },
    # ==========================================================================
    # Export pipeline (external tool failures)
    # ==========================================================================
    "SEGMENT_EXTRACTION_FAILED": {
        "retryable": True,
        "parameters": {"delay_ms": 2000, "max_retries": 1},
    },
    "ENCODE_FAILED": {
        "retryable": True,
        "parameters": {"delay_ms": 2000, "max_retries": 1},
    },
    # ==========================================================================
    # Validation errors (not retryable, fix input)
    # ==========================================================================
    "INVALID_CLIP": {
        "retryable": False,
        "suggested_fix": "Every audio clip needs an id, a payload and a positive duration",
    },
    "INVALID_TIME_RANGE": {
        "retryable": False,
        "suggested_fix": "Trim start must be before trim end",
    },
    "MISSING_REQUIRED_FIELD": {
        "retryable": False,
    },
    # ==========================================================================
    # Conflict errors
    # ==========================================================================
    "EXPORT_IN_PROGRESS": {
        "retryable": True,
        "parameters": {"delay_ms": 1000},
    },
    # ==========================================================================
    # System errors
    # ==========================================================================
    "INTERNAL_ERROR": {
        "retryable": True,
        "parameters": {"delay_ms": 2000, "max_retries": 2},
    },
    "BAD_REQUEST": {
        "retryable": False,
    },
    "VALIDATION_ERROR": {
        "retryable": False,
    },
    "NOT_FOUND": {
        "retryable": False,
    },
}


def get_error_spec(code: str) -> ErrorCodeSpec:
    """Get error specification by code.

    Args:
        code: The error code

    Returns:
        ErrorCodeSpec with retryable flag and fix hint
    """
    return ERROR_CODES.get(code, {"retryable": False})
