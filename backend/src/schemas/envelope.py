from typing import Any

from pydantic import BaseModel


class ErrorInfo(BaseModel):
    code: str
    message: str
    retryable: bool = False
    suggested_fix: str | None = None  # Human-readable fix suggestion


class ErrorResponse(BaseModel):
    """JSON body returned by the API for any failed request."""

    error: str
    code: str
    retryable: bool = False
    suggested_fix: str | None = None
    details: Any | None = None
