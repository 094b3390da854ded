from src.schemas.envelope import ErrorInfo, ErrorResponse

__all__ = [
    "ErrorInfo",
    "ErrorResponse",
]
