import logging

from fastapi import FastAPI, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from src.api import export
from src.config import get_settings
from src.exceptions import AngleError, ExportStageError
from src.schemas.envelope import ErrorResponse

settings = get_settings()
logger = logging.getLogger(__name__)
logging.getLogger("src").setLevel(settings.log_level.upper())


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["Content-Disposition"],
)


def _http_error_code(status_code: int) -> str:
    mapping = {
        400: "BAD_REQUEST",
        404: "NOT_FOUND",
        409: "EXPORT_IN_PROGRESS",
        422: "VALIDATION_ERROR",
        500: "INTERNAL_ERROR",
    }
    return mapping.get(status_code, "HTTP_ERROR")


@app.exception_handler(AngleError)
async def angle_exception_handler(request: Request, exc: AngleError) -> JSONResponse:
    if isinstance(exc, ExportStageError):
        # Full command goes to the log only
        logger.error(
            "%s on %s: command=%s reason=%s", exc.code, request.url.path, exc.command, exc.reason
        )
    else:
        logger.warning("%s on %s: %s", exc.code, request.url.path, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content=jsonable_encoder(exc.to_response().model_dump(exclude_none=True)),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = exc.errors()
    if errors:
        first_error = errors[0]
        loc = " -> ".join(str(x) for x in first_error.get("loc", []))
        msg = first_error.get("msg", "Validation error")
        message = f"{loc}: {msg}" if loc else msg
    else:
        message = "Request validation failed"

    body = ErrorResponse(error=message, code="VALIDATION_ERROR")
    return JSONResponse(
        status_code=422,
        content=jsonable_encoder(body.model_dump(exclude_none=True)),
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    body = ErrorResponse(error=str(exc.detail), code=_http_error_code(exc.status_code))
    return JSONResponse(
        status_code=exc.status_code,
        content=jsonable_encoder(body.model_dump(exclude_none=True)),
    )


# Global exception handler to ensure errors return proper JSON
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled exception: {exc}")
    body = ErrorResponse(error="Internal server error", code="INTERNAL_ERROR", retryable=True)
    return JSONResponse(status_code=500, content=body.model_dump(exclude_none=True))


# Routers
app.include_router(export.router, prefix="/api", tags=["export"])


@app.get("/health")
async def health_check() -> dict[str, str]:
    return {"status": "healthy", "version": settings.app_version, "git_hash": settings.git_hash}


@app.get("/api/version")
async def get_version() -> dict[str, str]:
    """Return the backend version info."""
    return {"version": settings.app_version, "git_hash": settings.git_hash}
