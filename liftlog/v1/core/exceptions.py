import uuid
from datetime import UTC, datetime
from typing import Any

from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from liftlog.config.logging import add_request_context, get_logger

logger = get_logger(__name__)


class LiftLogException(Exception):
    """Base exception for the LiftLog application."""

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


class ValidationError(LiftLogException):
    """Raised when input validation fails."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message, status.HTTP_422_UNPROCESSABLE_ENTITY, details)


class NotFoundError(LiftLogException):
    """Raised when a resource is not found."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message, status.HTTP_404_NOT_FOUND, details)


class StoreError(LiftLogException):
    """Raised when a job store round trip fails or times out."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message, status.HTTP_503_SERVICE_UNAVAILABLE, details)


class InvalidTransitionError(LiftLogException):
    """Raised when a job is asked to leave a terminal state."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message, status.HTTP_409_CONFLICT, details)


class JobProcessingError(LiftLogException):
    """A claimed job could not be processed; recorded as a failed attempt."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message, status.HTTP_500_INTERNAL_SERVER_ERROR, details)


class PayloadError(JobProcessingError):
    """The job payload does not satisfy the processing contract."""


class ExtractionError(JobProcessingError):
    """The extractor could not turn the message into workout entries."""


class UploadError(JobProcessingError):
    """A workout entry could not be persisted."""


def create_error_response(
    status_code: int,
    message: str,
    details: dict[str, Any] | None = None,
    request_id: str | None = None,
) -> dict[str, Any]:
    """Create standardized error response envelope."""
    return {
        "ok": False,
        "error": {
            "message": message,
            "code": status_code,
            "details": details or {},
        },
        "request_id": request_id,
        "timestamp": datetime.now(UTC).isoformat(),
    }


def create_success_response(
    data: Any, message: str | None = None, request_id: str | None = None
) -> dict[str, Any]:
    """Create standardized success response envelope."""
    return {
        "ok": True,
        "data": data,
        "message": message,
        "request_id": request_id,
        "timestamp": datetime.now(UTC).isoformat(),
    }


# Seconds a client should wait before retrying while the job store is down
STORE_RETRY_AFTER_S = 5


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", None) or str(uuid.uuid4())


async def liftlog_exception_handler(
    request: Request, exc: LiftLogException
) -> JSONResponse:
    """Render LiftLog exceptions; client errors log at warning, the rest at error."""
    request_id = _request_id(request)

    log = logger.warning if exc.status_code < 500 else logger.error
    log(
        "Application exception",
        exception=exc.__class__.__name__,
        message=exc.message,
        status_code=exc.status_code,
        details=exc.details,
        request_id=request_id,
    )

    headers = None
    if isinstance(exc, StoreError):
        headers = {"Retry-After": str(STORE_RETRY_AFTER_S)}

    return JSONResponse(
        status_code=exc.status_code,
        content=create_error_response(
            status_code=exc.status_code,
            message=exc.message,
            details=exc.details,
            request_id=request_id,
        ),
        headers=headers,
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handle FastAPI HTTP exceptions, e.g. a missing X-User-ID header."""
    request_id = _request_id(request)

    logger.warning(
        "HTTP exception",
        status_code=exc.status_code,
        detail=exc.detail,
        request_id=request_id,
    )

    return JSONResponse(
        status_code=exc.status_code,
        content=create_error_response(
            status_code=exc.status_code,
            message=str(exc.detail),
            request_id=request_id,
        ),
        headers=getattr(exc, "headers", None),
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Anything unexpected becomes an opaque 500."""
    request_id = _request_id(request)

    logger.error(
        "Unhandled exception",
        exception=exc.__class__.__name__,
        message=str(exc),
        request_id=request_id,
        exc_info=True,
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=create_error_response(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            message="Internal server error",
            request_id=request_id,
        ),
    )


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    Correlate logs for one request.

    A caller-supplied X-Request-ID is kept so a job submitted through a
    gateway can be traced end to end; otherwise a new one is generated.
    """

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id

        add_request_context(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        )

        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id

        return response
