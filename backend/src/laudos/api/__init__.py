"""HTTP layer for Laudos.

Routers raise ``APIError`` subclasses for request problems; domain
exceptions from the services are mapped to status codes in one place
(``DOMAIN_ERRORS``). Every error leaves as an ``ErrorResponse`` with an
``X-Error-Code`` header.
"""

import logging
from typing import Any, Generic, TypeVar
from uuid import UUID

from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from starlette.exceptions import HTTPException as StarletteHTTPException

from ..processes.documents import DocumentNotFoundError
from ..processes.manager import ProcessAccessDenied, ProcessNotFoundError, SessionExpiredError
from ..processes.sharing import LinkedUserNotFoundError
from ..storage import UploadRejected

logger = logging.getLogger(__name__)

T = TypeVar("T")


# =========================
# Response Models
# =========================


class APIResponse(BaseModel, Generic[T]):
    """Standard API response wrapper."""

    success: bool = True
    data: T | None = None
    error: str | None = None


class ErrorDetail(BaseModel):
    """One offending field of a rejected request."""

    code: str
    message: str
    field: str | None = None
    details: dict[str, Any] | None = None


class ErrorResponse(BaseModel):
    success: bool = False
    error: str
    error_code: str
    details: list[ErrorDetail] | None = None


# =========================
# Exception Classes
# =========================


class APIError(HTTPException):
    """Base API error with structured response."""

    def __init__(
        self,
        status_code: int,
        error_code: str,
        message: str,
        details: list[ErrorDetail] | None = None,
    ):
        self.error_code = error_code
        self.message = message
        self.details = details
        super().__init__(status_code=status_code, detail=message)


class NotFoundError(APIError):
    def __init__(self, resource: str, identifier: str | UUID | None = None):
        message = f"{resource} não encontrado"
        if identifier is not None:
            message += f": {identifier}"
        super().__init__(status_code=404, error_code="NOT_FOUND", message=message)


class ValidationError(APIError):
    """A request that parsed but breaks a business rule."""

    def __init__(self, message: str, details: list[ErrorDetail] | None = None):
        super().__init__(status_code=422, error_code="VALIDATION_ERROR", message=message, details=details)


class AuthenticationError(APIError):
    """Missing, invalid or expired token; the client must sign in again."""

    def __init__(self, message: str = "Sessão expirada"):
        super().__init__(status_code=401, error_code="AUTHENTICATION_REQUIRED", message=message)


class ServiceUnavailableError(APIError):
    """A required third-party service is not configured."""

    def __init__(self, message: str):
        super().__init__(status_code=503, error_code="SERVICE_UNAVAILABLE", message=message)


# =========================
# Exception Handlers
# =========================

# Domain exceptions raised below the API layer: (status, error code, fixed message or None for str(exc))
DOMAIN_ERRORS: dict[type[Exception], tuple[int, str, str | None]] = {
    SessionExpiredError: (401, "AUTHENTICATION_REQUIRED", "Sessão expirada"),
    ProcessAccessDenied: (403, "ACCESS_DENIED", None),
    ProcessNotFoundError: (404, "NOT_FOUND", "Processo não encontrado"),
    DocumentNotFoundError: (404, "NOT_FOUND", "Documento não encontrado"),
    LinkedUserNotFoundError: (404, "NOT_FOUND", "Usuário vinculado não encontrado"),
    UploadRejected: (422, "UPLOAD_REJECTED", None),
}


def _error_response(
    status_code: int,
    message: str,
    error_code: str,
    details: list[ErrorDetail] | None = None,
) -> JSONResponse:
    body = ErrorResponse(error=message, error_code=error_code, details=details)
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(exclude_none=True),
        headers={"X-Error-Code": error_code},
    )


async def api_error_handler(request: Request, exc: APIError) -> JSONResponse:
    return _error_response(exc.status_code, exc.message, exc.error_code, exc.details)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Routing errors (404 on unknown paths, 405) in the same envelope."""
    return _error_response(exc.status_code, str(exc.detail), "HTTP_ERROR")


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Body and query validation failures, one detail per offending field."""
    details = [
        ErrorDetail(
            code=str(error.get("type", "invalid")),
            message=str(error.get("msg", "")),
            field=".".join(str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")) or None,
        )
        for error in exc.errors()
    ]
    return _error_response(422, "Dados inválidos", "VALIDATION_ERROR", details)


async def domain_error_handler(request: Request, exc: Exception) -> JSONResponse:
    for error_type, (status_code, error_code, message) in DOMAIN_ERRORS.items():
        if isinstance(exc, error_type):
            return _error_response(status_code, message or str(exc) or "Sem permissão", error_code)
    raise exc


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Log the traceback; the client only sees a generic message."""
    logger.exception(f"Unhandled exception on {request.method} {request.url.path}: {exc}")
    return _error_response(500, "Erro interno do servidor", "INTERNAL_ERROR")


def register_exception_handlers(app) -> None:
    """Register exception handlers with the FastAPI app."""
    app.add_exception_handler(APIError, api_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    for error_type in DOMAIN_ERRORS:
        app.add_exception_handler(error_type, domain_error_handler)
    app.add_exception_handler(Exception, generic_exception_handler)
