"""
Error Handlers

Every error leaves the API in the same envelope:
{"error": {"code": ..., "message": ..., "details": {...}}}
"""

from typing import Any, Dict, Optional

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError

from ...domain.errors import DomainError
from ...utils.logger import get_logger, get_correlation_id

logger = get_logger(__name__)


def _ticket_context(request: Request) -> Dict[str, str]:
    ticket_id = request.path_params.get("ticket_id")
    return {"ticket_id": ticket_id} if ticket_id else {}


def _error_response(
    status_code: int,
    code: str,
    message: str,
    details: Optional[Dict[str, Any]] = None
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": {"code": code, "message": message, "details": details or {}}},
        headers={"X-Correlation-Id": get_correlation_id() or ""}
    )


async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    """Expected failures: missing draft, role not allowed, vault call failed"""
    logger.warning(
        f"{request.method} {request.url.path} failed: {exc.message}",
        extra={"error_code": exc.error_code, **_ticket_context(request)}
    )
    return _error_response(exc.http_status, exc.error_code, exc.message, exc.details)


async def validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """
    Malformed request bodies and parameters, reported as 400.

    Only error locations and types are logged; request bodies may carry
    secret values.
    """
    errors = [
        {"loc": list(error.get("loc", ())), "msg": error.get("msg"), "type": error.get("type")}
        for error in exc.errors()
    ]
    locations = [f"{'.'.join(str(part) for part in error['loc'])}:{error['type']}" for error in errors]
    logger.warning(
        f"Validation error on {request.method} {request.url.path}: {locations}",
        extra=_ticket_context(request)
    )
    return _error_response(
        status.HTTP_400_BAD_REQUEST, "VALIDATION_ERROR", "Request validation failed", {"errors": errors}
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Anything else: full trace to the log, generic message to the client"""
    logger.error(f"Unexpected error: {exc}", exc_info=True, extra=_ticket_context(request))
    return _error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "INTERNAL_ERROR",
        "An unexpected error occurred",
        {"hint": "Check server logs for details"}
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(DomainError, domain_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, general_exception_handler)
