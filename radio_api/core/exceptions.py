"""
Global exception handling and standardized error responses

Every error leaves the API in the same envelope the activity log
endpoints use: {"success": false, "error": ..., "message": ...}.
"""
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from sqlalchemy.exc import SQLAlchemyError
import logging
from typing import Any, Dict, Optional

from radio_api.core.config import settings

logger = logging.getLogger(__name__)

HTTP_ERROR_CODES = {
    400: "BAD_REQUEST",
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    422: "VALIDATION_ERROR",
    500: "INTERNAL_ERROR",
    503: "SERVICE_UNAVAILABLE",
}


class AppException(Exception):
    """
    Base application exception for custom errors
    """
    def __init__(
        self,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail: str = "An unexpected error occurred",
        error_code: Optional[str] = None,
        headers: Optional[Dict[str, str]] = None
    ):
        super().__init__(detail)
        self.status_code = status_code
        self.detail = detail
        self.error_code = error_code or "INTERNAL_ERROR"
        self.headers = headers


class ActivityLogError(AppException):
    """
    Store failure while writing or reading the activity log.

    Constraint violations (unknown action) and connectivity problems
    are reported alike; the original error is chained as __cause__.
    """
    def __init__(self, detail: str):
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=detail,
            error_code="ACTIVITY_LOG_ERROR"
        )


def create_error_response(
    error: str,
    message: str,
    details: Optional[list] = None,
    request_id: Optional[str] = None
) -> Dict[str, Any]:
    """
    Build the error envelope

    Args:
        error: Machine-readable code or underlying error text
        message: Human-readable summary
        details: Per-field problems, for validation errors
        request_id: Correlation ID of the failed request

    Returns:
        JSON-serializable dict
    """
    response = {
        "success": False,
        "error": error,
        "message": message
    }

    if details:
        response["details"] = details

    if request_id:
        response["request_id"] = request_id

    return response


def _error_json(
    request: Request,
    status_code: int,
    error: str,
    message: str,
    details: Optional[list] = None,
    headers: Optional[Dict[str, str]] = None
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=create_error_response(
            error=error,
            message=message,
            details=details,
            request_id=getattr(request.state, "correlation_id", None)
        ),
        headers=headers
    )


def setup_exception_handlers(app: FastAPI) -> None:
    """
    Configure global exception handlers for the application
    """

    @app.exception_handler(AppException)
    async def app_exception_handler(request: Request, exc: AppException):
        logger.warning(
            f"AppException: {exc.error_code} - {exc.detail}",
            extra={"status_code": exc.status_code}
        )
        return _error_json(request, exc.status_code, exc.error_code, exc.detail, headers=exc.headers)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return _error_json(
            request,
            exc.status_code,
            HTTP_ERROR_CODES.get(exc.status_code, "ERROR"),
            str(exc.detail),
            headers=getattr(exc, "headers", None)
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Report each invalid field"""
        details = [
            {
                "field": ".".join(str(loc) for loc in error["loc"]),
                "message": error["msg"],
                "type": error["type"]
            }
            for error in exc.errors()
        ]
        logger.info(f"Validation error: {len(details)} field(s)", extra={"errors": details})
        return _error_json(
            request,
            status.HTTP_422_UNPROCESSABLE_ENTITY,
            "VALIDATION_ERROR",
            "Validation error",
            details=details
        )

    @app.exception_handler(SQLAlchemyError)
    async def sqlalchemy_exception_handler(request: Request, exc: SQLAlchemyError):
        logger.error(f"Database error: {exc}", exc_info=True)
        return _error_json(
            request,
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "DATABASE_ERROR",
            "A database error occurred"
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled exception: {type(exc).__name__}: {exc}", exc_info=True)
        message = f"{type(exc).__name__}: {exc}" if settings.DEBUG else "An unexpected error occurred"
        return _error_json(request, status.HTTP_500_INTERNAL_SERVER_ERROR, "INTERNAL_ERROR", message)
