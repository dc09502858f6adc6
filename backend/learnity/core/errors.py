"""
Error types and handlers for the Learnity API.

Every failed request is answered with the same envelope:

    {"success": false, "error": {"code": ..., "message": ..., "details": ...}}
"""

import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException


logger = logging.getLogger(__name__)


# Default codes for plain HTTPExceptions raised without one
STATUS_CODES: Dict[int, str] = {
    status.HTTP_400_BAD_REQUEST: "BAD_REQUEST",
    status.HTTP_401_UNAUTHORIZED: "UNAUTHORIZED",
    status.HTTP_402_PAYMENT_REQUIRED: "PAYMENT_REQUIRED",
    status.HTTP_403_FORBIDDEN: "FORBIDDEN",
    status.HTTP_404_NOT_FOUND: "NOT_FOUND",
    status.HTTP_405_METHOD_NOT_ALLOWED: "METHOD_NOT_ALLOWED",
    status.HTTP_409_CONFLICT: "CONFLICT",
    status.HTTP_422_UNPROCESSABLE_ENTITY: "VALIDATION_ERROR",
    status.HTTP_429_TOO_MANY_REQUESTS: "RATE_LIMITED",
    status.HTTP_503_SERVICE_UNAVAILABLE: "SERVICE_UNAVAILABLE",
}


class APIError(HTTPException):
    """
    HTTPException carrying a machine readable error code.
    """

    def __init__(
        self,
        status_code: int,
        code: str,
        message: str,
        details: Any = None,
        headers: Optional[Dict[str, str]] = None
    ) -> None:
        super().__init__(status_code=status_code, detail=message, headers=headers)
        self.code = code
        self.message = message
        self.details = details


class NotFoundError(APIError):
    def __init__(self, resource: str, code: str = "NOT_FOUND") -> None:
        super().__init__(status.HTTP_404_NOT_FOUND, code, f"{resource} not found")


class ForbiddenError(APIError):
    def __init__(self, message: str = "You do not have permission to perform this action",
                 code: str = "FORBIDDEN") -> None:
        super().__init__(status.HTTP_403_FORBIDDEN, code, message)


class BadRequestError(APIError):
    def __init__(self, message: str, code: str = "BAD_REQUEST", details: Any = None) -> None:
        super().__init__(status.HTTP_400_BAD_REQUEST, code, message, details)


class ConflictError(APIError):
    def __init__(self, message: str, code: str = "CONFLICT") -> None:
        super().__init__(status.HTTP_409_CONFLICT, code, message)


def error_response(
    status_code: int,
    code: str,
    message: str,
    details: Any = None,
    headers: Optional[Dict[str, str]] = None
) -> JSONResponse:
    """Build the JSON error envelope."""
    return JSONResponse(
        status_code=status_code,
        content={
            "success": False,
            "error": {"code": code, "message": message, "details": details},
        },
        headers=headers,
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if isinstance(exc, APIError):
        return error_response(exc.status_code, exc.code, exc.message, exc.details, exc.headers)

    # Plain HTTPExceptions may carry a dict detail (message + extra info)
    detail = exc.detail
    details = None
    if isinstance(detail, dict):
        details = {k: v for k, v in detail.items() if k != "message"}
        message = str(detail.get("message", "Request failed"))
    else:
        message = str(detail)

    code = STATUS_CODES.get(exc.status_code, "ERROR")
    return error_response(exc.status_code, code, message, details, getattr(exc, "headers", None))


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = [
        {
            "field": ".".join(str(part) for part in err.get("loc", ()) if part != "body"),
            "message": err.get("msg", "Invalid value"),
        }
        for err in exc.errors()
    ]
    return error_response(
        status.HTTP_400_BAD_REQUEST,
        "VALIDATION_ERROR",
        "Request validation failed",
        details,
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"Unhandled error on {request.method} {request.url.path}", exc_info=exc)
    return error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "INTERNAL_ERROR",
        "An unexpected error occurred",
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Attach the envelope handlers to an application."""
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
