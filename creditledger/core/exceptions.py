from typing import Any

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import ORJSONResponse


class AppError(Exception):
    """Base application error with consistent schema."""

    def __init__(
        self,
        message: str,
        code: str = "ERROR",
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)


class BadRequestError(AppError):
    def __init__(self, message: str = "Bad request", details: dict[str, Any] | None = None):
        super().__init__(message, code="BAD_REQUEST", status_code=status.HTTP_400_BAD_REQUEST, details=details)


class InvalidUserKeyError(BadRequestError):
    def __init__(self, user: str):
        super().__init__("Invalid user key", details={"user": user})


class StoreConnectionError(AppError):
    """Store unreachable; not retried by the transaction loop."""

    def __init__(self, message: str = "Store unavailable", details: dict[str, Any] | None = None):
        super().__init__(
            message,
            code="STORE_UNAVAILABLE",
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            details=details,
        )


class DecodeError(AppError):
    """Stored value is not an integer balance."""

    def __init__(self, path: str, value: Any):
        super().__init__(
            f"Stored value at {path} is not an integer",
            code="INVALID_BALANCE",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            details={"path": path, "type": type(value).__name__},
        )
        self.path = path
        self.value = value


class TransactionCancelled(AppError):
    def __init__(self, path: str, attempts: int):
        super().__init__(
            "Transaction deadline exceeded",
            code="TRANSACTION_CANCELLED",
            status_code=status.HTTP_504_GATEWAY_TIMEOUT,
            details={"path": path, "attempts": attempts},
        )
        self.path = path
        self.attempts = attempts


class RetriesExhaustedError(AppError):
    def __init__(self, path: str, attempts: int):
        super().__init__(
            "Too many concurrent updates, try again",
            code="CONFLICT",
            status_code=status.HTTP_409_CONFLICT,
            details={"path": path, "attempts": attempts},
        )
        self.path = path
        self.attempts = attempts


def error_response(request: Request, exc: AppError) -> ORJSONResponse:
    body = {
        "error": {
            "message": exc.message,
            "code": exc.code,
            "details": exc.details,
        }
    }
    if hasattr(request.state, "request_id"):
        body["request_id"] = request.state.request_id
    return ORJSONResponse(status_code=exc.status_code, content=body)


async def app_exception_handler(request: Request, exc: AppError) -> ORJSONResponse:
    return error_response(request, exc)


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> ORJSONResponse:
    body = {
        "error": {
            "message": "Validation error",
            "code": "VALIDATION_ERROR",
            "details": {"errors": exc.errors()},
        }
    }
    if hasattr(request.state, "request_id"):
        body["request_id"] = request.state.request_id
    return ORJSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=body,
    )


async def generic_exception_handler(request: Request, exc: Exception) -> ORJSONResponse:
    from creditledger.core.logging import get_logger
    get_logger(__name__).exception("unhandled_exception", exc_info=exc)
    body = {
        "error": {
            "message": "Internal server error",
            "code": "INTERNAL_ERROR",
            "details": {},
        }
    }
    if hasattr(request.state, "request_id"):
        body["request_id"] = request.state.request_id
    return ORJSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=body,
    )
