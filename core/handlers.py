import uuid

from fastapi import status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.requests import Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from core.exceptions import ReviewServiceError
from core.logging_config import get_logger, log_error

logger = get_logger("handlers")


def create_response(success: bool, message: str, data=None, code=status.HTTP_200_OK, headers=None):
    return JSONResponse(
        status_code=code,
        content={
            "success": success,
            "message": message,
            "data": jsonable_encoder(data) if data is not None else []
        },
        headers=headers,
    )


def _request_context(request: Request):
    return {
        "method": request.method,
        "endpoint": request.url.path,
        "client_host": request.client.host if request.client else "unknown",
        "request_id": getattr(request.state, "request_id", None),
    }


async def review_error_handler(request: Request, exc: ReviewServiceError):
    """Map review service errors to their HTTP status and error code"""
    error_id = str(uuid.uuid4())
    level = logger.error if exc.status_code >= 500 else logger.warning
    level(
        f"Review error: {exc.code} - {exc.message}",
        extra={"error_id": error_id, "status_code": exc.status_code, **_request_context(request)},
    )

    data = {"error_code": exc.code}
    if exc.status_code >= 500:
        data["error_id"] = error_id

    return create_response(
        success=False,
        message=exc.message,
        data=data,
        code=exc.status_code,
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Handle HTTP exceptions with proper logging"""
    error_id = str(uuid.uuid4())
    logger.warning(
        f"HTTP Exception: {exc.status_code} - {exc.detail}",
        extra={"error_id": error_id, "status_code": exc.status_code, **_request_context(request)},
    )

    message = exc.detail if isinstance(exc.detail, str) else "Error occurred"
    headers = getattr(exc, "headers", None)

    data = None
    if exc.status_code == status.HTTP_429_TOO_MANY_REQUESTS and headers and "Retry-After" in headers:
        data = {"retry_after": int(headers["Retry-After"])}
    elif exc.status_code >= 500:
        data = {"error_id": error_id}

    return create_response(
        success=False,
        message=message,
        data=data,
        code=exc.status_code,
        headers=headers,
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle validation exceptions with proper logging"""
    error_id = str(uuid.uuid4())
    errors = exc.errors()
    logger.warning(
        f"Validation Error: {len(errors)} validation errors",
        extra={"error_id": error_id, **_request_context(request)},
    )

    details = [
        {"field": ".".join(str(part) for part in error.get("loc", ())[1:]), "message": error.get("msg")}
        for error in errors
    ]
    return create_response(
        success=False,
        message="Validation error",
        data={"validation_errors": details, "error_id": error_id},
        code=422,
    )


async def general_exception_handler(request: Request, exc: Exception):
    """Handle unexpected exceptions without exposing internals"""
    error_id = str(uuid.uuid4())
    log_error(
        logger,
        f"Unhandled Exception: {type(exc).__name__}: {str(exc)}",
        exc,
        error_id=error_id,
        **_request_context(request),
    )

    return create_response(
        success=False,
        message="Internal server error",
        data={"error_id": error_id},
        code=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )
