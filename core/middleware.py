import time
import uuid
from typing import Callable

from fastapi import HTTPException, Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from core.logging_config import get_logger, log_api_request

logger = get_logger("middleware")


class LoggingMiddleware(BaseHTTPMiddleware):
    """Middleware to log all API requests and responses"""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        request.state.request_id = request_id

        start_time = time.time()
        method = request.method
        path = request.url.path
        client_host = request.client.host if request.client else "unknown"

        logger.info(
            f"Request started: {method} {path}",
            extra={
                "request_id": request_id,
                "method": method,
                "endpoint": path,
                "client_host": client_host,
                "event": "request_start"
            }
        )

        try:
            response = await call_next(request)
        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            logger.error(
                f"Request failed: {method} {path} - {type(e).__name__}: {str(e)}",
                exc_info=e,
                extra={
                    "request_id": request_id,
                    "method": method,
                    "endpoint": path,
                    "client_host": client_host,
                    "duration": duration_ms,
                    "event": "request_error"
                }
            )
            raise

        duration_ms = (time.time() - start_time) * 1000
        log_api_request(
            logger=logger,
            method=method,
            endpoint=path,
            status_code=response.status_code,
            duration_ms=duration_ms,
            user_id=getattr(request.state, 'user_id', None),
            request_id=request_id,
            client_host=client_host
        )

        response.headers["X-Request-ID"] = request_id
        return response


class UserContextMiddleware(BaseHTTPMiddleware):
    """Attach the bearer token's subject to request state for logging"""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        from core.auth import decode_token

        auth_header = request.headers.get("authorization")
        if auth_header and auth_header.startswith("Bearer "):
            token = auth_header.split(" ", 1)[1]
            try:
                request.state.user_id = decode_token(token).get("sub")
            except HTTPException:
                # Rejected properly by the auth dependency on protected routes
                request.state.user_id = None

        return await call_next(request)
