from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from core.config import settings
from core.exceptions import ReviewServiceError
from core.handlers import (
    general_exception_handler,
    http_exception_handler,
    review_error_handler,
    validation_exception_handler,
)
from core.logging_config import get_logger, setup_logging
from core.middleware import LoggingMiddleware, UserContextMiddleware
from core.review_store import ReviewStore, build_review_store
from core.reviews import ReviewService
from routers import auth as auth_router
from routers import reviews as reviews_router

# ------------------------------------------------------
# Logging setup
# ------------------------------------------------------
setup_logging(
    log_level=settings.LOG_LEVEL,
    log_to_console=settings.LOG_TO_CONSOLE,
    json_logs=settings.JSON_LOGS,
)
logger = get_logger("reviews_backend")


def create_app(store: Optional[ReviewStore] = None) -> FastAPI:
    """Build the application; ``store`` overrides backend selection"""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        review_store = store or build_review_store(settings)
        app.state.review_service = ReviewService(review_store, settings)
        logger.info(f"{settings.PROJECT_NAME} startup complete", extra={"backend": review_store.name})
        yield
        logger.info(f"{settings.PROJECT_NAME} shutting down")

    app = FastAPI(title=settings.PROJECT_NAME, lifespan=lifespan)

    # Middlewares
    app.add_middleware(UserContextMiddleware)
    app.add_middleware(LoggingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "Retry-After"],
    )

    # Routers
    app.include_router(reviews_router.router, prefix=f"{settings.API_PREFIX}/products", tags=["Reviews"])
    app.include_router(reviews_router.admin_router, prefix=f"{settings.API_PREFIX}/reviews", tags=["Reviews"])
    app.include_router(auth_router.router, prefix=f"{settings.API_PREFIX}/auth", tags=["Auth"])

    # Global exception handlers
    app.add_exception_handler(ReviewServiceError, review_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    @app.api_route("/", methods=["GET", "HEAD"])
    def health_check():
        return {
            "status": "ok",
            "service": settings.PROJECT_NAME,
            "message": "Service is running"
        }

    return app


app = create_app()
