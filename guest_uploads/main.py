"""
FastAPI application entry point.

This module creates and configures the FastAPI application.
Using an application factory pattern (create_app function) because:
- Easier to test with different configurations
- Explicit about initialization order

For local development:
    STORAGE_BACKEND=mock uvicorn guest_uploads.main:app --reload

For production:
    gunicorn guest_uploads.main:app -w 4 -k uvicorn.workers.UvicornWorker

Serverless runtimes use `guest_uploads.api.handler.lambda_handler` instead.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import __version__
from .api.routes import health, upload
from .config.settings import get_settings

# Configure logging
logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=get_settings().log_level.upper(),
)

logger = logging.getLogger(__name__)

UPLOAD_PATH = "/api/upload"


class RouteCORSMiddleware(CORSMiddleware):
    """
    CORS middleware that skips selected paths.

    The upload route answers preflights and sets its CORS headers itself,
    so the middleware must not intercept its OPTIONS requests.
    """

    def __init__(self, app, exclude_paths: tuple[str, ...] = (), **kwargs) -> None:
        super().__init__(app, **kwargs)
        self.exclude_paths = exclude_paths

    async def __call__(self, scope, receive, send) -> None:
        if scope["type"] == "http" and scope["path"] in self.exclude_paths:
            await self.app(scope, receive, send)
            return
        await super().__call__(scope, receive, send)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Logs startup and reports missing storage configuration. The service
    still starts without it; uploads then fail with a configuration error
    and /health/ready reports not ready.
    """
    settings = get_settings()

    logger.info(
        "Guest Photo Uploads API starting",
        extra={
            "version": settings.api_version,
            "storage_backend": settings.storage_backend,
        }
    )

    # Presence only, never the values
    upload_config = settings.to_upload_config()
    logger.info(
        "Environment check",
        extra={
            "settings": {
                name: "Set" if value else "Missing"
                for name, value in upload_config.credentials.items()
            },
            "container": "Set" if upload_config.parent_container_id else "Missing",
        }
    )

    missing_fields = settings.validate_required_fields()
    if missing_fields:
        logger.error(
            "Missing required configuration",
            extra={"missing_fields": missing_fields}
        )

    yield

    logger.info("Guest Photo Uploads API shutting down")


def create_app() -> FastAPI:
    """
    Application factory.

    Creates and configures the FastAPI application.
    """
    settings = get_settings()

    app = FastAPI(
        title=settings.api_title,
        version=settings.api_version,
        description="""
        Guest photo submissions for events.

        Guests post a multipart form with their name, optional email and
        message, and one or more photos. Each photo is stored in the
        configured remote store as `<guestName>_<timestamp>_<filename>`.

        The upload is all-or-nothing: if any photo fails, the whole
        submission is reported as failed.
        """,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    app.add_middleware(
        RouteCORSMiddleware,
        exclude_paths=(UPLOAD_PATH,),
        allow_origins=settings.cors_origins_list,
        allow_methods=["POST", "OPTIONS"],
        allow_headers=["Content-Type"],
    )

    # Include routers
    app.include_router(
        health.router,
        prefix="/health",
        tags=["Health"],
    )

    app.include_router(
        upload.router,
        prefix="/api",
        tags=["Uploads"],
    )

    # Root endpoint
    @app.get("/", include_in_schema=False)
    async def root():
        """Service banner."""
        return {
            "message": "Guest Photo Uploads API",
            "version": __version__,
            "docs": "/docs",
            "health": "/health",
            "upload": "/api/upload",
        }

    # Global exception handler
    @app.exception_handler(Exception)
    async def global_exception_handler(request, exc):
        """
        Catch-all exception handler.

        Prevents stack traces from leaking to clients. We log the full
        error server-side but return a generic message.
        """
        logger.error(
            "Unhandled exception",
            extra={
                "path": request.url.path,
                "method": request.method,
                "error": str(exc),
            },
            exc_info=exc,
        )

        return JSONResponse(
            status_code=500,
            content={
                "error": "Internal server error. Please try again later."
            }
        )

    logger.info(
        "FastAPI application created",
        extra={
            "title": settings.api_title,
            "version": settings.api_version,
        }
    )

    return app


# Create the application instance
# This is what uvicorn/gunicorn will import
app = create_app()


# For debugging/development
if __name__ == "__main__":
    import uvicorn

    settings = get_settings()

    uvicorn.run(
        "guest_uploads.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level=settings.log_level.lower(),
    )
