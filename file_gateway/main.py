"""
FastAPI application entry point.

This module creates and configures the FastAPI application.
Using an application factory pattern (create_app function) because:
- Easier to test with different configurations and fake stores
- Explicit about initialization order
- The storage client and gateway are built exactly once per app

For local development:
    uvicorn file_gateway.main:app --reload --port 3000

Or simply:
    python -m file_gateway.main
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import __version__
from .api.routes import files, health
from .config.settings import Settings, get_settings
from .core.files.errors import ConfigurationError, GatewayError
from .core.files.gateway import FileGateway, ObjectStore
from .infrastructure.storage.client import StorageConfig, create_storage_client

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    """Configure root logging once for the process."""
    logging.basicConfig(
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        level=getattr(logging, level.upper(), logging.INFO),
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    The storage client already exists by the time this runs; startup
    only reports configuration problems. A missing bucket is logged
    here but doesn't stop the process: each file request fails fast
    on its own.
    """
    settings: Settings = app.state.settings

    logger.info(
        "File Gateway starting",
        extra={
            "version": __version__,
            "bucket": settings.bucket_name,
            "mock_mode": settings.storage_mock_mode,
        }
    )

    missing_fields = settings.validate_required_fields()
    if missing_fields:
        logger.error(
            "Missing required configuration",
            extra={"missing_fields": missing_fields}
        )

    yield

    logger.info("File Gateway shutting down")


def build_storage_client(settings: Settings) -> ObjectStore:
    """Create the single storage client shared by every request."""
    config = StorageConfig(
        region=settings.aws_region,
        access_key_id=settings.aws_access_key_id,
        secret_access_key=settings.aws_secret_access_key,
        endpoint_url=settings.aws_endpoint_url,
        chunk_size=settings.download_chunk_size,
    )
    return create_storage_client(config=config, mock_mode=settings.storage_mock_mode)


def _missing_bucket(request: Request) -> bool:
    """True when a matched route was hit on an app without a bucket."""
    # No endpoint in scope means no route matched (plain 404)
    if request.scope.get("endpoint") is None:
        return False
    return not request.app.state.gateway.is_configured


def register_exception_handlers(app: FastAPI) -> None:
    """Render every error as a plain-text response."""

    @app.exception_handler(GatewayError)
    async def gateway_error_handler(request: Request, exc: GatewayError):
        context = {
            "path": request.url.path,
            "method": request.method,
            "status_code": exc.status_code,
            "error": str(exc),
        }
        if exc.status_code >= 500:
            # exc_info carries the chained store error (the root cause)
            logger.error(exc.message, extra=context, exc_info=exc)
        else:
            logger.warning(exc.message, extra=context)

        return PlainTextResponse(exc.message, status_code=exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        # FastAPI validates the body before the handler runs, so the
        # missing-bucket 500 has to win here as well
        if _missing_bucket(request):
            return await gateway_error_handler(request, ConfigurationError(
                detail="AWS_S3_BUCKET_NAME is not set; request payload was also invalid"
            ))

        logger.warning(
            "Invalid request payload",
            extra={
                "path": request.url.path,
                "method": request.method,
                "errors": exc.errors(),
            }
        )
        return PlainTextResponse("Bad request", status_code=400)

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        """Plain-text rendering for framework errors (e.g. unparseable multipart)."""
        if _missing_bucket(request):
            return await gateway_error_handler(request, ConfigurationError(
                detail=f"AWS_S3_BUCKET_NAME is not set; request also failed with: {exc.detail}"
            ))

        logger.warning(
            "Request rejected",
            extra={
                "path": request.url.path,
                "method": request.method,
                "status_code": exc.status_code,
                "error": str(exc.detail),
            }
        )
        return PlainTextResponse(
            str(exc.detail),
            status_code=exc.status_code,
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
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

        return PlainTextResponse("Internal server error", status_code=500)


def create_app(
    settings: Optional[Settings] = None,
    storage: Optional[ObjectStore] = None,
) -> FastAPI:
    """
    Application factory.

    Creates and configures the FastAPI application. Tests pass their
    own settings and an in-memory store; production uses the cached
    environment settings and an S3 client.
    """
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    if storage is None:
        storage = build_storage_client(settings)

    app = FastAPI(
        title=settings.api_title,
        version=settings.api_version,
        description="""
        HTTP gateway to an object storage bucket.

        ## Endpoints

        - `GET /list-files`: list every file in the bucket
        - `GET /download/{filename}`: download one file as an attachment
        - `POST /upload`: upload one file (multipart field `file`)
        - `POST /upload-multiple`: upload up to ten files (multipart field `files`)

        Errors are returned as plain text.
        """,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # Shared, read-only for the lifetime of the app
    app.state.settings = settings
    app.state.gateway = FileGateway(
        store=storage,
        bucket_name=settings.bucket_name,
        max_upload_files=settings.max_upload_files,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(
        health.router,
        prefix="/health",
        tags=["Health"],
    )

    app.include_router(
        files.router,
        tags=["Files"],
    )

    # Root endpoint
    @app.get("/", include_in_schema=False)
    async def root():
        """Root endpoint - service banner."""
        return {
            "message": settings.api_title,
            "version": __version__,
            "docs": "/docs",
            "health": "/health",
        }

    register_exception_handlers(app)

    logger.info(
        "FastAPI application created",
        extra={
            "title": settings.api_title,
            "version": settings.api_version,
        }
    )

    return app


# Create the application instance
# This is what uvicorn imports
app = create_app()


def run() -> None:
    """Run the gateway with uvicorn on the configured host and port."""
    import uvicorn

    settings = get_settings()

    uvicorn.run(
        "file_gateway.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
