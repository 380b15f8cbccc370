from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi import FastAPI, Request
from contextlib import asynccontextmanager

from microshop.config.settings import AppSettings, parse_bind_address
from microshop.logging.setup import setup_logging, get_logger
from microshop.core.storage.file import LocalStorageBackend
from microshop.core.api.router_images import router as images_router


logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    settings: AppSettings = app.state.settings
    logger.debug("Starting up the images service")

    app.state.storage = LocalStorageBackend.from_settings(settings.storage)
    logger.info(
        f"Storing images in {app.state.storage.base_path} "
        f"(max file size {settings.storage.max_file_size} bytes)")

    yield

    # Shutdown
    logger.info("Images service shutdown complete")


async def validation_exception_handler(
        request: Request,
        exc: RequestValidationError):
    for error in exc.errors():
        logger.error(f"Validation error: {error}, request: {request.url.path}")
    return JSONResponse(
        status_code=422,
        content={
            "message": "Invalid input received. Please check your request and try again."}
    )


def create_app(settings: AppSettings | None = None) -> FastAPI:
    """
    Build the images service.

    Args:
        settings: Settings to use; loaded from file and environment when omitted

    Returns:
        FastAPI application whose storage backend is created on startup
    """
    if settings is None:
        settings = AppSettings.load()

    app = FastAPI(title="product-images", lifespan=lifespan)
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.api.cors_allowed_origins,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )
    app.add_exception_handler(
        RequestValidationError, validation_exception_handler)

    app.include_router(images_router)
    return app


def main() -> None:
    """Run the images service with uvicorn."""
    import uvicorn

    settings = AppSettings.load()
    setup_logging(settings.logging_config)

    host, port = parse_bind_address(settings.api.bind_address)
    logger.info(f"Starting server on {settings.api.bind_address}")
    uvicorn.run(
        create_app(settings),
        host=host,
        port=port,
        timeout_keep_alive=settings.api.idle_timeout,
        timeout_graceful_shutdown=settings.api.shutdown_timeout,
        log_config=None,
    )


if __name__ == "__main__":
    main()
