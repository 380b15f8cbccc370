from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from contextlib import asynccontextmanager

from microshop.config.settings import AppSettings, parse_bind_address
from microshop.logging.setup import setup_logging, get_logger
from microshop.core.products.store import ProductStore
from microshop.core.api.router_products import router as products_router
from microshop.main import validation_exception_handler


logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    app.state.product_store = ProductStore()
    logger.info("Product catalog ready")
    yield
    logger.info("Product catalog shutdown complete")


def create_app(settings: AppSettings | None = None) -> FastAPI:
    """Build the product catalog service."""
    if settings is None:
        settings = AppSettings.load()

    app = FastAPI(title="product-api", lifespan=lifespan)
    app.state.settings = settings
    app.add_exception_handler(
        RequestValidationError, validation_exception_handler)
    app.include_router(products_router)
    return app


def main() -> None:
    """Run the product catalog with uvicorn."""
    import uvicorn

    settings = AppSettings.load()
    setup_logging(settings.logging_config)

    host, port = parse_bind_address(settings.catalog.bind_address)
    logger.info(f"Starting product catalog on {settings.catalog.bind_address}")
    uvicorn.run(
        create_app(settings),
        host=host,
        port=port,
        timeout_keep_alive=settings.catalog.idle_timeout,
        timeout_graceful_shutdown=settings.catalog.shutdown_timeout,
        log_config=None,
    )


if __name__ == "__main__":
    main()
