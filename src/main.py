"""
FastAPI Application

Main entry point for the Partner Ledger API.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
import structlog

from src.config import get_settings
from src.config.logging import configure_logging
from src.database.connection import close_database, init_database
from src.profit.shares import ProfitShareValidationError
from src.serving.api.middleware import RequestLoggingMiddleware, SecurityHeadersMiddleware
from src.serving.api.routes import (
    catalog_router,
    expenses_router,
    health_router,
    orders_router,
    partners_router,
    products_router,
    reports_router,
    settings_router,
)
from src.services.exceptions import EntityNotFoundError, InvalidOrderError
from src.services.profit_share_service import create_profit_share_cache
from src.services.settings_service import SettingsCache

settings = get_settings()
logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    configure_logging()

    logger.info("Starting Partner Ledger API", environment=settings.app_env)

    try:
        await init_database()
    except Exception as e:
        logger.error("Database init failed", error=str(e))
        raise

    app.state.profit_share_cache = create_profit_share_cache()
    app.state.settings_cache = SettingsCache()

    yield

    logger.info("Shutting down...")
    await close_database()


# =============================================================================
# Error handlers
# =============================================================================

async def not_found_handler(request: Request, exc: EntityNotFoundError) -> JSONResponse:
    return JSONResponse(status_code=404, content={"detail": str(exc)})


async def validation_error_handler(request: Request, exc: ValueError) -> JSONResponse:
    logger.info("Request rejected", path=request.url.path, reason=str(exc))
    return JSONResponse(status_code=422, content={"detail": str(exc)})


def create_app(use_lifespan: bool = True) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        use_lifespan: Initialize database and cache on startup. Tests pass
            False and set up the database themselves.
    """
    app = FastAPI(
        title="Partner Ledger API",
        description="Order management and partner profit distribution",
        version=settings.version,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan if use_lifespan else None,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.security.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=1000)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)

    app.add_exception_handler(EntityNotFoundError, not_found_handler)
    app.add_exception_handler(ProfitShareValidationError, validation_error_handler)
    app.add_exception_handler(InvalidOrderError, validation_error_handler)
    app.add_exception_handler(ValueError, validation_error_handler)

    app.include_router(health_router, prefix="/api/v1", tags=["Health"])
    app.include_router(products_router, prefix="/api/v1/products", tags=["Products"])
    app.include_router(partners_router, prefix="/api/v1/partners", tags=["Partners"])
    app.include_router(catalog_router, prefix="/api/v1/catalog", tags=["Catalog"])
    app.include_router(orders_router, prefix="/api/v1/orders", tags=["Orders"])
    app.include_router(expenses_router, prefix="/api/v1/expenses", tags=["Expenses"])
    app.include_router(reports_router, prefix="/api/v1/reports", tags=["Reports"])
    app.include_router(settings_router, prefix="/api/v1/settings", tags=["Settings"])

    @app.get("/api/v1/info")
    async def api_info():
        """API information endpoint."""
        return {
            "name": settings.app_name,
            "version": settings.version,
            "environment": settings.app_env,
            "currency": settings.business.currency,
            "documentation": "/docs",
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=settings.api_host, port=settings.api_port)
