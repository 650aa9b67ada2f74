"""
FastAPI Main Application
Entry point for the checkout billing API
Source: https://fastapi.tiangolo.com/
"""

from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from dermis_billing import __version__
from dermis_billing.api.config import settings
from dermis_billing.api.routes import billing, health
from dermis_billing.utils.logging import get_logger, setup_logging

setup_logging(
    level=settings.LOG_LEVEL,
    log_file=settings.LOG_FILE,
    json_logs=settings.is_production,
)

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):  # type: ignore[no-untyped-def]  # noqa: ARG001
    """Application lifespan manager."""
    logger.info(f"Starting billing API in {settings.ENVIRONMENT} mode")
    logger.info(f"Debug mode: {settings.DEBUG}")

    yield

    logger.info("Shutting down billing API")


app = FastAPI(
    title="Dermis Billing API",
    description="Checkout charge calculation for insured and self-pay patients",
    version=__version__,
    docs_url="/docs" if not settings.is_production else None,
    redoc_url="/redoc" if not settings.is_production else None,
    openapi_url="/openapi.json" if not settings.is_production else None,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=settings.CORS_CREDENTIALS,
    allow_methods=settings.CORS_METHODS,
    allow_headers=settings.CORS_HEADERS,
)

app.include_router(health.router)
app.include_router(billing.router)


@app.get("/")
async def root() -> dict[str, Any]:
    """Root endpoint with API information."""
    return {
        "name": "Dermis Billing API",
        "version": __version__,
        "environment": settings.ENVIRONMENT,
        "docs": "/docs" if not settings.is_production else "disabled",
    }


def run() -> None:
    """Run the API with uvicorn (console entry point)."""
    import uvicorn

    uvicorn.run(
        "dermis_billing.api.main:app",
        host=settings.API_HOST,
        port=settings.API_PORT,
        reload=settings.is_development and settings.DEBUG,
    )
