"""
Office Nexus Ledger - FastAPI Application Entry Point

This is the main entry point for the FastAPI application.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text

from app.config import settings
from app.database import async_session_maker, close_db, init_db
from app.utils.error_handling import setup_exception_handlers

# Configure logging
logging.basicConfig(
    level=logging.INFO if not settings.debug else logging.DEBUG,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


API_PREFIX = f"/api/{settings.api_version}/companies/{{company_id}}"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for FastAPI.
    Handles startup and shutdown events.
    """
    # Startup
    logger.info(f"Starting {settings.app_name}...")
    logger.info(f"Environment: {settings.app_env}")
    logger.info(f"Currency: {settings.currency}, VAT rate: {settings.vat_rate}")

    # Initialize database (dev only - use migrations in production)
    if settings.is_development:
        await init_db()
        logger.info("Database tables initialized")

    yield

    # Shutdown
    logger.info(f"Shutting down {settings.app_name}...")
    await close_db()
    logger.info("Database connections closed")


# Create FastAPI application
app = FastAPI(
    title=settings.app_name,
    description="Double-entry ledger, Rwandan tax returns, payroll and share capital for small companies",
    version="0.1.0",
    docs_url="/api/docs" if settings.is_development else None,
    redoc_url="/api/redoc" if settings.is_development else None,
    lifespan=lifespan,
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Consistent {"detail": {"code": ..., "message": ...}} error bodies
setup_exception_handlers(app)


# ===========================================
# API ROUTES
# ===========================================

@app.get("/api")
async def api_info():
    """API information endpoint."""
    return {
        "name": settings.app_name,
        "version": "0.1.0",
        "status": "running",
        "environment": settings.app_env,
        "currency": settings.currency,
        "api_docs": "/api/docs" if settings.is_development else "disabled",
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    database = "connected"
    try:
        async with async_session_maker() as session:
            await session.execute(text("SELECT 1"))
    except Exception as e:
        logger.warning(f"Health check could not reach the database: {e}")
        database = "unavailable"
    return {
        "status": "healthy" if database == "connected" else "degraded",
        "database": database,
    }


@app.get(f"/api/{settings.api_version}")
async def api_root():
    """API v1 root endpoint."""
    return {
        "message": f"Welcome to {settings.app_name} API {settings.api_version}",
        "endpoints": {
            "ledger": f"{API_PREFIX}/ledger",
            "tax": f"{API_PREFIX}/tax",
            "payroll": f"{API_PREFIX}/payroll",
            "capital": f"{API_PREFIX}/capital",
            "dividends": f"{API_PREFIX}/dividends",
        }
    }


# ===========================================
# INCLUDE ROUTERS
# ===========================================

from app.routers import capital, dividends, ledger, payroll, tax  # noqa: E402

app.include_router(ledger.router, prefix=f"{API_PREFIX}/ledger", tags=["Ledger"])
app.include_router(tax.router, prefix=f"{API_PREFIX}/tax", tags=["Tax Returns"])
app.include_router(payroll.router, prefix=f"{API_PREFIX}/payroll", tags=["Payroll"])
app.include_router(capital.router, prefix=f"{API_PREFIX}/capital", tags=["Share Capital"])
app.include_router(dividends.router, prefix=f"{API_PREFIX}/dividends", tags=["Dividends"])


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.is_development,
    )
