"""
Main application entry point.

Initializes the FastAPI app, configures logging, creates the database
tables on startup and registers all API routers from views.
"""
import asyncio
import logging

from fastapi import FastAPI

from .core.config import settings
from .db import engine, create_tables

from .views import (
    health_router,
    cases_router,
    reports_router,
    alerts_router,
    public_router,
    dashboard_router,
)

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

MAX_DB_RETRIES = 5
DB_RETRY_DELAY = 2

# Initialize FastAPI application
app = FastAPI(
    title="Dengue Watch API",
    version="0.1.0",
    description="Dengue surveillance: case intake, early warning alerts and forecasts per barangay"
)

# Register routers
app.include_router(health_router)
app.include_router(cases_router)
app.include_router(reports_router)
app.include_router(alerts_router)
app.include_router(public_router)
app.include_router(dashboard_router)


@app.on_event("startup")
async def startup_event():
    """Create tables, retrying while the database comes up."""
    for attempt in range(MAX_DB_RETRIES):
        try:
            await create_tables()
            logger.info("Database tables ready")
            break
        except Exception as e:
            if attempt < MAX_DB_RETRIES - 1:
                logger.warning(
                    f"Database connection attempt {attempt + 1} failed ({e}), "
                    f"retrying in {DB_RETRY_DELAY}s..."
                )
                await asyncio.sleep(DB_RETRY_DELAY)
            else:
                logger.error(f"Failed to connect to database after {MAX_DB_RETRIES} attempts")
                raise

    logger.info(f"Dengue Watch started (env={settings.app_env})")


@app.on_event("shutdown")
async def shutdown_event():
    await engine.dispose()
    logger.info("Dengue Watch shutting down")
