# pyright: reportMissingTypeStubs=false
"""
Notification Engine Host Application

A FastAPI application hosting the rule-driven notification and escalation
engine of the patient-support admin console.

Features:
- Minute tick running automation rules, escalation re-checks, daily digests
  and the notification queue sweep
- SQLAlchemy ORM over any SQL database
"""

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI

from services.notification_scheduler import start_notification_scheduler, stop_notification_scheduler

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler()],
)

logger = logging.getLogger(__name__)
logger.info("🔔 Notification Engine starting...")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup and shutdown events."""
    logger.info("🚀 Starting Notification Engine")

    # Note: Database sessions are created fresh for each tick
    try:
        await start_notification_scheduler()
        logger.info("✅ Notification scheduler started")
    except Exception as e:
        logger.exception(f"❌ Failed to start notification scheduler: {e}")

    yield

    try:
        await stop_notification_scheduler()
        logger.info("🛑 Notification scheduler stopped")
    except Exception as e:
        logger.exception(f"❌ Error stopping notification scheduler: {e}")

    logger.info("🛑 Shutting down Notification Engine")


# Create FastAPI application
app = FastAPI(
    title="Notification Engine",
    description="Rule-driven notifications and escalations for patient support",
    version="1.0.0",
    docs_url="/docs",  # Swagger UI
    redoc_url="/redoc",  # ReDoc
    lifespan=lifespan,
)


@app.get(
    "/",
    summary="Root endpoint",
    description="Returns basic service information",
)
async def root() -> dict[str, str]:
    """Get service information."""
    return {
        "message": "Notification Engine",
        "version": "1.0.0",
        "status": "running"
    }


@app.get(
    "/health",
    summary="Health check",
    description="Returns the health status of the service",
)
async def health_check() -> dict[str, str]:
    """Check if the service is healthy and responding."""
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=False)
