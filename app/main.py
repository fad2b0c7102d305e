"""FastAPI application entry point"""

from contextlib import asynccontextmanager
from fastapi import FastAPI
import logging
import uvicorn

from app.api.routes import router
from app.database import engine, Base
from app.models import order  # noqa: F401  registers the tables
from app.core.scheduler import scheduler_manager
from app.config import settings

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown"""
    # Startup
    logger.info("Starting Shipment Notifier...")

    # Create database tables
    Base.metadata.create_all(bind=engine)
    logger.info("Database initialized")

    # Start scheduler
    scheduler_manager.start()
    logger.info("Scheduler started")

    yield

    # Shutdown
    logger.info("Shutting down...")
    scheduler_manager.shutdown()
    logger.info("Scheduler stopped")


app = FastAPI(
    title="Shipment Notifier",
    description="Notifies the email service once shipped orders have been delivered",
    version="1.0.0",
    lifespan=lifespan
)

# Include routes
app.include_router(router)


def run():
    logger.info(f"Shipment Notifier is running on port {settings.PORT}")
    uvicorn.run(app, host=settings.APP_HOST, port=settings.PORT)


if __name__ == "__main__":
    run()
