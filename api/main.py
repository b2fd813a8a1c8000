"""
FastAPI application initialization
"""

from fastapi import FastAPI
from api.routes import health, import_status, stats
from api.middleware import RequestContextMiddleware
from core.config import settings
from core.logging import setup_logging
import logging

setup_logging()

logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title="Legislative Import Status API",
    description="Health, import progress and entity counts for the Congress.gov bulk import",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

app.add_middleware(RequestContextMiddleware)

# Include routers
app.include_router(health.router)
app.include_router(import_status.router)
app.include_router(stats.router)


@app.on_event("startup")
async def startup_event():
    """Application startup event"""
    logger.info("Starting Legislative Import Status API")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"Database: {settings.DATABASE_URL.split('@')[1] if '@' in settings.DATABASE_URL else 'configured'}")
    logger.info(f"Checkpoint directory: {settings.CHECKPOINT_DIR}")


@app.on_event("shutdown")
async def shutdown_event():
    """Application shutdown event"""
    logger.info("Shutting down Legislative Import Status API")


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "message": "Legislative Import Status API",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/health",
        "endpoints": {
            "import_status": "/import/status",
            "stats": "/stats"
        }
    }
