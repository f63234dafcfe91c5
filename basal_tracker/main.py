"""Basal Tracker FastAPI Application."""

from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from basal_tracker import __version__
from basal_tracker.config import settings
from basal_tracker.database import close_database, init_models
from basal_tracker.logging_config import get_logger, setup_logging
from basal_tracker.middleware import CorrelationIdMiddleware
from basal_tracker.routers import basal_profiles, health

setup_logging(
    log_format=settings.log_format,
    log_level=settings.log_level,
    service_name=settings.service_name,
)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    await init_models()
    logger.info("Basal Tracker API started")

    yield

    logger.info("Shutting down Basal Tracker API...")
    await close_database()
    logger.info("Basal Tracker API shutdown complete")


app = FastAPI(
    title="Basal Tracker API",
    description="Daily basal rate schedule management",
    version=__version__,
    lifespan=lifespan,
)

# Middleware (order matters: first added = last executed)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(CorrelationIdMiddleware)

app.include_router(health.router)
app.include_router(basal_profiles.router)


@app.get("/")
async def root() -> dict[str, Any]:
    """Root endpoint."""
    return {
        "name": "Basal Tracker API",
        "version": __version__,
        "docs": "/docs",
    }
