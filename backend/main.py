"""
AutoDash Backend API

Profiles uploaded tables, shapes chart and KPI data for AI-generated
dashboards, and meters paid actions against a monthly credit quota.
"""

import logging
import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager

from routers import upload, charts, usage, dashboards
from services.storage import storage

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

DEFAULT_CORS_ORIGINS = [
    "http://localhost:3000",
    "http://localhost:5173",
    "http://127.0.0.1:3000",
    "http://127.0.0.1:5173",
]


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    removed = storage.cleanup_expired()
    if removed > 0:
        logger.info("Cleaned up %d expired sessions", removed)

    yield


app = FastAPI(
    title="AutoDash API",
    description="Dataset profiling, chart shaping and usage metering for AI dashboards.",
    version="0.1.0",
    lifespan=lifespan,
)

# Comma-separated list, e.g. "https://app.example.com,http://localhost:3000"
cors_env = os.getenv("AUTODASH_CORS_ORIGINS")
app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_env.split(",") if cors_env else DEFAULT_CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(upload.router)
app.include_router(charts.router)
app.include_router(usage.router)
app.include_router(dashboards.router)


@app.get("/")
async def root():
    """Health check endpoint."""
    return {
        "name": "AutoDash API",
        "status": "healthy",
        "version": "0.1.0",
    }


@app.get("/api/health")
async def health_check():
    """Detailed health check."""
    return {
        "status": "healthy",
        "services": {
            "storage": "ok",
            "profiler": "ok",
            "usage_meter": "ok",
        }
    }
