"""
Bordeaux AOC Ranking API

FastAPI backend serving wine rankings per appellation, with admin score
overrides, CSV/JSON imports and a 75-day source refresh.

Usage:
    uvicorn main:app --reload
"""

# Load environment variables from .env file FIRST
from dotenv import load_dotenv
load_dotenv()

import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from aoc_ranking.config import Config

# Configure logging from environment
logging.basicConfig(
    level=getattr(logging, Config.log_level(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)
logger.info(f"Starting with LOG_LEVEL={Config.log_level()}")
from fastapi.middleware.cors import CORSMiddleware

from aoc_ranking.db import ensure_schema
from aoc_ranking.errors import (
    CatalogError,
    NotFoundError,
    StorageError,
    UnauthorizedError,
    ValidationError,
)
from aoc_ranking.feature_flags import get_feature_flags
from aoc_ranking.routes import admin_router, wines_router
from aoc_ranking.services.catalog_service import get_catalog_service

# Startup state - set to True once schema and seed are in place
_is_ready = False


def is_ready() -> bool:
    """Check if the service is ready to handle requests."""
    return _is_ready


def set_ready(ready: bool = True):
    """Set the service ready state."""
    global _is_ready
    _is_ready = ready


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup/shutdown."""
    flags = get_feature_flags()

    # Startup: migrate, seed an empty catalog, start the due-check loop
    ensure_schema(Config.database_path())
    service = get_catalog_service()
    service.seed_if_empty(use_demo=flags.feature_demo_seed)

    refresh_task = None
    if flags.feature_auto_refresh:
        refresh_task = asyncio.create_task(service.scheduler.run_periodic())
    else:
        logger.info("Automatic refresh disabled (FEATURE_AUTO_REFRESH=false)")

    set_ready(True)
    logger.info("Service ready to handle requests")
    yield

    # Shutdown
    set_ready(False)
    if refresh_task is not None:
        refresh_task.cancel()
        try:
            await refresh_task
        except asyncio.CancelledError:
            pass


app = FastAPI(
    title="Bordeaux AOC Ranking API",
    description="Wine rankings per Bordeaux appellation with admin score adjustments",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def warmup_middleware(request: Request, call_next):
    """Return 503 with retry hint if service is still warming up."""
    # Always allow health checks (for probes) and root
    if request.url.path in ("/health", "/", "/docs", "/openapi.json"):
        return await call_next(request)

    if not is_ready():
        return JSONResponse(
            status_code=503,
            content={
                "error": "Service warming up",
                "message": "The server is starting up. Please retry in a few seconds.",
                "retry_after": 10,
            },
            headers={"Retry-After": "10"},
        )

    return await call_next(request)


# Domain errors → HTTP status
ERROR_STATUS = {
    ValidationError: 400,
    UnauthorizedError: 403,
    NotFoundError: 404,
    StorageError: 503,
}


@app.exception_handler(CatalogError)
async def catalog_error_handler(request: Request, exc: CatalogError):
    status_code = next(
        (code for cls, code in ERROR_STATUS.items() if isinstance(exc, cls)),
        500,
    )
    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    content = {"error": exc.message}
    if exc.detail is not None:
        content["detail"] = exc.detail
    return JSONResponse(status_code=status_code, content=content)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Malformed request bodies and query parameters are client errors (400)."""
    return JSONResponse(
        status_code=400,
        content={"error": "Invalid request", "detail": jsonable_encoder(exc.errors())},
    )


# Include routers
app.include_router(wines_router, tags=["wines"])
app.include_router(admin_router, tags=["admin"])


@app.get("/")
async def root():
    """Root endpoint with API info."""
    return {
        "name": "Bordeaux AOC Ranking API",
        "version": "0.1.0",
        "docs": "/docs",
    }


@app.get("/health")
async def health():
    """Health check endpoint for container probes."""
    return {"status": "healthy"}
