"""
FastAPI application entry point for the RailSight API.

This module wires the backend together: it configures logging and CORS,
manages the campaign store lifecycle and registers the API routers.

Run locally with:

    uvicorn railsight.main:app --reload
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from railsight import __version__
from railsight.api import api_router
from railsight.core.config import get_settings
from railsight.core.storage import close_store, init_store

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Lifespan context manager for FastAPI application startup and shutdown events.

    On startup:
        - Create the campaign store under settings.data_dir

    On shutdown:
        - Drop the campaign store
    """
    # Startup
    logger.info("RailSight API starting")
    store = init_store()
    logger.info(f"Serving {len(store.list_ids())} stored campaigns")

    yield

    # Shutdown
    logger.info("RailSight API shutting down")
    close_store()


# Create FastAPI application
app = FastAPI(
    title="RailSight API",
    version=__version__,
    description=(
        "Track-geometry analytics backend. Stores measurement campaigns, "
        "aligns them on a common position grid and classifies samples "
        "against normative limits."
    ),
    lifespan=lifespan,
)

# Configure CORS middleware for the browser front-end
app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register API routers
app.include_router(api_router)


@app.get("/health")
async def health_check():
    """
    Health check endpoint for monitoring and load balancer probes.

    Returns:
        Dict with status 'healthy'
    """
    return {"status": "healthy"}


@app.get("/")
async def root():
    """
    Root endpoint providing API information.

    Returns:
        Dict with API name and version
    """
    return {
        "name": "RailSight API",
        "version": __version__,
        "docs": "/docs",
        "openapi": "/openapi.json",
    }


# Run with uvicorn when executed directly
if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "railsight.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
