"""
FastAPI Application Entry Point.

Usage:
    uvicorn podgen.main:app --host 0.0.0.0 --port 8000
"""
from __future__ import annotations

from fastapi import FastAPI

from podgen import __version__
from podgen.api.routes import router
from podgen.core.logging import configure_logging


def create_app() -> FastAPI:
    """Configure logging and build the app with the episode routes."""
    configure_logging()
    app = FastAPI(title="podgen", version=__version__)
    app.include_router(router)
    return app


app = create_app()
