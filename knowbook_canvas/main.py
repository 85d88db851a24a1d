"""
FastAPI application entrypoint for Knowbook Canvas.
"""

from __future__ import annotations

from fastapi import FastAPI

from knowbook_canvas.api.routes import auth_router, router as api_router
from knowbook_canvas.core.config import get_settings
from knowbook_canvas.core.logging import configure_logging


def create_app() -> FastAPI:
    """Factory for the FastAPI application."""
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="Knowbook Canvas",
        version="0.1.0",
        description="Account signup and Knowbook API connection service.",
    )
    app.include_router(auth_router)
    app.include_router(api_router, prefix="/api")
    return app


app = create_app()

__all__ = ["app", "create_app"]
