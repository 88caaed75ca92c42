"""Global error handling for the session watcher API."""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from .exceptions import AssetNotFoundError

logger = logging.getLogger(__name__)


def setup_exception_handlers(app: FastAPI) -> None:
    """Setup global exception handlers for the app.

    Args:
        app: FastAPI application instance.
    """

    @app.exception_handler(AssetNotFoundError)
    async def asset_not_found_handler(request: Request, exc: AssetNotFoundError):
        """Unknown static paths are a plain 404."""
        logger.debug(f"Asset not found: {exc.path}")
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content={"detail": "Not Found"},
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """Handle all other exceptions."""
        logger.error(f"Unhandled exception: {exc}", exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "detail": "Internal server error",
                "message": str(exc) if app.debug else "An error occurred",
            },
        )
