"""FastAPI application entrypoint and configuration.

This module provides the main FastAPI application factory that configures
logging, sets up CORS middleware, includes the tile and layer routers,
maps feature data errors to responses and exposes a health check endpoint.

Example:
    The application can be run with uvicorn:
        $ uvicorn shapetiles.main:app --reload

    Or imported and used programmatically:
        >>> from shapetiles.main import app
        >>> # Use app in ASGI server
"""

import logging

import fastapi
from fastapi import responses
from fastapi.middleware import cors

from shapetiles.api import layers, tiles
from shapetiles.core import config, logging_setup
from shapetiles.services import styling

logger = logging.getLogger(__name__)


async def _feature_data_error_handler(
    request: fastapi.Request,
    exc: Exception,
) -> responses.JSONResponse:
    """Report a tile abandoned because of malformed feature attributes."""
    logger.error("tile %s failed: %s", request.url.path, exc)
    return responses.JSONResponse(
        status_code=500,
        content={"detail": f"Feature data error: {exc}"},
    )


def create_app() -> fastapi.FastAPI:
    """Create and configure the FastAPI application.

    Configures logging from settings, includes the tile and layer routers,
    sets up CORS middleware from settings and adds a health check endpoint.

    Returns:
        Configured FastAPI application instance ready for ASGI server.
    """
    settings = config.get_settings()
    logging_setup.setup_logging(settings.log_level)

    app = fastapi.FastAPI(title="Population Density Tiles", version="0.1.0")

    app.include_router(layers.router)
    app.include_router(tiles.router)

    app.add_middleware(
        cors.CORSMiddleware,  # type: ignore[arg-type]
        allow_origins=settings.allow_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(
        styling.FeatureDataError,
        _feature_data_error_handler,
    )

    @app.get("/health")
    async def health() -> dict[str, str]:  # type: ignore[misc]
        """Health check endpoint for monitoring and load balancers.

        Returns:
            Dictionary with status "ok" if the service is running.
        """
        return {"status": "ok"}

    return app


app = create_app()
