"""FastAPI application entrypoint and configuration.

This module provides the main FastAPI application factory that sets up
logging, CORS middleware, includes the API routers for layers and feature
info, and exposes a health check endpoint for monitoring.

Example:
    The application can be run with uvicorn:
        $ uvicorn featureinfo.main:app --reload
"""

import fastapi
from fastapi.middleware import cors

from featureinfo.api import feature_info, layers
from featureinfo.core import config
from featureinfo.core import logging as core_logging


def create_app() -> fastapi.FastAPI:
    """Create and configure the FastAPI application.

    Configures the log sink, includes the API routers and adds a health
    check endpoint. CORS origins are configured from settings.

    Returns:
        Configured FastAPI application instance ready for ASGI server.
    """
    settings = config.get_settings()
    core_logging.configure_logging(settings.log_level)
    app = fastapi.FastAPI(title="Map Feature Info", version="0.1.0")

    app.include_router(layers.router)
    app.include_router(feature_info.router)

    app.add_middleware(
        cors.CORSMiddleware,  # type: ignore[arg-type]
        allow_origins=settings.allow_origins,
        allow_methods=["*"],
        allow_headers=["*"],
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
