# src/publish_stage/main.py
"""Main entry point for the Publish Stage application."""

from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware

from publish_stage.api.errors import register_exception_handlers
from publish_stage.api.v1 import auth_router, files_router, webhooks_router
from publish_stage.core.settings import Settings, get_settings
from publish_stage.services.container import Services, build_services

logger = logging.getLogger(__name__)

DESCRIPTION = "Draft lifecycle service for wallet-signed content published on chain"


def create_app(settings: Settings | None = None, services: Services | None = None) -> FastAPI:
    """Build the application; run with ``uvicorn publish_stage.main:create_app --factory``.

    Args:
        settings: Runtime configuration; read from the environment when omitted
        services: Prebuilt service graph; built from ``settings`` when omitted
    """
    settings = settings or (services.settings if services is not None else get_settings())
    services = services or build_services(settings)

    app = FastAPI(
        title=settings.app_name,
        description=DESCRIPTION,
        version=settings.app_version,
    )
    app.state.services = services

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
    )

    # Add GZip middleware for compression
    app.add_middleware(GZipMiddleware)

    register_exception_handlers(app)

    # Routes are served at the root so existing clients keep their paths
    app.include_router(auth_router)
    app.include_router(files_router)
    app.include_router(webhooks_router)

    @app.on_event("shutdown")
    async def on_shutdown() -> None:
        app.state.services.close()
        logger.info("Content store closed")

    @app.get("/health")
    async def health_check() -> dict[str, str]:
        """Health check endpoint to verify the service is running."""
        return {"status": "ok"}

    @app.get("/")
    async def root() -> dict[str, str]:
        """Root endpoint with basic information about the API."""
        return {
            "name": settings.app_name,
            "version": settings.app_version,
            "description": DESCRIPTION,
            "content_store": settings.content_store_backend,
            "docs": "/docs",
        }

    return app


if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(level=logging.INFO)
    uvicorn.run(
        "publish_stage.main:create_app",
        factory=True,
        host="0.0.0.0",
        port=8000,
        reload=get_settings().debug,
    )
