# src/publish_stage/api/v1/__init__.py
"""Version 1 API endpoints."""

from .endpoints import auth_router, files_router, webhooks_router

__all__ = [
    "auth_router",
    "files_router",
    "webhooks_router",
]
