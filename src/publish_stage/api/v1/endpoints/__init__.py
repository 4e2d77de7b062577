# src/publish_stage/api/v1/endpoints/__init__.py
"""API endpoint modules for version 1."""

from .auth import router as auth_router
from .files import router as files_router
from .webhooks import router as webhooks_router

__all__ = [
    "auth_router",
    "files_router",
    "webhooks_router",
]
