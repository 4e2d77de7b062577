# src/publish_stage/models/__init__.py
"""SQLAlchemy models for the SQL-backed content store."""

from .content import ContentFile, ContentGroup

__all__ = ["ContentFile", "ContentGroup"]
