"""Shared Pydantic schemas for common API elements."""
from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class ErrorResponse(BaseModel):
    """Structured error body; ``error`` is a short machine-checkable code."""

    error: str = Field(..., description="Machine-readable error code")
    message: str | None = Field(None, description="Short human-readable explanation")


class WebhookAck(BaseModel):
    """Acknowledgement returned to webhook providers."""

    success: bool
    message: str
    asset_cid: str | None = Field(None, alias="assetCid")
    applied: int = 0
    timestamp: str

    model_config = ConfigDict(populate_by_name=True)
