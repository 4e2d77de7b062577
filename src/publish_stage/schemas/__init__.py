"""Pydantic schemas for request/response validation."""

from .auth import LoginResponse, SignedRequest, TypedProofFields
from .common import ErrorResponse, WebhookAck
from .files import (
    AssetFilesResponse,
    CreateDraftRequest,
    DeleteDraftRequest,
    DeletedResponse,
    FileListResponse,
    FileOut,
    PreparedResponse,
    PrepareDraftRequest,
    UpdateDraftRequest,
    UploadResponse,
)

__all__ = [
    "AssetFilesResponse",
    "CreateDraftRequest",
    "DeleteDraftRequest",
    "DeletedResponse",
    "ErrorResponse",
    "FileListResponse",
    "FileOut",
    "LoginResponse",
    "PrepareDraftRequest",
    "PreparedResponse",
    "SignedRequest",
    "TypedProofFields",
    "UpdateDraftRequest",
    "UploadResponse",
    "WebhookAck",
]
