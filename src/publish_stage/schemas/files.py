"""Draft-related Pydantic schemas."""
from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from publish_stage.repositories.base import StoredFile
from publish_stage.schemas.auth import SignedRequest


class CreateDraftRequest(SignedRequest):
    """Create a new draft, optionally inside an existing group."""

    content: Any = Field(None, description="JSON content of the draft")
    group_id: str | None = Field(None, alias="groupId", description="Existing group to join")


class UpdateDraftRequest(SignedRequest):
    """Replace the content of a pending draft."""

    content: Any = Field(None, description="Replacement JSON content")


class DeleteDraftRequest(SignedRequest):
    """Delete a pending draft."""


class PrepareDraftRequest(SignedRequest):
    """Attach publish-time tags and metadata to a pending draft."""

    tags: list[str] = Field(default_factory=list, description="Free-form labels")
    metadata: dict[str, str] = Field(default_factory=dict, description="Extra key-values")


class FileOut(BaseModel):
    """Descriptor of a stored draft."""

    id: str
    cid: str
    name: str
    group_id: str | None = None
    keyvalues: dict[str, str] = Field(default_factory=dict)
    created_at: str | None = None

    model_config = ConfigDict(from_attributes=True)

    @classmethod
    def from_stored(cls, stored: StoredFile) -> FileOut:
        return cls.model_validate(stored)


class UploadResponse(BaseModel):
    upload: FileOut


class DeletedResponse(BaseModel):
    deleted_file: FileOut = Field(..., alias="deletedFile")

    model_config = ConfigDict(populate_by_name=True)


class PreparedResponse(BaseModel):
    file: FileOut


class FileListResponse(BaseModel):
    """One page of an owner's pending drafts."""

    files: list[FileOut]
    next_page_token: str | None = None


class AssetFilesResponse(BaseModel):
    """Published files behind an on-chain asset the caller holds."""

    asset_address: str = Field(..., alias="assetAddress")
    asset_cid: str = Field(..., alias="assetCid")
    files: list[FileOut]

    model_config = ConfigDict(populate_by_name=True)
