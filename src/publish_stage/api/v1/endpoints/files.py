# src/publish_stage/api/v1/endpoints/files.py
"""Draft lifecycle endpoints: create, update, delete, prepare and gated reads."""

from __future__ import annotations

from typing import Annotated, Any

from fastapi import APIRouter, HTTPException, Query, status

from publish_stage.api.v1.dependencies import CurrentAddressDep, ServicesDep
from publish_stage.core.security import normalize_address
from publish_stage.schemas.files import (
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
from publish_stage.services.errors import AuthorizationFailure

router = APIRouter(tags=["files"])

CidQuery = Annotated[str, Query(description="Content address of the target draft")]


@router.post("/create/group", response_model=UploadResponse)
def create_draft(request: CreateDraftRequest, services: ServicesDep) -> UploadResponse:
    """Create a pending draft in a new group, or in ``groupId`` when given.

    Args:
        request: Signed request carrying the draft content
        services: Application service graph

    Returns:
        Descriptor of the uploaded draft
    """
    record = services.lifecycle.create(
        request.to_proof(),
        content=request.content,
        group_id=request.group_id,
    )
    return UploadResponse(upload=FileOut.from_stored(record))


@router.post("/update/file", response_model=UploadResponse)
def update_draft(
    request: UpdateDraftRequest,
    services: ServicesDep,
    cid: CidQuery = "",
) -> UploadResponse:
    """Replace a pending draft's content; the draft gets a new content address."""
    record = services.lifecycle.update(request.to_proof(), cid, request.content)
    return UploadResponse(upload=FileOut.from_stored(record))


@router.post("/delete/file", response_model=DeletedResponse)
def delete_draft(
    request: DeleteDraftRequest,
    services: ServicesDep,
    cid: CidQuery = "",
) -> DeletedResponse:
    """Remove a pending draft and echo its last descriptor."""
    record = services.lifecycle.delete(request.to_proof(), cid)
    return DeletedResponse(deleted_file=FileOut.from_stored(record))


@router.post("/prepare/file", response_model=PreparedResponse)
def prepare_draft(
    request: PrepareDraftRequest,
    services: ServicesDep,
    cid: CidQuery = "",
) -> PreparedResponse:
    """Attach publish-time tags and metadata to a pending draft."""
    record = services.lifecycle.prepare_publish(
        request.to_proof(),
        cid,
        tags=request.tags,
        metadata=request.metadata,
    )
    return PreparedResponse(file=FileOut.from_stored(record))


@router.get("/pendingFilesByOwner", response_model=FileListResponse)
def pending_files_by_owner(
    address: CurrentAddressDep,
    services: ServicesDep,
    owner: Annotated[str | None, Query(description="Owner address to list")] = None,
    page_token: Annotated[str | None, Query(alias="pageToken")] = None,
) -> FileListResponse:
    """List the caller's own pending drafts in creation order.

    Args:
        address: Address bound to the bearer session token
        services: Application service graph
        owner: Address whose drafts are requested; must match the token
        page_token: Opaque cursor from a previous page

    Raises:
        HTTPException: 400 without an owner, 403 when the owner is not the caller
    """
    if not owner:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="missing_owner")
    if normalize_address(owner) != address:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="forbidden")

    page = services.lifecycle.pending_by_owner(
        address,
        limit=services.settings.pending_page_size,
        page_token=page_token,
    )
    return FileListResponse(
        files=[FileOut.from_stored(record) for record in page.files],
        next_page_token=page.next_page_token,
    )


@router.get("/fileByCid")
def file_by_cid(
    address: CurrentAddressDep,
    services: ServicesDep,
    cid: CidQuery = "",
) -> Any:
    """Return the JSON content of one of the caller's drafts.

    Raises:
        HTTPException: 400 without a cid, 403 when the draft is someone else's
    """
    if not cid:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="missing_cid")
    try:
        return services.lifecycle.draft_content(address, cid)
    except AuthorizationFailure as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=exc.code) from exc


@router.get("/fileByAssetAddress", response_model=AssetFilesResponse)
def file_by_asset_address(
    address: CurrentAddressDep,
    services: ServicesDep,
    user: Annotated[str | None, Query(description="Holder address; must match the token")] = None,
    asset_address: Annotated[str | None, Query(alias="assetAddress")] = None,
) -> AssetFilesResponse:
    """Return the published files behind an asset the caller holds.

    Args:
        address: Address bound to the bearer session token
        services: Application service graph
        user: Address claiming to hold the asset
        asset_address: Contract address of the published asset

    Raises:
        HTTPException: 400 without a user or asset address, 403 when the user
            is not the caller or holds none of the asset
    """
    if not user:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="missing_user")
    if normalize_address(user) != address:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="forbidden")
    if not asset_address:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="missing_asset_address",
        )

    try:
        asset = services.lifecycle.file_for_holder(address, asset_address)
    except AuthorizationFailure as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=exc.code) from exc
    return AssetFilesResponse(
        asset_address=asset.asset_address,
        asset_cid=asset.cid,
        files=[FileOut.from_stored(record) for record in asset.files],
    )
