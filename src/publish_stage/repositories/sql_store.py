"""SQL-backed content store for local development and single-node deployments."""
from __future__ import annotations

import hashlib
import json
import logging
import uuid
from collections.abc import Mapping
from datetime import UTC
from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from publish_stage.models import ContentFile, ContentGroup
from publish_stage.repositories.base import FilePage, StoredFile
from publish_stage.services.errors import NotFound, UpstreamFailure

__all__ = ["SqlContentStore", "content_address"]

logger = logging.getLogger(__name__)


def content_address(payload: Mapping[str, Any]) -> str:
    """Return the SHA-256 hex digest of the canonical JSON encoding of ``payload``."""
    canonical = json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def _to_stored(row: ContentFile) -> StoredFile:
    created_at = row.created_at
    if created_at is not None and created_at.tzinfo is None:
        # SQLite drops the offset on read.
        created_at = created_at.replace(tzinfo=UTC)
    return StoredFile(
        id=row.id,
        cid=row.cid,
        name=row.name,
        group_id=row.group_id,
        keyvalues=dict(row.keyvalues or {}),
        created_at=created_at.isoformat() if created_at else None,
    )


class SqlContentStore:
    """Content store persisting drafts as rows; each call runs in its own transaction."""

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    def create_group(self, name: str) -> str:
        group_id = str(uuid.uuid4())
        try:
            with self._session_factory.begin() as session:
                session.add(ContentGroup(id=group_id, name=name))
        except SQLAlchemyError as exc:
            logger.error("Failed to create group %s", name, exc_info=True)
            raise UpstreamFailure("Failed to create group") from exc
        return group_id

    def upload_json(
        self,
        payload: Mapping[str, Any],
        *,
        name: str,
        group_id: str,
        keyvalues: Mapping[str, str],
    ) -> StoredFile:
        row = ContentFile(
            id=str(uuid.uuid4()),
            cid=content_address(payload),
            name=name,
            group_id=group_id,
            payload=dict(payload),
            keyvalues=dict(keyvalues),
        )
        try:
            with self._session_factory.begin() as session:
                if session.get(ContentGroup, group_id) is None:
                    raise NotFound(f"Group {group_id} does not exist")
                session.add(row)
                session.flush()
                return _to_stored(row)
        except SQLAlchemyError as exc:
            logger.error("Failed to store file %s", name, exc_info=True)
            raise UpstreamFailure("Failed to upload file") from exc

    def find_by_cid(self, cid: str) -> list[StoredFile]:
        try:
            with self._session_factory() as session:
                rows = session.scalars(
                    select(ContentFile).where(ContentFile.cid == cid).order_by(ContentFile.seq)
                )
                return [_to_stored(row) for row in rows]
        except SQLAlchemyError as exc:
            logger.error("Failed to look up cid %s", cid, exc_info=True)
            raise UpstreamFailure("Failed to look up file") from exc

    def fetch_json(self, cid: str) -> Any:
        try:
            with self._session_factory() as session:
                payload = session.scalars(
                    select(ContentFile.payload).where(ContentFile.cid == cid).limit(1)
                ).first()
        except SQLAlchemyError as exc:
            logger.error("Failed to read payload of %s", cid, exc_info=True)
            raise UpstreamFailure("Failed to read file") from exc
        if payload is None:
            raise NotFound(f"No file found for {cid}")
        return payload

    def update_keyvalues(self, file_id: str, keyvalues: Mapping[str, str]) -> StoredFile:
        try:
            with self._session_factory.begin() as session:
                row = session.scalars(
                    select(ContentFile).where(ContentFile.id == file_id)
                ).first()
                if row is None:
                    raise NotFound(f"File {file_id} does not exist")
                # Reassign so the JSON column is flagged as modified.
                row.keyvalues = {**(row.keyvalues or {}), **keyvalues}
                session.flush()
                return _to_stored(row)
        except SQLAlchemyError as exc:
            logger.error("Failed to update file %s", file_id, exc_info=True)
            raise UpstreamFailure("Failed to update file") from exc

    def delete(self, file_id: str) -> None:
        try:
            with self._session_factory.begin() as session:
                result = session.execute(delete(ContentFile).where(ContentFile.id == file_id))
        except SQLAlchemyError as exc:
            logger.error("Failed to delete file %s", file_id, exc_info=True)
            raise UpstreamFailure("Failed to delete file") from exc
        if result.rowcount == 0:
            raise NotFound(f"File {file_id} does not exist")

    def list_files(
        self,
        keyvalues: Mapping[str, str],
        *,
        limit: int,
        page_token: str | None = None,
    ) -> FilePage:
        stmt = select(ContentFile).order_by(ContentFile.seq).limit(limit + 1)
        for key, value in keyvalues.items():
            stmt = stmt.where(ContentFile.keyvalues[key].as_string() == value)
        if page_token:
            if not page_token.isdigit():
                return FilePage(files=[])
            stmt = stmt.where(ContentFile.seq > int(page_token))

        try:
            with self._session_factory() as session:
                rows = list(session.scalars(stmt))
        except SQLAlchemyError as exc:
            logger.error("Failed to list files", exc_info=True)
            raise UpstreamFailure("Failed to list files") from exc

        next_token = str(rows[limit - 1].seq) if len(rows) > limit else None
        return FilePage(files=[_to_stored(row) for row in rows[:limit]], next_page_token=next_token)
