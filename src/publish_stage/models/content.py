# src/publish_stage/models/content.py
"""SQLAlchemy models for stored drafts and the groups that hold them."""

from datetime import UTC, datetime

from sqlalchemy import JSON, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from publish_stage.db.session import Base


def _created_now() -> datetime:
    return datetime.now(UTC)


class ContentGroup(Base):
    """Collection a draft and all of its later revisions belong to."""

    __tablename__ = "content_group"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_created_now)


class ContentFile(Base):
    """A stored JSON draft.

    Rows are hard-deleted; there is no soft-delete flag. ``cid`` is derived
    from the payload, so identical payloads share a content address.
    """

    __tablename__ = "content_file"

    # Monotonic sequence used as the pagination cursor.
    seq: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    id: Mapped[str] = mapped_column(String(36), nullable=False, unique=True)
    cid: Mapped[str] = mapped_column(String(80), nullable=False, index=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    group_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("content_group.id"),
        nullable=False,
    )
    payload: Mapped[dict] = mapped_column(JSON, nullable=False)
    keyvalues: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_created_now)
