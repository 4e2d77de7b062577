"""Content store protocol shared by the Pinata and SQL backends."""
from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Protocol

__all__ = [
    "OWNER_KEY",
    "STATUS_KEY",
    "STATUS_ONCHAIN",
    "STATUS_PENDING",
    "ContentStore",
    "FilePage",
    "StoredFile",
]

OWNER_KEY = "owner"
STATUS_KEY = "status"
STATUS_PENDING = "pending"
STATUS_ONCHAIN = "onchain"


@dataclass(frozen=True)
class StoredFile:
    """Descriptor of one stored blob and the key-values attached to it."""

    id: str
    cid: str
    name: str
    group_id: str | None
    keyvalues: dict[str, str] = field(default_factory=dict)
    created_at: str | None = None

    @property
    def owner(self) -> str | None:
        return self.keyvalues.get(OWNER_KEY)

    @property
    def status(self) -> str | None:
        return self.keyvalues.get(STATUS_KEY)

    @property
    def tags(self) -> dict[str, str]:
        """Free-form key-values other than the reserved owner/status pair."""
        return {
            key: value
            for key, value in self.keyvalues.items()
            if key not in (OWNER_KEY, STATUS_KEY)
        }

    def as_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "cid": self.cid,
            "name": self.name,
            "group_id": self.group_id,
            "keyvalues": dict(self.keyvalues),
            "created_at": self.created_at,
        }


@dataclass(frozen=True)
class FilePage:
    """One page of a keyvalue-filtered listing."""

    files: list[StoredFile]
    next_page_token: str | None = None


class ContentStore(Protocol):
    """Opaque storage for JSON drafts and their metadata.

    Implementations raise ``UpstreamFailure`` for transport or driver errors
    and never retry internally.
    """

    def create_group(self, name: str) -> str:
        """Create a collection and return its identifier."""

    def upload_json(
        self,
        payload: Mapping[str, Any],
        *,
        name: str,
        group_id: str,
        keyvalues: Mapping[str, str],
    ) -> StoredFile:
        """Store ``payload`` inside ``group_id`` and return its descriptor."""

    def find_by_cid(self, cid: str) -> list[StoredFile]:
        """Return every file whose content address equals ``cid``."""

    def fetch_json(self, cid: str) -> Any:
        """Return the JSON payload stored under ``cid``."""

    def update_keyvalues(self, file_id: str, keyvalues: Mapping[str, str]) -> StoredFile:
        """Merge ``keyvalues`` into the file's metadata."""

    def delete(self, file_id: str) -> None:
        """Hard-remove a file."""

    def list_files(
        self,
        keyvalues: Mapping[str, str],
        *,
        limit: int,
        page_token: str | None = None,
    ) -> FilePage:
        """List files whose metadata contains every pair in ``keyvalues``."""
