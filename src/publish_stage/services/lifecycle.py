"""Draft lifecycle: create, replace, delete, prepare and publish transitions.

A draft is created ``pending`` by its owner, may be replaced or deleted by that
owner while it stays ``pending``, and becomes ``onchain`` only when a verified
publication event arrives. ``onchain`` is terminal.

Every owner-initiated mutation derives a ``name`` from the signed proof. The
stored record keeps the name of the proof that produced it, so presenting the
same proof again (same address, same nonce) is detected as a duplicate intent.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any

from eth_utils import is_address

from publish_stage.core.security import normalize_address
from publish_stage.repositories.base import (
    OWNER_KEY,
    STATUS_KEY,
    STATUS_ONCHAIN,
    STATUS_PENDING,
    ContentStore,
    FilePage,
    StoredFile,
)
from publish_stage.services.asset_ledger import AssetLedger
from publish_stage.services.authenticator import AuthProof, SignatureAuthenticator
from publish_stage.services.errors import (
    AuthenticationFailure,
    AuthorizationFailure,
    Conflict,
    InvalidPayload,
    NotFound,
    UpstreamFailure,
)

logger = logging.getLogger(__name__)

DEFAULT_DRAFT_CONTENT = "Initial Empty Json"
DRAFT_LANG = "ts"
RESERVED_KEYS = frozenset({OWNER_KEY, STATUS_KEY})


class TransitionOutcome(str, Enum):
    """Result of applying a publication event."""

    APPLIED = "applied"
    NOOP = "noop"


@dataclass(frozen=True)
class TransitionResult:
    """Outcome of :meth:`FileLifecycleManager.apply_onchain_transition`."""

    outcome: TransitionOutcome
    content_address: str
    files: tuple[StoredFile, ...] = ()
    reason: str | None = None

    @property
    def applied(self) -> bool:
        return self.outcome is TransitionOutcome.APPLIED


@dataclass(frozen=True)
class AssetFiles:
    """Published files behind an on-chain asset."""

    asset_address: str
    cid: str
    files: tuple[StoredFile, ...] = ()


def derive_name(address: str, nonce: str) -> str:
    """Return the idempotency key for a mutation signed by ``address``.

    The layout (39 address characters after ``0x``, an underscore, then the
    last ten characters of the nonce) matches names already present in the
    store, so it must not change.
    """
    return f"{address[2:41].lower()}_{nonce[-10:].lower()}"


class FileLifecycleManager:
    """State machine over content records held in a :class:`ContentStore`."""

    def __init__(
        self,
        authenticator: SignatureAuthenticator,
        store: ContentStore,
        ledger: AssetLedger | None = None,
    ) -> None:
        self._authenticator = authenticator
        self._store = store
        self._ledger = ledger

    # --- owner-initiated mutations -----------------------------------------------

    def create(
        self,
        proof: AuthProof,
        content: Any = None,
        group_id: str | None = None,
    ) -> StoredFile:
        """Create a new pending draft owned by the proof's address.

        Raises:
            AuthenticationFailure: If the proof does not verify.
            UpstreamFailure: If the content store fails.
        """
        address, name = self._authenticate(proof)
        group = group_id or self._store.create_group(name)
        record = self._upload(content, name=name, group_id=group, owner=address)
        logger.info("Created draft %s (%s) for %s in group %s", record.cid, name, address, group)
        return record

    def update(self, proof: AuthProof, content_address: str, content: Any) -> StoredFile:
        """Replace a pending draft with new content in the same group.

        The replacement is a delete followed by an upload. If the upload fails
        the old record is already gone and the caller must resubmit.

        Raises:
            AuthenticationFailure: If the proof does not verify.
            NotFound: If no record has ``content_address``.
            AuthorizationFailure: If the caller does not own the record.
            Conflict: If the record is on chain or the proof was already applied.
            UpstreamFailure: If the content store fails.
        """
        address, name = self._authenticate(proof)
        record = self._locate(content_address, address)
        self._ensure_mutable(record, address=address, name=name)

        self._store.delete(record.id)
        logger.info("Deleted draft %s ahead of replacement by %s", record.cid, address)

        group = record.group_id or self._store.create_group(name)
        replacement = self._upload(content, name=name, group_id=group, owner=address)
        logger.info("Replaced draft %s with %s for %s", record.cid, replacement.cid, address)
        return replacement

    def delete(self, proof: AuthProof, content_address: str) -> StoredFile:
        """Remove a pending draft and return its last-known descriptor.

        Raises:
            AuthenticationFailure: If the proof does not verify.
            NotFound: If no record has ``content_address``.
            AuthorizationFailure: If the caller does not own the record.
            Conflict: If the record is on chain or the proof was already applied.
            UpstreamFailure: If the content store fails.
        """
        address, name = self._authenticate(proof)
        record = self._locate(content_address, address)
        self._ensure_mutable(record, address=address, name=name)

        self._store.delete(record.id)
        logger.info("Deleted draft %s for %s", record.cid, address)
        return record

    def prepare_publish(
        self,
        proof: AuthProof,
        content_address: str,
        tags: Sequence[str] = (),
        metadata: Mapping[str, str] | None = None,
    ) -> StoredFile:
        """Attach publish-time tags and metadata to a pending draft.

        Tags are stored as ``{tag: tag}`` key-values so they can be filtered on.
        The status is left untouched.

        Raises:
            AuthenticationFailure: If the proof does not verify.
            NotFound: If no record has ``content_address``.
            AuthorizationFailure: If the caller does not own the record.
            Conflict: If the record is on chain or a reserved key is supplied.
            UpstreamFailure: If the content store fails.
        """
        address, _ = self._authenticate(proof)
        additions: dict[str, str] = {tag: tag for tag in (t.strip() for t in tags) if tag}
        additions.update(metadata or {})
        reserved = RESERVED_KEYS.intersection(additions)
        if reserved:
            raise Conflict(
                f"Reserved keys cannot be set: {', '.join(sorted(reserved))}",
                code="reserved_key",
            )

        record = self._locate(content_address, address)
        self._ensure_owner(record, address)
        self._ensure_pending(record)

        updated = self._store.update_keyvalues(record.id, {**record.keyvalues, **additions})
        logger.info("Attached %d publish tags to draft %s", len(additions), record.cid)
        return updated

    # --- webhook-driven transition -----------------------------------------------

    def apply_onchain_transition(self, content_address: str, author_address: str) -> TransitionResult:
        """Mark the author's pending drafts with ``content_address`` as on chain.

        Finding nothing to transition is a NoOp, not an error: the event was
        already applied through another channel or a redelivery, or the draft
        was deleted before publication. Every matching pending record is
        transitioned in one call so that a redelivery cannot pick up a second
        record sharing the same content address.

        Raises:
            UpstreamFailure: If the content store fails.
        """
        author = normalize_address(author_address)
        candidates = self._store.find_by_cid(content_address) if content_address else []
        pending = [
            record
            for record in candidates
            if record.owner == author and record.status == STATUS_PENDING
        ]

        if not pending:
            reason = self._noop_reason(candidates, author)
            logger.info("Publication of %s by %s is a no-op (%s)", content_address, author, reason)
            return TransitionResult(TransitionOutcome.NOOP, content_address, reason=reason)

        transitioned: list[StoredFile] = []
        for record in pending:
            try:
                transitioned.append(
                    self._store.update_keyvalues(
                        record.id,
                        {**record.keyvalues, STATUS_KEY: STATUS_ONCHAIN},
                    )
                )
            except NotFound:
                # Deleted between lookup and update.
                logger.info("Draft %s vanished before it could be marked on chain", record.id)

        if not transitioned:
            return TransitionResult(TransitionOutcome.NOOP, content_address, reason="deleted")

        logger.info("Marked %d draft(s) %s by %s as on chain", len(transitioned), content_address, author)
        return TransitionResult(
            TransitionOutcome.APPLIED,
            content_address,
            files=tuple(transitioned),
        )

    # --- reads -------------------------------------------------------------------

    def pending_by_owner(
        self,
        owner: str,
        *,
        limit: int,
        page_token: str | None = None,
    ) -> FilePage:
        """List the owner's drafts that have not been published yet."""
        return self._store.list_files(
            {OWNER_KEY: normalize_address(owner), STATUS_KEY: STATUS_PENDING},
            limit=limit,
            page_token=page_token,
        )

    def draft_content(self, owner: str, content_address: str) -> Any:
        """Return the JSON payload of a draft the caller owns.

        Raises:
            NotFound: If no record has ``content_address``.
            AuthorizationFailure: If none of the matching records is the caller's.
            UpstreamFailure: If the content store fails.
        """
        address = normalize_address(owner)
        record = self._locate(content_address, address)
        if record.owner != address:
            logger.warning("Rejected read of %s by non-owner %s", content_address, address)
            raise AuthorizationFailure("Draft belongs to another owner", code="forbidden")
        return self._store.fetch_json(record.cid)

    def file_for_holder(self, holder: str, asset_address: str) -> AssetFiles:
        """Return the published files behind an asset the caller holds.

        Raises:
            InvalidPayload: If ``asset_address`` is not an address.
            AuthorizationFailure: If ``holder`` has no balance of the asset.
            UpstreamFailure: If the chain read or the content store fails.
        """
        if not is_address(asset_address):
            raise InvalidPayload("Asset address is not valid", code="invalid_asset_address")
        if self._ledger is None:
            raise UpstreamFailure("No asset ledger configured")

        address = normalize_address(holder)
        if self._ledger.balance_of(asset_address, address) <= 0:
            logger.warning("Rejected read of asset %s by non-holder %s", asset_address, address)
            raise AuthorizationFailure("Asset is not held by the caller", code="not_holder")

        cid = self._ledger.asset_cid(asset_address)
        files = tuple(
            record for record in self._store.find_by_cid(cid) if record.status == STATUS_ONCHAIN
        )
        return AssetFiles(asset_address=normalize_address(asset_address), cid=cid, files=files)

    # --- helpers -----------------------------------------------------------------

    def _authenticate(self, proof: AuthProof) -> tuple[str, str]:
        address = self._authenticator.require(proof)
        nonce = proof.nonce
        if not nonce:
            raise AuthenticationFailure("Proof carries no nonce")
        return address, derive_name(address, nonce)

    def _upload(self, content: Any, *, name: str, group_id: str, owner: str) -> StoredFile:
        return self._store.upload_json(
            {
                "content": DEFAULT_DRAFT_CONTENT if content is None else content,
                "lang": DRAFT_LANG,
            },
            name=name,
            group_id=group_id,
            keyvalues={OWNER_KEY: owner, STATUS_KEY: STATUS_PENDING},
        )

    def _locate(self, content_address: str, address: str) -> StoredFile:
        """Pick the record that ``address`` is acting on.

        Identical payloads share a content address, so the caller's own records
        are preferred, pending ones first. Someone else's record is returned
        only when the caller owns none, which the ownership check then rejects.
        """
        if not content_address:
            raise NotFound("No content address supplied")
        records = self._store.find_by_cid(content_address)
        if not records:
            raise NotFound(f"No file found for {content_address}")
        owned = [record for record in records if record.owner == address]
        if not owned:
            return records[0]
        pending = [record for record in owned if record.status == STATUS_PENDING]
        return (pending or owned)[0]

    def _ensure_mutable(self, record: StoredFile, *, address: str, name: str) -> None:
        self._ensure_owner(record, address)
        self._ensure_pending(record)
        if record.name == name:
            raise Conflict("File already exists", code="duplicate_intent")

    @staticmethod
    def _ensure_owner(record: StoredFile, address: str) -> None:
        if record.owner != address:
            logger.warning("Rejected mutation of %s by non-owner %s", record.cid, address)
            raise AuthorizationFailure("Unauthorized")

    @staticmethod
    def _ensure_pending(record: StoredFile) -> None:
        if record.status == STATUS_ONCHAIN:
            raise Conflict("File already published on chain", code="already_onchain")

    @staticmethod
    def _noop_reason(candidates: Sequence[StoredFile], author: str) -> str:
        if not candidates:
            return "not_found"
        if any(record.owner == author for record in candidates):
            return "already_onchain"
        return "owner_mismatch"
