"""Signature-based proof of identity with a freshness window."""

from __future__ import annotations

import logging
import re
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from publish_stage.core.security import (
    normalize_address,
    recover_personal_signer,
    recover_typed_signer,
)
from publish_stage.core.settings import Settings
from publish_stage.services.errors import AuthenticationFailure

logger = logging.getLogger(__name__)

_BARE_TIMESTAMP = re.compile(r"\s*(\d+)\s*")
_ISSUED_AT_FIELD = re.compile(r"Issued At:\s*(\S+)", re.IGNORECASE)
_NONCE_FIELD = re.compile(r"Nonce:\s*(\S+)", re.IGNORECASE)

AUTHENTICATION_TYPES: dict[str, list[dict[str, str]]] = {
    "Authentication": [
        {"name": "wallet", "type": "address"},
        {"name": "timestamp", "type": "uint256"},
        {"name": "nonce", "type": "string"},
    ],
}


@dataclass(frozen=True)
class TypedAuthPayload:
    """Explicit fields of an EIP-712 ``Authentication`` message."""

    timestamp: int
    nonce: str


@dataclass(frozen=True)
class AuthProof:
    """Ephemeral proof that the caller controls ``address``.

    Exactly one of ``message`` (plain personal_sign) or ``typed_data``
    (EIP-712) carries the signed content.
    """

    address: str
    signature: str
    message: str | None = None
    typed_data: TypedAuthPayload | None = None

    @property
    def nonce(self) -> str | None:
        """Return the single-use value embedded in the proof."""
        if self.typed_data is not None:
            return self.typed_data.nonce
        if not self.message:
            return None
        match = _NONCE_FIELD.search(self.message)
        if match:
            return match.group(1)
        # A bare timestamp salt doubles as the nonce.
        return self.message.strip()


def parse_issued_at(message: str) -> int | None:
    """Extract the unix timestamp a plain message claims to have been issued at.

    Accepts either a message that is only a number (``"1718000000"``) or a labeled
    ``Issued At: <ISO-8601>`` line inside free text. Returns None when neither
    is present or parsable.
    """
    match = _BARE_TIMESTAMP.fullmatch(message)
    if match:
        return int(match.group(1))

    match = _ISSUED_AT_FIELD.search(message)
    if match is None:
        return None
    raw = match.group(1)
    if raw.endswith(("Z", "z")):
        raw = raw[:-1] + "+00:00"
    try:
        issued = datetime.fromisoformat(raw)
    except ValueError:
        return None
    if issued.tzinfo is None:
        issued = issued.replace(tzinfo=UTC)
    return int(issued.timestamp())


class SignatureAuthenticator:
    """Verify that a caller controls a claimed address.

    Both proof shapes require the recovered signer to equal the claimed
    address (case-insensitive) and the embedded timestamp to fall inside
    ``settings.signature_max_age_seconds`` of the local clock. Verification is
    pure: nothing is recorded and no exception escapes :meth:`authenticate`.
    """

    def __init__(
        self,
        settings: Settings,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._max_age = settings.signature_max_age_seconds
        self._typed_skew = settings.typed_data_clock_skew_seconds
        self._domain: dict[str, Any] = {
            "name": settings.typed_data_domain_name,
            "version": settings.typed_data_domain_version,
            "chainId": settings.chain_id,
        }
        self._clock = clock

    @property
    def domain(self) -> dict[str, Any]:
        """EIP-712 domain that typed proofs must be signed under."""
        return dict(self._domain)

    def authenticate(self, proof: AuthProof) -> bool:
        """Return True if ``proof`` is fresh and signed by its claimed address."""
        if not proof.address or not proof.signature:
            logger.warning("Rejected proof: missing address or signature")
            return False

        if proof.typed_data is not None:
            return self._authenticate_typed(proof, proof.typed_data)
        if proof.message:
            return self._authenticate_plain(proof, proof.message)

        logger.warning("Rejected proof for %s: no signed payload", proof.address)
        return False

    def require(self, proof: AuthProof) -> str:
        """Authenticate ``proof`` and return the normalized address.

        Raises:
            AuthenticationFailure: If the proof does not verify.
        """
        if not self.authenticate(proof):
            raise AuthenticationFailure("Authentication failed")
        return normalize_address(proof.address)

    def _authenticate_plain(self, proof: AuthProof, message: str) -> bool:
        issued_at = parse_issued_at(message)
        if issued_at is None:
            logger.warning("Rejected proof for %s: unparsable timestamp", proof.address)
            return False

        if abs(self._clock() - issued_at) > self._max_age:
            logger.warning("Rejected proof for %s: timestamp outside window", proof.address)
            return False

        try:
            recovered = recover_personal_signer(message, proof.signature)
        except Exception as exc:
            logger.warning("Rejected proof for %s: malformed signature (%s)", proof.address, exc)
            return False
        return self._matches(proof, recovered)

    def _authenticate_typed(self, proof: AuthProof, payload: TypedAuthPayload) -> bool:
        age = self._clock() - payload.timestamp
        if age > self._max_age or age < -self._typed_skew:
            logger.warning("Rejected typed proof for %s: timestamp outside window", proof.address)
            return False

        message = {
            "wallet": normalize_address(proof.address),
            "timestamp": payload.timestamp,
            "nonce": payload.nonce,
        }
        try:
            recovered = recover_typed_signer(
                self._domain,
                AUTHENTICATION_TYPES,
                message,
                proof.signature,
            )
        except Exception as exc:
            logger.warning(
                "Rejected typed proof for %s: malformed payload or signature (%s)",
                proof.address,
                exc,
            )
            return False
        return self._matches(proof, recovered)

    @staticmethod
    def _matches(proof: AuthProof, recovered: str) -> bool:
        if normalize_address(recovered) != normalize_address(proof.address):
            logger.warning("Rejected proof for %s: signer mismatch", proof.address)
            return False
        return True
