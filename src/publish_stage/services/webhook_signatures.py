"""Transport authentication for the two publication webhook providers.

Channel A (Alchemy Notify) signs the raw body with a per-webhook signing key;
channel B (QuickNode Streams) signs ``nonce || timestamp || body`` with a
security token. Both produce lowercase hex HMAC-SHA256 digests.
"""

from __future__ import annotations

import hmac
import logging
from collections.abc import Mapping
from enum import Enum

from publish_stage.core.security import hmac_sha256_hex
from publish_stage.core.settings import Settings
from publish_stage.services.errors import AuthenticationFailure

logger = logging.getLogger(__name__)

ALCHEMY_SIGNATURE_HEADER = "X-Alchemy-Signature"
QUICKNODE_NONCE_HEADER = "X-QN-Nonce"
QUICKNODE_TIMESTAMP_HEADER = "X-QN-Timestamp"
QUICKNODE_SIGNATURE_HEADER = "X-QN-Signature"


class WebhookChannel(str, Enum):
    """Notification providers trusted to report publication events."""

    ALCHEMY = "alchemy"
    QUICKNODE = "quicknode"


def _header(headers: Mapping[str, str], name: str) -> str | None:
    # Starlette headers are case-insensitive already; plain dicts are not.
    value = headers.get(name)
    if value is None:
        value = headers.get(name.lower())
    return value or None


def detect_channel(headers: Mapping[str, str]) -> WebhookChannel | None:
    """Pick the channel whose signature header set is present."""
    if _header(headers, ALCHEMY_SIGNATURE_HEADER):
        return WebhookChannel.ALCHEMY
    if any(
        _header(headers, name)
        for name in (QUICKNODE_SIGNATURE_HEADER, QUICKNODE_NONCE_HEADER, QUICKNODE_TIMESTAMP_HEADER)
    ):
        return WebhookChannel.QUICKNODE
    return None


class WebhookSignatureValidator:
    """Verify that a delivery genuinely originated from a trusted provider."""

    def __init__(self, settings: Settings) -> None:
        self._alchemy_key = settings.alchemy_signing_key
        self._quicknode_token = settings.quicknode_security_token

    def verify(self, channel: WebhookChannel, headers: Mapping[str, str], raw_body: bytes) -> None:
        """Authenticate a delivery on ``channel``.

        Raises:
            AuthenticationFailure: On a missing header, an unconfigured secret
                or a signature mismatch.
        """
        if channel is WebhookChannel.ALCHEMY:
            self.verify_alchemy(_header(headers, ALCHEMY_SIGNATURE_HEADER), raw_body)
        else:
            self.verify_quicknode(
                _header(headers, QUICKNODE_NONCE_HEADER),
                _header(headers, QUICKNODE_TIMESTAMP_HEADER),
                _header(headers, QUICKNODE_SIGNATURE_HEADER),
                raw_body,
            )

    def verify_alchemy(self, signature: str | None, raw_body: bytes) -> None:
        if not signature:
            logger.warning("Missing %s header", ALCHEMY_SIGNATURE_HEADER)
            raise AuthenticationFailure("Missing signature header", code="missing_signature")
        if not self._alchemy_key:
            logger.error("Alchemy webhook received but ALCHEMY_SIGNING_KEY is not configured")
            raise AuthenticationFailure("Webhook secret not configured")

        expected = hmac_sha256_hex(self._alchemy_key, raw_body)
        if not hmac.compare_digest(expected.encode("ascii"), signature.encode("utf-8")):
            logger.warning("Invalid Alchemy webhook signature")
            raise AuthenticationFailure("Invalid signature", code="invalid_signature")

    def verify_quicknode(
        self,
        nonce: str | None,
        timestamp: str | None,
        signature: str | None,
        raw_body: bytes,
    ) -> None:
        if not (nonce and timestamp and signature):
            logger.warning("Missing required QuickNode signature headers")
            raise AuthenticationFailure(
                "Missing required headers "
                f"({QUICKNODE_NONCE_HEADER}, {QUICKNODE_TIMESTAMP_HEADER}, "
                f"{QUICKNODE_SIGNATURE_HEADER})",
                code="missing_signature",
            )
        if not self._quicknode_token:
            logger.error("QuickNode webhook received but QUICKNODE_SECURITY_TOKEN is not configured")
            raise AuthenticationFailure("Webhook secret not configured")

        expected = hmac_sha256_hex(
            self._quicknode_token,
            nonce.encode("utf-8"),
            timestamp.encode("utf-8"),
            raw_body,
        )
        if not hmac.compare_digest(expected.encode("ascii"), signature.encode("utf-8")):
            logger.warning("Invalid QuickNode webhook signature")
            raise AuthenticationFailure("Invalid signature", code="invalid_signature")
