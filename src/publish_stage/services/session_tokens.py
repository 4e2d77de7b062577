"""Short-lived bearer tokens for read endpoints."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass

from jose import JWTError, jwt

from publish_stage.core.security import normalize_address
from publish_stage.core.settings import Settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionToken:
    """An issued token together with the claims it carries."""

    token: str
    address: str
    issued_at: int
    expires_at: int


class SessionTokenService:
    """Issue and verify HS256 session tokens bound to an address.

    Expiry is evaluated against the injected clock rather than the JWT
    library's wall clock so that verification is deterministic under test.
    """

    def __init__(
        self,
        settings: Settings,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._secret = settings.secret_key
        self._algorithm = settings.jwt_algorithm
        self._ttl = settings.session_token_ttl_seconds
        self._clock = clock

    @property
    def ttl_seconds(self) -> int:
        return self._ttl

    def issue(self, address: str) -> SessionToken:
        """Create a token for ``address`` valid for the configured window."""
        now = int(self._clock())
        claims = {
            "address": normalize_address(address),
            "iat": now,
            "exp": now + self._ttl,
        }
        encoded: str = jwt.encode(claims, self._secret, algorithm=self._algorithm)
        return SessionToken(
            token=encoded,
            address=claims["address"],
            issued_at=now,
            expires_at=now + self._ttl,
        )

    def verify(self, token: str) -> str | None:
        """Return the address carried by ``token`` or None if it is not valid.

        Fails closed on a bad signature, a different algorithm, a missing or
        non-integer claim, and expiry.
        """
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={"verify_exp": False, "verify_iat": False},
            )
        except JWTError as exc:
            logger.warning("Session token rejected: %s", exc.__class__.__name__)
            return None

        address = payload.get("address")
        expires_at = payload.get("exp")
        if not isinstance(address, str) or not address:
            return None
        if not isinstance(expires_at, int) or isinstance(expires_at, bool):
            return None
        if self._clock() >= expires_at:
            logger.info("Session token for %s expired", address)
            return None
        return normalize_address(address)
