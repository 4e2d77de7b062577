# src/publish_stage/api/v1/endpoints/auth.py
"""Authentication endpoints for the Publish Stage API."""

from __future__ import annotations

import logging

from fastapi import APIRouter

from publish_stage.api.v1.dependencies import CurrentAddressDep, ServicesDep
from publish_stage.schemas.auth import LoginResponse, SignedRequest

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["authentication"])


def _describe_ttl(seconds: int) -> str:
    """Render a lifetime the way clients display it (``2h``, ``90m``, ``45s``)."""
    if seconds % 3600 == 0:
        return f"{seconds // 3600}h"
    if seconds % 60 == 0:
        return f"{seconds // 60}m"
    return f"{seconds}s"


@router.post("/login", response_model=LoginResponse)
def login(request: SignedRequest, services: ServicesDep) -> LoginResponse:
    """Exchange a fresh wallet signature for a bearer session token.

    Args:
        request: Address, signature and signed message (or typed data)
        services: Application service graph

    Returns:
        Session token, the lowercased address and the token lifetime

    Raises:
        AuthenticationFailure: If the signature does not verify (401)
    """
    address = services.authenticator.require(request.to_proof())
    session = services.tokens.issue(address)
    logger.info("Issued session token for %s", session.address)
    return LoginResponse(
        token=session.token,
        address=session.address,
        expires_in=_describe_ttl(services.tokens.ttl_seconds),
    )


@router.get("/me")
def whoami(address: CurrentAddressDep) -> dict[str, str]:
    """Return the address bound to the presented session token."""
    return {"address": address}
