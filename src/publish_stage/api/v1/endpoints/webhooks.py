# src/publish_stage/api/v1/endpoints/webhooks.py
"""Publication webhooks from the chain notification providers."""

from __future__ import annotations

from datetime import UTC, datetime

from fastapi import APIRouter, Request
from starlette.concurrency import run_in_threadpool

from publish_stage.api.v1.dependencies import ServicesDep
from publish_stage.schemas.common import WebhookAck
from publish_stage.services.errors import AuthenticationFailure
from publish_stage.services.webhook_signatures import WebhookChannel, detect_channel

router = APIRouter(prefix="/webhook", tags=["webhooks"])


async def _reconcile(request: Request, services: ServicesDep, channel: WebhookChannel) -> WebhookAck:
    # The HMAC covers the exact bytes received, so the body is never re-serialized.
    raw_body = await request.body()
    result = await run_in_threadpool(
        services.reconciler.reconcile,
        channel,
        request.headers,
        raw_body,
    )
    applied = result.applied_count
    return WebhookAck(
        success=True,
        message="File status updated to onchain" if applied else "Event already processed",
        asset_cid=result.content_address,
        applied=applied,
        timestamp=datetime.now(UTC).isoformat(),
    )


@router.post("/alchemy/publish", response_model=WebhookAck)
async def alchemy_publish(request: Request, services: ServicesDep) -> WebhookAck:
    """Apply a publication event delivered by Alchemy Notify."""
    return await _reconcile(request, services, WebhookChannel.ALCHEMY)


@router.post("/quicknode/publish", response_model=WebhookAck)
async def quicknode_publish(request: Request, services: ServicesDep) -> WebhookAck:
    """Apply a publication event delivered by QuickNode Streams."""
    return await _reconcile(request, services, WebhookChannel.QUICKNODE)


@router.post("/publish", response_model=WebhookAck)
async def publish(request: Request, services: ServicesDep) -> WebhookAck:
    """Apply a publication event from whichever provider signed the request."""
    channel = detect_channel(request.headers)
    if channel is None:
        raise AuthenticationFailure("No webhook signature headers", code="missing_signature")
    return await _reconcile(request, services, channel)
