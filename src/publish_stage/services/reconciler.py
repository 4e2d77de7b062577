"""Apply verified publication webhooks to the draft lifecycle."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass

from publish_stage.services.event_decoder import (
    EventDecoder,
    PublicationEvent,
    parse_envelope,
)
from publish_stage.services.errors import InvalidPayload
from publish_stage.services.lifecycle import FileLifecycleManager, TransitionResult
from publish_stage.services.webhook_signatures import WebhookChannel, WebhookSignatureValidator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReconcileResult:
    """Per-delivery summary; every event is either applied or a no-op."""

    channel: WebhookChannel
    events: tuple[PublicationEvent, ...]
    transitions: tuple[TransitionResult, ...]

    @property
    def applied_count(self) -> int:
        return sum(1 for result in self.transitions if result.applied)

    @property
    def content_address(self) -> str | None:
        return self.events[0].content_address if self.events else None


class WebhookReconciler:
    """Authenticate, decode and apply a webhook delivery.

    Deliveries are at-least-once and may arrive on both channels in any
    order. Applying the same event 0, 1 or N times leaves the same end state
    because the transition only ever moves ``pending`` records to ``onchain``.
    """

    def __init__(
        self,
        validator: WebhookSignatureValidator,
        decoder: EventDecoder,
        lifecycle: FileLifecycleManager,
    ) -> None:
        self._validator = validator
        self._decoder = decoder
        self._lifecycle = lifecycle

    def reconcile(
        self,
        channel: WebhookChannel,
        headers: Mapping[str, str],
        raw_body: bytes,
    ) -> ReconcileResult:
        """Process one delivery.

        Raises:
            AuthenticationFailure: If the transport signature does not verify.
            InvalidPayload: If the body is not JSON or holds no publication event.
            UpstreamFailure: If the content store fails.
        """
        self._validator.verify(channel, headers, raw_body)
        logger.info("Authenticated webhook from %s", channel.value)

        try:
            body = json.loads(raw_body)
            envelope = parse_envelope(channel, body)
        except ValueError as exc:
            logger.warning("Undecodable %s webhook body: %s", channel.value, exc)
            raise InvalidPayload("Webhook body could not be decoded") from exc

        events = self._decoder.decode_all(envelope)
        if not events:
            logger.info("No %s event in %s delivery", self._decoder.event.name, channel.value)
            raise InvalidPayload("No asset data found", code="no_asset_data")

        transitions = []
        for event in events:
            logger.info(
                "Publication event from %s: %s by %s (publication %s)",
                channel.value,
                event.content_address,
                event.author_address,
                event.publication_id,
            )
            transitions.append(
                self._lifecycle.apply_onchain_transition(
                    event.content_address,
                    event.author_address,
                )
            )

        return ReconcileResult(
            channel=channel,
            events=tuple(events),
            transitions=tuple(transitions),
        )
