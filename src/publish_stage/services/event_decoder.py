"""Extract publication events from provider webhook envelopes.

Provider payloads are normalized into a small tagged union of envelopes, each
carrying the raw EVM logs it contains. The decoder then looks for logs whose
first topic is the selector of the configured event and ABI-decodes them.
Logs emitted by other events or contracts are expected and skipped.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any, Literal

from eth_abi import decode as abi_decode
from eth_abi.exceptions import DecodingError
from eth_utils import keccak

from publish_stage.core.security import normalize_address
from publish_stage.services.webhook_signatures import WebhookChannel

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EventSpec:
    """ABI description of an event plus which arguments carry which role."""

    name: str
    inputs: tuple[tuple[str, str, bool], ...]  # (name, abi type, indexed)
    content_arg: str
    author_arg: str
    publication_arg: str

    @property
    def signature(self) -> str:
        return f"{self.name}({','.join(abi_type for _, abi_type, _ in self.inputs)})"

    @property
    def topic(self) -> str:
        return "0x" + keccak(text=self.signature).hex()


PUBLICATION_EVENTS: dict[str, EventSpec] = {
    "AssetPublished": EventSpec(
        name="AssetPublished",
        inputs=(
            ("author", "address", True),
            ("asset", "address", True),
            ("assetCid", "string", False),
        ),
        content_arg="assetCid",
        author_arg="author",
        publication_arg="asset",
    ),
}


@dataclass(frozen=True)
class RawLog:
    """An undecoded EVM log entry as delivered by a provider."""

    topics: tuple[str, ...]
    data: str
    address: str | None = None
    transaction_hash: str | None = None


@dataclass(frozen=True)
class AlchemyEnvelope:
    """Alchemy Notify delivery (custom GraphQL or address-activity webhook)."""

    logs: tuple[RawLog, ...]
    webhook_id: str | None = None
    channel: Literal[WebhookChannel.ALCHEMY] = field(default=WebhookChannel.ALCHEMY, init=False)


@dataclass(frozen=True)
class QuickNodeEnvelope:
    """QuickNode Streams delivery; its layout depends on the stream filter."""

    logs: tuple[RawLog, ...]
    channel: Literal[WebhookChannel.QUICKNODE] = field(
        default=WebhookChannel.QUICKNODE, init=False
    )


WebhookEnvelope = AlchemyEnvelope | QuickNodeEnvelope


@dataclass(frozen=True)
class PublicationEvent:
    """Canonical description of an on-chain publication."""

    content_address: str
    author_address: str
    publication_id: str
    source_channel: WebhookChannel
    transaction_hash: str | None = None


def _raw_log(entry: dict[str, Any]) -> RawLog | None:
    topics = entry.get("topics")
    data = entry.get("data")
    if not isinstance(topics, list) or not isinstance(data, str):
        return None
    account = entry.get("account")
    address = account.get("address") if isinstance(account, dict) else entry.get("address")
    transaction = entry.get("transaction")
    tx_hash = (
        transaction.get("hash") if isinstance(transaction, dict) else entry.get("transactionHash")
    )
    return RawLog(
        topics=tuple(str(topic) for topic in topics),
        data=data,
        address=address,
        transaction_hash=tx_hash,
    )


def _walk_logs(node: Any) -> Iterator[RawLog]:
    if isinstance(node, dict):
        log = _raw_log(node)
        if log is not None:
            yield log
            return
        for value in node.values():
            yield from _walk_logs(value)
    elif isinstance(node, list):
        for item in node:
            yield from _walk_logs(item)


def parse_alchemy_envelope(body: Any) -> AlchemyEnvelope:
    """Normalize an Alchemy Notify payload.

    Raises:
        ValueError: If the payload is not a webhook object.
    """
    if not isinstance(body, dict) or not isinstance(body.get("event"), dict):
        raise ValueError("Alchemy payload has no event object")
    event = body["event"]

    logs: list[RawLog] = []
    data = event.get("data")
    block = data.get("block") if isinstance(data, dict) else None
    if isinstance(block, dict):
        for entry in block.get("logs") or []:
            if isinstance(entry, dict) and (log := _raw_log(entry)) is not None:
                logs.append(log)
    for activity in event.get("activity") or []:
        if isinstance(activity, dict) and isinstance(activity.get("log"), dict):
            if (log := _raw_log(activity["log"])) is not None:
                logs.append(log)

    return AlchemyEnvelope(logs=tuple(logs), webhook_id=body.get("webhookId"))


def parse_quicknode_envelope(body: Any) -> QuickNodeEnvelope:
    """Normalize a QuickNode Streams payload by collecting every log it holds.

    Raises:
        ValueError: If the payload is neither an object nor an array.
    """
    if not isinstance(body, (dict, list)):
        raise ValueError("QuickNode payload must be an object or an array")
    return QuickNodeEnvelope(logs=tuple(_walk_logs(body)))


def parse_envelope(channel: WebhookChannel, body: Any) -> WebhookEnvelope:
    """Dispatch to the provider-specific parser for ``channel``."""
    if channel is WebhookChannel.ALCHEMY:
        return parse_alchemy_envelope(body)
    return parse_quicknode_envelope(body)


class EventDecoder:
    """Find and decode the configured publication event inside an envelope."""

    def __init__(self, event_name: str = "AssetPublished") -> None:
        try:
            self._spec = PUBLICATION_EVENTS[event_name]
        except KeyError as err:
            raise ValueError(f"Unknown publication event: {event_name}") from err
        self._topic = self._spec.topic.lower()

    @property
    def event(self) -> EventSpec:
        return self._spec

    def decode(self, envelope: WebhookEnvelope) -> PublicationEvent | None:
        """Return the first matching event, or None if the envelope has none."""
        return next(self._iter_events(envelope), None)

    def decode_all(self, envelope: WebhookEnvelope) -> list[PublicationEvent]:
        """Return every matching event in delivery order."""
        return list(self._iter_events(envelope))

    def _iter_events(self, envelope: WebhookEnvelope) -> Iterator[PublicationEvent]:
        for log in envelope.logs:
            if not log.topics or log.topics[0].lower() != self._topic:
                continue
            try:
                args = self._decode_args(log)
            except (DecodingError, ValueError, TypeError) as exc:
                logger.warning(
                    "Skipping malformed %s log in tx %s: %s",
                    self._spec.name,
                    log.transaction_hash,
                    exc,
                )
                continue
            yield PublicationEvent(
                content_address=str(args[self._spec.content_arg]),
                author_address=normalize_address(str(args[self._spec.author_arg])),
                publication_id=normalize_address(str(args[self._spec.publication_arg])),
                source_channel=envelope.channel,
                transaction_hash=log.transaction_hash,
            )

    def _decode_args(self, log: RawLog) -> dict[str, Any]:
        indexed = [(name, abi_type) for name, abi_type, is_indexed in self._spec.inputs if is_indexed]
        plain = [(name, abi_type) for name, abi_type, is_indexed in self._spec.inputs if not is_indexed]
        if len(log.topics) != len(indexed) + 1:
            raise ValueError(f"expected {len(indexed) + 1} topics, got {len(log.topics)}")

        args: dict[str, Any] = {}
        for (name, abi_type), topic in zip(indexed, log.topics[1:]):
            (args[name],) = abi_decode([abi_type], _hex_bytes(topic))
        values = abi_decode([abi_type for _, abi_type in plain], _hex_bytes(log.data))
        for (name, _), value in zip(plain, values):
            args[name] = value
        return args


def _hex_bytes(value: str) -> bytes:
    return bytes.fromhex(value.removeprefix("0x"))
