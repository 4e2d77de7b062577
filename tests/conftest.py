# tests/conftest.py
from __future__ import annotations

import json
import os
import uuid
from collections.abc import Callable, Iterator
from datetime import UTC, datetime
from typing import Any

import pytest
from eth_abi import encode as abi_encode
from eth_account import Account
from eth_account.messages import encode_defunct, encode_typed_data
from eth_account.signers.local import LocalAccount
from fastapi import FastAPI
from fastapi.testclient import TestClient

os.environ.setdefault("SECRET_KEY", "test-secret-key")

from publish_stage.core.security import hmac_sha256_hex
from publish_stage.core.settings import Settings
from publish_stage.main import create_app
from publish_stage.repositories.base import ContentStore
from publish_stage.services.authenticator import AUTHENTICATION_TYPES
from publish_stage.services.container import Services, build_services
from publish_stage.services.event_decoder import PUBLICATION_EVENTS

NOW = 1_760_000_000
ALCHEMY_KEY = "whsec_alchemy_test"
QUICKNODE_TOKEN = "qn_security_token_test"


class FrozenClock:
    """Deterministic replacement for ``time.time``."""

    def __init__(self, now: float = NOW) -> None:
        self.now = float(now)

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture()
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture()
def settings() -> Settings:
    """Settings wired to an in-memory SQL content store and known webhook secrets."""
    return Settings(
        _env_file=None,  # type: ignore[call-arg]
        secret_key="test-secret-key",
        content_store_backend="sql",
        database_url="sqlite://",
        alchemy_signing_key=ALCHEMY_KEY,
        quicknode_security_token=QUICKNODE_TOKEN,
    )


@pytest.fixture()
def services(settings: Settings, clock: FrozenClock) -> Iterator[Services]:
    graph = build_services(settings, clock=clock)
    try:
        yield graph
    finally:
        graph.close()


@pytest.fixture()
def store(services: Services) -> ContentStore:
    return services.store


@pytest.fixture()
def app(services: Services) -> FastAPI:
    return create_app(services=services)


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


@pytest.fixture()
def owner() -> LocalAccount:
    return Account.from_key("0x" + "11" * 32)


@pytest.fixture()
def stranger() -> LocalAccount:
    return Account.from_key("0x" + "22" * 32)


def sign_text(account: LocalAccount, message: str) -> str:
    signed = account.sign_message(encode_defunct(text=message))
    return "0x" + bytes(signed.signature).hex()


def login_message(issued_at: float, nonce: str | None = None) -> str:
    """Free-text message carrying a nonce and an ISO ``Issued At`` line."""
    nonce = nonce or uuid.uuid4().hex[:16]
    issued = datetime.fromtimestamp(issued_at, UTC).isoformat()
    return f"Sign in to DecentralizedX\nNonce: {nonce}\nIssued At: {issued}"


@pytest.fixture()
def signed_body(clock: FrozenClock) -> Callable[..., dict[str, Any]]:
    """Build the proof fields of a mutation body signed with ``personal_sign``.

    Each call gets a fresh nonce unless one is given, so consecutive calls map
    to distinct derived names.
    """

    def _build(
        account: LocalAccount,
        *,
        nonce: str | None = None,
        issued_at: float | None = None,
        **extra: Any,
    ) -> dict[str, Any]:
        message = login_message(clock.now if issued_at is None else issued_at, nonce)
        return {
            "address": account.address,
            "signature": sign_text(account, message),
            "salt": message,
            **extra,
        }

    return _build


@pytest.fixture()
def typed_body(services: Services, clock: FrozenClock) -> Callable[..., dict[str, Any]]:
    """Build the proof fields of a mutation body signed as EIP-712 typed data."""

    def _build(
        account: LocalAccount,
        *,
        nonce: str = "typed-nonce-0001",
        timestamp: int | None = None,
        **extra: Any,
    ) -> dict[str, Any]:
        ts = int(clock.now) if timestamp is None else timestamp
        signable = encode_typed_data(
            domain_data=services.authenticator.domain,
            message_types=AUTHENTICATION_TYPES,
            message_data={"wallet": account.address.lower(), "timestamp": ts, "nonce": nonce},
        )
        signed = account.sign_message(signable)
        return {
            "address": account.address,
            "signature": "0x" + bytes(signed.signature).hex(),
            "typedData": {"timestamp": ts, "nonce": nonce},
            **extra,
        }

    return _build


def publication_log(
    author: str,
    cid: str,
    *,
    asset: str = "0x" + "ab" * 20,
    tx_hash: str = "0x" + "cd" * 32,
) -> dict[str, Any]:
    """Raw ``AssetPublished`` log as a provider delivers it."""
    event = PUBLICATION_EVENTS["AssetPublished"]
    return {
        "topics": [
            event.topic,
            "0x" + abi_encode(["address"], [author]).hex(),
            "0x" + abi_encode(["address"], [asset]).hex(),
        ],
        "data": "0x" + abi_encode(["string"], [cid]).hex(),
        "transactionHash": tx_hash,
    }


def alchemy_delivery(*logs: dict[str, Any]) -> tuple[bytes, dict[str, str]]:
    """Alchemy custom-webhook body and its signature headers."""
    body = json.dumps(
        {
            "webhookId": "wh_test",
            "type": "GRAPHQL",
            "event": {"data": {"block": {"number": 1, "logs": list(logs)}}},
        }
    ).encode("utf-8")
    return body, {"X-Alchemy-Signature": hmac_sha256_hex(ALCHEMY_KEY, body)}


def quicknode_delivery(
    *logs: dict[str, Any],
    nonce: str = "qn-nonce",
    timestamp: str = str(NOW),
) -> tuple[bytes, dict[str, str]]:
    """QuickNode stream body and its signature headers."""
    body = json.dumps([{"blockNumber": "0x1", "logs": list(logs)}]).encode("utf-8")
    signature = hmac_sha256_hex(
        QUICKNODE_TOKEN,
        nonce.encode("utf-8"),
        timestamp.encode("utf-8"),
        body,
    )
    return body, {
        "X-QN-Nonce": nonce,
        "X-QN-Timestamp": timestamp,
        "X-QN-Signature": signature,
    }
