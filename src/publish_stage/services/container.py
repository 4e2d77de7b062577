"""Wiring of the service graph from a single settings instance."""
from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass

from publish_stage.core.settings import Settings
from publish_stage.db.session import build_engine, build_session_factory, create_tables
from publish_stage.repositories.base import ContentStore
from publish_stage.repositories.pinata_store import PinataContentStore
from publish_stage.repositories.sql_store import SqlContentStore
from publish_stage.services.asset_ledger import AssetLedger, Web3AssetLedger
from publish_stage.services.authenticator import SignatureAuthenticator
from publish_stage.services.event_decoder import EventDecoder
from publish_stage.services.lifecycle import FileLifecycleManager
from publish_stage.services.reconciler import WebhookReconciler
from publish_stage.services.session_tokens import SessionTokenService
from publish_stage.services.webhook_signatures import WebhookSignatureValidator


@dataclass
class Services:
    """Process-wide components shared by every request."""

    settings: Settings
    store: ContentStore
    authenticator: SignatureAuthenticator
    tokens: SessionTokenService
    ledger: AssetLedger
    lifecycle: FileLifecycleManager
    reconciler: WebhookReconciler

    def close(self) -> None:
        close = getattr(self.store, "close", None)
        if close is not None:
            close()


def build_content_store(settings: Settings) -> ContentStore:
    """Instantiate the configured content store backend."""
    if settings.content_store_backend == "sql":
        engine = build_engine(settings)
        create_tables(engine)
        return SqlContentStore(build_session_factory(engine))
    return PinataContentStore(settings)


def build_services(
    settings: Settings,
    *,
    store: ContentStore | None = None,
    ledger: AssetLedger | None = None,
    clock: Callable[[], float] = time.time,
) -> Services:
    """Construct the service graph; ``store``, ``ledger`` and ``clock`` are injectable for tests."""
    content_store = store if store is not None else build_content_store(settings)
    authenticator = SignatureAuthenticator(settings, clock=clock)
    asset_ledger = ledger if ledger is not None else Web3AssetLedger(settings)
    lifecycle = FileLifecycleManager(authenticator, content_store, asset_ledger)
    reconciler = WebhookReconciler(
        WebhookSignatureValidator(settings),
        EventDecoder(settings.publish_event_name),
        lifecycle,
    )
    return Services(
        settings=settings,
        store=content_store,
        authenticator=authenticator,
        tokens=SessionTokenService(settings, clock=clock),
        ledger=asset_ledger,
        lifecycle=lifecycle,
        reconciler=reconciler,
    )
