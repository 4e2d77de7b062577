# src/publish_stage/services/__init__.py
"""Business logic services for the Publish Stage application."""

from .authenticator import AuthProof, SignatureAuthenticator, TypedAuthPayload
from .event_decoder import EventDecoder, PublicationEvent
from .lifecycle import FileLifecycleManager, TransitionOutcome, TransitionResult
from .reconciler import ReconcileResult, WebhookReconciler
from .session_tokens import SessionToken, SessionTokenService
from .webhook_signatures import WebhookChannel, WebhookSignatureValidator

__all__ = [
    "AuthProof",
    "EventDecoder",
    "FileLifecycleManager",
    "PublicationEvent",
    "ReconcileResult",
    "SessionToken",
    "SessionTokenService",
    "SignatureAuthenticator",
    "TransitionOutcome",
    "TransitionResult",
    "TypedAuthPayload",
    "WebhookChannel",
    "WebhookReconciler",
    "WebhookSignatureValidator",
]
