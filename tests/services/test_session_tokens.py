# tests/services/test_session_tokens.py
"""Tests for bearer session token issuance and verification."""

from jose import jwt

from publish_stage.core.settings import Settings
from publish_stage.services.session_tokens import SessionTokenService
from tests.conftest import NOW

ADDRESS = "0xAbCdEf0123456789aBcDeF0123456789AbCdEf01"


def test_issue_embeds_lowercase_address_and_expiry(services):
    session = services.tokens.issue(ADDRESS)
    claims = jwt.get_unverified_claims(session.token)

    assert session.address == ADDRESS.lower()
    assert claims["address"] == ADDRESS.lower()
    assert claims["iat"] == NOW
    assert claims["exp"] == NOW + 7200
    assert session.expires_at - session.issued_at == services.tokens.ttl_seconds


def test_verify_round_trip(services):
    token = services.tokens.issue(ADDRESS).token
    assert services.tokens.verify(token) == ADDRESS.lower()


def test_token_valid_until_expiry(services, clock):
    token = services.tokens.issue(ADDRESS).token
    clock.advance(7199)
    assert services.tokens.verify(token) == ADDRESS.lower()
    clock.advance(1)
    assert services.tokens.verify(token) is None


def test_short_ttl_expires_after_an_hour(settings, clock):
    settings.session_token_ttl_seconds = 3600
    tokens = SessionTokenService(settings, clock=clock)
    token = tokens.issue(ADDRESS).token

    clock.advance(3601)
    assert tokens.verify(token) is None


def test_wrong_secret_is_rejected(services, settings, clock):
    other = Settings(
        _env_file=None,  # type: ignore[call-arg]
        secret_key="a-different-secret",
        content_store_backend="sql",
        database_url="sqlite://",
    )
    forged = SessionTokenService(other, clock=clock).issue(ADDRESS).token
    assert services.tokens.verify(forged) is None


def test_other_algorithm_is_rejected(services, settings):
    token = jwt.encode(
        {"address": ADDRESS, "iat": NOW, "exp": NOW + 60},
        settings.secret_key,
        algorithm="HS512",
    )
    assert services.tokens.verify(token) is None


def test_malformed_claims_are_rejected(services, settings):
    missing_address = jwt.encode({"exp": NOW + 60}, settings.secret_key, algorithm="HS256")
    text_expiry = jwt.encode(
        {"address": ADDRESS, "exp": "tomorrow"},
        settings.secret_key,
        algorithm="HS256",
    )
    assert services.tokens.verify(missing_address) is None
    assert services.tokens.verify(text_expiry) is None


def test_garbage_token_is_rejected(services):
    assert services.tokens.verify("not.a.jwt") is None
    assert services.tokens.verify("") is None
