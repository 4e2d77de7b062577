# tests/services/test_authenticator.py
"""Tests for wallet-signature proof verification."""

import pytest

from publish_stage.services.authenticator import (
    AuthProof,
    SignatureAuthenticator,
    TypedAuthPayload,
    parse_issued_at,
)
from publish_stage.services.errors import AuthenticationFailure
from tests.conftest import NOW, login_message, sign_text


def _proof(body: dict) -> AuthProof:
    typed = body.get("typedData")
    return AuthProof(
        address=body["address"],
        signature=body["signature"],
        message=body.get("salt"),
        typed_data=TypedAuthPayload(**typed) if typed else None,
    )


@pytest.fixture()
def authenticator(services) -> SignatureAuthenticator:
    return services.authenticator


class TestParseIssuedAt:
    def test_bare_timestamp(self):
        assert parse_issued_at("1760000000") == 1_760_000_000

    def test_iso_line_in_free_text(self):
        message = "Welcome!\nNonce: abc\nIssued At: 2025-10-09T08:53:20Z"
        assert parse_issued_at(message) == 1_760_000_000

    def test_naive_iso_is_utc(self):
        assert parse_issued_at("Issued At: 2025-10-09T08:53:20") == 1_760_000_000

    def test_number_followed_by_text_is_not_a_bare_timestamp(self):
        assert parse_issued_at("3 drafts pending\nIssued At: 2025-10-09T08:53:20Z") == 1_760_000_000
        assert parse_issued_at("1760000000 and more") is None

    @pytest.mark.parametrize("message", ["hello", "Issued At: yesterday", ""])
    def test_unparsable(self, message):
        assert parse_issued_at(message) is None


class TestPlainSignature:
    def test_fresh_signature_is_accepted(self, authenticator, owner, signed_body):
        assert authenticator.authenticate(_proof(signed_body(owner))) is True

    def test_bare_timestamp_salt_is_accepted(self, authenticator, owner):
        salt = str(NOW - 5)
        proof = AuthProof(address=owner.address, signature=sign_text(owner, salt), message=salt)
        assert authenticator.authenticate(proof) is True
        assert proof.nonce == salt

    def test_free_text_starting_with_a_digit_uses_issued_at(self, authenticator, owner):
        message = "3 drafts pending\n" + login_message(NOW)
        proof = AuthProof(address=owner.address, signature=sign_text(owner, message), message=message)
        assert authenticator.authenticate(proof) is True

    def test_address_comparison_ignores_case(self, authenticator, owner, signed_body):
        body = signed_body(owner)
        body["address"] = owner.address.lower()
        assert authenticator.authenticate(_proof(body)) is True
        assert authenticator.require(_proof(body)) == owner.address.lower()

    def test_signature_ten_seconds_old_is_inside_window(self, authenticator, owner, signed_body):
        assert authenticator.authenticate(_proof(signed_body(owner, issued_at=NOW - 10)))

    def test_stale_signature_is_rejected(self, authenticator, owner, signed_body):
        assert not authenticator.authenticate(_proof(signed_body(owner, issued_at=NOW - 61)))

    def test_future_signature_is_rejected(self, authenticator, owner, signed_body):
        assert not authenticator.authenticate(_proof(signed_body(owner, issued_at=NOW + 61)))

    def test_window_boundary_is_inclusive(self, authenticator, owner, signed_body):
        assert authenticator.authenticate(_proof(signed_body(owner, issued_at=NOW - 60)))

    def test_wrong_signer_is_rejected(self, authenticator, owner, stranger, signed_body):
        body = signed_body(stranger)
        body["address"] = owner.address
        assert not authenticator.authenticate(_proof(body))

    def test_tampered_message_is_rejected(self, authenticator, owner, signed_body):
        body = signed_body(owner)
        body["salt"] = login_message(NOW, nonce="different")
        assert not authenticator.authenticate(_proof(body))

    @pytest.mark.parametrize("signature", ["", "0x", "0x1234", "not-hex"])
    def test_malformed_signature_is_rejected(self, authenticator, owner, signature):
        message = login_message(NOW)
        proof = AuthProof(address=owner.address, signature=signature, message=message)
        assert authenticator.authenticate(proof) is False

    def test_missing_message_is_rejected(self, authenticator, owner):
        proof = AuthProof(address=owner.address, signature="0x" + "00" * 65)
        assert authenticator.authenticate(proof) is False

    def test_unparsable_timestamp_is_rejected(self, authenticator, owner):
        message = "no timestamp here"
        proof = AuthProof(
            address=owner.address,
            signature=sign_text(owner, message),
            message=message,
        )
        assert authenticator.authenticate(proof) is False

    def test_require_raises_on_failure(self, authenticator, owner, signed_body):
        with pytest.raises(AuthenticationFailure) as excinfo:
            authenticator.require(_proof(signed_body(owner, issued_at=NOW - 3600)))
        assert excinfo.value.code == "authentication_failed"

    def test_verification_is_repeatable(self, authenticator, owner, signed_body):
        proof = _proof(signed_body(owner))
        assert authenticator.authenticate(proof)
        assert authenticator.authenticate(proof)


class TestTypedSignature:
    def test_fresh_typed_proof_is_accepted(self, authenticator, owner, typed_body):
        proof = _proof(typed_body(owner))
        assert authenticator.authenticate(proof) is True
        assert proof.nonce == "typed-nonce-0001"

    def test_typed_proof_wins_over_message(self, authenticator, owner, typed_body):
        body = typed_body(owner, salt="garbage")
        assert authenticator.authenticate(_proof(body)) is True

    def test_stale_typed_proof_is_rejected(self, authenticator, owner, typed_body):
        assert not authenticator.authenticate(_proof(typed_body(owner, timestamp=NOW - 61)))

    def test_future_typed_proof_is_rejected_without_skew(self, authenticator, owner, typed_body):
        assert not authenticator.authenticate(_proof(typed_body(owner, timestamp=NOW + 5)))

    def test_future_typed_proof_within_configured_skew(self, settings, clock, owner, typed_body):
        settings.typed_data_clock_skew_seconds = 10
        lenient = SignatureAuthenticator(settings, clock=clock)
        assert lenient.authenticate(_proof(typed_body(owner, timestamp=NOW + 5)))

    def test_nonce_is_covered_by_signature(self, authenticator, owner, typed_body):
        body = typed_body(owner)
        body["typedData"]["nonce"] = "another-nonce"
        assert not authenticator.authenticate(_proof(body))

    def test_other_wallet_is_rejected(self, authenticator, owner, stranger, typed_body):
        body = typed_body(stranger)
        body["address"] = owner.address
        assert not authenticator.authenticate(_proof(body))

    def test_domain_reflects_settings(self, authenticator, settings):
        assert authenticator.domain == {
            "name": settings.typed_data_domain_name,
            "version": settings.typed_data_domain_version,
            "chainId": settings.chain_id,
        }
