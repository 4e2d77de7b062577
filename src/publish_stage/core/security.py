"""Signature utilities built on secp256k1 (EIP-191 / EIP-712) and HMAC primitives."""
from __future__ import annotations

import hashlib
import hmac
from typing import Any

from eth_account import Account
from eth_account.messages import encode_defunct, encode_typed_data


def normalize_address(address: str) -> str:
    """Return the canonical (lowercase, stripped) form of an address."""
    return address.strip().lower()


def recover_personal_signer(message: str, signature: str) -> str:
    """Recover the address that produced an EIP-191 ``personal_sign`` signature.

    Raises:
        ValueError: If the signature is malformed or cannot be recovered.
    """
    signable = encode_defunct(text=message)
    return Account.recover_message(signable, signature=signature)


def recover_typed_signer(
    domain: dict[str, Any],
    types: dict[str, list[dict[str, str]]],
    message: dict[str, Any],
    signature: str,
) -> str:
    """Recover the address that produced an EIP-712 typed-data signature.

    Raises:
        ValueError: If the typed payload or the signature is malformed.
    """
    signable = encode_typed_data(
        domain_data=domain,
        message_types=types,
        message_data=message,
    )
    return Account.recover_message(signable, signature=signature)


def hmac_sha256_hex(key: str, *parts: bytes) -> str:
    """Return ``hex(HMAC-SHA256(key, part_1 || ... || part_n))``."""
    mac = hmac.new(key.encode("utf-8"), digestmod=hashlib.sha256)
    for part in parts:
        mac.update(part)
    return mac.hexdigest()
