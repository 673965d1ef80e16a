"""
Ethereum Wallet Authentication Utilities

This module handles the Ethereum-specific cryptographic operations for wallet authentication.
It implements signature recovery for EIP-191 personal messages ("personal_sign").

Authentication Flow:
1. Backend assigns a random nonce to the wallet record -> generate_nonce()
2. Frontend signs the canonical message (address + nonce) with the wallet
3. Frontend sends: address, signature
4. Backend verifies: verify_signature()
   - Recovers the signer address from (message, signature)
   - Compares it with the claimed address after checksum normalization

Addresses are compared in their EIP-55 checksummed rendering, so
"0xabc..." and "0xABC..." for the same key are the same wallet.
"""

import logging
import uuid

from eth_account import Account
from eth_account.messages import encode_defunct
from eth_utils import is_hex_address, to_checksum_address

from app.core.errors import InvalidAddress, InvalidSignature

logger = logging.getLogger(__name__)

SIGNATURE_NUM_BYTES = 65  # r (32) + s (32) + v (1)


def generate_nonce() -> str:
    """
    Generate a single-use random nonce for a wallet record.

    A UUID4 carries 122 random bits in a 128-bit value and renders as a
    fixed-length string, which is what the challenge message embeds.
    """
    return str(uuid.uuid4())


def normalize_address(address: str) -> str:
    """
    Return the EIP-55 checksummed form of a wallet address.

    Raises:
        InvalidAddress: If the value is not a 20-byte hex address
    """
    if not isinstance(address, str):
        raise InvalidAddress(str(address))
    value = address.strip()
    if not is_hex_address(value):
        raise InvalidAddress(value)
    return to_checksum_address(value)


def _decode_signature(signature: str) -> bytes:
    """Helper: Decode a hex signature (with or without 0x) to its 65 raw bytes."""
    if not isinstance(signature, str):
        raise InvalidSignature("Signature must be a hex string")
    value = signature.strip()
    if value[:2].lower() == "0x":
        value = value[2:]
    try:
        raw = bytes.fromhex(value)
    except ValueError:
        raise InvalidSignature("Signature is not valid hex")
    if len(raw) != SIGNATURE_NUM_BYTES:
        raise InvalidSignature(
            f"Signature must be {SIGNATURE_NUM_BYTES} bytes, got {len(raw)}"
        )
    return raw


def recover_signer(message: str, signature: str) -> str:
    """
    Recover the checksummed address that signed ``message``.

    Args:
        message: The exact text the wallet signed
        signature: 65-byte hex signature (r || s || v), v in {0, 1, 27, 28}

    Returns:
        Checksummed signer address

    Raises:
        InvalidSignature: If the signature cannot be decoded or recovered
    """
    raw = _decode_signature(signature)
    try:
        recovered = Account.recover_message(encode_defunct(text=message), signature=raw)
    except Exception as exc:
        # eth_keys raises BadSignature / ValidationError for out-of-range r, s or v
        raise InvalidSignature("Signature could not be recovered") from exc
    return to_checksum_address(recovered)


def verify_signature(message: str, signature: str, claimed_address: str) -> str:
    """
    Verify that ``claimed_address`` signed ``message``.

    This is the check the login protocol runs against the canonical challenge.
    Both sides are normalized first, so the comparison ignores casing.

    Args:
        message: Canonical challenge text
        signature: Hex encoded personal_sign signature
        claimed_address: Address the caller claims to control

    Returns:
        The normalized address on success

    Raises:
        InvalidAddress: If ``claimed_address`` is not an address
        InvalidSignature: If the signature is malformed or from another signer

    Example:
        address = verify_signature(
            message=build_message(wallet.address, wallet.nonce),
            signature="0x5f1c...1b",
            claimed_address="0xab5801a7d398351b8be11c439e05c5b3259aec9b",
        )
    """
    expected = normalize_address(claimed_address)
    recovered = recover_signer(message, signature)
    if recovered != expected:
        logger.debug("signature recovered %s, expected %s", recovered, expected)
        raise InvalidSignature("Recovered signer does not match claimed address")
    return expected
