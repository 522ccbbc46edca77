"""
EVM Wallet Authentication Utilities

This module handles the cryptographic side of wallet authentication for
Ethereum-style accounts (EIP-191 personal_sign).

Authentication Flow:
1. Backend generates a random nonce -> generate_nonce()
2. Frontend builds the challenge text and signs it with the wallet (personal_sign)
3. Frontend sends: message, signature
4. Backend verifies: verify_signature()
   - Recovers the signing address from the signature over the exact message text
   - Compares it with the address claimed in the message (case-insensitive)

The signature verification uses:
- secp256k1 public key recovery (eth_account)
- EIP-191 "Ethereum Signed Message" prefixing via encode_defunct
"""

import logging
import re
import secrets

from eth_account import Account
from eth_account.messages import encode_defunct

from walletgate.core.errors import InvalidInputError


logger = logging.getLogger(__name__)

NONCE_NUM_BYTES = 16  # 16 bytes = 32 hex characters

ADDRESS_PATTERN = re.compile(r"^0x[a-fA-F0-9]{40}$")
NONCE_PATTERN = re.compile(r"^[A-Za-z0-9]{8,128}$")


def generate_nonce(num_bytes: int = NONCE_NUM_BYTES) -> str:
    """
    Generate a cryptographically secure random nonce for wallet authentication.

    The nonce is a random hex string embedded in the challenge the user signs.
    secrets draws from the OS randomness source and raises if it is unavailable,
    so a predictable value is never returned.

    Args:
        num_bytes: Number of random bytes to generate (default: 16 = 32 hex chars)

    Returns:
        Hex-encoded random string (e.g., "a1b2c3d4...")
    """
    if num_bytes <= 0:
        num_bytes = NONCE_NUM_BYTES
    return secrets.token_hex(num_bytes)


def is_valid_address(address: str | None) -> bool:
    return bool(address) and ADDRESS_PATTERN.match(address) is not None


def normalize_address(address: str | None) -> str:
    """
    Validate an account identifier and return its lower-cased form.

    Raises:
        InvalidInputError: If the address is not a 0x-prefixed 20 byte hex string
    """
    address = (address or "").strip()
    if not is_valid_address(address):
        raise InvalidInputError("Invalid wallet address format")
    return address.lower()


def recover_address(message: str, signature: str) -> str:
    """Helper: Recover the lower-cased signer address of an EIP-191 signed text."""
    signable = encode_defunct(text=message)
    return Account.recover_message(signable, signature=signature).lower()


def verify_signature(message: str, signature: str, claimed_address: str) -> bool:
    """
    Verify that message was signed by the private key behind claimed_address.

    Never raises: malformed signatures, wrong lengths and unrecoverable values
    all yield False.

    Args:
        message: The exact challenge text that was signed
        signature: 65 byte signature, hex encoded (with or without 0x)
        claimed_address: The address the signer claims to be

    Returns:
        True only if the recovered address equals claimed_address
    """
    if not message or not signature or not is_valid_address(claimed_address):
        return False

    try:
        recovered = recover_address(message, signature.strip())
    except Exception as e:
        logger.debug("signature recovery failed: %s", e)
        return False

    return recovered == claimed_address.lower()
