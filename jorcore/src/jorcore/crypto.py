"""
Hashing and ed25519 signature verification primitives.
"""

from __future__ import annotations

import hashlib

from nacl.exceptions import CryptoError as NaclCryptoError
from nacl.signing import VerifyKey

from jorcore.constants import PUBLIC_KEY_SIZE, SIGNATURE_SIZE


class CryptoError(Exception):
    pass


def blake2b256(data: bytes) -> bytes:
    """Blake2b with a 32 byte digest (block, fragment and sign data ids)."""
    return hashlib.blake2b(data, digest_size=32).digest()


def blake2b224(data: bytes) -> bytes:
    """Blake2b with a 28 byte digest (legacy address roots)."""
    return hashlib.blake2b(data, digest_size=28).digest()


def sha3_256(data: bytes) -> bytes:
    return hashlib.sha3_256(data).digest()


def verify_signature(public_key: bytes, message: bytes, signature: bytes) -> bool:
    """
    Verify an ed25519 signature.

    Works for signatures produced by plain and extended (bip32) ed25519 keys
    alike, since both only differ in how the secret scalar is obtained.
    """
    if len(public_key) != PUBLIC_KEY_SIZE or len(signature) != SIGNATURE_SIZE:
        return False
    try:
        VerifyKey(bytes(public_key)).verify(bytes(message), bytes(signature))
        return True
    except (NaclCryptoError, ValueError):
        return False
