"""
Legacy address generation utilities.

Sequential (Icarus) addresses commit to the child public key only.
Random-index (Daedalus) addresses also carry the derivation path, encrypted
with a key derived from the root public key, so only the owner can tell
which key an address belongs to.
"""

from __future__ import annotations

import hashlib

from cbor2 import CBORDecodeError, dumps, loads
from nacl.bindings import (
    crypto_aead_chacha20poly1305_ietf_decrypt,
    crypto_aead_chacha20poly1305_ietf_encrypt,
)
from nacl.exceptions import CryptoError as NaclCryptoError

from jorcore.legacy import LegacyAddress
from jorwallet.wallet.bip32 import XPub

HD_PAYLOAD_SALT = b"address-hashing"
HD_PAYLOAD_ROUNDS = 500
HD_PAYLOAD_NONCE = b"serokellfore"
HD_PAYLOAD_TAG_SIZE = 16


def hd_payload_key(root_xpub: XPub) -> bytes:
    """Symmetric key protecting derivation paths of Daedalus addresses."""
    return hashlib.pbkdf2_hmac(
        "sha512", root_xpub.to_bytes(), HD_PAYLOAD_SALT, HD_PAYLOAD_ROUNDS, dklen=32
    )


def encode_derivation_path(path: tuple[int, ...]) -> bytes:
    """Indefinite length CBOR array of the path indices, as legacy wallets write it."""
    return b"\x9f" + b"".join(dumps(index) for index in path) + b"\xff"


def encrypt_derivation_path(payload_key: bytes, path: tuple[int, ...]) -> bytes:
    return crypto_aead_chacha20poly1305_ietf_encrypt(
        encode_derivation_path(path), None, HD_PAYLOAD_NONCE, payload_key
    )


def decrypt_derivation_path(payload_key: bytes, payload: bytes) -> tuple[int, ...] | None:
    """Return the derivation path, or None when the payload is not ours."""
    if len(payload) < HD_PAYLOAD_TAG_SIZE:
        return None
    try:
        plaintext = crypto_aead_chacha20poly1305_ietf_decrypt(
            payload, None, HD_PAYLOAD_NONCE, payload_key
        )
    except NaclCryptoError:
        return None
    try:
        path = loads(plaintext)
    except CBORDecodeError:
        return None
    if not isinstance(path, list) or not all(
        isinstance(i, int) and 0 <= i < 2**32 for i in path
    ):
        return None
    return tuple(path)


def icarus_address(xpub: XPub, protocol_magic: int | None = None) -> LegacyAddress:
    return LegacyAddress.build(xpub.to_bytes(), protocol_magic=protocol_magic)


def daedalus_address(
    payload_key: bytes,
    path: tuple[int, ...],
    xpub: XPub,
    protocol_magic: int | None = None,
) -> LegacyAddress:
    return LegacyAddress.build(
        xpub.to_bytes(),
        derivation_payload=encrypt_derivation_path(payload_key, path),
        protocol_magic=protocol_magic,
    )
