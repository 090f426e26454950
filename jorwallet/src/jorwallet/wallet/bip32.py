"""
Ed25519-BIP32 hierarchical deterministic keys.

Extended secret key: kL (32, clamped scalar) || kR (32, nonce prefix),
plus a 32 byte chain code. Public key A = kL * B.

Two derivation schemes exist: V2 (Icarus and account keys) and the legacy
V1 used by random-index (Daedalus) wallets. V1 serialises the index big
endian, multiplies zL by 8 byte by byte without carries over all 32 bytes,
adds kL modulo the group order and adds kR byte by byte.
"""

from __future__ import annotations

import hashlib
import hmac
from enum import IntEnum

from nacl.bindings import (
    crypto_core_ed25519_add,
    crypto_core_ed25519_scalar_add,
    crypto_core_ed25519_scalar_mul,
    crypto_core_ed25519_scalar_reduce,
    crypto_scalarmult_ed25519_base_noclamp,
)

from jorcore.constants import CHAIN_CODE_SIZE, PUBLIC_KEY_SIZE, XPUB_SIZE
from jorcore.crypto import CryptoError

HARDENED_OFFSET = 0x80000000
EXTENDED_KEY_SIZE = 64
ED25519_ORDER = 2**252 + 27742317777372353535851937790883648493


class DerivationScheme(IntEnum):
    V1 = 1
    V2 = 2


def _add_28_mul8(x: bytes, y: bytes) -> bytes:
    """x + 8 * y[:28], little endian, modulo 2^256"""
    total = int.from_bytes(x, "little") + 8 * int.from_bytes(y[:28], "little")
    return (total % 2**256).to_bytes(32, "little")


def _add_256bits(x: bytes, y: bytes) -> bytes:
    total = int.from_bytes(x, "little") + int.from_bytes(y, "little")
    return (total % 2**256).to_bytes(32, "little")


def _mul8_v1(z: bytes) -> bytes:
    # carries between bytes are dropped
    return bytes((b << 3) & 0xFF for b in z)


def _add_mod_order(x: bytes, y: bytes) -> bytes:
    total = int.from_bytes(x, "little") + int.from_bytes(y, "little")
    return (total % ED25519_ORDER).to_bytes(32, "little")


def _add_bytewise(x: bytes, y: bytes) -> bytes:
    return bytes((a + b) & 0xFF for a, b in zip(x, y))


def _serialize_index(index: int, scheme: DerivationScheme) -> bytes:
    return index.to_bytes(4, "big" if scheme == DerivationScheme.V1 else "little")


def _child_scalars(
    kl: bytes, kr: bytes, z: bytes, scheme: DerivationScheme
) -> tuple[bytes, bytes]:
    if scheme == DerivationScheme.V1:
        return _add_mod_order(kl, _mul8_v1(z[:32])), _add_bytewise(kr, z[32:])
    return _add_28_mul8(kl, z[:32]), _add_256bits(kr, z[32:])


def _point_of(scalar: bytes) -> bytes:
    return crypto_scalarmult_ed25519_base_noclamp(bytes(scalar))


def parse_path(path: str) -> list[int]:
    """
    Parse path notation (e.g., "m/44'/1815'/0'/0/0") into child indices.
    ' or h indicates hardened derivation.
    """
    if not path.startswith("m"):
        raise ValueError("Path must start with 'm'")

    indices = []
    for part in path.split("/")[1:]:
        if not part:
            continue
        hardened = part.endswith("'") or part.endswith("h")
        index = int(part.rstrip("'h"))
        if not 0 <= index < HARDENED_OFFSET:
            raise ValueError(f"Path index out of range: {part}")
        indices.append(index + HARDENED_OFFSET if hardened else index)
    return indices


def format_path(indices: list[int] | tuple[int, ...]) -> str:
    parts = ["m"]
    for index in indices:
        if index >= HARDENED_OFFSET:
            parts.append(f"{index - HARDENED_OFFSET}'")
        else:
            parts.append(str(index))
    return "/".join(parts)


class XPub:
    """Extended public key: public point and chain code."""

    def __init__(self, public_key: bytes, chain_code: bytes):
        if len(public_key) != PUBLIC_KEY_SIZE or len(chain_code) != CHAIN_CODE_SIZE:
            raise ValueError("Invalid extended public key")
        self.public_key = bytes(public_key)
        self.chain_code = bytes(chain_code)

    @classmethod
    def from_bytes(cls, data: bytes) -> XPub:
        if len(data) != XPUB_SIZE:
            raise ValueError(f"Invalid xpub length: {len(data)}")
        return cls(data[:PUBLIC_KEY_SIZE], data[PUBLIC_KEY_SIZE:])

    def to_bytes(self) -> bytes:
        return self.public_key + self.chain_code

    def derive(self, index: int, scheme: DerivationScheme = DerivationScheme.V2) -> XPub:
        """Soft derivation from the public key alone."""
        if index >= HARDENED_OFFSET:
            raise CryptoError("Cannot derive a hardened child from a public key")
        index_bytes = _serialize_index(index, scheme)
        z = hmac.new(self.chain_code, b"\x02" + self.public_key + index_bytes, hashlib.sha512)
        c = hmac.new(self.chain_code, b"\x03" + self.public_key + index_bytes, hashlib.sha512)
        z_digest = z.digest()

        if scheme == DerivationScheme.V1:
            offset = _add_mod_order(bytes(32), _mul8_v1(z_digest[:32]))
        else:
            offset = _add_28_mul8(bytes(32), z_digest[:32])
        child_public = crypto_core_ed25519_add(self.public_key, _point_of(offset))
        return XPub(child_public, c.digest()[32:])

    def __eq__(self, other: object) -> bool:
        return isinstance(other, XPub) and self.to_bytes() == other.to_bytes()

    def __hash__(self) -> int:
        return hash(self.to_bytes())


class XPrv:
    """
    Extended private key for Ed25519-BIP32.

    Secret material is held in bytearrays and zeroed by wipe(); a wiped
    key refuses to sign or derive.
    """

    def __init__(self, extended_key: bytes, chain_code: bytes, depth: int = 0):
        if len(extended_key) != EXTENDED_KEY_SIZE:
            raise ValueError(f"Invalid extended key length: {len(extended_key)}")
        if len(chain_code) != CHAIN_CODE_SIZE:
            raise ValueError(f"Invalid chain code length: {len(chain_code)}")
        if extended_key[31] & 0x80:
            raise CryptoError("Extended key scalar has its highest bit set")
        self._key = bytearray(extended_key)
        self._chain_code = bytearray(chain_code)
        self._public_key = _point_of(self._key[:32])
        self.depth = depth
        self._wiped = False

    @property
    def public_key(self) -> bytes:
        return self._public_key

    @property
    def chain_code(self) -> bytes:
        return bytes(self._chain_code)

    @property
    def xpub(self) -> XPub:
        return XPub(self._public_key, bytes(self._chain_code))

    @property
    def is_wiped(self) -> bool:
        return self._wiped

    def _check(self) -> None:
        if self._wiped:
            raise CryptoError("Key material has been wiped")

    def derive(self, path: str, scheme: DerivationScheme = DerivationScheme.V2) -> XPrv:
        """
        Derive child key from path notation (e.g., "m/1852'/1815'/0'/2/0")
        ' indicates hardened derivation
        """
        key = self
        for index in parse_path(path):
            child = key.derive_child(index, scheme)
            if key is not self:
                key.wipe()
            key = child
        return key

    def derive_child(self, index: int, scheme: DerivationScheme = DerivationScheme.V2) -> XPrv:
        """Derive a child key at the given index"""
        self._check()
        index_bytes = _serialize_index(index, scheme)
        kl = bytes(self._key[:32])
        kr = bytes(self._key[32:])
        chain_code = bytes(self._chain_code)

        if index >= HARDENED_OFFSET:
            z = hmac.new(chain_code, b"\x00" + kl + kr + index_bytes, hashlib.sha512).digest()
            c = hmac.new(chain_code, b"\x01" + kl + kr + index_bytes, hashlib.sha512).digest()
        else:
            z = hmac.new(
                chain_code, b"\x02" + self._public_key + index_bytes, hashlib.sha512
            ).digest()
            c = hmac.new(
                chain_code, b"\x03" + self._public_key + index_bytes, hashlib.sha512
            ).digest()

        child_kl, child_kr = _child_scalars(kl, kr, z, scheme)
        return XPrv(child_kl + child_kr, c[32:], depth=self.depth + 1)

    def sign(self, message: bytes) -> bytes:
        """Ed25519 signature using the extended secret (kR as nonce prefix)."""
        self._check()
        kl = bytes(self._key[:32])
        kr = bytes(self._key[32:])

        r = crypto_core_ed25519_scalar_reduce(hashlib.sha512(kr + message).digest())
        big_r = _point_of(r)
        h = crypto_core_ed25519_scalar_reduce(
            hashlib.sha512(big_r + self._public_key + message).digest()
        )
        a = crypto_core_ed25519_scalar_reduce(kl + bytes(32))
        s = crypto_core_ed25519_scalar_add(r, crypto_core_ed25519_scalar_mul(h, a))
        return big_r + s

    def wipe(self) -> None:
        for i in range(len(self._key)):
            self._key[i] = 0
        for i in range(len(self._chain_code)):
            self._chain_code[i] = 0
        self._wiped = True

    def __repr__(self) -> str:
        return f"XPrv(public_key={self._public_key.hex()}, depth={self.depth})"
