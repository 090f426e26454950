"""
Legacy (Byron era) address codec.

A legacy address is CBOR: [tag24(cbor([root, attributes, type])), crc32]

- root: blake2b224(sha3_256(cbor([type, [0, xpub], attributes])))
- attributes: {1: cbor(encrypted derivation path), 2: cbor(protocol magic)}
- type: 0 for public key addresses (the only kind wallets derive)

The text form is base58 of the raw CBOR bytes.
"""

from __future__ import annotations

import zlib
from dataclasses import dataclass, field
from typing import Any

import base58
from cbor2 import CBORDecodeError, CBORTag, dumps, loads

from jorcore.codec import DecodeError
from jorcore.constants import LEGACY_ROOT_SIZE, XPUB_SIZE
from jorcore.crypto import blake2b224, sha3_256

ADDR_TYPE_PUBKEY = 0
ATTR_DERIVATION_PATH = 1
ATTR_PROTOCOL_MAGIC = 2
CBOR_IN_CBOR_TAG = 24


def _unwrap_tag24(item: Any) -> bytes:
    if isinstance(item, CBORTag) and item.tag == CBOR_IN_CBOR_TAG:
        item = item.value
    if not isinstance(item, bytes):
        raise DecodeError("Legacy address payload is not tagged bytes")
    return item


def _loads(data: bytes) -> Any:
    try:
        return loads(data)
    except (CBORDecodeError, TypeError) as e:
        raise DecodeError(f"Invalid legacy address CBOR: {e}") from e


def compute_root(xpub: bytes, attributes: dict[int, bytes]) -> bytes:
    if len(xpub) != XPUB_SIZE:
        raise ValueError(f"Invalid xpub length: {len(xpub)}")
    spending_data = [0, bytes(xpub)]
    return blake2b224(sha3_256(dumps([ADDR_TYPE_PUBKEY, spending_data, attributes])))


@dataclass(frozen=True)
class LegacyAddress:
    root: bytes
    attributes: dict[int, bytes] = field(default_factory=dict, hash=False)
    addr_type: int = ADDR_TYPE_PUBKEY
    raw: bytes = b""

    @classmethod
    def from_bytes(cls, raw: bytes) -> LegacyAddress:
        outer = _loads(raw)
        if not isinstance(outer, list) or len(outer) != 2:
            raise DecodeError("Legacy address must be a 2 element array")
        inner_bytes = _unwrap_tag24(outer[0])
        crc = outer[1]
        if not isinstance(crc, int) or zlib.crc32(inner_bytes) != crc:
            raise DecodeError("Legacy address checksum mismatch")
        inner = _loads(inner_bytes)

        if not isinstance(inner, list) or len(inner) != 3:
            raise DecodeError("Legacy address content must be a 3 element array")
        root, attributes, addr_type = inner
        if not isinstance(root, bytes) or len(root) != LEGACY_ROOT_SIZE:
            raise DecodeError("Invalid legacy address root")
        if not isinstance(attributes, dict) or not all(
            isinstance(k, int) and isinstance(v, bytes) for k, v in attributes.items()
        ):
            raise DecodeError("Invalid legacy address attributes")
        if not isinstance(addr_type, int):
            raise DecodeError("Invalid legacy address type")
        return cls(root=root, attributes=attributes, addr_type=addr_type, raw=bytes(raw))

    @classmethod
    def build(
        cls,
        xpub: bytes,
        derivation_payload: bytes | None = None,
        protocol_magic: int | None = None,
    ) -> LegacyAddress:
        """Build the address of a public key with optional attributes."""
        attributes: dict[int, bytes] = {}
        if derivation_payload is not None:
            attributes[ATTR_DERIVATION_PATH] = dumps(derivation_payload)
        if protocol_magic is not None:
            attributes[ATTR_PROTOCOL_MAGIC] = dumps(protocol_magic)
        root = compute_root(xpub, attributes)
        inner = dumps([root, attributes, ADDR_TYPE_PUBKEY])
        raw = dumps([CBORTag(CBOR_IN_CBOR_TAG, inner), zlib.crc32(inner)])
        return cls(root=root, attributes=attributes, addr_type=ADDR_TYPE_PUBKEY, raw=raw)

    @property
    def derivation_payload(self) -> bytes | None:
        """Encrypted derivation path of random-index (Daedalus) addresses."""
        value = self.attributes.get(ATTR_DERIVATION_PATH)
        if value is None:
            return None
        try:
            payload = loads(value)
        except CBORDecodeError:
            return None
        return payload if isinstance(payload, bytes) else None

    @property
    def protocol_magic(self) -> int | None:
        value = self.attributes.get(ATTR_PROTOCOL_MAGIC)
        if value is None:
            return None
        try:
            magic = loads(value)
        except CBORDecodeError:
            return None
        return magic if isinstance(magic, int) else None

    @property
    def attributes_key(self) -> bytes:
        """Canonical bytes of the attributes, for grouping addresses."""
        return dumps(dict(sorted(self.attributes.items())))

    def is_owned_by(self, xpub: bytes) -> bool:
        return self.addr_type == ADDR_TYPE_PUBKEY and compute_root(
            xpub, self.attributes
        ) == self.root

    def to_base58(self) -> str:
        return base58.b58encode(self.raw).decode("ascii")

    def __str__(self) -> str:
        return self.to_base58()
