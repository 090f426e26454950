"""
Jormungandr chain address encoding.

Binary layout: one header byte (test flag | kind) followed by the key(s):
- single:   header || spending key (32)
- group:    header || spending key (32) || group key (32)
- account:  header || account key (32)
- multisig: header || multisig identifier (32)

Text form is bech32 with hrp "ca" (production) or "ta" (test).
"""

from __future__ import annotations

from dataclasses import dataclass

from bech32 import bech32_decode, bech32_encode, convertbits

from jorcore.codec import ByteReader, DecodeError
from jorcore.constants import (
    ADDRESS_HRP_PRODUCTION,
    ADDRESS_HRP_TEST,
    ADDRESS_KIND_ACCOUNT,
    ADDRESS_KIND_GROUP,
    ADDRESS_KIND_MULTISIG,
    ADDRESS_KIND_SINGLE,
    ADDRESS_TEST_FLAG,
    PUBLIC_KEY_SIZE,
)
from jorcore.models import Discrimination

_KEY_COUNT = {
    ADDRESS_KIND_SINGLE: 1,
    ADDRESS_KIND_GROUP: 2,
    ADDRESS_KIND_ACCOUNT: 1,
    ADDRESS_KIND_MULTISIG: 1,
}


@dataclass(frozen=True)
class Address:
    discrimination: Discrimination
    kind: int
    spending_key: bytes
    group_key: bytes | None = None

    def __post_init__(self) -> None:
        if self.kind not in _KEY_COUNT:
            raise ValueError(f"Unknown address kind: {self.kind:#x}")
        if len(self.spending_key) != PUBLIC_KEY_SIZE:
            raise ValueError(f"Invalid key length: {len(self.spending_key)}")
        if (self.kind == ADDRESS_KIND_GROUP) != (self.group_key is not None):
            raise ValueError("Group key is required for group addresses only")
        if self.group_key is not None and len(self.group_key) != PUBLIC_KEY_SIZE:
            raise ValueError(f"Invalid group key length: {len(self.group_key)}")

    @classmethod
    def account(cls, public_key: bytes, discrimination: Discrimination) -> Address:
        return cls(discrimination, ADDRESS_KIND_ACCOUNT, bytes(public_key))

    @classmethod
    def single(cls, public_key: bytes, discrimination: Discrimination) -> Address:
        return cls(discrimination, ADDRESS_KIND_SINGLE, bytes(public_key))

    @classmethod
    def group(
        cls, public_key: bytes, group_key: bytes, discrimination: Discrimination
    ) -> Address:
        return cls(discrimination, ADDRESS_KIND_GROUP, bytes(public_key), bytes(group_key))

    @property
    def is_account(self) -> bool:
        return self.kind == ADDRESS_KIND_ACCOUNT

    @property
    def is_utxo(self) -> bool:
        return self.kind in (ADDRESS_KIND_SINGLE, ADDRESS_KIND_GROUP)

    def to_bytes(self) -> bytes:
        header = self.kind
        if self.discrimination == Discrimination.TEST:
            header |= ADDRESS_TEST_FLAG
        result = bytes([header]) + self.spending_key
        if self.group_key is not None:
            result += self.group_key
        return result

    @classmethod
    def read(cls, reader: ByteReader) -> Address:
        """Read one address; its length is implied by the kind in the header."""
        header = reader.read_u8()
        kind = header & 0x7F
        if kind not in _KEY_COUNT:
            raise DecodeError(f"Unknown address kind: {kind:#x}")
        discrimination = (
            Discrimination.TEST if header & ADDRESS_TEST_FLAG else Discrimination.PRODUCTION
        )
        spending_key = reader.read_bytes(PUBLIC_KEY_SIZE)
        group_key = reader.read_bytes(PUBLIC_KEY_SIZE) if _KEY_COUNT[kind] == 2 else None
        return cls(discrimination, kind, spending_key, group_key)

    @classmethod
    def from_bytes(cls, data: bytes) -> Address:
        reader = ByteReader(data)
        address = cls.read(reader)
        reader.expect_end()
        return address

    def to_bech32(self) -> str:
        hrp = (
            ADDRESS_HRP_TEST
            if self.discrimination == Discrimination.TEST
            else ADDRESS_HRP_PRODUCTION
        )
        return bech32_encode(hrp, convertbits(self.to_bytes(), 8, 5))

    @classmethod
    def from_bech32(cls, text: str) -> Address:
        """
        Decode a bech32 address.

        The bech32 library caps strings at 90 characters, which excludes
        group addresses; those are only handled in binary form.
        """
        hrp, data = bech32_decode(text)
        if hrp is None or data is None:
            raise ValueError(f"Invalid bech32 address: {text}")
        if hrp not in (ADDRESS_HRP_PRODUCTION, ADDRESS_HRP_TEST):
            raise ValueError(f"Unexpected address prefix: {hrp}")
        decoded = convertbits(data, 5, 8, False)
        if decoded is None:
            raise ValueError(f"Invalid bech32 padding: {text}")
        address = cls.from_bytes(bytes(decoded))
        expected = Discrimination.TEST if hrp == ADDRESS_HRP_TEST else Discrimination.PRODUCTION
        if address.discrimination != expected:
            raise ValueError("Address prefix does not match its discrimination")
        return address

    def __str__(self) -> str:
        return self.to_bech32()
