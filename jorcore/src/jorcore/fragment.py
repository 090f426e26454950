"""
Fragments and transactions of the ledger.

Fragment framing:   u16 size || u8 tag || payload      (size covers tag + payload)
Fragment id:        blake2b256(tag || payload)

Transaction payload (tag 2, and tag 11 with a vote cast certificate in front):

    [certificate] u8 nb_inputs u8 nb_outputs inputs outputs witnesses

The "sign data hash" is blake2b256 of everything before the witnesses.
Witnesses sign `witness_tag || block0_hash || sign_data_hash`, account
witnesses append the account counter (u32) to prevent replay.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from jorcore.address import Address
from jorcore.codec import ByteReader, DecodeError, u8, u16, u32, u64
from jorcore.constants import (
    FRAGMENT_TRANSACTION,
    FRAGMENT_VOTE_CAST,
    HASH_SIZE,
    INPUT_ACCOUNT_MARKER,
    MAX_FRAGMENT_SIZE,
    MAX_INPUTS,
    MAX_OUTPUTS,
    PUBLIC_KEY_SIZE,
    SIGNATURE_SIZE,
    WITNESS_ACCOUNT,
    WITNESS_MULTISIG,
    WITNESS_OLD_UTXO,
    WITNESS_UTXO,
    XPUB_SIZE,
)
from jorcore.crypto import blake2b256
from jorcore.vote import VoteCast


def fragment_id(tag: int, payload: bytes) -> bytes:
    return blake2b256(u8(tag) + payload)


@dataclass(frozen=True)
class Fragment:
    tag: int
    payload: bytes

    @property
    def id(self) -> bytes:
        return fragment_id(self.tag, self.payload)

    def to_bytes(self) -> bytes:
        size = len(self.payload) + 1
        if size > MAX_FRAGMENT_SIZE:
            raise ValueError(f"Fragment too large: {size} bytes")
        return u16(size) + u8(self.tag) + self.payload

    @classmethod
    def read(cls, reader: ByteReader) -> Fragment:
        size = reader.read_u16()
        if size == 0:
            raise DecodeError(f"Empty fragment at offset {reader.offset}")
        body = reader.read_bytes(size)
        return cls(tag=body[0], payload=body[1:])


@dataclass(frozen=True)
class Input:
    """
    Transaction input: either a UTXO pointer (fragment id + output index) or
    an account spending `value` from the account identified by its key.
    """

    index_or_account: int
    value: int
    pointer: bytes

    @classmethod
    def utxo(cls, fragment_id: bytes, output_index: int, value: int) -> Input:
        if not 0 <= output_index < INPUT_ACCOUNT_MARKER:
            raise ValueError(f"Invalid output index: {output_index}")
        return cls(output_index, value, bytes(fragment_id))

    @classmethod
    def account(cls, public_key: bytes, value: int) -> Input:
        return cls(INPUT_ACCOUNT_MARKER, value, bytes(public_key))

    @property
    def is_account(self) -> bool:
        return self.index_or_account == INPUT_ACCOUNT_MARKER

    def to_bytes(self) -> bytes:
        return u8(self.index_or_account) + u64(self.value) + self.pointer

    @classmethod
    def read(cls, reader: ByteReader) -> Input:
        index_or_account = reader.read_u8()
        value = reader.read_u64()
        pointer = reader.read_bytes(HASH_SIZE)
        return cls(index_or_account, value, pointer)


@dataclass(frozen=True)
class Output:
    address: Address
    value: int

    def to_bytes(self) -> bytes:
        return self.address.to_bytes() + u64(self.value)

    @classmethod
    def read(cls, reader: ByteReader) -> Output:
        address = Address.read(reader)
        value = reader.read_u64()
        return cls(address, value)


@dataclass(frozen=True)
class Witness:
    tag: int
    signature: bytes
    xpub: bytes | None = None

    @classmethod
    def old_utxo(cls, xpub: bytes, signature: bytes) -> Witness:
        return cls(WITNESS_OLD_UTXO, signature, bytes(xpub))

    @classmethod
    def utxo(cls, signature: bytes) -> Witness:
        return cls(WITNESS_UTXO, signature)

    @classmethod
    def account(cls, signature: bytes) -> Witness:
        return cls(WITNESS_ACCOUNT, signature)

    @property
    def public_key(self) -> bytes | None:
        return self.xpub[:PUBLIC_KEY_SIZE] if self.xpub is not None else None

    def to_bytes(self) -> bytes:
        if self.tag == WITNESS_OLD_UTXO:
            return u8(self.tag) + self.xpub + self.signature
        return u8(self.tag) + self.signature

    @classmethod
    def read(cls, reader: ByteReader) -> Witness:
        tag = reader.read_u8()
        if tag == WITNESS_OLD_UTXO:
            xpub = reader.read_bytes(XPUB_SIZE)
            return cls(tag, reader.read_bytes(SIGNATURE_SIZE), xpub)
        if tag in (WITNESS_UTXO, WITNESS_ACCOUNT):
            return cls(tag, reader.read_bytes(SIGNATURE_SIZE))
        if tag == WITNESS_MULTISIG:
            raise DecodeError("Multisig witnesses are not supported")
        raise DecodeError(f"Unknown witness tag: {tag}")


def witness_utxo_data(tag: int, block0_hash: bytes, sign_data_hash: bytes) -> bytes:
    """Message signed by utxo and old utxo witnesses."""
    return u8(tag) + block0_hash + sign_data_hash


def witness_account_data(block0_hash: bytes, sign_data_hash: bytes, counter: int) -> bytes:
    """Message signed by account witnesses, bound to the spending counter."""
    return u8(WITNESS_ACCOUNT) + block0_hash + sign_data_hash + u32(counter)


@dataclass(frozen=True)
class Transaction:
    inputs: tuple[Input, ...] = ()
    outputs: tuple[Output, ...] = ()
    witnesses: tuple[Witness, ...] = ()
    certificate: VoteCast | None = field(default=None)

    @property
    def fragment_tag(self) -> int:
        return FRAGMENT_VOTE_CAST if self.certificate is not None else FRAGMENT_TRANSACTION

    def body_bytes(self) -> bytes:
        if len(self.inputs) > MAX_INPUTS or len(self.outputs) > MAX_OUTPUTS:
            raise ValueError("Too many inputs or outputs")
        result = self.certificate.to_bytes() if self.certificate is not None else b""
        result += u8(len(self.inputs)) + u8(len(self.outputs))
        result += b"".join(inp.to_bytes() for inp in self.inputs)
        result += b"".join(out.to_bytes() for out in self.outputs)
        return result

    def sign_data_hash(self) -> bytes:
        return blake2b256(self.body_bytes())

    def to_bytes(self) -> bytes:
        if len(self.witnesses) != len(self.inputs):
            raise ValueError(
                f"Witness count {len(self.witnesses)} != input count {len(self.inputs)}"
            )
        return self.body_bytes() + b"".join(w.to_bytes() for w in self.witnesses)

    def to_fragment(self) -> Fragment:
        return Fragment(self.fragment_tag, self.to_bytes())

    @property
    def input_total(self) -> int:
        return sum(inp.value for inp in self.inputs)

    @property
    def output_total(self) -> int:
        return sum(out.value for out in self.outputs)

    @classmethod
    def read(cls, reader: ByteReader, with_vote_cast: bool = False) -> Transaction:
        certificate = VoteCast.read(reader) if with_vote_cast else None
        nb_inputs = reader.read_u8()
        nb_outputs = reader.read_u8()
        inputs = tuple(Input.read(reader) for _ in range(nb_inputs))
        outputs = tuple(Output.read(reader) for _ in range(nb_outputs))
        witnesses = tuple(Witness.read(reader) for _ in range(nb_inputs))
        reader.expect_end()
        return cls(inputs, outputs, witnesses, certificate)

    @classmethod
    def from_fragment(cls, fragment: Fragment) -> Transaction:
        if fragment.tag == FRAGMENT_TRANSACTION:
            return cls.read(ByteReader(fragment.payload))
        if fragment.tag == FRAGMENT_VOTE_CAST:
            return cls.read(ByteReader(fragment.payload), with_vote_cast=True)
        raise DecodeError(f"Fragment tag {fragment.tag} is not a transaction")

    @classmethod
    def from_fragment_bytes(cls, data: bytes) -> Transaction:
        reader = ByteReader(data)
        fragment = Fragment.read(reader)
        reader.expect_end()
        return cls.from_fragment(fragment)
