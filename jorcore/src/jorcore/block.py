"""
Block0 (genesis block) codec.

Header (84 bytes, big endian):
    u16 header_size | u16 version | u32 content_size | u32 epoch | u32 slot
    u32 chain_length | 32 content_hash | 32 parent_id

The block id is blake2b256(header). The content is a sequence of fragments
whose concatenation must hash to `content_hash`. The first fragment of
block0 is the initial fragment holding the configuration parameters.

Only the parts a wallet needs are interpreted: configuration (fees,
discrimination, dates), legacy utxo declarations and transactions. Other
fragments are framed and kept but their payload is not decoded.
"""

from __future__ import annotations

import struct
from collections.abc import Sequence
from dataclasses import dataclass

from pydantic import ValidationError

from jorcore.codec import ByteReader, DecodeError, u8, u16, u32, u64
from jorcore.constants import (
    CONFIG_BLOCK0_DATE,
    CONFIG_CONSENSUS_VERSION,
    CONFIG_DISCRIMINATION,
    CONFIG_LEN_MASK,
    CONFIG_LINEAR_FEE,
    CONFIG_PER_CERTIFICATE_FEES,
    CONFIG_PER_VOTE_CERTIFICATE_FEES,
    CONFIG_SLOT_DURATION,
    CONFIG_SLOTS_PER_EPOCH,
    CONFIG_TAG_SHIFT,
    DISCRIMINATION_PRODUCTION,
    DISCRIMINATION_TEST,
    FRAGMENT_INITIAL,
    FRAGMENT_OLD_UTXO_DECLARATION,
    HASH_SIZE,
    HEADER_SIZE_GENESIS,
    HEADER_VERSION_GENESIS,
)
from jorcore.crypto import blake2b256
from jorcore.fragment import Fragment
from jorcore.models import (
    Discrimination,
    LinearFee,
    PerCertificateFees,
    PerVoteCertificateFees,
    Settings,
)

# Expected payload sizes of the config params the wallet interprets
_CONFIG_SIZES = {
    CONFIG_BLOCK0_DATE: 8,
    CONFIG_DISCRIMINATION: 1,
    CONFIG_CONSENSUS_VERSION: 2,
    CONFIG_SLOTS_PER_EPOCH: 4,
    CONFIG_SLOT_DURATION: 1,
    CONFIG_LINEAR_FEE: 24,
    CONFIG_PER_CERTIFICATE_FEES: 24,
    CONFIG_PER_VOTE_CERTIFICATE_FEES: 16,
}


@dataclass(frozen=True)
class BlockHeader:
    content_size: int
    content_hash: bytes
    version: int = HEADER_VERSION_GENESIS
    epoch: int = 0
    slot: int = 0
    chain_length: int = 0
    parent_id: bytes = bytes(HASH_SIZE)

    def to_bytes(self) -> bytes:
        return (
            u16(HEADER_SIZE_GENESIS)
            + u16(self.version)
            + u32(self.content_size)
            + u32(self.epoch)
            + u32(self.slot)
            + u32(self.chain_length)
            + self.content_hash
            + self.parent_id
        )

    @property
    def id(self) -> bytes:
        return blake2b256(self.to_bytes())

    @classmethod
    def read(cls, reader: ByteReader) -> BlockHeader:
        header_size = reader.read_u16()
        if header_size != HEADER_SIZE_GENESIS:
            raise DecodeError(
                f"Invalid header size {header_size}, expected {HEADER_SIZE_GENESIS}"
            )
        version = reader.read_u16()
        if version != HEADER_VERSION_GENESIS:
            raise DecodeError(f"Not a genesis block header (version {version})")
        content_size = reader.read_u32()
        epoch = reader.read_u32()
        slot = reader.read_u32()
        chain_length = reader.read_u32()
        content_hash = reader.read_bytes(HASH_SIZE)
        parent_id = reader.read_bytes(HASH_SIZE)
        if chain_length != 0:
            raise DecodeError(f"Genesis block must have chain length 0, got {chain_length}")
        if parent_id != bytes(HASH_SIZE):
            raise DecodeError("Genesis block must not have a parent")
        return cls(
            content_size=content_size,
            content_hash=content_hash,
            version=version,
            epoch=epoch,
            slot=slot,
            chain_length=chain_length,
            parent_id=parent_id,
        )


@dataclass(frozen=True)
class ConfigParam:
    tag: int
    payload: bytes

    def to_bytes(self) -> bytes:
        if len(self.payload) > CONFIG_LEN_MASK:
            raise ValueError(f"Config param payload too large: {len(self.payload)}")
        return u16((self.tag << CONFIG_TAG_SHIFT) | len(self.payload)) + self.payload

    @classmethod
    def read(cls, reader: ByteReader) -> ConfigParam:
        tag_len = reader.read_u16()
        tag = tag_len >> CONFIG_TAG_SHIFT
        payload = reader.read_bytes(tag_len & CONFIG_LEN_MASK)
        expected = _CONFIG_SIZES.get(tag)
        if expected is not None and len(payload) != expected:
            raise DecodeError(
                f"Config param {tag} has {len(payload)} bytes, expected {expected}"
            )
        return cls(tag, payload)

    @classmethod
    def discrimination(cls, discrimination: Discrimination) -> ConfigParam:
        code = (
            DISCRIMINATION_TEST
            if discrimination == Discrimination.TEST
            else DISCRIMINATION_PRODUCTION
        )
        return cls(CONFIG_DISCRIMINATION, u8(code))

    @classmethod
    def linear_fee(cls, fees: LinearFee) -> ConfigParam:
        return cls(
            CONFIG_LINEAR_FEE, u64(fees.constant) + u64(fees.coefficient) + u64(fees.certificate)
        )

    @classmethod
    def per_certificate_fees(cls, fees: PerCertificateFees) -> ConfigParam:
        return cls(
            CONFIG_PER_CERTIFICATE_FEES,
            u64(fees.pool_registration)
            + u64(fees.stake_delegation)
            + u64(fees.owner_stake_delegation),
        )

    @classmethod
    def per_vote_certificate_fees(cls, fees: PerVoteCertificateFees) -> ConfigParam:
        return cls(CONFIG_PER_VOTE_CERTIFICATE_FEES, u64(fees.vote_plan) + u64(fees.vote_cast))

    @classmethod
    def block0_date(cls, seconds: int) -> ConfigParam:
        return cls(CONFIG_BLOCK0_DATE, u64(seconds))

    @classmethod
    def slot_duration(cls, seconds: int) -> ConfigParam:
        return cls(CONFIG_SLOT_DURATION, u8(seconds))

    @classmethod
    def slots_per_epoch(cls, slots: int) -> ConfigParam:
        return cls(CONFIG_SLOTS_PER_EPOCH, u32(slots))


def initial_fragment(params: Sequence[ConfigParam]) -> Fragment:
    payload = u16(len(params)) + b"".join(p.to_bytes() for p in params)
    return Fragment(FRAGMENT_INITIAL, payload)


def read_config_params(payload: bytes) -> list[ConfigParam]:
    reader = ByteReader(payload)
    count = reader.read_u16()
    params = [ConfigParam.read(reader) for _ in range(count)]
    reader.expect_end()
    return params


def settings_from_params(params: Sequence[ConfigParam], block0_hash: bytes) -> Settings:
    """Interpret the configuration params the wallet depends on."""
    seen: set[int] = set()
    values: dict[str, object] = {}
    fee_parts: tuple[int, int, int] | None = None
    per_certificate: PerCertificateFees | None = None
    per_vote: PerVoteCertificateFees | None = None

    for param in params:
        if param.tag in _CONFIG_SIZES:
            if param.tag in seen:
                raise DecodeError(f"Duplicate config param {param.tag}")
            seen.add(param.tag)

        if param.tag == CONFIG_DISCRIMINATION:
            code = param.payload[0]
            if code == DISCRIMINATION_PRODUCTION:
                values["discrimination"] = Discrimination.PRODUCTION
            elif code == DISCRIMINATION_TEST:
                values["discrimination"] = Discrimination.TEST
            else:
                raise DecodeError(f"Invalid discrimination: {code}")
        elif param.tag == CONFIG_LINEAR_FEE:
            fee_parts = struct.unpack(">QQQ", param.payload)
        elif param.tag == CONFIG_PER_CERTIFICATE_FEES:
            pool, stake, owner = struct.unpack(">QQQ", param.payload)
            per_certificate = PerCertificateFees(
                pool_registration=pool, stake_delegation=stake, owner_stake_delegation=owner
            )
        elif param.tag == CONFIG_PER_VOTE_CERTIFICATE_FEES:
            plan, cast = struct.unpack(">QQ", param.payload)
            per_vote = PerVoteCertificateFees(vote_plan=plan, vote_cast=cast)
        elif param.tag == CONFIG_BLOCK0_DATE:
            values["block0_date"] = struct.unpack(">Q", param.payload)[0]
        elif param.tag == CONFIG_SLOT_DURATION:
            values["slot_duration"] = param.payload[0]
        elif param.tag == CONFIG_SLOTS_PER_EPOCH:
            values["slots_per_epoch"] = struct.unpack(">I", param.payload)[0]

    if "discrimination" not in values:
        raise DecodeError("Block0 does not define the address discrimination")
    if fee_parts is None:
        raise DecodeError("Block0 does not define the linear fee")

    constant, coefficient, certificate = fee_parts
    fees = LinearFee(
        constant=constant,
        coefficient=coefficient,
        certificate=certificate,
        per_certificate_fees=per_certificate or PerCertificateFees(),
        per_vote_certificate_fees=per_vote or PerVoteCertificateFees(),
    )
    try:
        return Settings(fees=fees, block0_initial_hash=block0_hash, **values)
    except ValidationError as e:
        raise DecodeError(f"Invalid block0 settings: {e}") from e


def utxo_declaration_fragment(entries: Sequence[tuple[bytes, int]]) -> Fragment:
    """Legacy utxo declaration from (raw legacy address, value) pairs."""
    if len(entries) > 0xFF:
        raise ValueError(f"Too many declared utxos: {len(entries)}")
    payload = u8(len(entries))
    for address, value in entries:
        payload += u64(value) + u16(len(address)) + address
    return Fragment(FRAGMENT_OLD_UTXO_DECLARATION, payload)


def read_utxo_declaration(payload: bytes) -> list[tuple[bytes, int]]:
    reader = ByteReader(payload)
    count = reader.read_u8()
    entries = []
    for _ in range(count):
        value = reader.read_u64()
        address = reader.read_bytes(reader.read_u16())
        entries.append((address, value))
    reader.expect_end()
    return entries


@dataclass(frozen=True)
class Block0:
    header: BlockHeader
    fragments: tuple[Fragment, ...]
    settings: Settings

    @property
    def id(self) -> bytes:
        return self.header.id


def decode_block0(data: bytes) -> Block0:
    """
    Decode and validate a genesis block.

    The input is untrusted: sizes, hashes and structure are all checked and
    any inconsistency raises DecodeError.
    """
    reader = ByteReader(data)
    header = BlockHeader.read(reader)
    if reader.remaining() != header.content_size:
        raise DecodeError(
            f"Content size mismatch: header says {header.content_size}, "
            f"found {reader.remaining()} bytes"
        )
    content = reader.read_bytes(header.content_size)
    if blake2b256(content) != header.content_hash:
        raise DecodeError("Block content hash mismatch")

    content_reader = ByteReader(content)
    fragments = []
    while not content_reader.is_end():
        fragments.append(Fragment.read(content_reader))

    if not fragments or fragments[0].tag != FRAGMENT_INITIAL:
        raise DecodeError("Block0 must start with an initial fragment")
    if any(f.tag == FRAGMENT_INITIAL for f in fragments[1:]):
        raise DecodeError("Block0 has more than one initial fragment")

    settings = settings_from_params(read_config_params(fragments[0].payload), header.id)
    return Block0(header=header, fragments=tuple(fragments), settings=settings)


def build_block0(fragments: Sequence[Fragment], epoch: int = 0, slot: int = 0) -> bytes:
    """Serialize fragments into a genesis block."""
    content = b"".join(f.to_bytes() for f in fragments)
    header = BlockHeader(
        content_size=len(content), content_hash=blake2b256(content), epoch=epoch, slot=slot
    )
    return header.to_bytes() + content
