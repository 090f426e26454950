"""
Vote certificates: payload types, proposal options and the vote cast payload.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum

from jorcore.codec import ByteReader, DecodeError, u8
from jorcore.constants import (
    NUM_CHOICES_MAX,
    PAYLOAD_TYPE_PRIVATE,
    PAYLOAD_TYPE_PUBLIC,
    VOTE_PLAN_ID_LENGTH,
)


class PayloadType(IntEnum):
    PUBLIC = PAYLOAD_TYPE_PUBLIC
    PRIVATE = PAYLOAD_TYPE_PRIVATE


@dataclass(frozen=True)
class Options:
    """Closed range [0, num_choices) of valid choices for a proposal."""

    num_choices: int

    def __post_init__(self) -> None:
        if not 0 < self.num_choices <= NUM_CHOICES_MAX:
            raise ValueError(
                f"num_choices must be within 1..{NUM_CHOICES_MAX}, got {self.num_choices}"
            )

    @property
    def choice_range(self) -> range:
        return range(self.num_choices)

    def validate(self, choice: int) -> bool:
        return choice in self.choice_range


@dataclass(frozen=True)
class VoteCast:
    """Vote cast certificate carrying a public (clear text) choice."""

    vote_plan_id: bytes
    proposal_index: int
    choice: int
    payload_type: PayloadType = PayloadType.PUBLIC

    def to_bytes(self) -> bytes:
        if self.payload_type != PayloadType.PUBLIC:
            raise ValueError("Only public vote payloads can be serialized")
        return (
            bytes(self.vote_plan_id)
            + u8(self.proposal_index)
            + u8(self.payload_type)
            + u8(self.choice)
        )

    @classmethod
    def read(cls, reader: ByteReader) -> VoteCast:
        vote_plan_id = reader.read_bytes(VOTE_PLAN_ID_LENGTH)
        proposal_index = reader.read_u8()
        payload_type = reader.read_u8()
        if payload_type != PayloadType.PUBLIC:
            raise DecodeError(f"Unsupported vote payload type: {payload_type}")
        choice = reader.read_u8()
        return cls(vote_plan_id, proposal_index, choice, PayloadType.PUBLIC)
