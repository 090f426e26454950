"""
Core data models using Pydantic for validation and serialization.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field, field_validator

from jorcore.constants import HASH_SIZE

U64_MAX = 2**64 - 1


class Discrimination(str, Enum):
    PRODUCTION = "production"
    TEST = "test"


class PerCertificateFees(BaseModel):
    """Overrides of the generic certificate fee, 0 means "use the default"."""

    pool_registration: int = Field(default=0, ge=0, le=U64_MAX)
    stake_delegation: int = Field(default=0, ge=0, le=U64_MAX)
    owner_stake_delegation: int = Field(default=0, ge=0, le=U64_MAX)

    model_config = {"frozen": True}


class PerVoteCertificateFees(BaseModel):
    vote_plan: int = Field(default=0, ge=0, le=U64_MAX)
    vote_cast: int = Field(default=0, ge=0, le=U64_MAX)

    model_config = {"frozen": True}


class LinearFee(BaseModel):
    """
    Linear fee policy of the ledger.

    fee = constant + coefficient * (inputs + outputs) + certificate_fee

    The marginal cost of one more input is therefore `coefficient`.
    """

    constant: int = Field(default=0, ge=0, le=U64_MAX)
    coefficient: int = Field(default=0, ge=0, le=U64_MAX)
    certificate: int = Field(default=0, ge=0, le=U64_MAX)
    per_certificate_fees: PerCertificateFees = Field(default_factory=PerCertificateFees)
    per_vote_certificate_fees: PerVoteCertificateFees = Field(
        default_factory=PerVoteCertificateFees
    )

    model_config = {"frozen": True}

    def calculate(self, inputs: int, outputs: int, certificate_fee: int = 0) -> int:
        return self.constant + self.coefficient * (inputs + outputs) + certificate_fee

    def vote_cast_fee(self) -> int:
        """Fee charged for carrying a vote cast certificate."""
        return self.per_vote_certificate_fees.vote_cast or self.certificate

    def per_input_fee(self) -> int:
        return self.coefficient


class Settings(BaseModel):
    """
    Blockchain parameters read from block0.

    Immutable once parsed; holds no secrets so it can be shared and copied
    freely between the scanner, the conversion engine and the vote builder.
    """

    discrimination: Discrimination
    fees: LinearFee
    block0_initial_hash: bytes = Field(..., min_length=HASH_SIZE, max_length=HASH_SIZE)
    block0_date: int = Field(default=0, ge=0, le=U64_MAX)
    slot_duration: int = Field(default=0, ge=0, le=255)
    slots_per_epoch: int = Field(default=0, ge=0, le=2**32 - 1)

    model_config = {"frozen": True}

    @field_validator("block0_initial_hash")
    @classmethod
    def validate_hash(cls, v: bytes) -> bytes:
        if v == bytes(HASH_SIZE):
            raise ValueError("block0 hash cannot be all zeros")
        return v

    @property
    def block0_hash_hex(self) -> str:
        return self.block0_initial_hash.hex()
