"""
Vote casting from the wallet's account.
"""

from __future__ import annotations

from dataclasses import dataclass

from loguru import logger

from jorcore.constants import VOTE_PLAN_ID_LENGTH
from jorcore.models import Settings
from jorcore.vote import Options, PayloadType, VoteCast
from jorwallet.errors import (
    ChoiceOutOfRange,
    InvalidChoiceCount,
    InvalidInput,
    InvalidPayloadType,
)
from jorwallet.wallet.keys import KeySet
from jorwallet.wallet.signing import TransactionBuilder
from jorwallet.wallet.state import AccountState


@dataclass(frozen=True)
class VotePlan:
    id: bytes
    payload_type: PayloadType


@dataclass(frozen=True)
class Proposal:
    index: int
    options: Options


def build_vote_plan(id: bytes, payload_type: int) -> VotePlan:
    if len(id) != VOTE_PLAN_ID_LENGTH:
        raise InvalidInput(f"vote plan id must be {VOTE_PLAN_ID_LENGTH} bytes, got {len(id)}")
    try:
        payload = PayloadType(payload_type)
    except ValueError as e:
        raise InvalidPayloadType(f"unknown payload type {payload_type}") from e
    return VotePlan(bytes(id), payload)


def build_proposal(index: int, num_choices: int) -> Proposal:
    if not 0 <= index <= 0xFF:
        raise InvalidInput(f"proposal index {index} does not fit in a byte")
    try:
        options = Options(num_choices)
    except ValueError as e:
        raise InvalidChoiceCount(f"invalid number of choices {num_choices}") from e
    return Proposal(index, options)


def cast_vote(
    keys: KeySet,
    state: AccountState,
    settings: Settings,
    vote_plan: VotePlan,
    proposal: Proposal,
    choice: int,
) -> bytes:
    """
    Sign a vote cast transaction spending the certificate fee from the account.

    The current counter is used as is and the account state is left
    untouched; the caller refreshes it once the vote is seen on chain.

    Raises:
        ChoiceOutOfRange: choice is not in [0, num_choices)
        InvalidPayloadType: the plan is private (needs an election key)
    """
    if not proposal.options.validate(choice):
        raise ChoiceOutOfRange(
            f"choice {choice} not in [0, {proposal.options.num_choices})"
        )
    if vote_plan.payload_type != PayloadType.PUBLIC:
        raise InvalidPayloadType("private vote plans are not supported")

    certificate = VoteCast(
        vote_plan_id=vote_plan.id,
        proposal_index=proposal.index,
        choice=choice,
        payload_type=vote_plan.payload_type,
    )
    builder = TransactionBuilder(settings, certificate=certificate)
    fee = builder.estimate_fee(extra_inputs=1)
    if state.value < fee:
        logger.warning(f"Account value {state.value} is below the vote fee {fee}")
    builder.add_account_input(keys.account, fee, state.counter)

    tx = builder.finalize()
    logger.info(
        f"Built vote for proposal {proposal.index} of plan {vote_plan.id.hex()[:16]}... "
        f"(counter {state.counter})"
    )
    return tx.to_fragment().to_bytes()
