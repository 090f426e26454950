"""
Tests for vote plans, proposals and vote casting.
"""

import pytest

from jorcore.codec import ByteReader
from jorcore.constants import FRAGMENT_VOTE_CAST, NUM_CHOICES_MAX, WITNESS_ACCOUNT
from jorcore.crypto import verify_signature
from jorcore.fragment import Fragment, Transaction, witness_account_data
from jorcore.vote import PayloadType
from jorwallet.errors import (
    ChoiceOutOfRange,
    ErrorKind,
    InvalidChoiceCount,
    InvalidInput,
    InvalidPayloadType,
)
from jorwallet.wallet.state import AccountState
from jorwallet.wallet.vote import build_proposal, build_vote_plan, cast_vote

PLAN_ID = bytes(range(32))


@pytest.fixture
def plan():
    return build_vote_plan(PLAN_ID, 1)


@pytest.fixture
def state() -> AccountState:
    return AccountState(value=10_000, counter=7)


class TestBuildVotePlan:
    def test_public(self):
        plan = build_vote_plan(PLAN_ID, 1)
        assert plan.id == PLAN_ID
        assert plan.payload_type == PayloadType.PUBLIC

    def test_private(self):
        assert build_vote_plan(PLAN_ID, 2).payload_type == PayloadType.PRIVATE

    @pytest.mark.parametrize("payload_type", [0, 3, 255])
    def test_unknown_payload_type(self, payload_type):
        with pytest.raises(InvalidPayloadType) as exc_info:
            build_vote_plan(PLAN_ID, payload_type)
        assert exc_info.value.kind == ErrorKind.INVALID_INPUT

    def test_id_length(self):
        with pytest.raises(InvalidInput):
            build_vote_plan(PLAN_ID[:31], 1)


class TestBuildProposal:
    @pytest.mark.parametrize("num_choices", [0, NUM_CHOICES_MAX + 1])
    def test_invalid_choice_count(self, num_choices):
        with pytest.raises(InvalidChoiceCount):
            build_proposal(0, num_choices)

    @pytest.mark.parametrize("num_choices", [1, 3, NUM_CHOICES_MAX])
    def test_options_range(self, num_choices):
        proposal = build_proposal(5, num_choices)
        assert proposal.index == 5
        assert list(proposal.options.choice_range) == list(range(num_choices))

    def test_index_fits_in_a_byte(self):
        with pytest.raises(InvalidInput):
            build_proposal(256, 2)


class TestCastVote:
    def test_choice_out_of_range(self, icarus_keys, state, settings, plan):
        proposal = build_proposal(0, 3)
        with pytest.raises(ChoiceOutOfRange):
            cast_vote(icarus_keys, state, settings, plan, proposal, 3)
        with pytest.raises(ChoiceOutOfRange):
            cast_vote(icarus_keys, state, settings, plan, proposal, -1)

    def test_encodes_vote(self, icarus_keys, state, settings, plan):
        proposal = build_proposal(4, 3)
        data = cast_vote(icarus_keys, state, settings, plan, proposal, 2)

        fragment = Fragment.read(ByteReader(data))
        assert fragment.tag == FRAGMENT_VOTE_CAST
        assert fragment.payload[:35] == PLAN_ID + b"\x04\x01\x02"

        tx = Transaction.from_fragment(fragment)
        assert tx.certificate.vote_plan_id == PLAN_ID
        assert tx.certificate.proposal_index == 4
        assert tx.certificate.choice == 2
        assert tx.outputs == ()

    def test_spends_fee_from_account(self, icarus_keys, state, settings, plan):
        tx = Transaction.from_fragment_bytes(
            cast_vote(icarus_keys, state, settings, plan, build_proposal(0, 2), 1)
        )
        assert len(tx.inputs) == 1
        inp = tx.inputs[0]
        assert inp.is_account
        assert inp.pointer == icarus_keys.wallet_id
        # constant + one input + vote certificate fee
        assert inp.value == 200 + 100 + 400

    def test_signed_with_counter(self, icarus_keys, state, settings, plan):
        tx = Transaction.from_fragment_bytes(
            cast_vote(icarus_keys, state, settings, plan, build_proposal(0, 2), 0)
        )
        witness = tx.witnesses[0]
        assert witness.tag == WITNESS_ACCOUNT
        signed = witness_account_data(settings.block0_initial_hash, tx.sign_data_hash(), 7)
        assert verify_signature(icarus_keys.wallet_id, signed, witness.signature)
        stale = witness_account_data(settings.block0_initial_hash, tx.sign_data_hash(), 6)
        assert not verify_signature(icarus_keys.wallet_id, stale, witness.signature)

    def test_deterministic(self, icarus_keys, state, settings, plan):
        proposal = build_proposal(1, 4)
        first = cast_vote(icarus_keys, state, settings, plan, proposal, 3)
        second = cast_vote(icarus_keys, state, settings, plan, proposal, 3)
        assert first == second

    def test_state_not_mutated(self, icarus_keys, state, settings, plan):
        cast_vote(icarus_keys, state, settings, plan, build_proposal(0, 2), 1)
        assert state.value == 10_000
        assert state.counter == 7

    def test_counter_changes_signature(self, icarus_keys, state, settings, plan):
        proposal = build_proposal(0, 2)
        before = cast_vote(icarus_keys, state, settings, plan, proposal, 1)
        state.set_state(10_000, 8)
        assert cast_vote(icarus_keys, state, settings, plan, proposal, 1) != before

    def test_private_plan(self, icarus_keys, state, settings):
        plan = build_vote_plan(PLAN_ID, 2)
        with pytest.raises(InvalidPayloadType):
            cast_vote(icarus_keys, state, settings, plan, build_proposal(0, 2), 1)

    def test_failed_vote_leaves_state(self, icarus_keys, state, settings, plan):
        with pytest.raises(ChoiceOutOfRange):
            cast_vote(icarus_keys, state, settings, plan, build_proposal(0, 2), 5)
        assert (state.value, state.counter) == (10_000, 7)
        assert not icarus_keys.is_wiped
