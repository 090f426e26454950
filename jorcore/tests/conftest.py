"""
Pytest configuration and fixtures for jorcore tests.
"""

import pytest
from nacl.signing import SigningKey

from jorcore.block import ConfigParam, initial_fragment
from jorcore.fragment import Fragment
from jorcore.models import Discrimination, LinearFee


@pytest.fixture
def signing_key() -> SigningKey:
    """Deterministic ed25519 key"""
    return SigningKey(bytes(range(32)))


@pytest.fixture
def public_key(signing_key: SigningKey) -> bytes:
    return bytes(signing_key.verify_key)


@pytest.fixture
def fees() -> LinearFee:
    return LinearFee(constant=200, coefficient=100, certificate=400)


@pytest.fixture
def initial(fees: LinearFee) -> Fragment:
    """Initial fragment of a test network block0"""
    return initial_fragment(
        [
            ConfigParam.block0_date(1_600_000_000),
            ConfigParam.discrimination(Discrimination.TEST),
            ConfigParam.slot_duration(2),
            ConfigParam.slots_per_epoch(7200),
            ConfigParam.linear_fee(fees),
        ]
    )
