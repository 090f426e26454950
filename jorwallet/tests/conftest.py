"""
Pytest configuration and fixtures for jorwallet tests.
"""

from collections.abc import Callable, Sequence

import pytest
from mnemonic import Mnemonic

from jorcore.address import Address
from jorcore.block import ConfigParam, build_block0, initial_fragment, utxo_declaration_fragment
from jorcore.fragment import Fragment, Output, Transaction
from jorcore.legacy import LegacyAddress
from jorcore.models import Discrimination, LinearFee, Settings
from jorwallet.wallet.address import icarus_address
from jorwallet.wallet.keys import ICARUS_ACCOUNT_PATH, KeySet
from jorwallet.wallet.recovery import recover


@pytest.fixture(scope="session")
def mnemonic_12() -> str:
    """12 words (128 bits): legacy random wallet"""
    return Mnemonic("english").to_mnemonic(bytes(range(16)))


@pytest.fixture(scope="session")
def mnemonic_15() -> str:
    """15 words (160 bits): sequential wallet"""
    return Mnemonic("english").to_mnemonic(bytes(range(20)))


@pytest.fixture(scope="session")
def mnemonic_24() -> str:
    return Mnemonic("english").to_mnemonic(bytes(range(100, 132)))


@pytest.fixture
def icarus_keys(mnemonic_15: str) -> KeySet:
    return recover(mnemonic_15)


@pytest.fixture
def daedalus_keys(mnemonic_12: str) -> KeySet:
    return recover(mnemonic_12)


@pytest.fixture
def other_keys(mnemonic_24: str) -> KeySet:
    return recover(mnemonic_24)


@pytest.fixture
def fees() -> LinearFee:
    return LinearFee(constant=200, coefficient=100, certificate=400)


@pytest.fixture
def settings(fees: LinearFee) -> Settings:
    return Settings(
        discrimination=Discrimination.TEST,
        fees=fees,
        block0_initial_hash=b"\x11" * 32,
    )


@pytest.fixture
def icarus_address_at() -> Callable[[KeySet, int, int], LegacyAddress]:
    """Sequential legacy address of a key set at chain/index"""

    def make(keys: KeySet, chain: int, index: int) -> LegacyAddress:
        key = keys.root.derive(f"{ICARUS_ACCOUNT_PATH}/{chain}/{index}")
        try:
            return icarus_address(key.xpub)
        finally:
            key.wipe()

    return make


@pytest.fixture
def make_block0(fees: LinearFee) -> Callable[..., bytes]:
    """
    Build a test network block0 from legacy declarations and chain outputs.

    legacy: (LegacyAddress or raw bytes, value) pairs
    outputs: (Address, value) pairs, put in one transaction without inputs
    """

    def make(
        legacy: Sequence[tuple[LegacyAddress | bytes, int]] = (),
        outputs: Sequence[tuple[Address, int]] = (),
        extra: Sequence[Fragment] = (),
        discrimination: Discrimination = Discrimination.TEST,
        block_fees: LinearFee | None = None,
    ) -> bytes:
        fragments = [
            initial_fragment(
                [
                    ConfigParam.block0_date(1_600_000_000),
                    ConfigParam.discrimination(discrimination),
                    ConfigParam.linear_fee(block_fees or fees),
                ]
            )
        ]
        if legacy:
            entries = [
                (address if isinstance(address, bytes) else address.raw, value)
                for address, value in legacy
            ]
            fragments.append(utxo_declaration_fragment(entries))
        if outputs:
            tx = Transaction(outputs=tuple(Output(address, value) for address, value in outputs))
            fragments.append(tx.to_fragment())
        fragments.extend(extra)
        return build_block0(fragments)

    return make
