"""
Tests for block0 funds discovery.
"""

import pytest
from mnemonic import Mnemonic

from jorcore.address import Address
from jorcore.block import decode_block0
from jorcore.codec import DecodeError
from jorcore.fragment import Fragment
from jorcore.legacy import LegacyAddress
from jorcore.models import Discrimination
from jorwallet.errors import BlockDecodeError, ErrorKind
from jorwallet.wallet.address import daedalus_address, hd_payload_key, icarus_address
from jorwallet.wallet.bip32 import HARDENED_OFFSET, DerivationScheme, format_path
from jorwallet.wallet.keys import ACCOUNT_KEY_PATH
from jorwallet.wallet.recovery import recover
from jorwallet.wallet.scanner import parse_settings, scan_funds

STRANGER_XPUB = bytes(range(64))


def daedalus_address_at(
    keys, account: int, index: int, scheme: DerivationScheme = DerivationScheme.V1
) -> LegacyAddress:
    path = (HARDENED_OFFSET + account, HARDENED_OFFSET + index)
    key = keys.root.derive(format_path(path), scheme)
    return daedalus_address(hd_payload_key(keys.root.xpub), path, key.xpub)


class TestParseSettings:
    def test_settings(self, make_block0, fees):
        settings = parse_settings(make_block0())
        assert settings.discrimination == Discrimination.TEST
        assert settings.fees == fees

    def test_malformed(self, make_block0):
        with pytest.raises(BlockDecodeError) as exc_info:
            parse_settings(make_block0()[:-3])
        assert exc_info.value.kind == ErrorKind.BLOCK_DECODE
        assert isinstance(exc_info.value.cause, DecodeError)

    def test_garbage(self):
        with pytest.raises(BlockDecodeError):
            parse_settings(b"\x00" * 200)


class TestIcarusDiscovery:
    def test_finds_addresses_within_gap(self, icarus_keys, icarus_address_at, make_block0):
        block0 = make_block0(
            legacy=[
                (icarus_address_at(icarus_keys, 0, 0), 1000),
                (LegacyAddress.build(STRANGER_XPUB), 5000),
                (icarus_address_at(icarus_keys, 0, 3), 2000),
                (icarus_address_at(icarus_keys, 1, 1), 3000),
                (icarus_address_at(icarus_keys, 0, 30), 4000),
            ]
        )
        funds, settings = scan_funds(block0, icarus_keys, gap_limit=20)

        assert [u.value for u in funds.utxos] == [1000, 2000, 3000]
        assert [u.path for u in funds.utxos] == [
            "m/44'/1815'/0'/0/0",
            "m/44'/1815'/0'/0/3",
            "m/44'/1815'/0'/1/1",
        ]
        assert [u.output_index for u in funds.utxos] == [0, 2, 3]
        assert all(u.legacy for u in funds.utxos)
        assert funds.account_value == 0
        assert settings.block0_initial_hash == parse_settings(block0).block0_initial_hash

    def test_larger_gap_limit(self, icarus_keys, icarus_address_at, make_block0):
        block0 = make_block0(legacy=[(icarus_address_at(icarus_keys, 0, 30), 4000)])
        assert scan_funds(block0, icarus_keys, gap_limit=20)[0].is_empty()
        funds, _ = scan_funds(block0, icarus_keys, gap_limit=31)
        assert [u.value for u in funds.utxos] == [4000]

    def test_fragment_id(self, icarus_keys, icarus_address_at, make_block0):
        block0 = make_block0(legacy=[(icarus_address_at(icarus_keys, 0, 0), 1000)])
        declaration = decode_block0(block0).fragments[1]
        funds, _ = scan_funds(block0, icarus_keys)
        assert funds.utxos[0].fragment_id == declaration.id

    def test_protocol_magic(self, icarus_keys, make_block0):
        key = icarus_keys.root.derive("m/44'/1815'/0'/0/2")
        address = icarus_address(key.xpub, protocol_magic=1097911063)
        funds, _ = scan_funds(make_block0(legacy=[(address, 10)]), icarus_keys)
        assert [u.address for u in funds.utxos] == [address.raw]

    def test_other_wallet(self, other_keys, icarus_keys, icarus_address_at, make_block0):
        block0 = make_block0(legacy=[(icarus_address_at(icarus_keys, 0, 0), 1000)])
        funds, _ = scan_funds(block0, other_keys)
        assert funds.is_empty()

    def test_undecodable_address_is_skipped(self, icarus_keys, icarus_address_at, make_block0):
        block0 = make_block0(
            legacy=[(b"not cbor", 1), (icarus_address_at(icarus_keys, 0, 0), 1000)]
        )
        funds, _ = scan_funds(block0, icarus_keys)
        assert [(u.output_index, u.value) for u in funds.utxos] == [(1, 1000)]


class TestDaedalusDiscovery:
    def test_finds_random_addresses(self, daedalus_keys, make_block0):
        block0 = make_block0(
            legacy=[
                (daedalus_address_at(daedalus_keys, 0, 12345), 700),
                (LegacyAddress.build(STRANGER_XPUB), 5000),
                (daedalus_address_at(daedalus_keys, 3, 7), 800),
            ]
        )
        funds, _ = scan_funds(block0, daedalus_keys)
        assert [u.value for u in funds.utxos] == [700, 800]
        assert [u.path for u in funds.utxos] == ["m/0'/12345'", "m/3'/7'"]
        assert all(u.legacy for u in funds.utxos)
        assert all(u.derivation == DerivationScheme.V1 for u in funds.utxos)

    def test_v2_derived_key_is_not_ours(self, daedalus_keys, make_block0):
        address = daedalus_address_at(daedalus_keys, 0, 1, DerivationScheme.V2)
        funds, _ = scan_funds(make_block0(legacy=[(address, 700)]), daedalus_keys)
        assert funds.is_empty()

    def test_other_wallet_payload(self, daedalus_keys, make_block0):
        stranger = recover(Mnemonic("english").to_mnemonic(bytes(range(50, 66))))
        block0 = make_block0(legacy=[(daedalus_address_at(stranger, 0, 1), 700)])
        funds, _ = scan_funds(block0, daedalus_keys)
        assert funds.is_empty()

    def test_icarus_wallet_ignores_random_addresses(
        self, daedalus_keys, icarus_keys, make_block0
    ):
        block0 = make_block0(legacy=[(daedalus_address_at(daedalus_keys, 0, 1), 700)])
        assert scan_funds(block0, icarus_keys)[0].is_empty()


class TestAccountDiscovery:
    def test_account_outputs(self, icarus_keys, other_keys, make_block0):
        block0 = make_block0(
            outputs=[
                (Address.account(icarus_keys.wallet_id, Discrimination.TEST), 500),
                (Address.account(other_keys.wallet_id, Discrimination.TEST), 900),
                (Address.account(icarus_keys.wallet_id, Discrimination.TEST), 250),
            ]
        )
        funds, _ = scan_funds(block0, icarus_keys)
        assert funds.account_value == 750
        assert funds.utxos == []

    def test_single_output_to_account_key(self, icarus_keys, make_block0):
        address = Address.single(icarus_keys.wallet_id, Discrimination.TEST)
        funds, _ = scan_funds(make_block0(outputs=[(address, 1234)]), icarus_keys)
        assert len(funds.utxos) == 1
        utxo = funds.utxos[0]
        assert utxo.value == 1234
        assert utxo.path == ACCOUNT_KEY_PATH
        assert not utxo.legacy
        assert utxo.address == address.to_bytes()

    def test_wrong_discrimination(self, icarus_keys, make_block0):
        address = Address.account(icarus_keys.wallet_id, Discrimination.PRODUCTION)
        funds, _ = scan_funds(make_block0(outputs=[(address, 500)]), icarus_keys)
        assert funds.account_value == 0


class TestEmptyAndInvalid:
    def test_no_matching_outputs(self, icarus_keys, make_block0):
        block0 = make_block0(legacy=[(LegacyAddress.build(STRANGER_XPUB), 5000)])
        funds, _ = scan_funds(block0, icarus_keys)
        assert funds.is_empty()
        assert funds.total_value == 0

    def test_malformed_transaction(self, icarus_keys, make_block0):
        block0 = make_block0(extra=[Fragment(2, b"\x01")])
        with pytest.raises(BlockDecodeError) as exc_info:
            scan_funds(block0, icarus_keys)
        assert isinstance(exc_info.value.cause, DecodeError)

    def test_malformed_declaration(self, icarus_keys, make_block0):
        block0 = make_block0(extra=[Fragment(1, b"\x02\x00")])
        with pytest.raises(BlockDecodeError):
            scan_funds(block0, icarus_keys)

    def test_unrelated_fragments_are_ignored(self, icarus_keys, make_block0):
        block0 = make_block0(extra=[Fragment(5, b"pool registration")])
        assert scan_funds(block0, icarus_keys)[0].is_empty()
