"""
Funds discovery in block0.

One pass over the fragments collects every output; legacy outputs are then
matched against the keys of the recovery scheme and chain outputs against
the account key. The cost is proportional to the size of block0.
"""

from __future__ import annotations

from dataclasses import dataclass

from loguru import logger

from jorcore.block import Block0, decode_block0, read_utxo_declaration
from jorcore.codec import DecodeError
from jorcore.constants import FRAGMENT_OLD_UTXO_DECLARATION, FRAGMENT_TRANSACTION
from jorcore.fragment import Output, Transaction
from jorcore.legacy import LegacyAddress, compute_root
from jorcore.models import Settings
from jorwallet.errors import BlockDecodeError
from jorwallet.wallet.address import decrypt_derivation_path, hd_payload_key
from jorwallet.wallet.bip32 import DerivationScheme, format_path
from jorwallet.wallet.keys import ACCOUNT_KEY_PATH, ICARUS_ACCOUNT_PATH, KeySet, RecoveryScheme
from jorwallet.wallet.models import Funds, UTXOEntry

# Icarus chains: 0 external (receive), 1 internal (change)
ICARUS_CHAINS = (0, 1)


@dataclass
class LegacyOutput:
    fragment_id: bytes
    output_index: int
    value: int
    address: LegacyAddress


@dataclass
class ChainOutput:
    fragment_id: bytes
    output_index: int
    output: Output


def decode_block(block0: bytes) -> Block0:
    try:
        return decode_block0(block0)
    except DecodeError as e:
        raise BlockDecodeError("block0") from e


def parse_settings(block0: bytes) -> Settings:
    """Read the blockchain settings (fees, discrimination, block0 hash) from block0."""
    return decode_block(block0).settings


def collect_outputs(block: Block0) -> tuple[list[LegacyOutput], list[ChainOutput]]:
    legacy: list[LegacyOutput] = []
    chain: list[ChainOutput] = []

    for fragment in block.fragments[1:]:
        try:
            if fragment.tag == FRAGMENT_OLD_UTXO_DECLARATION:
                for index, (raw, value) in enumerate(read_utxo_declaration(fragment.payload)):
                    try:
                        address = LegacyAddress.from_bytes(raw)
                    except DecodeError as e:
                        logger.debug(f"Skipping undecodable legacy address: {e}")
                        continue
                    legacy.append(LegacyOutput(fragment.id, index, value, address))
            elif fragment.tag == FRAGMENT_TRANSACTION:
                tx = Transaction.from_fragment(fragment)
                for index, output in enumerate(tx.outputs):
                    chain.append(ChainOutput(fragment.id, index, output))
            else:
                logger.debug(f"Ignoring fragment {fragment.id.hex()[:16]}... (tag {fragment.tag})")
        except DecodeError as e:
            raise BlockDecodeError(f"fragment {fragment.id.hex()}") from e

    return legacy, chain


def scan_icarus(keys: KeySet, outputs: list[LegacyOutput], gap_limit: int) -> list[UTXOEntry]:
    """
    Find sequential (Icarus) addresses with a gap limit.
    Addresses are derived in batches of gap_limit; a chain is done once
    gap_limit consecutive addresses have no output.
    """
    # attributes (protocol magic) change the address root, so index per attributes
    roots_by_attributes: dict[bytes, tuple[dict[int, bytes], dict[bytes, list[LegacyOutput]]]] = {}
    for output in outputs:
        if output.address.derivation_payload is not None:
            continue
        attributes, roots = roots_by_attributes.setdefault(
            output.address.attributes_key, (output.address.attributes, {})
        )
        roots.setdefault(output.address.root, []).append(output)

    if not roots_by_attributes:
        return []

    account_key = keys.root.derive(ICARUS_ACCOUNT_PATH)
    try:
        account_xpub = account_key.xpub
    finally:
        account_key.wipe()

    found: list[tuple[LegacyOutput, str]] = []
    for chain in ICARUS_CHAINS:
        chain_xpub = account_xpub.derive(chain)
        consecutive_empty = 0
        index = 0

        while consecutive_empty < gap_limit:
            for i in range(gap_limit):
                xpub = chain_xpub.derive(index + i).to_bytes()
                matches = []
                for attributes, roots in roots_by_attributes.values():
                    matches.extend(roots.get(compute_root(xpub, attributes), []))

                if matches:
                    consecutive_empty = 0
                    path = f"{ICARUS_ACCOUNT_PATH}/{chain}/{index + i}"
                    found.extend((output, path) for output in matches)
                else:
                    consecutive_empty += 1

                if consecutive_empty >= gap_limit:
                    break

            index += gap_limit

        logger.debug(f"Scanned icarus chain {chain}: ~{index} addresses")

    return [_legacy_entry(output, path) for output, path in found]


def scan_daedalus(keys: KeySet, outputs: list[LegacyOutput]) -> list[UTXOEntry]:
    """Find random-index (Daedalus) addresses by decrypting their derivation path."""
    payload_key = hd_payload_key(keys.root.xpub)
    found = []

    for output in outputs:
        payload = output.address.derivation_payload
        if payload is None:
            continue
        path = decrypt_derivation_path(payload_key, payload)
        if not path:
            continue

        path_str = format_path(path)
        key = keys.root.derive(path_str, DerivationScheme.V1)
        try:
            owned = output.address.is_owned_by(key.xpub.to_bytes())
        finally:
            key.wipe()

        if owned:
            found.append(_legacy_entry(output, path_str, DerivationScheme.V1))
        else:
            logger.warning(
                f"Address {output.address} carries our derivation path {path_str} "
                "but another key"
            )

    return found


def _legacy_entry(
    output: LegacyOutput, path: str, derivation: DerivationScheme = DerivationScheme.V2
) -> UTXOEntry:
    return UTXOEntry(
        fragment_id=output.fragment_id,
        output_index=output.output_index,
        value=output.value,
        address=output.address.raw,
        path=path,
        legacy=True,
        derivation=derivation,
    )


def scan_funds(block0: bytes, keys: KeySet, gap_limit: int = 20) -> tuple[Funds, Settings]:
    """
    Discover the wallet's funds in block0.

    Returns:
        (funds, settings): legacy and account-key utxos plus the value sent to
        the wallet's account, and the block0 settings

    Raises:
        BlockDecodeError: block0 is truncated, not a genesis block, or
            structurally inconsistent
    """
    block = decode_block(block0)
    settings = block.settings
    legacy_outputs, chain_outputs = collect_outputs(block)
    funds = Funds()

    if keys.scheme == RecoveryScheme.ICARUS:
        funds.utxos.extend(scan_icarus(keys, legacy_outputs, gap_limit))
    elif keys.scheme == RecoveryScheme.DAEDALUS:
        funds.utxos.extend(scan_daedalus(keys, legacy_outputs))

    order = {(o.fragment_id, o.output_index): n for n, o in enumerate(legacy_outputs)}
    funds.utxos.sort(key=lambda u: order[u.pointer])

    wallet_id = keys.wallet_id
    for chain_output in chain_outputs:
        address = chain_output.output.address
        if address.spending_key != wallet_id:
            continue
        if address.discrimination != settings.discrimination:
            logger.warning(f"Ignoring output to {address}: wrong discrimination")
            continue
        if address.is_account:
            funds.account_value += chain_output.output.value
        elif address.is_utxo:
            funds.utxos.append(
                UTXOEntry(
                    fragment_id=chain_output.fragment_id,
                    output_index=chain_output.output_index,
                    value=chain_output.output.value,
                    address=address.to_bytes(),
                    path=ACCOUNT_KEY_PATH,
                    legacy=False,
                )
            )

    logger.info(
        f"Scanned block0 {settings.block0_hash_hex[:16]}...: "
        f"{len(legacy_outputs)} legacy outputs, {len(chain_outputs)} chain outputs, "
        f"found {len(funds.utxos)} utxos ({funds.utxo_value}) "
        f"and {funds.account_value} on the account"
    )
    return funds, settings
