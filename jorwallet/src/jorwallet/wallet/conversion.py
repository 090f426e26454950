"""
Conversion of discovered UTXO funds into the wallet's account.

Every entry worth more than the marginal cost of one more input is moved to
the account address. Entries are classified in a single greedy pass in
discovery order, then cut into transactions of at most `max_inputs` inputs
whose total fits a u64 output value, each with one output to the account.
"""

from __future__ import annotations

from collections.abc import Sequence

from loguru import logger

from jorcore.address import Address
from jorcore.constants import MAX_INPUTS
from jorcore.models import U64_MAX, Settings
from jorwallet.wallet.bip32 import DerivationScheme, XPrv
from jorwallet.wallet.keys import KeySet
from jorwallet.wallet.models import Conversion, UTXOEntry
from jorwallet.wallet.signing import TransactionBuilder


def is_dust(entry: UTXOEntry, settings: Settings) -> bool:
    """Spending the entry would not increase the converted value."""
    return entry.value <= settings.fees.per_input_fee()


def split_dust(
    utxos: Sequence[UTXOEntry], settings: Settings
) -> tuple[list[UTXOEntry], list[UTXOEntry]]:
    spendable: list[UTXOEntry] = []
    dust: list[UTXOEntry] = []
    for entry in utxos:
        (dust if is_dust(entry, settings) else spendable).append(entry)
    return spendable, dust


def build_conversion_transaction(
    batch: Sequence[UTXOEntry], keys: KeySet, settings: Settings
) -> bytes:
    """Sign one transaction moving the whole batch (minus fee) to the account."""
    builder = TransactionBuilder(settings)
    derived: dict[tuple[str, DerivationScheme], XPrv] = {}
    try:
        for entry in batch:
            slot = (entry.path, entry.derivation)
            key = derived.get(slot)
            if key is None:
                key = derived[slot] = keys.key_for(entry.path, entry.derivation)
            builder.add_utxo_input(entry.to_input(), key, entry.legacy)

        total = sum(entry.value for entry in batch)
        fee = builder.estimate_fee(extra_outputs=1)
        account = Address.account(keys.wallet_id, settings.discrimination)
        builder.add_output(account, total - fee)

        tx = builder.finalize()
    finally:
        for key in derived.values():
            if key is not keys.account and key is not keys.root:
                key.wipe()

    return tx.to_fragment().to_bytes()


def _batches(entries: Sequence[UTXOEntry], max_inputs: int) -> list[list[UTXOEntry]]:
    """
    Cut entries, in order, into batches of at most `max_inputs` whose total
    still fits the u64 output value.
    """
    batches: list[list[UTXOEntry]] = []
    batch: list[UTXOEntry] = []
    total = 0
    for entry in entries:
        if batch and (len(batch) == max_inputs or total + entry.value > U64_MAX):
            batches.append(batch)
            batch, total = [], 0
        batch.append(entry)
        total += entry.value
    if batch:
        batches.append(batch)
    return batches


def convert(
    utxos: Sequence[UTXOEntry],
    keys: KeySet,
    settings: Settings,
    max_inputs: int = MAX_INPUTS,
) -> Conversion:
    """
    Build the transactions moving `utxos` to the account.

    Dust entries (value <= per input fee) are left out and reported in
    `ignored`, as are the entries of a batch that cannot pay its own fee.
    No funds is not an error: it gives an empty Conversion.
    """
    if not utxos:
        return Conversion()
    if not 0 < max_inputs <= MAX_INPUTS:
        raise ValueError(f"max_inputs must be within 1..{MAX_INPUTS}, got {max_inputs}")

    spendable, ignored = split_dust(utxos, settings)
    if ignored:
        logger.warning(
            f"Ignoring {len(ignored)} dust entries worth {sum(e.value for e in ignored)} "
            f"(per input fee {settings.fees.per_input_fee()})"
        )

    transactions: list[bytes] = []
    for batch in _batches(spendable, max_inputs):
        total = sum(entry.value for entry in batch)
        fee = settings.fees.calculate(len(batch), 1)
        if total <= fee:
            logger.warning(
                f"Batch of {len(batch)} entries worth {total} cannot pay its fee {fee}, ignoring"
            )
            ignored.extend(batch)
            continue

        transactions.append(build_conversion_transaction(batch, keys, settings))
        logger.debug(f"Conversion transaction {len(transactions)}: {len(batch)} inputs, fee {fee}")

    conversion = Conversion(transactions=tuple(transactions), ignored=tuple(ignored))
    logger.info(
        f"Conversion: {conversion.transactions_size} transactions, "
        f"{conversion.ignored_count} ignored entries ({conversion.ignored_value})"
    )
    return conversion
