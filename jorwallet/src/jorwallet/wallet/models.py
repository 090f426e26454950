"""
Wallet data models.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from jorcore.fragment import Input
from jorwallet.errors import OutOfBound
from jorwallet.wallet.bip32 import DerivationScheme


@dataclass(frozen=True)
class UTXOEntry:
    """Spendable output discovered in block0, with wallet context"""

    fragment_id: bytes
    output_index: int
    value: int
    address: bytes
    path: str  # derivation path of the key that signs for this output
    legacy: bool = True  # legacy outputs need an old utxo witness (xpub + signature)
    derivation: DerivationScheme = DerivationScheme.V2  # how `path` is derived from the root

    @property
    def pointer(self) -> tuple[bytes, int]:
        return self.fragment_id, self.output_index

    def to_input(self) -> Input:
        return Input.utxo(self.fragment_id, self.output_index, self.value)


@dataclass
class Funds:
    """Result of scanning a block for the wallet's funds"""

    utxos: list[UTXOEntry] = field(default_factory=list)
    account_value: int = 0

    @property
    def utxo_value(self) -> int:
        return sum(utxo.value for utxo in self.utxos)

    @property
    def total_value(self) -> int:
        return self.utxo_value + self.account_value

    def is_empty(self) -> bool:
        return not self.utxos and self.account_value == 0


@dataclass(frozen=True)
class Conversion:
    """
    Signed transactions moving legacy funds to the account, plus the dust
    entries that were left out because spending them costs more than they hold.
    """

    transactions: tuple[bytes, ...] = ()
    ignored: tuple[UTXOEntry, ...] = ()

    @property
    def transactions_size(self) -> int:
        return len(self.transactions)

    def transaction(self, index: int) -> bytes:
        if not 0 <= index < len(self.transactions):
            raise OutOfBound(
                f"transaction index {index} out of range (0..{len(self.transactions) - 1})"
            )
        return self.transactions[index]

    @property
    def ignored_value(self) -> int:
        return sum(entry.value for entry in self.ignored)

    @property
    def ignored_count(self) -> int:
        return len(self.ignored)
