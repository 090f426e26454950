"""
Jormungandr wallet service.
"""

from __future__ import annotations

from types import TracebackType

from loguru import logger

from jorcore.address import Address
from jorcore.models import U64_MAX, Discrimination, Settings
from jorwallet.config import WalletConfig
from jorwallet.errors import InvalidInput
from jorwallet.wallet.conversion import convert
from jorwallet.wallet.keys import KeySet
from jorwallet.wallet.models import Conversion, UTXOEntry
from jorwallet.wallet.recovery import recover
from jorwallet.wallet.scanner import scan_funds
from jorwallet.wallet.state import AccountState
from jorwallet.wallet.vote import Proposal, VotePlan, cast_vote


class Wallet:
    """
    Wallet recovered from a mnemonic.
    Owns the key set, the funds discovered in block0 and the account state.

    Typical round:
    - Wallet.recover(mnemonic)
    - retrieve_funds(block0) -> settings
    - convert(settings): legacy funds to the account
    - set_state(value, counter) from the chain, then vote(...)

    Not thread safe: callers serialise access to one instance.
    """

    def __init__(self, keys: KeySet, config: WalletConfig | None = None):
        self.keys = keys
        self.config = config or WalletConfig()
        self.state = AccountState()

        self.utxo_cache: dict[tuple[bytes, int], UTXOEntry] = {}
        self.scanned_blocks: set[bytes] = set()

    @classmethod
    def recover(
        cls,
        mnemonic: str,
        passphrase: bytes = b"",
        config: WalletConfig | None = None,
    ) -> Wallet:
        return cls(recover(mnemonic, passphrase), config)

    @property
    def id(self) -> bytes:
        """32 byte wallet identifier (account public key), stable for the key set."""
        return self.keys.wallet_id

    def account_address(self, discrimination: Discrimination) -> Address:
        return Address.account(self.id, discrimination)

    @property
    def utxos(self) -> list[UTXOEntry]:
        return list(self.utxo_cache.values())

    def retrieve_funds(self, block0: bytes) -> Settings:
        """
        Scan block0 and merge the discovered funds.
        A block0 already scanned is not merged twice.
        """
        self._check_keys()
        funds, settings = scan_funds(block0, self.keys, self.config.gap_limit)

        if settings.block0_initial_hash in self.scanned_blocks:
            logger.info(f"Block0 {settings.block0_hash_hex[:16]}... already scanned")
            return settings

        value = self.state.value + funds.account_value
        if value > U64_MAX:
            raise InvalidInput(f"account value {value} overflows")
        new_utxos = [u for u in funds.utxos if u.pointer not in self.utxo_cache]
        total = self.total_value() + funds.account_value + sum(u.value for u in new_utxos)
        if total > U64_MAX:
            raise InvalidInput(f"wallet total value {total} overflows")

        self.state.set_state(value, self.state.counter)
        for utxo in new_utxos:
            self.utxo_cache[utxo.pointer] = utxo
        self.scanned_blocks.add(settings.block0_initial_hash)

        logger.info(
            f"Retrieved funds: {len(funds.utxos)} utxos, account value {self.state.value}"
        )
        return settings

    def total_value(self) -> int:
        """Account value plus the value of the not yet converted utxos."""
        return self.state.total_value() + sum(u.value for u in self.utxo_cache.values())

    def convert(self, settings: Settings) -> Conversion:
        """
        Build the conversion transactions for the discovered utxos.
        Converted entries are retired from the wallet, ignored ones stay.
        """
        self._check_keys()
        conversion = convert(
            self.utxos, self.keys, settings, self.config.max_inputs_per_transaction
        )
        ignored = {entry.pointer for entry in conversion.ignored}
        for pointer in list(self.utxo_cache):
            if pointer not in ignored:
                del self.utxo_cache[pointer]
        return conversion

    def set_state(self, value: int, counter: int) -> None:
        self.state.set_state(value, counter)

    def vote(
        self, settings: Settings, vote_plan: VotePlan, proposal: Proposal, choice: int
    ) -> bytes:
        self._check_keys()
        return cast_vote(self.keys, self.state, settings, vote_plan, proposal, choice)

    def _check_keys(self) -> None:
        if self.keys.is_wiped:
            raise InvalidInput("wallet keys have been wiped")

    def close(self) -> None:
        """Wipe the key set; the wallet cannot sign afterwards."""
        self.keys.wipe()
        logger.debug("Wallet keys wiped")

    def __enter__(self) -> Wallet:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()
