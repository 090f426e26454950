"""
Transaction building and witness signing.
"""

from __future__ import annotations

from dataclasses import dataclass

from jorcore.address import Address
from jorcore.constants import (
    MAX_INPUTS,
    MAX_OUTPUTS,
    WITNESS_ACCOUNT,
    WITNESS_OLD_UTXO,
    WITNESS_UTXO,
)
from jorcore.fragment import (
    Input,
    Output,
    Transaction,
    Witness,
    witness_account_data,
    witness_utxo_data,
)
from jorcore.models import Settings
from jorcore.vote import VoteCast
from jorwallet.wallet.bip32 import XPrv


class TransactionSigningError(Exception):
    pass


@dataclass
class _Signer:
    tag: int
    key: XPrv
    counter: int = 0


class TransactionBuilder:
    """
    Accumulates inputs (with the keys that sign them) and outputs, then
    produces a balanced, fully witnessed transaction.

    The ledger requires sum(inputs) == sum(outputs) + fee, with the fee
    given by the block0 linear fee policy.
    """

    def __init__(self, settings: Settings, certificate: VoteCast | None = None):
        self.settings = settings
        self.certificate = certificate
        self.inputs: list[Input] = []
        self.outputs: list[Output] = []
        self._signers: list[_Signer] = []

    def add_utxo_input(self, input: Input, key: XPrv, legacy: bool) -> None:
        self._check_room(len(self.inputs), MAX_INPUTS, "inputs")
        self.inputs.append(input)
        self._signers.append(_Signer(WITNESS_OLD_UTXO if legacy else WITNESS_UTXO, key))

    def add_account_input(self, key: XPrv, value: int, counter: int) -> None:
        self._check_room(len(self.inputs), MAX_INPUTS, "inputs")
        self.inputs.append(Input.account(key.public_key, value))
        self._signers.append(_Signer(WITNESS_ACCOUNT, key, counter))

    def add_output(self, address: Address, value: int) -> None:
        self._check_room(len(self.outputs), MAX_OUTPUTS, "outputs")
        self.outputs.append(Output(address, value))

    @staticmethod
    def _check_room(count: int, limit: int, what: str) -> None:
        if count >= limit:
            raise TransactionSigningError(f"Cannot add more than {limit} {what}")

    def certificate_fee(self) -> int:
        if self.certificate is None:
            return 0
        return self.settings.fees.vote_cast_fee()

    def estimate_fee(self, extra_inputs: int = 0, extra_outputs: int = 0) -> int:
        return self.settings.fees.calculate(
            len(self.inputs) + extra_inputs,
            len(self.outputs) + extra_outputs,
            self.certificate_fee(),
        )

    def finalize(self) -> Transaction:
        """Check balance, then sign every input over the transaction body."""
        input_total = sum(inp.value for inp in self.inputs)
        output_total = sum(out.value for out in self.outputs)
        fee = self.estimate_fee()
        if input_total != output_total + fee:
            raise TransactionSigningError(
                f"Unbalanced transaction: inputs {input_total} != "
                f"outputs {output_total} + fee {fee}"
            )

        unsigned = Transaction(
            inputs=tuple(self.inputs), outputs=tuple(self.outputs), certificate=self.certificate
        )
        sign_data_hash = unsigned.sign_data_hash()
        block0_hash = self.settings.block0_initial_hash

        witnesses = []
        for signer in self._signers:
            if signer.tag == WITNESS_OLD_UTXO:
                data = witness_utxo_data(WITNESS_OLD_UTXO, block0_hash, sign_data_hash)
                xpub = signer.key.xpub.to_bytes()
                witnesses.append(Witness.old_utxo(xpub, signer.key.sign(data)))
            elif signer.tag == WITNESS_UTXO:
                data = witness_utxo_data(WITNESS_UTXO, block0_hash, sign_data_hash)
                witnesses.append(Witness.utxo(signer.key.sign(data)))
            else:
                data = witness_account_data(block0_hash, sign_data_hash, signer.counter)
                witnesses.append(Witness.account(signer.key.sign(data)))

        return Transaction(
            inputs=unsigned.inputs,
            outputs=unsigned.outputs,
            witnesses=tuple(witnesses),
            certificate=self.certificate,
        )
