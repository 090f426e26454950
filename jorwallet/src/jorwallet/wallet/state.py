"""
On-chain account state as last reported by the caller.
"""

from __future__ import annotations

from loguru import logger

from jorcore.models import U64_MAX
from jorwallet.errors import InvalidInput

U32_MAX = 2**32 - 1


class AccountState:
    """
    Spendable value and anti-replay counter of the wallet's account.

    The wallet never advances the counter itself: transactions it builds may
    never be submitted, so the caller refreshes the state from the chain
    with set_state() after observing their effect.
    """

    def __init__(self, value: int = 0, counter: int = 0):
        self._value = 0
        self._counter = 0
        self.set_state(value, counter)

    @property
    def value(self) -> int:
        return self._value

    @property
    def counter(self) -> int:
        return self._counter

    def set_state(self, value: int, counter: int) -> None:
        """Overwrite value and counter. Monotonicity is not checked."""
        if not 0 <= value <= U64_MAX:
            raise InvalidInput(f"account value {value} is not a 64 bit unsigned amount")
        if not 0 <= counter <= U32_MAX:
            raise InvalidInput(f"account counter {counter} is not a 32 bit unsigned integer")
        self._value = value
        self._counter = counter
        logger.debug(f"Account state set: value={value}, counter={counter}")

    def total_value(self) -> int:
        return self._value

    def __repr__(self) -> str:
        return f"AccountState(value={self._value}, counter={self._counter})"
