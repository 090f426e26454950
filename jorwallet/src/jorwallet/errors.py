"""
Wallet error taxonomy.

Every fallible operation raises a subclass of WalletError. The `kind` lets
callers choose between "fix the input and retry" (invalid_input), "the
data source is bad" (block_decode), "the phrase is simply wrong" (recovery)
and out of range access (out_of_bound). The underlying cause, when there is
one, is chained with `raise ... from` and exposed as `cause`.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    INVALID_INPUT = "invalid_input"
    BLOCK_DECODE = "block_decode"
    RECOVERY = "recovery"
    OUT_OF_BOUND = "out_of_bound"


class WalletError(Exception):
    kind: ErrorKind

    def __init__(self, details: str):
        super().__init__(details)
        self.details = details

    @property
    def cause(self) -> BaseException | None:
        return self.__cause__

    def __str__(self) -> str:
        if self.__cause__ is not None:
            return f"{self.kind.value}: {self.details} ({self.__cause__})"
        return f"{self.kind.value}: {self.details}"


class InvalidInput(WalletError):
    kind = ErrorKind.INVALID_INPUT


class InvalidMnemonic(InvalidInput):
    pass


class InvalidPayloadType(InvalidInput):
    pass


class InvalidChoiceCount(InvalidInput):
    pass


class ChoiceOutOfRange(InvalidInput):
    pass


class BlockDecodeError(WalletError):
    kind = ErrorKind.BLOCK_DECODE


class RecoveryError(WalletError):
    kind = ErrorKind.RECOVERY


class OutOfBound(WalletError):
    kind = ErrorKind.OUT_OF_BOUND
