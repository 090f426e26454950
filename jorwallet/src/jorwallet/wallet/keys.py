"""
Key set held by a recovered wallet.
"""

from __future__ import annotations

from enum import Enum
from types import TracebackType

from jorwallet.wallet.bip32 import DerivationScheme, XPrv

# Account (staking) key of the first account, from the Icarus style master
ACCOUNT_KEY_PATH = "m/1852'/1815'/0'/2/0"

# Sequential (Icarus/Yoroi) legacy addresses: m/44'/1815'/0'/{chain}/{index}
ICARUS_ACCOUNT_PATH = "m/44'/1815'/0'"


class RecoveryScheme(str, Enum):
    ICARUS = "icarus"
    DAEDALUS = "daedalus"


class KeySet:
    """
    Keys able to sign for the wallet's funds.

    - root: legacy root key (with chain code) of the scheme that recovered
      the wallet, used to re-derive the keys of discovered legacy funds
    - account: signing key of the account, its public key is the wallet id

    Call wipe() (or use the key set as a context manager) to zero the
    secret material once the wallet is no longer needed.
    """

    def __init__(self, scheme: RecoveryScheme, root: XPrv, account: XPrv):
        self.scheme = scheme
        self._root = root
        self._account = account

    @property
    def root(self) -> XPrv:
        return self._root

    @property
    def account(self) -> XPrv:
        return self._account

    @property
    def wallet_id(self) -> bytes:
        """32 byte identifier of the wallet's account on chain."""
        return self._account.public_key

    @property
    def is_wiped(self) -> bool:
        return self._root.is_wiped and self._account.is_wiped

    def key_for(self, path: str, scheme: DerivationScheme = DerivationScheme.V2) -> XPrv:
        """
        Key at the given path. The account key is returned as is, other
        paths are derived from the legacy root with `scheme` and the caller
        owns (and should wipe) the result.
        """
        if path == ACCOUNT_KEY_PATH:
            return self._account
        return self._root.derive(path, scheme)

    def wipe(self) -> None:
        self._root.wipe()
        self._account.wipe()

    def __enter__(self) -> KeySet:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.wipe()

    def __repr__(self) -> str:
        return f"KeySet(scheme={self.scheme.value}, wallet_id={self.wallet_id.hex()})"
