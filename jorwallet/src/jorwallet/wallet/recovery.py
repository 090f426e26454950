"""
Wallet recovery from a BIP39 mnemonic.

The same phrase can belong to several historical wallet formats, so the
derivation schemes are tried in a fixed priority order and the first one
that applies produces the legacy root key:

- ICARUS (Yoroi, 15 to 24 words): root = PBKDF2-HMAC-SHA512(passphrase,
  entropy, 4096 rounds, 96 bytes), clamped.
- DAEDALUS (legacy random wallets, 12 words, no passphrase): root found by
  iterating HMAC-SHA512(seed, "Root Seed Chain i") until the hashed key has
  bit 5 of its last byte cleared.

The account key is always derived from the ICARUS style master of the
same entropy and passphrase, so a passphrase is honoured by every scheme
that accepts the phrase: the Daedalus format has no passphrase and declines
instead of silently ignoring one.
"""

from __future__ import annotations

import hashlib
import hmac
from collections.abc import Callable

from cbor2 import dumps
from loguru import logger
from mnemonic import Mnemonic

from jorcore.crypto import blake2b256
from jorwallet.errors import InvalidMnemonic, RecoveryError
from jorwallet.wallet.bip32 import XPrv
from jorwallet.wallet.keys import ACCOUNT_KEY_PATH, KeySet, RecoveryScheme

ICARUS_PBKDF2_ROUNDS = 4096
ICARUS_ENTROPY_SIZES = (20, 24, 28, 32)
DAEDALUS_ENTROPY_SIZE = 16
DAEDALUS_MAX_ITERATIONS = 1000

SCHEME_PRIORITY: tuple[RecoveryScheme, ...] = (RecoveryScheme.ICARUS, RecoveryScheme.DAEDALUS)

_wordlist = Mnemonic("english")


def mnemonic_to_entropy(phrase: str) -> bytearray:
    """Validate word count, words and checksum; return the entropy."""
    normalized = " ".join(Mnemonic.normalize_string(phrase).split())
    try:
        return bytearray(_wordlist.to_entropy(normalized))
    except (ValueError, LookupError) as e:
        raise InvalidMnemonic("mnemonics") from e


def icarus_master_key(entropy: bytes, passphrase: bytes) -> XPrv:
    data = bytearray(
        hashlib.pbkdf2_hmac(
            "sha512", bytes(passphrase), bytes(entropy), ICARUS_PBKDF2_ROUNDS, dklen=96
        )
    )
    data[0] &= 0b1111_1000
    data[31] &= 0b0001_1111
    data[31] |= 0b0100_0000
    try:
        return XPrv(bytes(data[:64]), bytes(data[64:]))
    finally:
        for i in range(len(data)):
            data[i] = 0


def _derive_icarus(entropy: bytes, passphrase: bytes) -> XPrv | None:
    if len(entropy) not in ICARUS_ENTROPY_SIZES:
        return None
    return icarus_master_key(entropy, passphrase)


def _derive_daedalus(entropy: bytes, passphrase: bytes) -> XPrv | None:
    if len(entropy) != DAEDALUS_ENTROPY_SIZE or passphrase:
        return None

    seed = dumps(blake2b256(dumps(bytes(entropy))))
    for i in range(1, DAEDALUS_MAX_ITERATIONS + 1):
        digest = hmac.new(seed, f"Root Seed Chain {i}".encode(), hashlib.sha512).digest()
        extended = bytearray(hashlib.sha512(digest[:32]).digest())
        if extended[31] & 0b0010_0000:
            continue
        extended[0] &= 0b1111_1000
        extended[31] &= 0b0111_1111
        extended[31] |= 0b0100_0000
        return XPrv(bytes(extended), digest[32:])
    return None


_DERIVATIONS: dict[RecoveryScheme, Callable[[bytes, bytes], XPrv | None]] = {
    RecoveryScheme.ICARUS: _derive_icarus,
    RecoveryScheme.DAEDALUS: _derive_daedalus,
}


def derive_account_key(entropy: bytes, passphrase: bytes) -> XPrv:
    master = icarus_master_key(entropy, passphrase)
    try:
        return master.derive(ACCOUNT_KEY_PATH)
    finally:
        master.wipe()


def recover(mnemonic: str, passphrase: bytes = b"") -> KeySet:
    """
    Recover the wallet keys from a mnemonic and optional passphrase.

    Raises:
        InvalidMnemonic: the phrase has a wrong length, unknown word or bad
            checksum (checked before any derivation)
        RecoveryError: no derivation scheme applies to this phrase
    """
    entropy = mnemonic_to_entropy(mnemonic)
    passphrase = bytes(passphrase or b"")
    try:
        for scheme in SCHEME_PRIORITY:
            root = _DERIVATIONS[scheme](entropy, passphrase)
            if root is None:
                logger.debug(f"Recovery scheme {scheme.value} does not apply")
                continue
            try:
                account = derive_account_key(entropy, passphrase)
            except Exception:
                root.wipe()
                raise
            logger.info(f"Recovered {scheme.value} wallet ({len(entropy) * 8} bits of entropy)")
            return KeySet(scheme, root, account)
    finally:
        for i in range(len(entropy)):
            entropy[i] = 0

    raise RecoveryError(
        "no derivation scheme applies to this mnemonic"
        + (" and passphrase" if passphrase else "")
    )
