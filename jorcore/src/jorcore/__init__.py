"""
jorcore - Core library for the Jormungandr wallet

Provides the ledger primitives: binary codec, addresses, block0 and
transaction fragments, vote certificates and settings.
"""

__version__ = "0.1.0"

from jorcore.address import Address
from jorcore.block import Block0, ConfigParam, build_block0, decode_block0
from jorcore.codec import ByteReader, DecodeError
from jorcore.constants import MAX_INPUTS, NUM_CHOICES_MAX
from jorcore.crypto import blake2b256, verify_signature
from jorcore.fragment import Fragment, Input, Output, Transaction, Witness
from jorcore.legacy import LegacyAddress
from jorcore.models import Discrimination, LinearFee, Settings
from jorcore.vote import Options, PayloadType, VoteCast

__all__ = [
    "Address",
    "Block0",
    "ByteReader",
    "ConfigParam",
    "DecodeError",
    "Discrimination",
    "Fragment",
    "Input",
    "LegacyAddress",
    "LinearFee",
    "MAX_INPUTS",
    "NUM_CHOICES_MAX",
    "Options",
    "Output",
    "PayloadType",
    "Settings",
    "Transaction",
    "VoteCast",
    "Witness",
    "blake2b256",
    "build_block0",
    "decode_block0",
    "verify_signature",
]
