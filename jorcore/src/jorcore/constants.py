"""
Jormungandr ledger constants.

Values that appear on the wire (tags, sizes, limits). Fee amounts are not
constants: they come from the block0 configuration.
"""

from __future__ import annotations

# Hash and key sizes
HASH_SIZE = 32
LEGACY_ROOT_SIZE = 28
PUBLIC_KEY_SIZE = 32
CHAIN_CODE_SIZE = 32
XPUB_SIZE = PUBLIC_KEY_SIZE + CHAIN_CODE_SIZE  # 64
SIGNATURE_SIZE = 64

# Block header
HEADER_VERSION_GENESIS = 0
HEADER_SIZE_GENESIS = 2 + 2 + 4 + 4 + 4 + 4 + HASH_SIZE + HASH_SIZE  # 84

# Fragment tags
FRAGMENT_INITIAL = 0
FRAGMENT_OLD_UTXO_DECLARATION = 1
FRAGMENT_TRANSACTION = 2
FRAGMENT_OWNER_STAKE_DELEGATION = 3
FRAGMENT_STAKE_DELEGATION = 4
FRAGMENT_POOL_REGISTRATION = 5
FRAGMENT_POOL_RETIREMENT = 6
FRAGMENT_POOL_UPDATE = 7
FRAGMENT_UPDATE_PROPOSAL = 8
FRAGMENT_UPDATE_VOTE = 9
FRAGMENT_VOTE_PLAN = 10
FRAGMENT_VOTE_CAST = 11
FRAGMENT_VOTE_TALLY = 12
FRAGMENT_ENCRYPTED_VOTE_TALLY = 13

# Config param tags (initial fragment)
CONFIG_BLOCK0_DATE = 1
CONFIG_DISCRIMINATION = 2
CONFIG_CONSENSUS_VERSION = 3
CONFIG_SLOTS_PER_EPOCH = 4
CONFIG_SLOT_DURATION = 5
CONFIG_LINEAR_FEE = 14
CONFIG_PER_CERTIFICATE_FEES = 21
CONFIG_PER_VOTE_CERTIFICATE_FEES = 28

# Config param header: 10 bits of tag, 6 bits of payload length
CONFIG_TAG_SHIFT = 6
CONFIG_LEN_MASK = 0x3F

# Discrimination byte in config params
DISCRIMINATION_PRODUCTION = 1
DISCRIMINATION_TEST = 2

# Address kinds (low 7 bits of the first address byte)
ADDRESS_KIND_SINGLE = 0x3
ADDRESS_KIND_GROUP = 0x4
ADDRESS_KIND_ACCOUNT = 0x5
ADDRESS_KIND_MULTISIG = 0x6
ADDRESS_TEST_FLAG = 0x80

# Bech32 human readable parts for chain addresses
ADDRESS_HRP_PRODUCTION = "ca"
ADDRESS_HRP_TEST = "ta"

# Transaction limits (counts are encoded on one byte)
MAX_INPUTS = 255
MAX_OUTPUTS = 255
INPUT_ACCOUNT_MARKER = 0xFF

# Witness tags
WITNESS_OLD_UTXO = 0
WITNESS_UTXO = 1
WITNESS_ACCOUNT = 2
WITNESS_MULTISIG = 3

# Voting
VOTE_PLAN_ID_LENGTH = HASH_SIZE
NUM_CHOICES_MAX = 16
PAYLOAD_TYPE_PUBLIC = 1
PAYLOAD_TYPE_PRIVATE = 2

# Maximum fragment size (u16 length prefix)
MAX_FRAGMENT_SIZE = 0xFFFF
