"""
jorwallet - Jormungandr wallet engine

Key recovery, block0 funds discovery, legacy funds conversion and vote casting.
"""

__version__ = "0.1.0"
