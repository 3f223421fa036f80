"""
tzipfs: Content-addressed backup and verification of Tezos token assets.

Builds a deduplicated IPFS manifest from token metadata, mirrors every
referenced object locally, and re-hashes the mirror to prove its integrity.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
