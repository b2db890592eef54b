"""Keccak fingerprints for on-chain code.

Code hashes match what ``EXTCODEHASH`` reports for a deployed contract, so
a registry entry can be checked against any block explorer.
"""

from __future__ import annotations

from eth_utils import keccak


def keccak_hex(data: bytes) -> str:
    """Return the 0x-prefixed keccak256 hex digest of raw bytes."""
    return "0x" + keccak(data).hex()


def code_hash(code: bytes) -> str:
    """Fingerprint of runtime code, as stored in the address registry."""
    return keccak_hex(code)
