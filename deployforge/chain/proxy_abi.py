"""Calldata for the upgradeable proxy interface.

Proxies expose ``implementation() returns (address)`` and
``upgradeTo(address,bytes)``; the bytes argument is the initializer
payload forwarded to the new implementation.
"""

from __future__ import annotations

from eth_abi import decode, encode
from eth_utils import function_signature_to_4byte_selector, to_checksum_address

IMPLEMENTATION_SELECTOR = function_signature_to_4byte_selector("implementation()")
UPGRADE_SELECTOR = function_signature_to_4byte_selector("upgradeTo(address,bytes)")


def encode_implementation_call() -> bytes:
    return IMPLEMENTATION_SELECTOR


def decode_address(data: bytes) -> str:
    """Decode a single ABI-encoded address (empty data reads as zero)."""
    if not data:
        return to_checksum_address(b"\x00" * 20)
    (address,) = decode(["address"], data)
    return to_checksum_address(address)


def encode_upgrade_call(implementation: str, init_data: bytes = b"") -> bytes:
    return UPGRADE_SELECTOR + encode(
        ["address", "bytes"], [to_checksum_address(implementation), init_data]
    )


def decode_upgrade_call(data: bytes) -> tuple[str, bytes]:
    """Inverse of ``encode_upgrade_call``; raises ValueError on other selectors."""
    if data[:4] != UPGRADE_SELECTOR:
        raise ValueError("not an upgradeTo(address,bytes) call")
    implementation, init_data = decode(["address", "bytes"], data[4:])
    return to_checksum_address(implementation), init_data
