"""Deterministic (CREATE2) address calculation.

    address = keccak256(0xff ++ factory ++ salt ++ keccak256(init_code))[12:]

The result depends only on the (init code, salt, factory) triple, so it can
be predicted before deployment and re-checked afterwards.  Changing a single
byte of the init code changes the address, which is how bytecode drift
between runs is detected.
"""

from __future__ import annotations

from eth_utils import is_address, keccak, to_bytes, to_checksum_address

_PREFIX = b"\xff"
SALT_WIDTH = 32
ZERO_SALT = b"\x00" * SALT_WIDTH
ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


def salt_from_seed(seed: int | None) -> bytes:
    """Encode a vanity seed as a 32-byte big-endian salt (zero when absent)."""
    if seed is None:
        return ZERO_SALT
    if seed < 0 or seed.bit_length() > SALT_WIDTH * 8:
        raise ValueError(f"salt seed out of range: {seed}")
    return seed.to_bytes(SALT_WIDTH, "big")


def _as_bytes(value: bytes | str) -> bytes:
    if isinstance(value, str):
        return to_bytes(hexstr=value)
    return bytes(value)


def compute_address(init_code: bytes | str, salt: bytes, factory: str) -> str:
    """Return the checksummed address ``factory`` would create for this pair.

    Parameters
    ----------
    init_code:
        Fully linked creation bytecode including encoded constructor args,
        as bytes or 0x-hex.
    salt:
        Exactly 32 bytes; see ``salt_from_seed``.
    factory:
        Address of the CREATE2 deployer contract.
    """
    if len(salt) != SALT_WIDTH:
        raise ValueError(f"salt must be {SALT_WIDTH} bytes, got {len(salt)}")
    if not is_address(factory):
        raise ValueError(f"invalid factory address: {factory!r}")
    code_digest = keccak(_as_bytes(init_code))
    digest = keccak(_PREFIX + to_bytes(hexstr=factory) + salt + code_digest)
    return to_checksum_address(digest[12:])


def is_null_address(address: str | None) -> bool:
    """True for None, empty, zero or malformed addresses."""
    return not address or not is_address(address) or int(address, 16) == 0
