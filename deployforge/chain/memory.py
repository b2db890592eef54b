"""Deterministic in-process chain used by the test-suite and ``deployforge demo``.

It models just enough of an EVM chain for reconciliation:
- a CREATE2 factory: deployments land at ``compute_address``, and deploying
  twice at the same address reverts;
- runtime code equals the init code (constructors are not executed);
- contracts whose init code was registered with ``register_proxy`` answer
  ``implementation()`` and ``upgradeTo(address,bytes)``.
"""

from __future__ import annotations

import logging

from eth_abi import encode
from eth_utils import keccak, to_checksum_address

from deployforge.chain.client import ChainClientError, DeploymentReceipt, TransactionReceipt
from deployforge.chain.proxy_abi import (
    IMPLEMENTATION_SELECTOR,
    UPGRADE_SELECTOR,
    decode_upgrade_call,
)
from deployforge.core.create2 import ZERO_ADDRESS, compute_address

logger = logging.getLogger(__name__)

# Arachnid's deterministic deployment proxy, present on most EVM chains
DEFAULT_FACTORY = "0x4e59b44847b379578588920cA78FbF26c0B4956C"


class InMemoryChain:
    """Single-process simulated chain implementing ``ChainClient``.

    Parameters
    ----------
    factory_address:
        Address used as the CREATE2 deployer.
    """

    def __init__(self, factory_address: str = DEFAULT_FACTORY) -> None:
        self._factory = to_checksum_address(factory_address)
        self.code: dict[str, bytes] = {}
        self.implementations: dict[str, str] = {}
        self.init_data: dict[str, bytes] = {}
        self.transactions: list[tuple[str, str]] = []  # (kind, tx_hash)
        self._proxy_init_codes: set[bytes] = set()

    # ------------------------------------------------------------------
    # Test/demo helpers
    # ------------------------------------------------------------------

    def register_proxy(self, init_code: bytes | str) -> None:
        """Treat contracts created from ``init_code`` as upgradeable proxies."""
        if isinstance(init_code, str):
            init_code = bytes.fromhex(init_code.removeprefix("0x"))
        self._proxy_init_codes.add(bytes(init_code))

    def reset(self) -> None:
        """Wipe all state, as if the chain had been restarted from genesis."""
        self.code.clear()
        self.implementations.clear()
        self.init_data.clear()

    @property
    def transaction_count(self) -> int:
        return len(self.transactions)

    def _next_tx_hash(self, kind: str) -> str:
        tx_hash = "0x" + keccak(
            encode(["string", "uint256"], [kind, len(self.transactions)])
        ).hex()
        self.transactions.append((kind, tx_hash))
        return tx_hash

    # ------------------------------------------------------------------
    # ChainClient
    # ------------------------------------------------------------------

    @property
    def factory_address(self) -> str:
        return self._factory

    def get_code(self, address: str) -> bytes:
        return self.code.get(to_checksum_address(address), b"")

    def send_deployment(
        self, init_code: bytes, salt: bytes, *, sender: str | None = None
    ) -> DeploymentReceipt:
        address = compute_address(init_code, salt, self._factory)
        if self.code.get(address):
            raise ChainClientError(f"CREATE2 collision at {address}: execution reverted")
        tx_hash = self._next_tx_hash("deploy")
        self.code[address] = bytes(init_code)
        if bytes(init_code) in self._proxy_init_codes:
            self.implementations[address] = ZERO_ADDRESS
        logger.debug("Deployed %d bytes at %s (from=%s)", len(init_code), address, sender)
        return DeploymentReceipt(transaction_hash=tx_hash, address=address)

    def call(self, address: str, data: bytes) -> bytes:
        address = to_checksum_address(address)
        if address in self.implementations and data[:4] == IMPLEMENTATION_SELECTOR:
            return encode(["address"], [self.implementations[address]])
        raise ChainClientError(f"call to {address} reverted")

    def transact(
        self, address: str, data: bytes, *, sender: str | None = None
    ) -> TransactionReceipt:
        address = to_checksum_address(address)
        tx_hash = self._next_tx_hash("transact")
        if address not in self.implementations or data[:4] != UPGRADE_SELECTOR:
            return TransactionReceipt(transaction_hash=tx_hash, status=0)
        implementation, init_data = decode_upgrade_call(data)
        if not self.code.get(implementation):
            return TransactionReceipt(transaction_hash=tx_hash, status=0)
        self.implementations[address] = implementation
        self.init_data[address] = init_data
        return TransactionReceipt(transaction_hash=tx_hash, status=1)
