"""Chain access: the ``ChainClient`` Protocol and its implementations.

``Web3ChainClient`` talks to a real node through web3.py; ``InMemoryChain``
simulates just enough of one for tests and the demo.
"""

from deployforge.chain.client import (
    ChainClient,
    ChainClientError,
    DeploymentReceipt,
    TransactionReceipt,
)
from deployforge.chain.memory import InMemoryChain

__all__ = [
    "ChainClient",
    "ChainClientError",
    "DeploymentReceipt",
    "TransactionReceipt",
    "InMemoryChain",
]
