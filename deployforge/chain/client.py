"""Boundary with the chain client.

The engine reaches the chain only through the ``ChainClient`` Protocol.
Transient RPC failures are retried inside the client; whatever it cannot
recover from (exhausted retries, confirmation timeouts) surfaces as
``ChainClientError``, which the engine turns into
``ArtifactDeploymentFailed`` and halts the run.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict


class ChainClientError(RuntimeError):
    """Raised by a chain client when an RPC interaction cannot complete."""


class DeploymentReceipt(BaseModel):
    """Result of a factory deployment transaction."""

    model_config = ConfigDict(frozen=True)

    transaction_hash: str
    address: str | None = None  # as reported by the factory, if known
    confirmed: bool = True


class TransactionReceipt(BaseModel):
    model_config = ConfigDict(frozen=True)

    transaction_hash: str
    status: int = 1

    @property
    def succeeded(self) -> bool:
        return self.status == 1


@runtime_checkable
class ChainClient(Protocol):
    """Narrow interface the reconciliation engine needs from a chain."""

    @property
    def factory_address(self) -> str:
        """Address of the CREATE2 deployer used for singleton deployments."""
        ...

    def get_code(self, address: str) -> bytes:
        """Return runtime code at ``address`` (empty bytes if none)."""
        ...

    def send_deployment(
        self, init_code: bytes, salt: bytes, *, sender: str | None = None
    ) -> DeploymentReceipt:
        """Deploy ``init_code`` through the factory and wait for confirmation."""
        ...

    def call(self, address: str, data: bytes) -> bytes:
        """Read-only call; returns raw return data."""
        ...

    def transact(
        self, address: str, data: bytes, *, sender: str | None = None
    ) -> TransactionReceipt:
        """Submit a state-changing call and wait for its receipt.

        A revert is reported as ``status == 0`` rather than raised.
        """
        ...
