"""Per-network reconciliation record."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict


class NetworkRecord(BaseModel):
    """Addresses and code fingerprints last observed on one network.

    ``addresses`` maps artifact name to address (``None`` meaning "not yet
    observed").  ``extra`` holds keys found in the network's mapping that
    are not addresses; they are written back untouched.

    Records are immutable: updates go through
    ``AddressRegistry.record_deployment``, which returns a new value.
    """

    model_config = ConfigDict(frozen=True)

    network: str
    addresses: dict[str, str | None] = {}
    code_hashes: dict[str, str] = {}
    extra: dict[str, Any] = {}

    def __contains__(self, name: object) -> bool:
        return name in self.addresses
