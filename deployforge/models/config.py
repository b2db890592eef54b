"""Per-run configuration models."""

from __future__ import annotations

import uuid

from pydantic import BaseModel, ConfigDict, Field


def is_dry_run_network(network: str) -> bool:
    """Networks whose deployments are throwaway and never persisted.

    ``test``, forks (``<name>-fork``) and local development chains
    (``develop``, ``develop-<x>``).
    """
    parts = network.split("-")
    return network == "test" or (len(parts) > 1 and parts[1] == "fork") or parts[0] == "develop"


class RunConfig(BaseModel):
    """Options for reconciling one network.

    ``dry_run`` plans without sending anything: decisions are computed and
    reported, no transaction is submitted and the registry is left alone.
    Dry-run *networks* do execute, but their addresses are never persisted.
    """

    model_config = ConfigDict(frozen=True)

    run_id: str = Field(default_factory=lambda: f"df-{uuid.uuid4().hex[:12]}")
    network: str
    selection: list[str] = []
    force: bool = False
    dry_run: bool = False

    @property
    def executes(self) -> bool:
        return not self.dry_run

    @property
    def persists(self) -> bool:
        return not (self.dry_run or is_dry_run_network(self.network))

    def is_forced(self, name: str) -> bool:
        """Force applies to the selection, or to everything without one."""
        if not self.force:
            return False
        return not self.selection or name in self.selection
