"""Verdicts and outcomes produced while reconciling a network.

None of these are persisted.  Only their effects, the resulting registry
entries, survive a run.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict


class DeployVerdict(str, Enum):
    """What the decision engine does with one artifact."""

    SKIP = "skip"
    DEPLOY = "deploy"
    LINK_AND_DEPLOY = "link_and_deploy"


class ProxyState(str, Enum):
    """Live state of a proxy relative to the resolved implementation."""

    UNINITIALIZED = "uninitialized"
    CURRENT = "current"
    STALE = "stale"


class UpgradeDecision(str, Enum):
    NO_OP_ALREADY_CURRENT = "no_op_already_current"
    DEPLOY_IMPLEMENTATION = "deploy_implementation"
    RETARGET_PROXY_ONLY = "retarget_proxy_only"
    DEPLOY_AND_RETARGET = "deploy_and_retarget"


class Observation(BaseModel):
    """Registry and chain state gathered before deciding."""

    model_config = ConfigDict(frozen=True)

    key: str
    predicted_address: str
    predicted_has_code: bool
    recorded_address: str | None = None
    recorded_has_code: bool = False


class DeployDecision(BaseModel):
    model_config = ConfigDict(frozen=True)

    key: str
    verdict: DeployVerdict
    address: str  # predicted address the artifact must end up at
    recorded_address: str | None = None
    reason: str = ""

    @property
    def deploys(self) -> bool:
        return self.verdict != DeployVerdict.SKIP


class UpgradePlan(BaseModel):
    """Proxy resolver outcome: decision plus the implementation used."""

    model_config = ConfigDict(frozen=True)

    proxy: str
    proxy_address: str
    state: ProxyState
    decision: UpgradeDecision
    implementation_address: str
    previous_implementation: str | None = None
    previous_code_hash: str | None = None
    transaction_hash: str | None = None


class ArtifactOutcome(BaseModel):
    """Committed result for one registry key."""

    model_config = ConfigDict(frozen=True)

    key: str
    contract: str
    verdict: DeployVerdict
    address: str
    code_hash: str = ""
    reason: str = ""
    transaction_hash: str | None = None

    @property
    def deployed(self) -> bool:
        return self.transaction_hash is not None


class RunReport(BaseModel):
    """Summary of one network reconciliation run."""

    model_config = ConfigDict(frozen=True)

    network: str
    dry_run: bool = False
    outcomes: list[ArtifactOutcome] = []
    upgrades: list[UpgradePlan] = []

    @property
    def transactions(self) -> int:
        """Number of transactions submitted during the run."""
        deployed = sum(1 for o in self.outcomes if o.deployed)
        retargets = sum(1 for u in self.upgrades if u.transaction_hash is not None)
        return deployed + retargets

    def outcome(self, key: str) -> ArtifactOutcome | None:
        for o in self.outcomes:
            if o.key == key:
                return o
        return None
