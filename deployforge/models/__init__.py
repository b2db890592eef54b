"""deployforge data models: Pydantic v2, frozen."""

from deployforge.models.artifacts import (
    AbiArgs,
    ArtifactSpec,
    DeploymentTarget,
    LinkedBytecode,
)
from deployforge.models.config import RunConfig, is_dry_run_network
from deployforge.models.decisions import (
    ArtifactOutcome,
    DeployDecision,
    DeployVerdict,
    Observation,
    ProxyState,
    RunReport,
    UpgradeDecision,
    UpgradePlan,
)
from deployforge.models.registry import NetworkRecord

__all__ = [
    # artifacts
    "AbiArgs",
    "ArtifactSpec",
    "DeploymentTarget",
    "LinkedBytecode",
    # registry
    "NetworkRecord",
    # decisions
    "DeployVerdict",
    "DeployDecision",
    "Observation",
    "ProxyState",
    "UpgradeDecision",
    "UpgradePlan",
    "ArtifactOutcome",
    "RunReport",
    # config
    "RunConfig",
    "is_dry_run_network",
]
