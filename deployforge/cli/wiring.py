"""Builds the object graph a CLI command needs from ``ForgeSettings``."""

from __future__ import annotations

from pathlib import Path

from deployforge.chain.web3_client import Web3ChainClient
from deployforge.config import ForgeSettings
from deployforge.core.artifact_source import BuildArtifactSource
from deployforge.core.orchestrator import Orchestrator
from deployforge.core.registry import AddressRegistry
from deployforge.core.spec_table import ArtifactSpecTable


def resolve_settings(
    *,
    specs: Path | None = None,
    registry: Path | None = None,
    artifacts: Path | None = None,
) -> ForgeSettings:
    """Environment settings with command-line path overrides applied."""
    settings = ForgeSettings()
    overrides = {
        "specs_path": specs,
        "registry_dir": registry,
        "artifacts_dir": artifacts,
    }
    return settings.model_copy(update={k: v for k, v in overrides.items() if v is not None})


def load_table(settings: ForgeSettings, network: str) -> ArtifactSpecTable:
    if not settings.specs_path.exists():
        raise FileNotFoundError(f"spec table not found: {settings.specs_path}")
    return ArtifactSpecTable.from_file(settings.specs_path, network)


def build_orchestrator(settings: ForgeSettings, network: str) -> Orchestrator:
    """Orchestrator over a live node, as configured by ``DEPLOYFORGE_*``."""
    return Orchestrator(
        load_table(settings, network),
        Web3ChainClient.from_settings(settings),
        AddressRegistry(settings.registry_dir),
        BuildArtifactSource(settings.artifacts_dir),
        proxy_contract=settings.proxy_contract,
    )
