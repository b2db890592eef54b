"""``deployforge predict NETWORK NAME``: print an artifact's CREATE2 address.

Dependencies are taken from the network's registry; nothing is sent.
"""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape

from deployforge.chain.memory import DEFAULT_FACTORY, InMemoryChain
from deployforge.cli.wiring import load_table, resolve_settings
from deployforge.core.artifact_source import BuildArtifactSource
from deployforge.core.errors import DeploymentError
from deployforge.core.orchestrator import Orchestrator
from deployforge.core.registry import AddressRegistry

console = Console()


def predict_cmd(
    network: str = typer.Argument(..., help="Network identifier."),
    name: str = typer.Argument(..., help="Artifact name."),
    specs: Path = typer.Option(None, "--specs", help="Spec table file (JSON or TOML)."),
    registry: Path = typer.Option(None, "--registry", help="Address registry directory."),
    artifacts: Path = typer.Option(None, "--artifacts", help="Build artifacts directory."),
) -> None:
    """Print the deterministic address NAME would be deployed at on NETWORK."""
    settings = resolve_settings(specs=specs, registry=registry, artifacts=artifacts)

    try:
        # only the factory address is needed, no RPC connection
        chain = InMemoryChain(settings.factory_address or DEFAULT_FACTORY)
        orchestrator = Orchestrator(
            load_table(settings, network),
            chain,
            AddressRegistry(settings.registry_dir),
            BuildArtifactSource(settings.artifacts_dir),
            proxy_contract=settings.proxy_contract,
        )
        address = orchestrator.predict(network, name)
    except DeploymentError as exc:
        console.print(f"[bold red]Prediction failed:[/bold red] {escape(str(exc))}")
        raise typer.Exit(code=1)
    except (OSError, ValueError) as exc:
        console.print(f"[bold red]Configuration error:[/bold red] {escape(str(exc))}")
        raise typer.Exit(code=1)

    console.print(address)
