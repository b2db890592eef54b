"""``deployforge deploy NETWORK``: reconcile one network against its registry.

Deploys whatever is missing or has drifted, skips everything already in
place, retargets proxies whose implementation moved, and prints a report.
"""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape

from deployforge.cli.wiring import build_orchestrator, resolve_settings
from deployforge.core.errors import DeploymentError
from deployforge.logging_setup import configure_logging
from deployforge.models.config import RunConfig
from deployforge.monitor.renderer import ReportRenderer

console = Console()


def deploy_cmd(
    network: str = typer.Argument(..., help="Network identifier, e.g. 'ethereum:sepolia'."),
    only: list[str] = typer.Option(
        [],
        "--only",
        "-o",
        help="Restrict the run to these artifacts (and their dependencies).",
    ),
    force: bool = typer.Option(
        False,
        "--force",
        "-f",
        help="Ignore recorded addresses for the selected artifacts (all if none).",
    ),
    dry_run: bool = typer.Option(
        False,
        "--dry-run",
        help="Compute and print verdicts without sending transactions.",
    ),
    specs: Path = typer.Option(None, "--specs", help="Spec table file (JSON or TOML)."),
    registry: Path = typer.Option(None, "--registry", help="Address registry directory."),
    artifacts: Path = typer.Option(None, "--artifacts", help="Build artifacts directory."),
) -> None:
    """Deploy every artifact of NETWORK that is not already in place."""
    settings = resolve_settings(specs=specs, registry=registry, artifacts=artifacts)
    configure_logging(settings.log_level)

    try:
        orchestrator = build_orchestrator(settings, network)
        report = orchestrator.run(
            RunConfig(network=network, selection=only, force=force, dry_run=dry_run)
        )
    except DeploymentError as exc:
        console.print(f"[bold red]Deployment failed:[/bold red] {escape(str(exc))}")
        raise typer.Exit(code=1)
    except (OSError, ValueError) as exc:
        console.print(f"[bold red]Configuration error:[/bold red] {escape(str(exc))}")
        raise typer.Exit(code=1)

    ReportRenderer(console=console).print_report(report)
