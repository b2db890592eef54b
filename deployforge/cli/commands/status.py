"""``deployforge status NETWORK``: show the recorded addresses of a network."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape

from deployforge.cli.wiring import resolve_settings
from deployforge.core.errors import DeploymentError
from deployforge.core.registry import AddressRegistry
from deployforge.monitor.renderer import ReportRenderer

console = Console()


def status_cmd(
    network: str = typer.Argument(None, help="Network to show; lists networks if omitted."),
    registry: Path = typer.Option(None, "--registry", help="Address registry directory."),
) -> None:
    """Show the address registry for NETWORK.

    Read-only: neither the chain nor the registry file is touched.
    """
    settings = resolve_settings(registry=registry)
    store = AddressRegistry(settings.registry_dir)

    try:
        if network is None:
            networks = store.networks()
            if not networks:
                console.print(f"[dim]No registry files under {store.base_path}.[/dim]")
                return
            for name in networks:
                console.print(f"  {name}")
            return
        record = store.load(network)
    except DeploymentError as exc:
        console.print(f"[bold red]Registry error:[/bold red] {escape(str(exc))}")
        raise typer.Exit(code=1)

    ReportRenderer(console=console).print_record(record)
