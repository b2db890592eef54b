"""``deployforge demo``: three runs against an in-memory chain.

1. Fresh network: a library, a contract linked against it and an
   upgradeable board behind a proxy are all deployed.
2. Same inputs again: every artifact is skipped, no transaction is sent.
3. The contract's bytecode changes: only that contract is redeployed.
"""

from __future__ import annotations

import tempfile
from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel

from deployforge.chain.memory import InMemoryChain
from deployforge.core.artifact_source import StaticBytecodeSource
from deployforge.core.errors import DeploymentError
from deployforge.core.linker import library_marker
from deployforge.core.orchestrator import Orchestrator
from deployforge.core.registry import AddressRegistry
from deployforge.core.spec_table import ArtifactSpecTable
from deployforge.logging_setup import configure_logging
from deployforge.models.config import RunConfig
from deployforge.monitor.renderer import ReportRenderer

console = Console()

DEMO_NETWORK = "demo:local"
DEMO_PROXY = "ForgeProxy"

DEMO_SPECS = {
    "default": {
        "Contract": {"baseLibs": ["Lib"]},
        "Board": {
            "contract": "BoardImpl",
            "upgradable": True,
            "vanity": 7,
            "mutables": {"types": ["uint256"], "values": [42]},
        },
    },
}


def demo_bytecodes() -> dict[str, str]:
    """Synthetic creation bytecode; ``Contract`` carries a ``Lib`` placeholder."""
    return {
        "Lib": "0x608060405234801561001057600080fd5b50",
        "Contract": "0x6080604052" + "73" + library_marker("Lib") + "5af415",
        "BoardImpl": "0x60806040526002600055",
        DEMO_PROXY: "0x608060405260405161",
    }


def demo_cmd(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show engine log output."),
) -> None:
    """Run the idempotence demo on a throwaway in-memory chain."""
    configure_logging("INFO" if verbose else "WARNING")

    source = StaticBytecodeSource(demo_bytecodes())
    chain = InMemoryChain()
    chain.register_proxy(demo_bytecodes()[DEMO_PROXY])
    table = ArtifactSpecTable.from_mapping(DEMO_SPECS, DEMO_NETWORK)
    renderer = ReportRenderer(console=console)

    console.print()
    console.print(
        Panel(
            "[bold]deployforge demo[/bold]\n\n"
            "Three runs against an in-memory chain and a temporary registry.",
            border_style="cyan",
            padding=(1, 2),
        )
    )

    with tempfile.TemporaryDirectory(prefix="deployforge-demo-") as tmp:
        orchestrator = Orchestrator(
            table, chain, AddressRegistry(Path(tmp)), source, proxy_contract=DEMO_PROXY
        )
        runs = [
            ("Run 1: fresh network", None),
            ("Run 2: nothing changed", None),
            ("Run 3: Contract bytecode changed", "0x6080604053" + "73" + library_marker("Lib") + "5af415"),
        ]
        counts: list[int] = []
        for title, contract_code in runs:
            if contract_code is not None:
                source.set("Contract", contract_code)
            console.print(f"\n[cyan]>>> {title}[/cyan]")
            try:
                report = orchestrator.run(RunConfig(network=DEMO_NETWORK))
            except DeploymentError as exc:
                console.print(f"[bold red]Run failed:[/bold red] {escape(str(exc))}")
                raise typer.Exit(code=1)
            renderer.print_report(report)
            counts.append(report.transactions)

    console.print(
        "\n[bold green]Transactions per run:[/bold green] "
        + " / ".join(str(c) for c in counts)
    )
