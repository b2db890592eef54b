"""Rich terminal renderer for run reports and registry records.

Color scheme
------------
- dim       : SKIP (nothing sent)
- green     : DEPLOY
- cyan      : LINK_AND_DEPLOY
- yellow    : adopted code, proxy retargets
- magenta   : planned but not executed (dry run)
"""

from __future__ import annotations

from rich.console import Console, Group
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from deployforge.models.decisions import (
    ArtifactOutcome,
    DeployVerdict,
    RunReport,
    UpgradeDecision,
)
from deployforge.models.registry import NetworkRecord

# ---------------------------------------------------------------------------
# Verdict -> Rich markup
# ---------------------------------------------------------------------------

_VERDICT_LABELS: dict[DeployVerdict, str] = {
    DeployVerdict.SKIP: "[dim]SKIP[/dim]",
    DeployVerdict.DEPLOY: "[green]DEPLOY[/green]",
    DeployVerdict.LINK_AND_DEPLOY: "[cyan]LINK+DEPLOY[/cyan]",
}

_UPGRADE_LABELS: dict[UpgradeDecision, str] = {
    UpgradeDecision.NO_OP_ALREADY_CURRENT: "[dim]current[/dim]",
    UpgradeDecision.DEPLOY_IMPLEMENTATION: "[green]new implementation[/green]",
    UpgradeDecision.RETARGET_PROXY_ONLY: "[yellow]retarget[/yellow]",
    UpgradeDecision.DEPLOY_AND_RETARGET: "[yellow]deploy + retarget[/yellow]",
}


def _short(value: str | None, keep: int = 10) -> str:
    if not value:
        return "[dim]-[/dim]"
    if len(value) <= keep * 2:
        return value
    return f"{value[:keep]}...{value[-4:]}"


class ReportRenderer:
    """Renders deployment results as Rich terminal output.

    Parameters
    ----------
    console:
        Rich Console instance.  A new one is created if not provided.
    """

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()

    # ------------------------------------------------------------------
    # Run reports
    # ------------------------------------------------------------------

    @staticmethod
    def _verdict_label(outcome: ArtifactOutcome) -> str:
        label = _VERDICT_LABELS.get(outcome.verdict, outcome.verdict.value)
        if outcome.verdict != DeployVerdict.SKIP and not outcome.deployed:
            return f"[magenta]{outcome.verdict.value} (planned)[/magenta]"
        if outcome.reason.startswith("adopted"):
            return "[yellow]ADOPT[/yellow]"
        return label

    def render_report(self, report: RunReport) -> Panel:
        """Render a RunReport as a Panel with an artifact table and proxy table."""
        table = Table(show_header=True, header_style="bold cyan", expand=True)
        table.add_column("Artifact", min_width=16)
        table.add_column("Contract", style="dim")
        table.add_column("Verdict", justify="center")
        table.add_column("Address")
        table.add_column("Reason", style="dim")
        table.add_column("Tx", style="dim")

        for outcome in report.outcomes:
            table.add_row(
                outcome.key,
                outcome.contract,
                self._verdict_label(outcome),
                outcome.address,
                outcome.reason,
                _short(outcome.transaction_hash),
            )

        parts: list = [table]
        if report.upgrades:
            proxies = Table(show_header=True, header_style="bold cyan", expand=True)
            proxies.add_column("Proxy", min_width=16)
            proxies.add_column("State", justify="center")
            proxies.add_column("Decision")
            proxies.add_column("Implementation")
            proxies.add_column("Previous", style="dim")
            for plan in report.upgrades:
                proxies.add_row(
                    plan.proxy,
                    plan.state.value,
                    _UPGRADE_LABELS.get(plan.decision, plan.decision.value),
                    plan.implementation_address,
                    _short(plan.previous_implementation),
                )
            parts.extend([Text(""), proxies])

        mode = "[magenta]dry run[/magenta]" if report.dry_run else "[green]persisted[/green]"
        summary = (
            f"[bold]Network:[/bold] {report.network}  |  "
            f"[bold]Artifacts:[/bold] {len(report.outcomes)}  |  "
            f"[bold]Transactions:[/bold] {report.transactions}  |  "
            f"[bold]Registry:[/bold] {mode}"
        )
        parts.extend([Text(""), Text.from_markup(summary)])

        return Panel(
            Group(*parts),
            title="[bold]Deployment Report[/bold]",
            border_style="blue",
            padding=(1, 2),
        )

    def print_report(self, report: RunReport) -> None:
        self.console.print(self.render_report(report))

    # ------------------------------------------------------------------
    # Registry
    # ------------------------------------------------------------------

    def render_record(self, record: NetworkRecord) -> Table:
        """Render a network's registry entries as a Table."""
        table = Table(
            title=f"Registry: {record.network}",
            show_header=True,
            header_style="bold cyan",
        )
        table.add_column("Artifact", style="cyan")
        table.add_column("Address")
        table.add_column("Code hash", style="dim")

        for name in sorted(record.addresses):
            address = record.addresses[name]
            table.add_row(
                name,
                address or "[dim]unset[/dim]",
                _short(record.code_hashes.get(name)),
            )
        return table

    def print_record(self, record: NetworkRecord) -> None:
        if not record.addresses:
            self.console.print(f"[dim]No artifacts recorded for {record.network}.[/dim]")
            return
        self.console.print(self.render_record(record))
