"""Main Typer application: imports and registers all CLI commands.

Entry point: ``deployforge`` (configured via pyproject.toml scripts).
"""

from __future__ import annotations

import typer

from deployforge.cli.commands.demo import demo_cmd
from deployforge.cli.commands.deploy import deploy_cmd
from deployforge.cli.commands.predict import predict_cmd
from deployforge.cli.commands.status import status_cmd

app = typer.Typer(
    name="deployforge",
    help="deployforge: deterministic, idempotent multi-network contract deployment.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)

# Register subcommands
app.command(name="deploy", help="Reconcile a network with its address registry.")(deploy_cmd)
app.command(name="status", help="Show the address registry of a network.")(status_cmd)
app.command(name="predict", help="Print the CREATE2 address of an artifact.")(predict_cmd)
app.command(name="demo", help="Run the idempotence demo on an in-memory chain.")(demo_cmd)


@app.command(name="version", help="Print the installed version.")
def version_cmd() -> None:
    from deployforge import __version__

    typer.echo(__version__)


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
