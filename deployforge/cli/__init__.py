"""deployforge CLI: Typer-based command-line interface.

Provides the ``deployforge`` command with subcommands for deploying to a
network, inspecting its registry, predicting addresses and running a demo
on an in-memory chain.

All output uses Rich for formatted terminal display.
"""
