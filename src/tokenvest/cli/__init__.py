"""Command-line interface for the tokenvest vesting ledger."""

from tokenvest.cli.vesting_commands import cli

__all__ = ["cli"]
