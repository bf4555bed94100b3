"""
Main CLI entry point for tokenvest.

Installed as the ``tokenvest`` console script.
"""

import logging
import sys

import click

from tokenvest.cli.vesting_commands import cli, console

logger = logging.getLogger(__name__)


def _cli_fail(exc: Exception, exit_code: int = 1) -> None:
    """Centralized CLI error handler for consistent messaging."""
    logger.error("CLI error: %s", exc, exc_info=True)
    console.print(f"[bold red]Error:[/] {exc}")
    sys.exit(exit_code)


def main():
    """Main CLI entry point"""
    try:
        cli(obj={})
    except KeyboardInterrupt:
        console.print("\n[yellow]Operation cancelled by user[/]")
        sys.exit(130)
    except (click.ClickException, ValueError, KeyError, TypeError) as exc:
        _cli_fail(exc)


if __name__ == "__main__":
    main()
