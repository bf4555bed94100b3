#!/usr/bin/env python3
"""
tokenvest CLI Commands - Vesting Ledger Management Interface

Operates on a ledger persisted in a local state file:
- Deploy a token and fund a vesting pool
- Create and revoke grants (administrator)
- Unlock vested tokens (holder)
- Inspect grants, balances and the notification log
"""

from __future__ import annotations

import json
import logging
import time
from pathlib import Path
from typing import Any

import click
from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from tokenvest.core.address import to_checksum_address
from tokenvest.core.config import CLIConfig, ConfigurationError, resolve_config
from tokenvest.core.contracts.erc20 import ERC20Token
from tokenvest.core.exceptions import VestingError
from tokenvest.core.logging_config import configure_module_logging, setup_logging
from tokenvest.core.state_storage import StateStorage
from tokenvest.vesting.vesting_ledger import VestingLedger

logger = logging.getLogger(__name__)
console = Console()

# Modules held at their category level unless --log-level is given
CATEGORY_LEVEL_MODULES = (
    "tokenvest.core.state_storage",
    "tokenvest.core.config",
)


def _handle_cli_error(exc: Exception) -> None:
    """Centralized CLI error handler for consistent messaging/exit codes."""
    logger.error("CLI error: %s", exc, extra={"event": "cli.error", "error_type": type(exc).__name__})
    raise click.ClickException(f"{type(exc).__name__}: {exc}") from exc


def _display(address: str) -> str:
    return to_checksum_address(address)


def _storage(ctx: click.Context) -> StateStorage:
    return ctx.obj["storage"]


def _load(ctx: click.Context) -> VestingLedger:
    _, ledger = _storage(ctx).load()
    return ledger


def _emit_json(data: Any) -> None:
    click.echo(json.dumps(data, indent=2, default=str))


# ============================================================================
# CLI Group
# ============================================================================


@click.group()
@click.option(
    "--state-file",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Ledger state file (defaults to TOKENVEST_STATE_FILE).",
)
@click.option(
    "--config",
    "config_file",
    type=click.Path(dir_okay=False, path_type=Path),
    help="YAML config file.",
)
@click.option("--json-output", is_flag=True, help="Output raw JSON")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"], case_sensitive=False),
    help="Logging level.",
)
@click.option("--verbose", is_flag=True, help="Also write logs to stderr.")
@click.pass_context
def cli(
    ctx: click.Context,
    state_file: Path | None,
    config_file: Path | None,
    json_output: bool,
    log_level: str | None,
    verbose: bool,
):
    """
    tokenvest - token vesting ledger

    Grants unlock linearly between start and end after an optional cliff.
    Amounts are integer base units; times are Unix timestamps.
    """
    ctx.ensure_object(dict)
    try:
        config: CLIConfig = resolve_config(
            config_file,
            overrides={
                "state_file": str(state_file) if state_file else None,
                "log_level": log_level,
            },
        )
    except ConfigurationError as exc:
        raise click.ClickException(str(exc)) from exc

    setup_logging(
        name="tokenvest",
        log_file=config.log_file,
        level=config.log_level,
        environment=config.network,
        json_format=config.log_json,
        enable_console=verbose,
    )
    for module in CATEGORY_LEVEL_MODULES:
        configure_module_logging(module, override_level=log_level)

    ctx.obj["config"] = config
    ctx.obj["storage"] = StateStorage(config.state_file)
    ctx.obj["json_output"] = json_output


# ============================================================================
# Ledger lifecycle
# ============================================================================


@cli.command("init")
@click.option("--admin", required=True, help="Administrator address (also token owner)")
@click.option("--token-name", default="Vesting Token", show_default=True)
@click.option("--symbol", default="VEST", show_default=True)
@click.option("--pool", required=True, type=click.IntRange(min=0), help="Tokens minted into the vesting pool")
@click.option("--force", is_flag=True, help="Overwrite an existing state file")
@click.pass_context
def init_ledger(ctx: click.Context, admin: str, token_name: str, symbol: str, pool: int, force: bool):
    """Deploy a token, a vesting ledger, and fund the pool."""
    storage = _storage(ctx)
    config: CLIConfig = ctx.obj["config"]
    if storage.exists() and not force:
        raise click.ClickException(f"State file {storage.path} already exists (use --force)")

    try:
        token = ERC20Token(
            name=token_name,
            symbol=symbol,
            decimals=config.token_decimals,
            owner=admin,
        )
        ledger = VestingLedger(token, admin)
        if pool:
            token.mint(admin, ledger.address, pool)
        storage.save(ledger)
    except VestingError as exc:
        _handle_cli_error(exc)

    summary = ledger.summary()
    summary["token"] = token.address
    if ctx.obj["json_output"]:
        _emit_json(summary)
        return
    console.print(
        Panel.fit(
            f"Ledger: [bold]{_display(ledger.address)}[/]\n"
            f"Token:  {token.symbol} {_display(token.address)}\n"
            f"Pool:   {pool}",
            title="Vesting ledger initialized",
            border_style="green",
        )
    )


# ============================================================================
# Administrator commands
# ============================================================================


@cli.command("grant")
@click.option("--caller", required=True, help="Administrator address")
@click.option("--holder", required=True, help="Grant recipient")
@click.option("--value", required=True, type=int, help="Total quantity")
@click.option("--start", required=True, type=int, help="Vesting start timestamp")
@click.option("--cliff", required=True, type=int, help="Cliff timestamp")
@click.option("--end", required=True, type=int, help="Vesting end timestamp")
@click.option("--revokable/--no-revokable", default=False, show_default=True)
@click.pass_context
def grant_command(
    ctx: click.Context,
    caller: str,
    holder: str,
    value: int,
    start: int,
    cliff: int,
    end: int,
    revokable: bool,
):
    """Create a vesting grant for a holder."""
    try:
        ledger = _load(ctx)
        index = ledger.grant(caller, holder, value, start, cliff, end, revokable)
        _storage(ctx).save(ledger)
    except VestingError as exc:
        _handle_cli_error(exc)

    result = {
        "holder": holder.lower(),
        "index": index,
        "value": value,
        "revokable": revokable,
        "total_vesting": ledger.total_vesting,
    }
    if ctx.obj["json_output"]:
        _emit_json(result)
        return
    console.print(f"[green]Granted[/] {value} to {_display(holder.lower())} (grant #{index})")


@cli.command("revoke")
@click.option("--caller", required=True, help="Administrator address")
@click.option("--holder", required=True, help="Holder whose revokable grants are cancelled")
@click.pass_context
def revoke_command(ctx: click.Context, caller: str, holder: str):
    """Revoke a holder's revokable grants and refund the administrator."""
    try:
        ledger = _load(ctx)
        refund = ledger.revoke(caller, holder)
        _storage(ctx).save(ledger)
    except VestingError as exc:
        _handle_cli_error(exc)

    remaining = ledger.grants.grant_count(holder.lower())
    if ctx.obj["json_output"]:
        _emit_json({"holder": holder.lower(), "refund": refund, "remaining_grants": remaining})
        return
    console.print(
        f"[yellow]Revoked[/] grants of {_display(holder.lower())}: refund {refund}, "
        f"{remaining} grant(s) kept"
    )


@cli.command("transfer-admin")
@click.option("--caller", required=True, help="Current administrator")
@click.option("--new-admin", required=True, help="Proposed administrator")
@click.pass_context
def transfer_admin(ctx: click.Context, caller: str, new_admin: str):
    """Propose a new administrator (takes effect on accept-admin)."""
    try:
        ledger = _load(ctx)
        ledger.transfer_ownership(caller, new_admin)
        _storage(ctx).save(ledger)
    except VestingError as exc:
        _handle_cli_error(exc)

    if ctx.obj["json_output"]:
        _emit_json({"administrator": ledger.administrator, "pending_administrator": new_admin.lower()})
        return
    console.print(f"Pending administrator: {_display(new_admin.lower())}")


@cli.command("cancel-admin")
@click.option("--caller", required=True, help="Current administrator")
@click.pass_context
def cancel_admin(ctx: click.Context, caller: str):
    """Withdraw a pending administrator proposal."""
    try:
        ledger = _load(ctx)
        ledger.cancel_ownership_transfer(caller)
        _storage(ctx).save(ledger)
    except VestingError as exc:
        _handle_cli_error(exc)

    if ctx.obj["json_output"]:
        _emit_json({"administrator": ledger.administrator, "pending_administrator": ""})
        return
    console.print("Pending administrator proposal withdrawn")


@cli.command("accept-admin")
@click.option("--caller", required=True, help="Pending administrator")
@click.pass_context
def accept_admin(ctx: click.Context, caller: str):
    """Accept a pending administrator proposal."""
    try:
        ledger = _load(ctx)
        ledger.accept_ownership(caller)
        _storage(ctx).save(ledger)
    except VestingError as exc:
        _handle_cli_error(exc)

    if ctx.obj["json_output"]:
        _emit_json({"administrator": ledger.administrator})
        return
    console.print(f"[green]Administrator is now[/] {_display(ledger.administrator)}")


# ============================================================================
# Holder commands
# ============================================================================


@cli.command("unlock")
@click.option("--caller", required=True, help="Holder settling their own grants")
@click.option("--at", "at_time", type=int, help="Settlement timestamp (defaults to now)")
@click.pass_context
def unlock_command(ctx: click.Context, caller: str, at_time: int | None):
    """Transfer the caller's vested, not yet transferred tokens."""
    try:
        ledger = _load(ctx)
        amount = ledger.unlock_vested_tokens(caller, current_time=at_time)
        if amount:
            _storage(ctx).save(ledger)
    except VestingError as exc:
        _handle_cli_error(exc)

    if ctx.obj["json_output"]:
        _emit_json({"holder": caller.lower(), "unlocked": amount})
        return
    if amount:
        console.print(f"[green]Unlocked[/] {amount} to {_display(caller.lower())}")
    else:
        console.print("[dim]Nothing to unlock yet[/]")


@cli.command("vested")
@click.option("--holder", required=True)
@click.option("--at", "at_time", type=int, help="Query timestamp (defaults to now)")
@click.pass_context
def vested_command(ctx: click.Context, holder: str, at_time: int | None):
    """Show the total vested by the curve across a holder's grants."""
    at = int(time.time()) if at_time is None else at_time
    try:
        ledger = _load(ctx)
        total, count = ledger.vested_tokens(holder, at)
        releasable = ledger.releasable_amount(holder, at)
    except VestingError as exc:
        _handle_cli_error(exc)

    result = {
        "holder": holder.lower(),
        "time": at,
        "vested": total,
        "grant_count": count,
        "releasable": releasable,
    }
    if ctx.obj["json_output"]:
        _emit_json(result)
        return
    console.print(
        f"{_display(holder.lower())}: vested {total} across {count} grant(s), "
        f"{releasable} releasable at {at}"
    )


@cli.command("balance")
@click.option("--address", required=True)
@click.pass_context
def balance_command(ctx: click.Context, address: str):
    """Show a token balance."""
    try:
        ledger = _load(ctx)
    except VestingError as exc:
        _handle_cli_error(exc)
    balance = ledger.token.balance_of(address)
    if ctx.obj["json_output"]:
        _emit_json({"address": address.lower(), "balance": balance})
        return
    console.print(f"{address}: {balance}")


# ============================================================================
# Inspection
# ============================================================================


@cli.command("show")
@click.option("--holder", help="Only show this holder's grants")
@click.option("--at", "at_time", type=int, help="Timestamp for vested figures (defaults to now)")
@click.pass_context
def show_command(ctx: click.Context, holder: str | None, at_time: int | None):
    """Show the ledger summary and grants."""
    try:
        ledger = _load(ctx)
        holders = [holder.lower()] if holder else ledger.grants.holders()
        schedules = {h: ledger.grant_schedule(h, at_time) for h in holders}
    except VestingError as exc:
        _handle_cli_error(exc)

    summary = ledger.summary()
    if ctx.obj["json_output"]:
        _emit_json({"summary": summary, "grants": schedules})
        return

    console.print(
        Panel.fit(
            "\n".join(f"{key}: {value}" for key, value in summary.items()),
            title="Vesting ledger",
            border_style="cyan",
        )
    )
    table = Table(title="Grants", box=box.ROUNDED)
    for column in ("Holder", "#", "Value", "Start", "Cliff", "End", "Transferred", "Vested", "Revokable"):
        table.add_column(column)
    for h, schedule in schedules.items():
        for entry in schedule:
            table.add_row(
                h[:10] + "…",
                str(entry["index"]),
                str(entry["value"]),
                str(entry["start"]),
                str(entry["cliff"]),
                str(entry["end"]),
                str(entry["transferred"]),
                str(entry["vested"]),
                "yes" if entry["revokable"] else "no",
            )
    console.print(table)


@cli.command("events")
@click.option("--limit", default=50, show_default=True, type=click.IntRange(min=1))
@click.pass_context
def events_command(ctx: click.Context, limit: int):
    """Show the most recent ledger notifications."""
    try:
        ledger = _load(ctx)
    except VestingError as exc:
        _handle_cli_error(exc)

    events = [event.to_dict() for event in ledger.events[-limit:]]
    if ctx.obj["json_output"]:
        _emit_json(events)
        return
    table = Table(title="Notifications", box=box.SIMPLE)
    for column in ("Type", "Holder", "Amount", "Timestamp"):
        table.add_column(column)
    for event in events:
        table.add_row(event["event_type"], event["holder"][:10] + "…", event["amount"], str(event["timestamp"]))
    console.print(table)
