#!/usr/bin/env python3
"""
JML Trigger CLI - Command Line Interface for the JML Trigger Engine.

Provides commands for evaluating lifecycle triggers against identity
snapshots, inspecting the effective configuration, and reviewing the
decision history.
"""

import json
import logging
import sys
from pathlib import Path
from typing import Optional

import click
from pydantic import ValidationError
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ..audit import DecisionAuditLog
from ..engine import SnapshotStore, YamlConfigurationLookup
from ..engine.config_lookup import (
    AUTO_JOIN_NEW_EMPTY,
    PROCESS_ENABLED,
    REPROCESS_SKIPPED,
    REQUIRE_CORRELATED,
    TRIGGER_FILTER,
    business_process_path,
)
from ..models import ConfigurationError, IdentitySnapshot, ProcessKind, TriggerOutcome
from ..workflows import LifecycleTriggerService

# Setup logging
logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)

# Rich console for pretty output
console = Console()

DEFAULT_CONFIG = Path(__file__).resolve().parent.parent / "engine" / "lifecycle_config.yaml"


class TriggerController:
    """Main controller for JML Trigger Engine operations."""

    def __init__(self, config_path: Optional[str] = None, audit_dir: Optional[str] = None,
                 state_file: Optional[str] = None):
        """Initialize the trigger controller."""
        self.config_path = Path(config_path) if config_path else DEFAULT_CONFIG
        self.config = YamlConfigurationLookup(self.config_path)
        self.audit_log = DecisionAuditLog(audit_dir) if audit_dir else None
        self.snapshot_store = SnapshotStore(state_file) if state_file else None
        self.service = LifecycleTriggerService(self.config, audit_log=self.audit_log)


def load_snapshot(path: str) -> IdentitySnapshot:
    """Load an identity snapshot from a JSON file."""
    with open(path, encoding='utf-8') as f:
        data = json.load(f)
    return IdentitySnapshot(**data)


@click.group()
@click.option('--config', '-c', help='Path to lifecycle YAML configuration')
@click.option('--audit-dir', help='Directory for the decision audit log')
@click.option('--state-file', help='JSON file holding the latest identity snapshots')
@click.pass_context
def cli(ctx, config, audit_dir, state_file):
    """JML Trigger CLI - Identity Lifecycle Trigger Decisions"""
    ctx.ensure_object(dict)
    try:
        ctx.obj['controller'] = TriggerController(config, audit_dir, state_file)
    except ConfigurationError as e:
        console.print(f"[red]Error loading configuration: {e}[/red]")
        sys.exit(1)


@cli.command()
@click.argument('process')
@click.argument('current_file', type=click.Path(exists=True))
@click.option('--previous', 'previous_file', type=click.Path(exists=True),
              help='JSON snapshot of the identity before the change')
@click.option('--display-name', help='Name to use in log output')
@click.pass_context
def decide(ctx, process, current_file, previous_file, display_name):
    """Decide whether PROCESS should run for the identity in CURRENT_FILE."""
    controller = ctx.obj['controller']

    try:
        current = load_snapshot(current_file)
        previous = load_snapshot(previous_file) if previous_file else None
    except (json.JSONDecodeError, ValidationError) as e:
        console.print(f"[red]Invalid snapshot: {e}[/red]")
        sys.exit(1)

    store = controller.snapshot_store
    if store is not None:
        if previous is None:
            previous = store.get_snapshot(current.name)
        current = store.carry_forward_state(current)

    outcome = controller.service.evaluate(process, previous, current, display_name)

    if store is not None:
        store.record_snapshot(current)
        store.apply_outcome(outcome)

    display_outcome(outcome)


@cli.command()
@click.pass_context
def show_config(ctx):
    """Show the effective business process options."""
    controller = ctx.obj['controller']
    config = controller.config

    table = Table(title=f"Business Processes ({controller.config_path})")
    table.add_column("Process", style="cyan")
    table.add_column("Enabled", style="green")
    table.add_column("Require Correlated", style="yellow")
    table.add_column("Auto-Join New Empty", style="magenta")
    table.add_column("Reprocess Skipped", style="blue")
    table.add_column("Trigger Filter", style="red")

    for kind in (ProcessKind.JOINER, ProcessKind.MOVER, ProcessKind.LEAVER):
        process = kind.value
        enabled_path = business_process_path(process, PROCESS_ENABLED)
        enabled = config.get_bool(enabled_path) if config.has_value(enabled_path) else True
        table.add_row(
            process,
            str(enabled),
            str(config.get_process_option(process, REQUIRE_CORRELATED)),
            str(config.get_process_option(process, AUTO_JOIN_NEW_EMPTY)) if kind == ProcessKind.JOINER else "N/A",
            str(config.get_process_option(process, REPROCESS_SKIPPED)) if kind == ProcessKind.JOINER else "N/A",
            "yes" if config.has_value(business_process_path(process, TRIGGER_FILTER)) else "no",
        )

    console.print(table)


@cli.command()
@click.option('--identity', help='Filter by identity name')
@click.option('--process', help='Filter by business process')
@click.option('--limit', default=50, help='Maximum number of decisions to show')
@click.pass_context
def history(ctx, identity, process, limit):
    """Show recorded trigger decisions."""
    controller = ctx.obj['controller']

    if controller.audit_log is None:
        console.print("[yellow]No audit directory configured (use --audit-dir)[/yellow]")
        return

    outcomes = controller.audit_log.get_decisions(identity_name=identity, process=process, limit=limit)
    if not outcomes:
        console.print("[yellow]No decisions found[/yellow]")
        return

    table = Table(title=f"Decisions ({len(outcomes)})")
    table.add_column("Evaluated", style="cyan")
    table.add_column("Process", style="green")
    table.add_column("Identity", style="yellow")
    table.add_column("Action", style="magenta")
    table.add_column("Launch", style="blue")
    table.add_column("Reason")

    for outcome in outcomes:
        table.add_row(
            outcome.evaluated_at.strftime("%Y-%m-%d %H:%M:%S"),
            outcome.process,
            outcome.identity_name,
            outcome.decision.action.value if outcome.decision else "N/A",
            "✓" if outcome.launch else "✗",
            outcome.reason,
        )

    console.print(table)


def display_outcome(outcome: TriggerOutcome):
    """Display a trigger outcome."""
    if outcome.launch:
        console.print(f"[green]✓ Launch {outcome.process} for {outcome.identity_name}[/green]")
    else:
        console.print(f"[yellow]✗ Do not launch {outcome.process} for {outcome.identity_name}[/yellow]")

    table = Table(title="Trigger Decision")
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="magenta")

    decision = outcome.decision
    table.add_row("Process", outcome.process)
    table.add_row("Identity", outcome.identity_name)
    table.add_row("Shortcut", decision.shortcut.value if decision else "N/A")
    table.add_row("Action", decision.action.value if decision else "N/A")
    table.add_row("Optional", str(decision.optional) if decision else "N/A")
    table.add_row("Mark Skipped", str(outcome.mark_skipped))
    table.add_row("Reason", outcome.reason)

    console.print(table)

    if outcome.mark_skipped:
        console.print(Panel.fit("[bold red]Identity must be marked skipped[/bold red]"))


def main():
    """Console script entry point."""
    cli(obj={})


if __name__ == "__main__":
    main()
