"""
Main CLI entry point for tokenvest.

Commands:
- simulate: project a schedule file over time and show every release
- config show: print the effective configuration
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import click
from rich import box
from rich.console import Console
from rich.table import Table

from ..config_manager import VestingConfigManager
from ..core.logging_config import setup_vesting_logging
from ..core.vesting_exceptions import VestingError
from ..core.vesting_metrics import set_metrics_enabled
from .simulation import load_schedule, simulate_schedule

logger = logging.getLogger(__name__)
console = Console()


def _cli_fail(exc: Exception, exit_code: int = 1) -> None:
    """Centralized CLI error handler for consistent messaging."""
    logger.error("CLI error: %s", exc, exc_info=True)
    console.print(f"[bold red]Error:[/] {exc}")
    sys.exit(exit_code)


def _format_timestamp(timestamp: int) -> str:
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).strftime("%Y-%m-%d %H:%M")


@click.group()
@click.option(
    '--environment',
    envvar='TOKENVEST_ENVIRONMENT',
    help='Configuration environment (development, staging, production)',
)
@click.option(
    '--config-dir',
    type=click.Path(file_okay=False, exists=True, path_type=Path),
    help='Directory holding default.yaml and <environment>.yaml',
)
@click.option(
    '--log-level',
    type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR'], case_sensitive=False),
    default=None,
    help='Override the configured log level',
)
@click.option('--json-output', is_flag=True, help='Output raw JSON')
@click.pass_context
def cli(
    ctx: click.Context,
    environment: Optional[str],
    config_dir: Optional[Path],
    log_level: Optional[str],
    json_output: bool,
):
    """tokenvest - time-gated token vesting tools"""
    ctx.ensure_object(dict)
    config = VestingConfigManager(
        environment=environment,
        config_dir=str(config_dir) if config_dir else None,
        cli_overrides={"logging.level": log_level.upper()} if log_level else {},
    )
    setup_vesting_logging(config.logging, environment=config.environment.value)
    set_metrics_enabled(config.metrics.enabled)

    ctx.obj['config'] = config
    ctx.obj['json_output'] = json_output


@cli.command('simulate')
@click.argument('schedule_file', type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option('--days', type=click.IntRange(1, 36525), default=30, show_default=True,
              help='Number of days to simulate')
@click.option('--step-days', type=click.IntRange(1, 3653), default=1, show_default=True,
              help='Days between claim attempts')
@click.option('--start', type=click.IntRange(0), default=0, show_default=True,
              help='Simulation start timestamp')
@click.pass_context
def simulate(ctx: click.Context, schedule_file: Path, days: int, step_days: int, start: int):
    """
    Simulate a vesting schedule and show what each claim releases.

    Example:
        tokenvest simulate schedules/founder.yaml --days 365 --step-days 7
    """
    spec = load_schedule(schedule_file)
    steps = simulate_schedule(
        spec,
        config=ctx.obj['config'],
        days=days,
        step_days=step_days,
        start=start,
    )

    if ctx.obj.get('json_output'):
        click.echo(json.dumps([step.to_dict() for step in steps], indent=2))
        return

    table = Table(title=f"Simulation: {spec.get('policy', '?')}", box=box.ROUNDED)
    table.add_column("Time (UTC)", style="cyan")
    table.add_column("Released", justify="right", style="green")
    table.add_column("Withdrawn", justify="right")
    table.add_column("Custody", justify="right")
    table.add_column("Outcome", style="yellow")

    for step in steps:
        table.add_row(
            _format_timestamp(step.timestamp),
            str(step.released),
            str(step.withdrawn_all_time),
            str(step.custodied),
            step.outcome,
        )

    console.print(table)
    total = steps[-1].withdrawn_all_time if steps else 0
    console.print(f"[bold]Total released:[/] {total}")


@cli.group()
def config():
    """Configuration commands."""
    pass


@config.command('show')
@click.pass_context
def config_show(ctx: click.Context):
    """Print the effective configuration."""
    data = ctx.obj['config'].to_dict()

    if ctx.obj.get('json_output'):
        click.echo(json.dumps(data, indent=2))
        return

    table = Table(title=f"Configuration ({data['environment']})", box=box.ROUNDED)
    table.add_column("Key", style="cyan")
    table.add_column("Value")
    for section in ("schedule", "logging", "metrics"):
        for key, value in data[section].items():
            table.add_row(f"{section}.{key}", str(value))
    console.print(table)


def main():
    """Main CLI entry point"""
    try:
        cli(obj={})
    except KeyboardInterrupt:
        console.print("\n[yellow]Operation cancelled by user[/]")
        sys.exit(130)
    except (VestingError, OSError) as exc:
        _cli_fail(exc)


if __name__ == '__main__':
    main()
