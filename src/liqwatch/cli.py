from __future__ import annotations

import asyncio
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from liqwatch.core.config import SINKS, WatcherConfig, load_config
from liqwatch.core.errors import ConfigError, LiqwatchError
from liqwatch.core.logging import configure_logging
from liqwatch.core.models import BlockWindow
from liqwatch.core.use_cases.dispatch import DispatchStats
from liqwatch.decoding.layouts import LAYOUTS
from liqwatch.orchestration.watcher import Watcher

console = Console()


def _config_options(f):
    options = [
        click.option("--env-file", type=click.Path(dir_okay=False, path_type=Path), default=None, help=".env file to load"),
        click.option(
            "--contracts",
            "contracts_file",
            type=click.Path(exists=True, dir_okay=False, path_type=Path),
            default=None,
            help="JSON file listing watch targets",
        ),
        click.option("--rpc", "rpc_url", default=None, help="RPC endpoint URL (overrides LIQWATCH_RPC_URL)"),
        click.option("--lookback", type=int, default=None, help="Blocks behind the head to poll [default: 500]"),
        click.option("--sink", type=click.Choice(SINKS), default=None, help="Where decoded events go [default: log]"),
        click.option("--out", "out_path", type=click.Path(path_type=Path), default=None, help="Output path for jsonl/parquet sinks"),
        click.option("--log-level", default=None, help="Logging level [default: INFO]"),
    ]
    for option in reversed(options):
        f = option(f)
    return f


def _load(**kwargs) -> WatcherConfig:
    try:
        config = load_config(**kwargs)
        configure_logging(config.log_level, console=console)
    except (ConfigError, ValueError) as e:
        raise click.ClickException(str(e)) from e
    return config


def _print_stats(stats: DispatchStats) -> None:
    console.print(
        f"[bold]summary[/]: "
        f"logs={stats.logs}  "
        f"[green]emitted[/]={stats.emitted}  "
        f"[yellow]skipped[/]={stats.malformed + stats.decode_errors + stats.log_errors}  "
        f"no_timestamp={stats.unresolved_timestamps}  "
        f"[red]sink_errors[/]={stats.sink_errors}"
    )
    if stats.failed_targets:
        console.print(f"[red]failed targets[/]: {', '.join(stats.failed_targets)}")


@click.group()
def cli() -> None:
    """liqwatch: poll a liquidity pool's contracts and decode their events."""


@cli.command("watch")
@_config_options
@click.option("--period", "period_s", type=float, default=None, help="Seconds between polls [default: 30]")
def watch_cmd(**kwargs) -> None:
    """Poll every period until interrupted."""
    config = _load(**kwargs)

    async def run() -> None:
        async with Watcher.from_config(config) as watcher:
            await watcher.run_forever()

    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        console.print("[bold]stopped[/]")
    except LiqwatchError as e:
        raise click.ClickException(str(e)) from e


@cli.command("once")
@_config_options
@click.option("--from-block", type=int, default=None, help="First block (inclusive)")
@click.option("--to-block", type=int, default=None, help="Last block (inclusive)")
def once_cmd(from_block: int | None, to_block: int | None, **kwargs) -> None:
    """Run a single fetch/decode cycle and print a summary."""
    if (from_block is None) != (to_block is None):
        raise click.UsageError("--from-block and --to-block go together")
    config = _load(**kwargs)
    try:
        window = BlockWindow(from_block, to_block) if from_block is not None else None
    except ValueError as e:
        raise click.BadParameter(str(e)) from e

    async def run() -> DispatchStats:
        async with Watcher.from_config(config) as watcher:
            return await watcher.run_once(window)

    try:
        stats = asyncio.run(run())
    except LiqwatchError as e:
        raise click.ClickException(str(e)) from e
    _print_stats(stats)


@cli.command("topics")
def topics_cmd() -> None:
    """Print the canonical signature and topic hash of each event kind."""
    table = Table("kind", "signature", "topic0")
    for kind, layout in LAYOUTS.items():
        table.add_row(kind.value, layout.signature, layout.topic0)
    console.print(table)


if __name__ == "__main__":
    cli()
