"""Stats commands: inspect or reset the persisted scraper counters."""

from __future__ import annotations

import json

import typer

from harvester.config import settings
from harvester.stats import JsonFileStatsStore, StatsAggregator

stats_app = typer.Typer(help="Show or reset scraper statistics.", no_args_is_help=True)


def _aggregator() -> StatsAggregator:
    return StatsAggregator(JsonFileStatsStore(settings.stats_path))


@stats_app.command("show")
def stats_show(
    as_json: bool = typer.Option(False, "--json", help="Print the raw snapshot as JSON."),
) -> None:
    """Print the current counters and derived metrics."""
    snapshot = _aggregator().snapshot()
    if as_json:
        typer.echo(json.dumps(snapshot, indent=2))
        return

    ai = snapshot["ai_filter_stats"]
    typer.echo(f"Running         : {'yes' if snapshot['is_running'] else 'no'}")
    typer.echo(f"URLs processed  : {snapshot['urls_processed']}  (failed {snapshot['urls_failed']})")
    typer.echo(f"Success rate    : {snapshot['success_rate']:.1f}%")
    typer.echo(f"Downloaded      : {snapshot['total_downloaded']}")
    typer.echo(f"Errors          : {snapshot['total_errors']}")
    typer.echo(f"Filtered out    : {snapshot['total_filtered']}  ({snapshot['filter_rate']:.1f}%)")
    typer.echo(
        f"AI decisions    : {ai['total_analyzed']}  "
        f"(approved {ai['approved']}, rejected {ai['rejected']}, "
        f"avg confidence {ai['average_confidence']:.2f})"
    )
    typer.echo(f"Download speed  : {snapshot['download_speed']:.2f} files/min")


@stats_app.command("reset")
def stats_reset() -> None:
    """Zero every counter."""
    _aggregator().reset()
    typer.echo("✅ Statistics reset.")
