"""CLI entrypoint: agentscope report, summary, watch, export."""

from __future__ import annotations

import json
import logging
from pathlib import Path

import click

from agentscope.analytics import build_export, daily_stats, window_summary
from agentscope.anomaly import detect
from agentscope.config import EXPORT_FORMATS, load_config
from agentscope.parser import parse_all
from agentscope.report import (
    daily_to_csv,
    render_activity,
    render_anomalies,
    render_daily_report,
    render_quick_summary,
    render_status,
    render_window_report,
)

path_option = click.option(
    "--path", "-p", "log_path", default=None, type=click.Path(path_type=Path),
    help="Path to session logs (default: log_dir from config).",
)


@click.group()
@click.option("--config", "config_path", default=None, type=click.Path(path_type=Path),
              help="Config file (default: ~/.config/agentscope/config.yaml).")
@click.option("--verbose", "-v", is_flag=True, help="Log debug output to stderr.")
@click.pass_context
def cli(ctx: click.Context, config_path: Path | None, verbose: bool):
    """agentscope: activity dashboard and analytics for OpenClaw agents."""
    try:
        config = load_config(config_path)
    except ValueError as e:
        raise click.UsageError(str(e)) from e
    logging.basicConfig(
        level=logging.DEBUG if verbose else config.log_level,
        format="%(asctime)s %(name)s [%(levelname)s] %(message)s",
    )
    ctx.obj = config


@cli.command()
@path_option
@click.option("--days", "-d", default=None, type=click.IntRange(min=1), help="Number of days to analyze.")
@click.option("--daily", is_flag=True, help="Show daily breakdown instead of the window summary.")
@click.pass_obj
def report(config, log_path: Path | None, days: int | None, daily: bool):
    """Generate an activity report with anomalies."""
    log_dir = log_path or config.log_dir
    days = days or config.days

    sessions = parse_all(log_dir)
    if not sessions:
        click.echo(click.style(f"No session logs found at: {log_dir}", fg="yellow"))
        return

    if daily:
        click.echo(render_daily_report(daily_stats(sessions, days=days)))
    else:
        click.echo(render_window_report(window_summary(sessions, days=days)))

    anomalies = detect(sessions)
    if anomalies:
        click.echo("")
        click.echo(render_anomalies(anomalies))


@cli.command()
@path_option
@click.pass_obj
def summary(config, log_path: Path | None):
    """Quick 7-day summary of agent activity."""
    log_dir = log_path or config.log_dir

    sessions = parse_all(log_dir)
    if not sessions:
        click.echo(click.style("No sessions found", fg="yellow"))
        return

    click.echo(render_quick_summary(window_summary(sessions, days=7)))


@cli.command()
@path_option
@click.option("--interval", "-i", default=None, type=click.FloatRange(min=0.1),
              help="Status refresh interval in seconds.")
@click.pass_obj
def watch(config, log_path: Path | None, interval: float | None):
    """Watch session logs in real time."""
    from agentscope.watcher import TailFollower

    log_dir = log_path or config.log_dir
    interval = interval or config.interval

    click.echo(click.style(f"Watching: {log_dir}", dim=True))
    click.echo(click.style("Press Ctrl+C to exit", dim=True))

    follower = TailFollower(
        log_dir,
        interval=interval,
        on_status=lambda stats: click.echo(render_status(stats)),
        on_event=lambda event: click.echo(render_activity(event)),
    )
    try:
        follower.run()
    except KeyboardInterrupt:
        follower.stop()
        click.echo(click.style("\nStopping watch mode...", fg="yellow"))


@cli.command()
@path_option
@click.option("--output", "-o", default="agentscope-export.json", type=click.Path(path_type=Path),
              help="Output file.")
@click.option("--format", "-f", "fmt", default=None, type=click.Choice(EXPORT_FORMATS),
              help="Export format.")
@click.option("--days", "-d", default=None, type=click.IntRange(min=1), help="Number of days to export.")
@click.pass_obj
def export(config, log_path: Path | None, output: Path, fmt: str | None, days: int | None):
    """Export analytics data as JSON or CSV."""
    log_dir = log_path or config.log_dir
    fmt = fmt or config.export_format
    days = days or config.export_days

    data = build_export(parse_all(log_dir), days=days)

    if fmt == "csv":
        output.write_text(daily_to_csv(data["daily"]))
    else:
        output.write_text(json.dumps(data, indent=2))

    click.echo(click.style(f"Exported to {output}", fg="green"))
