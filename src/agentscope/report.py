"""Plain-text rendering of summaries, daily rows, anomalies and live status.

Every function returns a string; the CLI decides where it goes.
"""

from __future__ import annotations

import csv
import io
from datetime import datetime, timezone

import click

from agentscope.models import ActivityEvent, Anomaly, DailyStat, RunningStats, Severity, WindowSummary

RULE = "─" * 50

_SEVERITY_STYLE = {
    Severity.LOW: ("○", "yellow"),
    Severity.MEDIUM: ("◐", "magenta"),
    Severity.HIGH: ("●", "red"),
}

_HEAT_BLOCKS = ("░", "▒", "▓", "█")

_ACTIVITY_STYLE = {
    "user_message": ("📩", "blue"),
    "tool_call": ("🔧", "cyan"),
    "tool_error": ("❌", "red"),
}


def render_quick_summary(summary: WindowSummary) -> str:
    lines = [
        click.style(f"AgentScope Quick Summary ({summary.days} days)", fg="cyan", bold=True),
        "",
        f"  Sessions:     {summary.total_sessions}",
        f"  Messages:     {summary.total_messages}",
        f"  Tool Calls:   {summary.total_tool_calls}",
        f"  Total Tokens: {summary.total_tokens:,}",
        f"  Total Cost:   ${summary.total_cost:.2f}",
    ]
    if summary.models:
        lines.append(f"  Models:       {', '.join(summary.models)}")
    return "\n".join(lines)


def render_window_report(summary: WindowSummary) -> str:
    rows = [
        ("Total Sessions", str(summary.total_sessions)),
        ("Total Messages", str(summary.total_messages)),
        ("Total Tool Calls", str(summary.total_tool_calls)),
        ("Tool Errors", click.style(str(summary.tool_errors), fg="red")),
        ("Total Tokens", f"{summary.total_tokens:,}"),
        ("Avg Tokens/Session", f"{summary.avg_tokens_per_session:,}"),
        ("Avg Messages/Session", str(summary.avg_messages_per_session)),
        ("Total Cost", click.style(f"${summary.total_cost:.2f}", fg="green")),
    ]
    lines = [click.style(f"Period: Last {summary.days} days", bold=True), ""]
    lines.extend(f"  {label:<22} {value}" for label, value in rows)

    if summary.top_tools:
        lines += ["", click.style("Top Tools:", bold=True)]
        lines.extend(f"  {t.name:<22} {t.count}" for t in summary.top_tools[:5])

    lines += ["", click.style("Hourly Activity:", bold=True), render_hourly_heatmap(summary.hourly_activity)]
    lines += ["", f"  Peak hour: {summary.peak_hour}:00"]
    return "\n".join(lines)


def render_daily_report(daily: list[DailyStat]) -> str:
    header = f"  {'Date':<12} {'Sessions':>8} {'Messages':>9} {'Tools':>7} {'Tokens':>12} {'Cost':>9}"
    lines = [click.style(f"Daily Breakdown ({len(daily)} days)", bold=True), "", header]
    for day in daily:
        lines.append(
            f"  {day.date.isoformat():<12} {day.sessions:>8} {day.messages:>9} "
            f"{day.tool_calls:>7} {day.tokens:>12,} {'$' + format(day.cost, '.2f'):>9}"
        )

    sessions = sum(d.sessions for d in daily)
    messages = sum(d.messages for d in daily)
    tokens = sum(d.tokens for d in daily)
    cost = sum(d.cost for d in daily)
    lines += [
        "",
        click.style(
            f"  Total: {sessions} sessions, {messages} messages, {tokens:,} tokens, ${cost:.2f}",
            bold=True,
        ),
    ]
    return "\n".join(lines)


def render_anomalies(anomalies: list[Anomaly]) -> str:
    if not anomalies:
        return ""
    lines = [click.style("Anomalies Detected:", bold=True), ""]
    for anomaly in anomalies:
        icon, color = _SEVERITY_STYLE[anomaly.severity]
        lines.append(f"  {click.style(icon, fg=color)} {click.style(anomaly.message, fg=color)}")
        if anomaly.date is not None:
            lines.append(click.style(f"    Date: {anomaly.date.isoformat()}", dim=True))
    return "\n".join(lines)


def render_hourly_heatmap(hourly_activity: list[int]) -> str:
    peak = max(max(hourly_activity, default=0), 1)
    cells = []
    for count in hourly_activity:
        if count == 0:
            cells.append(" ")
        else:
            cells.append(_HEAT_BLOCKS[int(count / peak * 3)])
    return "\n".join([
        "  " + click.style("".join(cells), fg="cyan"),
        click.style("  0         6         12        18        23", dim=True),
    ])


def render_status(stats: RunningStats, now: datetime | None = None) -> str:
    """Status block printed on every watch-mode timer tick."""
    if now is None:
        now = datetime.now(tz=timezone.utc)
    errors = click.style(str(stats.errors), fg="red" if stats.errors else "green")
    if stats.last_activity is not None:
        ago = max(0, round((now - stats.last_activity).total_seconds()))
        last = f"  Last Activity: {ago}s ago"
    else:
        last = "  No activity yet"
    return "\n".join([
        click.style(RULE, dim=True),
        f"  Messages: {stats.messages}",
        f"  Tool Calls: {stats.tool_calls}",
        f"  Tokens: {stats.tokens:,}",
        f"  Errors: {errors}",
        last,
        click.style(RULE, dim=True),
    ])


def render_activity(event: ActivityEvent) -> str:
    icon, color = _ACTIVITY_STYLE.get(event.kind, ("•", "white"))
    clock = event.timestamp.astimezone().strftime("%H:%M:%S")
    return f"{click.style(clock, dim=True)} {icon} {click.style(event.label, fg=color)}"


def daily_to_csv(daily_rows: list[dict]) -> str:
    """CSV of the export's daily rows."""
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(["date", "sessions", "messages", "tool_calls", "tokens", "cost"])
    for day in daily_rows:
        writer.writerow([
            day["date"],
            day["sessions"],
            day["messages"],
            day["tool_calls"],
            day["tokens"],
            f"{day['cost']:.4f}",
        ])
    return buf.getvalue()
