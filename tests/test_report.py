"""Tests for the text renderers in agentscope.report."""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

from click import unstyle

from agentscope.models import (
    ActivityEvent,
    Anomaly,
    AnomalyType,
    DailyStat,
    RunningStats,
    Severity,
    ToolCount,
    WindowSummary,
)
from agentscope.report import (
    daily_to_csv,
    render_activity,
    render_anomalies,
    render_daily_report,
    render_hourly_heatmap,
    render_quick_summary,
    render_status,
    render_window_report,
)


def _summary() -> WindowSummary:
    hourly = [0] * 24
    hourly[9] = 4
    hourly[14] = 2
    return WindowSummary(
        days=7,
        total_sessions=6,
        total_messages=40,
        total_tool_calls=12,
        total_tokens=123_456,
        total_cost=3.5,
        avg_tokens_per_session=20_576,
        avg_messages_per_session=7,
        tool_counts=[ToolCount("exec", 8), ToolCount("read", 4)],
        hourly_activity=hourly,
        peak_hour=9,
        models=["claude-sonnet-4", "gpt-4o"],
        tool_errors=2,
    )


def test_quick_summary():
    text = unstyle(render_quick_summary(_summary()))
    assert "Sessions:     6" in text
    assert "Total Tokens: 123,456" in text
    assert "Total Cost:   $3.50" in text
    assert "Models:       claude-sonnet-4, gpt-4o" in text


def test_window_report():
    text = unstyle(render_window_report(_summary()))
    assert "Period: Last 7 days" in text
    assert "exec" in text and "read" in text
    assert "Peak hour: 9:00" in text


def test_heatmap_marks_peak_with_full_block():
    text = unstyle(render_hourly_heatmap(_summary().hourly_activity))
    row = text.splitlines()[0][2:]
    assert len(row) == 24
    assert row[9] == "█"
    assert row[14] == "▒"
    assert row[0] == " "


def test_daily_report_totals():
    daily = [
        DailyStat(date=date(2026, 3, 7), sessions=1, messages=3, tokens=1000, cost=0.5),
        DailyStat(date=date(2026, 3, 8), sessions=2, messages=4, tokens=2000, cost=1.25),
    ]
    text = unstyle(render_daily_report(daily))
    assert "2026-03-07" in text
    assert "Total: 3 sessions, 7 messages, 3,000 tokens, $1.75" in text


def test_anomalies():
    anomalies = [
        Anomaly(AnomalyType.COST_SPIKE, Severity.HIGH, "Cost spike: $10.00 (3x average)", 10.0, 9.0, date(2026, 3, 8)),
        Anomaly(AnomalyType.HIGH_TOOL_FREQUENCY, Severity.MEDIUM, "High tool call frequency", 101, 100),
    ]
    text = unstyle(render_anomalies(anomalies))
    assert "● Cost spike: $10.00 (3x average)" in text
    assert "Date: 2026-03-08" in text
    assert "◐ High tool call frequency" in text
    assert render_anomalies([]) == ""


def test_status_with_activity():
    now = datetime(2026, 3, 8, 15, 0, tzinfo=timezone.utc)
    stats = RunningStats(messages=3, tool_calls=5, tokens=12_000, errors=1, last_activity=now - timedelta(seconds=42))
    text = unstyle(render_status(stats, now))
    assert "Tokens: 12,000" in text
    assert "Errors: 1" in text
    assert "Last Activity: 42s ago" in text


def test_status_without_activity():
    assert "No activity yet" in unstyle(render_status(RunningStats()))


def test_activity_line():
    event = ActivityEvent("tool_call", "exec", datetime(2026, 3, 8, 15, 0, tzinfo=timezone.utc))
    assert "🔧 exec" in unstyle(render_activity(event))


def test_daily_csv():
    rows = [{"date": "2026-03-08", "sessions": 2, "messages": 4, "tool_calls": 1, "tokens": 2000, "cost": 1.25}]
    assert daily_to_csv(rows) == (
        "date,sessions,messages,tool_calls,tokens,cost\n"
        "2026-03-08,2,4,1,2000,1.2500\n"
    )
