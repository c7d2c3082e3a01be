"""Rules engine for activity anomalies.

Each rule inspects the 7-day window summary and/or the 7 daily buckets and
produces zero or more findings. Thresholds are fixed.
"""

from __future__ import annotations

from datetime import datetime

from agentscope.analytics import daily_stats, window_summary
from agentscope.models import (
    Anomaly,
    AnomalyType,
    DailyStat,
    Session,
    Severity,
    WindowSummary,
)

BASELINE_DAYS = 7

SPIKE_MULTIPLIER = 3
TOKEN_SPIKE_MIN_TOKENS = 10_000
COST_SPIKE_MIN_COST = 0.5
ERROR_RATE_THRESHOLD = 0.1
ERROR_RATE_MIN_ERRORS = 5
NIGHT_END_HOUR = 6  # 00:00-05:59
NIGHT_RATIO_THRESHOLD = 0.3
NIGHT_MIN_SESSIONS = 5
ACTIVITY_GAP_MIN_DAYS = 2
TOOL_DOMINANCE_RATIO = 0.5
TOOL_DOMINANCE_MIN_CALLS = 50
TOOL_FREQUENCY_THRESHOLD = 100


def detect(sessions: list[Session], now: datetime | None = None) -> list[Anomaly]:
    """Compute the 7-day baseline for `sessions` and run every rule."""
    if now is None:
        now = datetime.now()
    summary = window_summary(sessions, now, BASELINE_DAYS)
    daily = daily_stats(sessions, now, BASELINE_DAYS)
    return detect_anomalies(summary, daily)


def detect_anomalies(summary: WindowSummary, daily: list[DailyStat]) -> list[Anomaly]:
    """Run all rules and return combined results in rule order."""
    anomalies: list[Anomaly] = []
    anomalies.extend(detect_token_spikes(daily, summary))
    anomalies.extend(detect_cost_spikes(daily, summary))
    anomalies.extend(detect_tool_errors(summary))
    anomalies.extend(detect_unusual_hours(summary))
    anomalies.extend(detect_activity_gaps(daily))
    anomalies.extend(detect_tool_dominance(summary))
    anomalies.extend(detect_high_tool_frequency(summary))
    return anomalies


def detect_token_spikes(daily: list[DailyStat], summary: WindowSummary) -> list[Anomaly]:
    threshold = summary.total_tokens / BASELINE_DAYS * SPIKE_MULTIPLIER
    anomalies: list[Anomaly] = []
    for day in daily:
        if day.tokens > threshold and day.tokens > TOKEN_SPIKE_MIN_TOKENS:
            anomalies.append(
                Anomaly(
                    type=AnomalyType.TOKEN_SPIKE,
                    severity=Severity.MEDIUM,
                    message=f"Token usage spike: {day.tokens:,} tokens (3x average)",
                    value=day.tokens,
                    threshold=threshold,
                    date=day.date,
                )
            )
    return anomalies


def detect_cost_spikes(daily: list[DailyStat], summary: WindowSummary) -> list[Anomaly]:
    threshold = summary.total_cost / BASELINE_DAYS * SPIKE_MULTIPLIER
    anomalies: list[Anomaly] = []
    for day in daily:
        if day.cost > threshold and day.cost > COST_SPIKE_MIN_COST:
            anomalies.append(
                Anomaly(
                    type=AnomalyType.COST_SPIKE,
                    severity=Severity.HIGH,
                    message=f"Cost spike: ${day.cost:.2f} (3x average)",
                    value=day.cost,
                    threshold=threshold,
                    date=day.date,
                )
            )
    return anomalies


def detect_tool_errors(summary: WindowSummary) -> list[Anomaly]:
    error_rate = _ratio(summary.tool_errors, summary.total_tool_calls)
    if error_rate > ERROR_RATE_THRESHOLD and summary.tool_errors > ERROR_RATE_MIN_ERRORS:
        return [
            Anomaly(
                type=AnomalyType.HIGH_ERROR_RATE,
                severity=Severity.HIGH,
                message=(
                    f"High tool error rate: {error_rate:.1%} "
                    f"({summary.tool_errors} errors)"
                ),
                value=error_rate,
                threshold=ERROR_RATE_THRESHOLD,
            )
        ]
    return []


def detect_unusual_hours(summary: WindowSummary) -> list[Anomaly]:
    night_activity = sum(summary.hourly_activity[:NIGHT_END_HOUR])
    night_ratio = _ratio(night_activity, sum(summary.hourly_activity))
    if night_ratio > NIGHT_RATIO_THRESHOLD and night_activity > NIGHT_MIN_SESSIONS:
        return [
            Anomaly(
                type=AnomalyType.UNUSUAL_HOURS,
                severity=Severity.LOW,
                message=f"High night activity (00:00-06:00): {night_ratio:.1%} of sessions",
                value=night_ratio,
                threshold=NIGHT_RATIO_THRESHOLD,
            )
        ]
    return []


def detect_activity_gaps(daily: list[DailyStat]) -> list[Anomaly]:
    """One finding for every day on which a run of idle days is 2+ long."""
    anomalies: list[Anomaly] = []
    consecutive_zero = 0
    for day in daily:
        if day.sessions != 0:
            consecutive_zero = 0
            continue
        consecutive_zero += 1
        if consecutive_zero >= ACTIVITY_GAP_MIN_DAYS:
            anomalies.append(
                Anomaly(
                    type=AnomalyType.ACTIVITY_GAP,
                    severity=Severity.LOW,
                    message=f"No activity detected for {consecutive_zero}+ days",
                    value=consecutive_zero,
                    date=day.date,
                )
            )
    return anomalies


def detect_tool_dominance(summary: WindowSummary) -> list[Anomaly]:
    anomalies: list[Anomaly] = []
    for tool in summary.top_tools:
        ratio = _ratio(tool.count, summary.total_tool_calls)
        if ratio > TOOL_DOMINANCE_RATIO and tool.count > TOOL_DOMINANCE_MIN_CALLS:
            anomalies.append(
                Anomaly(
                    type=AnomalyType.TOOL_DOMINANCE,
                    severity=Severity.LOW,
                    message=f'Tool "{tool.name}" accounts for {ratio:.1%} of all tool calls',
                    value=ratio,
                    threshold=TOOL_DOMINANCE_RATIO,
                    tool=tool.name,
                )
            )
    return anomalies


def detect_high_tool_frequency(summary: WindowSummary) -> list[Anomaly]:
    per_session = _ratio(summary.total_tool_calls, summary.total_sessions)
    if per_session > TOOL_FREQUENCY_THRESHOLD:
        return [
            Anomaly(
                type=AnomalyType.HIGH_TOOL_FREQUENCY,
                severity=Severity.MEDIUM,
                message=f"High tool call frequency: {per_session:.0f} calls per session",
                value=per_session,
                threshold=TOOL_FREQUENCY_THRESHOLD,
            )
        ]
    return []


def _ratio(numerator: float, denominator: float) -> float:
    return numerator / denominator if denominator else 0.0
