"""Rollups over parsed sessions: day buckets, window summaries, tool stats.

All functions are pure. They take a list of Sessions plus a reference
instant and return structured dataclasses. The reference instant's tzinfo
decides what "local" means for day boundaries and hour-of-day buckets.
Without an aware reference the system zone is used, resolved per instant so
that windows spanning a DST change keep true local midnights.
"""

from __future__ import annotations

import math
from collections import Counter
from datetime import date, datetime, time, timedelta, tzinfo

from agentscope.models import (
    DailyStat,
    Session,
    ToolCount,
    ToolStat,
    WindowSummary,
)

HOURS_PER_DAY = 24


def filter_window(sessions: list[Session], now: datetime | None, days: int) -> list[Session]:
    """Sessions that started within [now - days, now]. Sessions without a start time are excluded."""
    now = _reference(now)
    cutoff = now - timedelta(days=days)
    return [
        s for s in sessions
        if s.start_time is not None and cutoff <= s.start_time <= now
    ]


def daily_stats(sessions: list[Session], now: datetime | None = None, days: int = 7) -> list[DailyStat]:
    """One row per local calendar day for the past `days` days, oldest first.

    Days without sessions are returned as all-zero rows.
    """
    tz = _zone(now)
    now = _reference(now)
    today = now.date()

    stats: list[DailyStat] = []
    for offset in range(days - 1, -1, -1):
        day = today - timedelta(days=offset)
        start = _midnight(day, tz)
        end = _midnight(day + timedelta(days=1), tz)
        day_sessions = [
            s for s in sessions
            if s.start_time is not None and start <= s.start_time < end
        ]
        stats.append(DailyStat(
            date=day,
            sessions=len(day_sessions),
            messages=sum(len(s.messages) for s in day_sessions),
            tool_calls=sum(len(s.tool_calls) for s in day_sessions),
            tokens=sum(s.tokens.total for s in day_sessions),
            cost=sum(s.cost for s in day_sessions),
            user_messages=sum(s.user_message_count for s in day_sessions),
            assistant_messages=sum(s.assistant_message_count for s in day_sessions),
        ))
    return stats


def window_summary(sessions: list[Session], now: datetime | None = None, days: int = 7) -> WindowSummary:
    """Totals, tool histogram and hour-of-day histogram over the trailing window."""
    tz = _zone(now)
    now = _reference(now)
    window = filter_window(sessions, now, days)

    tool_counter: Counter[str] = Counter()
    hourly = [0] * HOURS_PER_DAY
    models: list[str] = []
    for session in window:
        for tc in session.tool_calls:
            tool_counter[tc.name] += 1
        hourly[session.start_time.astimezone(tz).hour] += 1
        if session.model and session.model not in models:
            models.append(session.model)

    # sorted() is stable, so equal counts keep first-seen order
    tool_counts = [
        ToolCount(name=name, count=count)
        for name, count in sorted(tool_counter.items(), key=lambda item: item[1], reverse=True)
    ]

    total_sessions = len(window)
    total_messages = sum(len(s.messages) for s in window)
    total_tokens = sum(s.tokens.total for s in window)

    return WindowSummary(
        days=days,
        total_sessions=total_sessions,
        total_messages=total_messages,
        total_tool_calls=sum(len(s.tool_calls) for s in window),
        total_tokens=total_tokens,
        total_cost=sum(s.cost for s in window),
        avg_tokens_per_session=_average(total_tokens, total_sessions),
        avg_messages_per_session=_average(total_messages, total_sessions),
        tool_counts=tool_counts,
        hourly_activity=hourly,
        peak_hour=hourly.index(max(hourly)),
        models=models,
        tool_errors=sum(s.tool_error_count for s in window),
    )


def tool_stats(sessions: list[Session], now: datetime | None = None, days: int = 7) -> dict[str, ToolStat]:
    """Per-tool call and error counts over the trailing window."""
    stats: dict[str, ToolStat] = {}
    for session in filter_window(sessions, now, days):
        for tc in session.tool_calls:
            stat = stats.setdefault(tc.name, ToolStat())
            stat.count += 1
            if tc.result is not None and tc.result.is_error:
                stat.errors += 1
    return stats


def build_export(sessions: list[Session], now: datetime | None = None, days: int = 30) -> dict:
    """Everything the report views show, as a JSON-ready dict."""
    if now is None:
        # Naive local time; each rollup resolves the system zone per instant
        now = datetime.now()
    ref = _reference(now)
    summary = window_summary(sessions, now, days)

    return {
        "exported_at": datetime.now(tz=ref.tzinfo).isoformat(),
        "period": {
            "days": days,
            "from": (ref - timedelta(days=days)).isoformat(),
            "to": ref.isoformat(),
        },
        "summary": {
            "total_sessions": summary.total_sessions,
            "total_messages": summary.total_messages,
            "total_tool_calls": summary.total_tool_calls,
            "total_tokens": summary.total_tokens,
            "total_cost": summary.total_cost,
            "avg_tokens_per_session": summary.avg_tokens_per_session,
            "avg_messages_per_session": summary.avg_messages_per_session,
            "top_tools": [[t.name, t.count] for t in summary.top_tools],
            "peak_hour": summary.peak_hour,
            "hourly_activity": summary.hourly_activity,
            "models": summary.models,
            "tool_errors": summary.tool_errors,
        },
        "daily": [
            {
                "date": d.date.isoformat(),
                "sessions": d.sessions,
                "messages": d.messages,
                "tool_calls": d.tool_calls,
                "tokens": d.tokens,
                "cost": d.cost,
                "user_messages": d.user_messages,
                "assistant_messages": d.assistant_messages,
            }
            for d in daily_stats(sessions, now, days)
        ],
        "tool_stats": {
            name: {"count": stat.count, "errors": stat.errors}
            for name, stat in tool_stats(sessions, now, days).items()
        },
        "sessions": [
            {
                "id": s.session_id,
                "start_time": _iso(s.start_time),
                "end_time": _iso(s.end_time),
                "duration_ms": s.duration_ms,
                "model": s.model,
                "provider": s.provider,
                "message_count": len(s.messages),
                "user_message_count": s.user_message_count,
                "tool_call_count": len(s.tool_calls),
                "tool_error_count": s.tool_error_count,
                "tokens": {
                    "input": s.tokens.input,
                    "output": s.tokens.output,
                    "cache_read": s.tokens.cache_read,
                    "cache_write": s.tokens.cache_write,
                    "total": s.tokens.total,
                },
                "cost": s.cost,
            }
            for s in filter_window(sessions, now, days)
        ],
    }


def _reference(now: datetime | None) -> datetime:
    """Timezone-aware reference instant; naive or missing values use local time."""
    if now is None:
        return datetime.now().astimezone()
    if now.tzinfo is None:
        return now.astimezone()
    return now


def _zone(now: datetime | None) -> tzinfo | None:
    """The caller's zone, or None for the system zone."""
    if now is None or now.tzinfo is None:
        return None
    return now.tzinfo


def _midnight(day: date, tz: tzinfo | None) -> datetime:
    if tz is None:
        return datetime.combine(day, time.min).astimezone()
    return datetime.combine(day, time.min, tzinfo=tz)


def _average(total: int, count: int) -> int:
    """Half-up rounded mean, 0 when count is 0."""
    if count == 0:
        return 0
    return math.floor(total / count + 0.5)


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None

