"""JSONL parser: reads OpenClaw session logs into Session objects.

One log line decodes to at most one Event; the events of one file fold
into exactly one Session.
"""

from __future__ import annotations

import json
import logging
import math
from collections.abc import Iterable
from datetime import datetime, timezone
from pathlib import Path

from agentscope.models import (
    ContentBlock,
    Event,
    Message,
    MessageEvent,
    ModelChangeEvent,
    Role,
    Session,
    SessionMetaEvent,
    ToolCall,
    ToolResult,
    UnrecognizedEvent,
    UsageDelta,
)

logger = logging.getLogger("agentscope.parser")

SESSION_SUFFIX = ".jsonl"
# Files the runtime marks as in-use or removed
EXCLUDED_MARKERS = (".lock", ".deleted")

_ROLES = {
    "user": Role.USER,
    "assistant": Role.ASSISTANT,
    "toolResult": Role.TOOL_RESULT,
    "tool_result": Role.TOOL_RESULT,
}


def parse_line(line: str) -> Event | None:
    """Decode one raw log line. Returns None for anything that should be skipped."""
    line = line.strip()
    if not line:
        return None
    try:
        data = json.loads(line)
    except (ValueError, RecursionError):
        # JSONDecodeError, over-long integer literals, nesting too deep
        return None
    if not isinstance(data, dict):
        return None

    timestamp = _parse_timestamp(data.get("timestamp"))
    entry_type = data.get("type")

    if entry_type == "session":
        session_id = data.get("id")
        return SessionMetaEvent(
            timestamp=timestamp,
            session_id=str(session_id) if session_id else None,
        )

    if entry_type == "model_change":
        return ModelChangeEvent(
            timestamp=timestamp,
            model=_optional_str(data.get("modelId")),
            provider=_optional_str(data.get("provider")),
        )

    if entry_type == "message":
        message_data = data.get("message")
        if not isinstance(message_data, dict):
            return None
        return _parse_message(message_data, timestamp)

    return UnrecognizedEvent(
        timestamp=timestamp,
        type=entry_type if isinstance(entry_type, str) else None,
    )


def build_session(events: Iterable[Event], source_file: str | Path) -> Session | None:
    """Fold an ordered stream of events from one file into a Session.

    Returns None when the stream is empty.
    """
    source_file = Path(source_file)
    session = Session(session_id=_session_id_from_path(source_file), source_file=str(source_file))
    # First call seen for each id; later results attach here
    calls_by_id: dict[str, ToolCall] = {}
    seen_any = False

    for event in events:
        seen_any = True
        ts = event.timestamp
        if ts is not None:
            if session.start_time is None or ts < session.start_time:
                session.start_time = ts
            if session.end_time is None or ts > session.end_time:
                session.end_time = ts

        if isinstance(event, SessionMetaEvent):
            if event.session_id:
                session.session_id = event.session_id
        elif isinstance(event, ModelChangeEvent):
            session.model = event.model
            session.provider = event.provider
        elif isinstance(event, MessageEvent):
            session.messages.append(
                Message(
                    role=event.role,
                    timestamp=ts,
                    has_tool_calls=bool(event.tool_calls),
                    usage=event.usage,
                )
            )
            if event.role == Role.ASSISTANT and event.usage is not None:
                session.tokens.add(event.usage)
                session.cost += event.usage.cost

            for block in event.tool_calls:
                tc = ToolCall(call_id=block.call_id, name=block.name, timestamp=ts)
                session.tool_calls.append(tc)
                if block.call_id and block.call_id not in calls_by_id:
                    calls_by_id[block.call_id] = tc

            if event.role == Role.TOOL_RESULT and event.tool_call_id:
                target = calls_by_id.get(event.tool_call_id)
                if target is not None:
                    target.result = ToolResult(is_error=event.is_error, timestamp=ts)

    if not seen_any:
        return None
    return session


def parse_session_file(file_path: Path) -> Session | None:
    """Parse a single JSONL file. Returns None if no line decoded."""
    file_path = Path(file_path)
    with open(file_path, encoding="utf-8") as f:
        events = [event for event in (parse_line(line) for line in f) if event is not None]
    return build_session(events, file_path)


def discover_session_files(log_dir: Path) -> list[Path]:
    """Find session JSONL files directly inside log_dir, excluding locked/deleted ones."""
    log_dir = Path(log_dir)
    if not log_dir.is_dir():
        return []
    results = [p for p in log_dir.iterdir() if p.is_file() and is_session_file(p)]
    results.sort()
    return results


def is_session_file(path: Path | str) -> bool:
    name = Path(path).name
    if not name.endswith(SESSION_SUFFIX):
        return False
    return not any(marker in name for marker in EXCLUDED_MARKERS)


def parse_all(log_dir: Path) -> list[Session]:
    """Parse every session file in log_dir. Unreadable files are skipped."""
    try:
        files = discover_session_files(log_dir)
    except OSError as e:
        logger.warning("Cannot list %s: %s", log_dir, e)
        return []

    sessions: list[Session] = []
    for file_path in files:
        try:
            session = parse_session_file(file_path)
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("Skipping unreadable session file %s: %s", file_path, e)
            continue
        if session is not None:
            sessions.append(session)
    logger.debug("Parsed %d sessions from %d files in %s", len(sessions), len(files), log_dir)
    return sessions


def _parse_message(message_data: dict, timestamp: datetime | None) -> MessageEvent:
    raw_role = message_data.get("role")
    role = _ROLES.get(raw_role, Role.OTHER) if isinstance(raw_role, str) else Role.OTHER

    tool_calls: list[ContentBlock] = []
    content = message_data.get("content")
    if isinstance(content, list):
        for block in content:
            if not isinstance(block, dict) or block.get("type") != "toolCall":
                continue
            call_id = block.get("id")
            name = block.get("name")
            tool_calls.append(
                ContentBlock(
                    call_id=str(call_id) if call_id else None,
                    name=str(name) if name else "unknown",
                )
            )

    usage = None
    if role == Role.ASSISTANT:
        usage_data = message_data.get("usage")
        if isinstance(usage_data, dict):
            usage = _parse_usage(usage_data)

    event = MessageEvent(timestamp=timestamp, role=role, tool_calls=tool_calls, usage=usage)
    if role == Role.TOOL_RESULT:
        call_id = message_data.get("toolCallId")
        event.tool_call_id = str(call_id) if call_id else None
        event.is_error = message_data.get("isError") is True
        event.tool_name = _optional_str(message_data.get("toolName"))
    return event


def _parse_usage(usage: dict) -> UsageDelta:
    cost_data = usage.get("cost")
    cost = cost_data.get("total") if isinstance(cost_data, dict) else None
    return UsageDelta(
        input=int(_non_negative(usage.get("input"))),
        output=int(_non_negative(usage.get("output"))),
        cache_read=int(_non_negative(usage.get("cacheRead"))),
        cache_write=int(_non_negative(usage.get("cacheWrite"))),
        total=int(_non_negative(usage.get("totalTokens"))),
        cost=float(_non_negative(cost)),
    )


def _non_negative(value: object) -> float:
    """Numeric usage field, or 0 for missing, non-numeric and negative values."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    if not math.isfinite(value) or value < 0:
        return 0
    return value


def _parse_timestamp(ts: object) -> datetime | None:
    """Parse an ISO 8601 string or epoch milliseconds. Returns None if unusable."""
    if isinstance(ts, bool):
        return None
    if isinstance(ts, (int, float)):
        try:
            return datetime.fromtimestamp(ts / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if not isinstance(ts, str) or not ts:
        return None
    # Handle Z suffix
    ts = ts.replace("Z", "+00:00")
    try:
        parsed = datetime.fromisoformat(ts)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _optional_str(value: object) -> str | None:
    return str(value) if value else None


def _session_id_from_path(file_path: Path) -> str:
    name = file_path.name
    if name.endswith(SESSION_SUFFIX):
        return name[: -len(SESSION_SUFFIX)]
    return name
