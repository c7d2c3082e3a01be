"""Shared test fixtures for agentscope tests."""

import json
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from agentscope.models import Message, Role, Session, TokenUsage, ToolCall, ToolResult

FIXTURES_DIR = Path(__file__).parent / "fixtures"

# Fixed reference instant for time-windowed tests: Sunday 2026-03-08 15:00 UTC
NOW = datetime(2026, 3, 8, 15, 0, tzinfo=timezone.utc)


@pytest.fixture
def fixtures_dir():
    """Path to test fixtures directory."""
    return FIXTURES_DIR


@pytest.fixture
def sample_jsonl():
    """Path to sample JSONL file (sess-alpha, with session meta)."""
    return FIXTURES_DIR / "sample.jsonl"


@pytest.fixture
def sample2_jsonl():
    """Path to second sample JSONL file (no session meta, id from filename)."""
    return FIXTURES_DIR / "sample2.jsonl"


@pytest.fixture
def now():
    return NOW


def write_jsonl(path: Path, entries: list, trailing_newline: bool = True) -> Path:
    """Write entries (dicts are JSON-encoded, strings written verbatim) one per line."""
    lines = [e if isinstance(e, str) else json.dumps(e) for e in entries]
    text = "\n".join(lines)
    if trailing_newline and lines:
        text += "\n"
    path.write_text(text)
    return path


def message_entry(role: str, ts: str | None = "2026-03-02T10:00:00.000Z", **message) -> dict:
    """A `type: message` log entry."""
    entry = {"type": "message", "message": {"role": role, **message}}
    if ts is not None:
        entry["timestamp"] = ts
    return entry


def make_session(
    session_id: str = "s1",
    start: datetime | None = NOW - timedelta(hours=1),
    messages: int = 2,
    user_messages: int = 1,
    tools: list[str] | None = None,
    errors: int = 0,
    tokens: int = 0,
    cost: float = 0.0,
    model: str | None = None,
) -> Session:
    """Build a Session directly, bypassing the parser."""
    tool_names = tools or []
    tool_calls = [
        ToolCall(call_id=f"{session_id}-{i}", name=name, timestamp=start)
        for i, name in enumerate(tool_names)
    ]
    for tc in tool_calls[:errors]:
        tc.result = ToolResult(is_error=True, timestamp=start)
    msgs = [
        Message(role=Role.USER if i < user_messages else Role.ASSISTANT, timestamp=start)
        for i in range(messages)
    ]
    return Session(
        session_id=session_id,
        source_file=f"/logs/{session_id}.jsonl",
        messages=msgs,
        tool_calls=tool_calls,
        tokens=TokenUsage(total=tokens),
        cost=cost,
        model=model,
        start_time=start,
        end_time=start,
    )
