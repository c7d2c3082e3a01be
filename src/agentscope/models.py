"""Shared data models: the contract between parser, analytics, anomaly and watcher.

Parser produces Event objects from log lines and folds them into Sessions.
Analytics consumes Sessions and produces DailyStat / WindowSummary views.
The anomaly detector consumes those views and produces Anomaly findings.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum


class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"
    TOOL_RESULT = "tool_result"
    OTHER = "other"


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class AnomalyType(str, Enum):
    TOKEN_SPIKE = "token_spike"
    COST_SPIKE = "cost_spike"
    HIGH_ERROR_RATE = "high_error_rate"
    UNUSUAL_HOURS = "unusual_hours"
    ACTIVITY_GAP = "activity_gap"
    TOOL_DOMINANCE = "tool_dominance"
    HIGH_TOOL_FREQUENCY = "high_tool_frequency"


# ---------------------------------------------------------------------------
# Events (one per decoded log line)
# ---------------------------------------------------------------------------


@dataclass
class UsageDelta:
    """Token and cost usage reported for a single assistant turn."""

    input: int = 0
    output: int = 0
    cache_read: int = 0
    cache_write: int = 0
    total: int = 0
    cost: float = 0.0


@dataclass
class ContentBlock:
    """A tool invocation block inside an assistant message."""

    call_id: str | None
    name: str


@dataclass
class SessionMetaEvent:
    timestamp: datetime | None
    session_id: str | None = None


@dataclass
class ModelChangeEvent:
    timestamp: datetime | None
    model: str | None = None
    provider: str | None = None


@dataclass
class MessageEvent:
    timestamp: datetime | None
    role: Role
    tool_calls: list[ContentBlock] = field(default_factory=list)
    usage: UsageDelta | None = None
    # Only set on tool_result messages
    tool_call_id: str | None = None
    is_error: bool = False
    tool_name: str | None = None


@dataclass
class UnrecognizedEvent:
    timestamp: datetime | None
    type: str | None = None


Event = SessionMetaEvent | ModelChangeEvent | MessageEvent | UnrecognizedEvent


# ---------------------------------------------------------------------------
# Session aggregate (one per source file)
# ---------------------------------------------------------------------------


@dataclass
class Message:
    role: Role
    timestamp: datetime | None
    has_tool_calls: bool = False
    usage: UsageDelta | None = None


@dataclass
class ToolResult:
    is_error: bool
    timestamp: datetime | None


@dataclass
class ToolCall:
    """A single tool invocation and, once seen, its outcome."""

    call_id: str | None
    name: str
    timestamp: datetime | None
    result: ToolResult | None = None


@dataclass
class TokenUsage:
    input: int = 0
    output: int = 0
    cache_read: int = 0
    cache_write: int = 0
    total: int = 0

    def add(self, delta: UsageDelta) -> None:
        self.input += delta.input
        self.output += delta.output
        self.cache_read += delta.cache_read
        self.cache_write += delta.cache_write
        self.total += delta.total


@dataclass
class Session:
    """The reconstructed record of one agent run, built from one log file.

    Produced by parser.py, consumed by analytics.py.
    """

    session_id: str
    source_file: str
    messages: list[Message] = field(default_factory=list)
    tool_calls: list[ToolCall] = field(default_factory=list)
    tokens: TokenUsage = field(default_factory=TokenUsage)
    cost: float = 0.0
    model: str | None = None
    provider: str | None = None
    start_time: datetime | None = None
    end_time: datetime | None = None

    @property
    def duration_ms(self) -> int | None:
        if self.start_time is None or self.end_time is None:
            return None
        return int((self.end_time - self.start_time).total_seconds() * 1000)

    @property
    def tool_error_count(self) -> int:
        return sum(1 for tc in self.tool_calls if tc.result is not None and tc.result.is_error)

    @property
    def user_message_count(self) -> int:
        return sum(1 for m in self.messages if m.role == Role.USER)

    @property
    def assistant_message_count(self) -> int:
        return sum(1 for m in self.messages if m.role == Role.ASSISTANT)


# ---------------------------------------------------------------------------
# Derived views (recomputed per query, never persisted)
# ---------------------------------------------------------------------------


@dataclass
class DailyStat:
    date: date
    sessions: int = 0
    messages: int = 0
    tool_calls: int = 0
    tokens: int = 0
    cost: float = 0.0
    user_messages: int = 0
    assistant_messages: int = 0


@dataclass
class ToolCount:
    name: str
    count: int


@dataclass
class ToolStat:
    count: int = 0
    errors: int = 0


@dataclass
class WindowSummary:
    days: int
    total_sessions: int
    total_messages: int
    total_tool_calls: int
    total_tokens: int
    total_cost: float
    avg_tokens_per_session: int
    avg_messages_per_session: int
    tool_counts: list[ToolCount]  # sorted by count desc, ties in first-seen order
    hourly_activity: list[int]  # 24 buckets, local hour of session start
    peak_hour: int
    models: list[str]
    tool_errors: int

    @property
    def top_tools(self) -> list[ToolCount]:
        return self.tool_counts[:10]


@dataclass
class Anomaly:
    type: AnomalyType
    severity: Severity
    message: str
    value: float
    threshold: float | None = None
    date: date | None = None
    tool: str | None = None


# ---------------------------------------------------------------------------
# Hot path (tail follower)
# ---------------------------------------------------------------------------


@dataclass
class RunningStats:
    """Live counters for watch mode. Only ever grow during a watch."""

    messages: int = 0
    tool_calls: int = 0
    tokens: int = 0
    errors: int = 0
    last_activity: datetime | None = None


@dataclass
class ActivityEvent:
    """A single live event surfaced while tail-following."""

    kind: str  # user_message, tool_call, tool_error
    label: str
    timestamp: datetime
