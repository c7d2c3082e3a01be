"""Tail follower for watch mode, using watchfiles.

Tracks a byte offset per session file, reads only what was appended since
the last pass, and folds the new lines into live RunningStats. A timer
thread reports the latest snapshot on a fixed interval.
"""

from __future__ import annotations

import dataclasses
import logging
import threading
from collections.abc import Callable, Iterable
from datetime import datetime, timezone
from pathlib import Path

from watchfiles import Change, watch

from agentscope.models import ActivityEvent, Event, MessageEvent, Role, RunningStats
from agentscope.parser import discover_session_files, is_session_file, parse_line

logger = logging.getLogger("agentscope.watcher")

# Quiet period before a burst of writes is reported as one change set
DEBOUNCE_MS = 500


class TailFollower:
    """Owns the offset table and running counters for one watch session.

    Growth of a single file is processed under that file's lock, so
    overlapping notifications for the same file never interleave reads.
    The status emitter only takes the stats lock and never waits on file I/O.
    """

    def __init__(
        self,
        log_dir: Path,
        interval: float = 10.0,
        on_status: Callable[[RunningStats], None] | None = None,
        on_event: Callable[[ActivityEvent], None] | None = None,
    ):
        self.log_dir = Path(log_dir)
        self.interval = interval
        self.on_status = on_status
        self.on_event = on_event

        self._offsets: dict[Path, int] = {}
        self._file_locks: dict[Path, threading.Lock] = {}
        self._locks_guard = threading.Lock()

        self._stats = RunningStats()
        self._stats_lock = threading.Lock()

        self._stop = threading.Event()

    # -- offset table -------------------------------------------------------

    def offset(self, path: Path) -> int | None:
        """Current offset for a tracked file, None if untracked."""
        return self._offsets.get(Path(path))

    @property
    def tracked_files(self) -> list[Path]:
        return sorted(self._offsets)

    def scan_existing(self) -> int:
        """Track every existing session file at its current size (no replay)."""
        if not self.log_dir.is_dir():
            logger.warning("Log path %s does not exist, waiting for creation", self.log_dir)
            return 0

        files = discover_session_files(self.log_dir)
        for path in files:
            try:
                size = path.stat().st_size
            except FileNotFoundError:
                continue
            with self._lock_for(path):
                self._offsets[path] = size
        logger.info("Tracking %d session files", len(files))
        return len(files)

    def track_new(self, path: Path) -> int:
        """Track a file created during the watch from offset 0 and read it."""
        path = Path(path)
        with self._lock_for(path):
            self._offsets[path] = 0
        logger.info("[new session] %s", path.name)
        return self.process_growth(path)

    def forget(self, path: Path) -> None:
        """Stop tracking a file. Its lock entry stays, so a recreated file shares it."""
        path = Path(path)
        with self._lock_for(path):
            self._offsets.pop(path, None)
        logger.info("Stopped tracking %s", path.name)

    def process_growth(self, path: Path) -> int:
        """Fold the complete lines appended since the stored offset.

        Returns the number of decoded events folded. The offset only moves
        after the new lines are folded, and only past the last newline; a
        partially written trailing line is left for the next pass.
        """
        path = Path(path)
        with self._lock_for(path):
            size = path.stat().st_size
            offset = self._offsets.get(path, 0)

            if size < offset:
                logger.warning(
                    "%s shrank from %d to %d bytes, reading from the start",
                    path.name, offset, size,
                )
                offset = 0

            if size == offset:
                self._offsets[path] = offset
                return 0

            with open(path, "rb") as f:
                f.seek(offset)
                chunk = f.read(size - offset)

            end = chunk.rfind(b"\n")
            if end == -1:
                self._offsets[path] = offset
                return 0
            complete = chunk[: end + 1]

            events = [
                event
                for event in (
                    parse_line(raw.decode("utf-8", errors="replace"))
                    for raw in complete.split(b"\n")
                )
                if event is not None
            ]
            activity = self._fold(events)
            self._offsets[path] = offset + len(complete)

        if self.on_event is not None:
            for item in activity:
                self.on_event(item)
        return len(events)

    # -- running stats ------------------------------------------------------

    def snapshot(self) -> RunningStats:
        """A copy of the counters as of the last fully folded read."""
        with self._stats_lock:
            return dataclasses.replace(self._stats)

    def _fold(self, events: Iterable[Event]) -> list[ActivityEvent]:
        activity: list[ActivityEvent] = []
        with self._stats_lock:
            for event in events:
                ts = event.timestamp or datetime.now(tz=timezone.utc)
                self._stats.last_activity = ts
                if not isinstance(event, MessageEvent):
                    continue

                if event.role == Role.USER:
                    self._stats.messages += 1
                    activity.append(ActivityEvent("user_message", "user message", ts))
                elif event.role == Role.ASSISTANT:
                    for block in event.tool_calls:
                        self._stats.tool_calls += 1
                        activity.append(ActivityEvent("tool_call", block.name, ts))
                    if event.usage is not None:
                        self._stats.tokens += event.usage.total
                elif event.role == Role.TOOL_RESULT and event.is_error:
                    self._stats.errors += 1
                    activity.append(
                        ActivityEvent("tool_error", f"tool error: {event.tool_name}", ts)
                    )
        return activity

    # -- change dispatch ----------------------------------------------------

    def handle_changes(self, changes: Iterable[tuple[Change, str]]) -> None:
        """Apply one batch of file-system notifications."""
        for change_type, path_str in changes:
            path = Path(path_str)
            if not is_session_file(path):
                continue
            try:
                if change_type == Change.deleted:
                    self.forget(path)
                elif change_type == Change.added and path not in self._offsets:
                    self.track_new(path)
                else:
                    self.process_growth(path)
            except FileNotFoundError:
                self.forget(path)
            except OSError as e:
                logger.error("Error reading %s: %s", path, e)

    # -- lifecycle ----------------------------------------------------------

    def run(self) -> None:
        """Scan, then follow the log directory until stop() is called."""
        self.scan_existing()

        status_thread = threading.Thread(
            target=self._emit_status_loop, name="agentscope-status", daemon=True,
        )
        status_thread.start()
        try:
            while not self.log_dir.is_dir():
                if self._stop.wait(self.interval):
                    return
            logger.info("Watching %s", self.log_dir)
            for changes in watch(
                self.log_dir,
                watch_filter=_session_filter,
                debounce=DEBOUNCE_MS,
                recursive=False,
                stop_event=self._stop,
            ):
                self.handle_changes(changes)
        finally:
            self._stop.set()
            status_thread.join()
            logger.info("Watch stopped")

    def stop(self) -> None:
        self._stop.set()

    @property
    def stopped(self) -> bool:
        return self._stop.is_set()

    def _emit_status_loop(self) -> None:
        while not self._stop.wait(self.interval):
            if self.on_status is not None:
                self.on_status(self.snapshot())

    def _lock_for(self, path: Path) -> threading.Lock:
        with self._locks_guard:
            lock = self._file_locks.get(path)
            if lock is None:
                lock = self._file_locks[path] = threading.Lock()
            return lock


def _session_filter(change: Change, path: str) -> bool:
    return is_session_file(path)
