"""Append-only event log shared by the intercept and citnames stages.

The log is JSON Lines: one object per line, each carrying a `ts` timestamp and
an `event` kind (`started` or `terminated`). Interception helpers running
inside the build append to the same file, so writers only ever open it in
append mode.
"""

from __future__ import annotations

from datetime import datetime, timezone
import json
from pathlib import Path
from typing import Any, Iterator


EVENT_STARTED = "started"
EVENT_TERMINATED = "terminated"


def reset_event_log(path: Path) -> Path:
    """Create an empty event log, discarding any previous content."""

    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("", encoding="utf-8")
    return path


def append_event(path: Path, payload: dict[str, Any]) -> Path:
    """Append a JSON event line to the log at `path`."""

    envelope: dict[str, Any] = {
        "ts": datetime.now(timezone.utc).isoformat(),
        **payload,
    }
    with path.open("a", encoding="utf-8") as handle:
        handle.write(json.dumps(envelope, sort_keys=True) + "\n")
    return path


def iter_events(path: Path) -> Iterator[dict[str, Any]]:
    """Iterate parsed events from one log file, skipping blank lines."""

    with path.open("r", encoding="utf-8") as handle:
        for lineno, line in enumerate(handle, 1):
            text = line.strip()
            if not text:
                continue
            payload = json.loads(text)
            if not isinstance(payload, dict):
                raise TypeError(f"Event line {lineno} is not a JSON object: {path}")
            yield payload


def iter_executions(path: Path) -> Iterator[dict[str, Any]]:
    """Yield the `execution` record of every `started` event."""

    for payload in iter_events(path):
        if payload.get("event") != EVENT_STARTED:
            continue
        execution = payload.get("execution")
        if isinstance(execution, dict):
            yield execution
