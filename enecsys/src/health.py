"""
Health file writer for the gateway daemon.

Writes a JSON health file at a configurable path with four fields:
- last_frame_ts: ISO timestamp of the most recent inbound frame.
- last_dispatch_ts: ISO timestamp of the most recent dispatched frame.
- open_connections: Number of gateway connections currently being served.
- frames: Count of frames per processing outcome since startup.

The file is overwritten on every state change, providing a simple liveness
signal that Docker HEALTHCHECK or monitoring can inspect.

CHANGELOG:
- 2026-10-19: Initial creation

TODO:
- None
"""

from __future__ import annotations

import json
import threading
from datetime import UTC, datetime
from pathlib import Path

from enecsys.src.models import FrameOutcome


class HealthWriter:
    """Writes gateway health status to a JSON file.

    Each mutating method updates the in-memory state and immediately
    rewrites the health file so it always reflects the latest status.
    Methods may be called from several connection handlers at once.

    Args:
        path: Filesystem path for the health JSON file. Accepts str or Path.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()
        self._last_frame_ts: str | None = None
        self._last_dispatch_ts: str | None = None
        self._open_connections: int = 0
        self._frames: dict[str, int] = {outcome.value: 0 for outcome in FrameOutcome}

    def record_frame(self, outcome: FrameOutcome) -> None:
        """Record a processed frame and write health file.

        Args:
            outcome: What the pipeline did with the frame.
        """
        now = datetime.now(tz=UTC).isoformat()
        with self._lock:
            self._last_frame_ts = now
            if outcome is FrameOutcome.DISPATCHED:
                self._last_dispatch_ts = now
            self._frames[outcome.value] += 1
            self._write()

    def connection_opened(self) -> None:
        """Count a newly accepted connection and write health file."""
        with self._lock:
            self._open_connections += 1
            self._write()

    def connection_closed(self) -> None:
        """Count a closed connection and write health file."""
        with self._lock:
            self._open_connections = max(0, self._open_connections - 1)
            self._write()

    def _write(self) -> None:
        """Write the health JSON file with current state."""
        data = {
            "last_frame_ts": self._last_frame_ts,
            "last_dispatch_ts": self._last_dispatch_ts,
            "open_connections": self._open_connections,
            "frames": dict(self._frames),
        }
        self.path.write_text(json.dumps(data))
