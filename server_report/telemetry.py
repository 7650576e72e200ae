"""Usage and failure metrics for the chat bot commands.

Events are buffered in memory and written to their own SQLite database,
separate from the report store.
"""
from __future__ import annotations

import logging
import os
import sqlite3
import time
from contextlib import closing
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

_METRICS_SCHEMA = """
CREATE TABLE IF NOT EXISTS command_metrics (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    timestamp REAL NOT NULL,
    metric_type TEXT NOT NULL,
    name TEXT NOT NULL,
    platform TEXT,
    command TEXT,
    user_id TEXT,
    success INTEGER,
    duration_ms REAL,
    details TEXT
);
CREATE INDEX IF NOT EXISTS idx_command_metrics_type
    ON command_metrics (metric_type, name, timestamp);
"""


class MetricType(Enum):
    """Kinds of event the collector stores."""

    COMMAND_USAGE = "command_usage"
    COMMAND_ERROR = "command_error"


@dataclass
class MetricEvent:
    """One command invocation or failure.

    For usage events ``name`` is the command; for errors it is the exception
    type and ``command`` names the command that raised it.
    """

    timestamp: float
    metric_type: MetricType
    name: str
    platform: Optional[str] = None
    command: Optional[str] = None
    user_id: Optional[str] = None
    success: Optional[bool] = None
    duration_ms: Optional[float] = None
    details: Optional[str] = None


class TelemetryCollector:
    """Buffers bot command metrics and flushes them to SQLite."""

    def __init__(
        self,
        db_path: Optional[Path] = None,
        *,
        buffer_size: int = 100,
        flush_interval: float = 60.0,
    ) -> None:
        self.db_path = db_path or Path(
            os.environ.get("SERVER_REPORT_TELEMETRY_DB", "telemetry.db")
        )
        self.buffer_size = buffer_size
        self.flush_interval = flush_interval
        # Events kept across failed flushes before the oldest are dropped.
        self.max_buffered = buffer_size * 10
        self._buffer: List[MetricEvent] = []
        self._last_flush = time.time()
        with closing(sqlite3.connect(self.db_path)) as conn:
            conn.executescript(_METRICS_SCHEMA)
            conn.commit()

    # Recording ---------------------------------------------------------
    def track_command(
        self,
        command_name: str,
        platform: str,
        user_id: str,
        success: bool = True,
        duration_ms: Optional[float] = None,
    ) -> None:
        self._record(
            MetricEvent(
                timestamp=time.time(),
                metric_type=MetricType.COMMAND_USAGE,
                name=command_name,
                platform=platform,
                command=command_name,
                user_id=user_id,
                success=success,
                duration_ms=duration_ms,
            )
        )

    def track_error(
        self,
        error_type: str,
        command: Optional[str] = None,
        platform: Optional[str] = None,
        error_details: Optional[str] = None,
    ) -> None:
        self._record(
            MetricEvent(
                timestamp=time.time(),
                metric_type=MetricType.COMMAND_ERROR,
                name=error_type,
                platform=platform,
                command=command,
                details=error_details,
            )
        )

    def _record(self, event: MetricEvent) -> None:
        self._buffer.append(event)
        if (
            len(self._buffer) >= self.buffer_size
            or time.time() - self._last_flush > self.flush_interval
        ):
            self.flush()

    def flush(self) -> None:
        """Write buffered events.

        On failure the events stay buffered for the next try, up to
        ``max_buffered``; beyond that the oldest are dropped.
        """

        if not self._buffer:
            return
        rows = [
            (
                event.timestamp,
                event.metric_type.value,
                event.name,
                event.platform,
                event.command,
                event.user_id,
                None if event.success is None else int(event.success),
                event.duration_ms,
                event.details,
            )
            for event in self._buffer
        ]
        try:
            with closing(sqlite3.connect(self.db_path)) as conn:
                conn.executemany(
                    """INSERT INTO command_metrics
                           (timestamp, metric_type, name, platform, command, user_id,
                            success, duration_ms, details)
                           VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                    rows,
                )
                conn.commit()
        except sqlite3.Error as exc:
            logger.error("Failed to flush %d metrics to %s: %s", len(rows), self.db_path, exc)
            overflow = len(self._buffer) - self.max_buffered
            if overflow > 0:
                del self._buffer[:overflow]
                logger.warning("Dropped %d oldest unflushed metrics", overflow)
            return
        logger.debug("Flushed %d metrics to %s", len(rows), self.db_path)
        self._buffer.clear()
        self._last_flush = time.time()

    # Summaries ---------------------------------------------------------
    def get_command_stats(self, platform: Optional[str] = None) -> Dict[str, Dict[str, Any]]:
        """Usage count, success rate, distinct users and mean duration per command."""

        query = (
            "SELECT name, COUNT(*), AVG(success), COUNT(DISTINCT user_id), AVG(duration_ms) "
            "FROM command_metrics WHERE metric_type = ?"
        )
        params: List[Any] = [MetricType.COMMAND_USAGE.value]
        if platform:
            query += " AND platform = ?"
            params.append(platform)
        query += " GROUP BY name"

        with closing(sqlite3.connect(self.db_path)) as conn:
            rows = conn.execute(query, params).fetchall()
        return {
            row[0]: {
                "usage_count": row[1],
                "success_rate": row[2],
                "unique_users": row[3],
                "avg_duration_ms": row[4],
            }
            for row in rows
        }

    def get_error_summary(self, hours: int = 24, platform: Optional[str] = None) -> Dict[str, int]:
        """Error counts by exception type over the last ``hours``."""

        query = (
            "SELECT name, COUNT(*) AS error_count FROM command_metrics "
            "WHERE metric_type = ? AND timestamp >= ?"
        )
        params: List[Any] = [MetricType.COMMAND_ERROR.value, time.time() - hours * 3600]
        if platform:
            query += " AND platform = ?"
            params.append(platform)
        query += " GROUP BY name ORDER BY error_count DESC"

        with closing(sqlite3.connect(self.db_path)) as conn:
            rows = conn.execute(query, params).fetchall()
        return {row[0]: row[1] for row in rows}


_telemetry: Optional[TelemetryCollector] = None


def get_telemetry() -> TelemetryCollector:
    """Return the process-wide collector, creating it on first use."""

    global _telemetry
    if _telemetry is None:
        _telemetry = TelemetryCollector()
    return _telemetry


def set_telemetry(collector: Optional[TelemetryCollector]) -> None:
    """Replace the process-wide collector (``None`` resets it)."""

    global _telemetry
    _telemetry = collector


__all__ = [
    "MetricEvent",
    "MetricType",
    "TelemetryCollector",
    "get_telemetry",
    "set_telemetry",
]
