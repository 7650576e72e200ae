"""Persistent state for users, integrations and reports."""
from __future__ import annotations

import logging
import sqlite3
from contextlib import closing, contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Dict, Iterator, List, Optional, Tuple

from .models import (
    Integration,
    Platform,
    Report,
    ReportPriority,
    ReportSource,
    ReportStatus,
    User,
    UserRole,
)

logger = logging.getLogger(__name__)

_DB_SCHEMA = """
CREATE TABLE IF NOT EXISTS users (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    username TEXT UNIQUE NOT NULL,
    email TEXT NOT NULL,
    role TEXT NOT NULL DEFAULT 'user',
    status TEXT NOT NULL DEFAULT 'active',
    created_at TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS discord_integrations (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    discord_user_id TEXT UNIQUE NOT NULL,
    discord_username TEXT,
    user_id INTEGER,
    created_at TEXT NOT NULL,
    FOREIGN KEY (user_id) REFERENCES users (id)
);
CREATE TABLE IF NOT EXISTS telegram_integrations (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    telegram_user_id TEXT UNIQUE NOT NULL,
    telegram_username TEXT,
    user_id INTEGER,
    created_at TEXT NOT NULL,
    FOREIGN KEY (user_id) REFERENCES users (id)
);
CREATE TABLE IF NOT EXISTS reports (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id INTEGER NOT NULL,
    title TEXT NOT NULL,
    description TEXT NOT NULL,
    category TEXT,
    priority TEXT NOT NULL DEFAULT 'medium',
    status TEXT NOT NULL DEFAULT 'open',
    source TEXT NOT NULL DEFAULT 'website',
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    FOREIGN KEY (user_id) REFERENCES users (id)
);
CREATE INDEX IF NOT EXISTS idx_reports_user
    ON reports (user_id, created_at DESC);
CREATE INDEX IF NOT EXISTS idx_reports_status
    ON reports (status, priority);
"""

# Table, external id column, external username column. Never user supplied.
_INTEGRATION_TABLES: Dict[Platform, Tuple[str, str, str]] = {
    Platform.DISCORD: ("discord_integrations", "discord_user_id", "discord_username"),
    Platform.TELEGRAM: ("telegram_integrations", "telegram_user_id", "telegram_username"),
}

_REPORT_COLUMNS = (
    "r.id, r.user_id, r.title, r.description, r.category, r.priority, "
    "r.status, r.source, r.created_at, r.updated_at"
)


class StoreUnavailableError(RuntimeError):
    """Raised when the database cannot be reached or a query fails."""


def _row_to_user(row) -> User:
    return User(
        id=int(row[0]),
        username=row[1],
        email=row[2],
        role=UserRole(row[3]),
        status=row[4],
        created_at=datetime.fromisoformat(row[5]) if row[5] else None,
    )


def _row_to_report(row) -> Report:
    return Report(
        id=int(row[0]),
        user_id=int(row[1]),
        title=row[2],
        description=row[3],
        category=row[4],
        priority=ReportPriority(row[5]),
        status=ReportStatus(row[6]),
        source=ReportSource(row[7]),
        created_at=datetime.fromisoformat(row[8]),
        updated_at=datetime.fromisoformat(row[9]),
        username=row[10] if len(row) > 10 else None,
    )


class ReportState:
    """Process-wide handle on the report database.

    Each operation checks out its own short-lived connection, so a single
    instance can be shared by the web server threads and the bot event loops.
    """

    def __init__(
        self,
        db_path: Path,
        *,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._db_path = db_path
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._ensure_schema()

    @property
    def db_path(self) -> Path:
        return self._db_path

    def _now(self) -> str:
        return self._clock().isoformat()

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        try:
            with closing(sqlite3.connect(self._db_path, timeout=10)) as conn:
                conn.execute("PRAGMA foreign_keys = ON")
                yield conn
        except sqlite3.IntegrityError:
            raise
        except sqlite3.Error as exc:
            logger.exception("Database operation failed on %s", self._db_path)
            raise StoreUnavailableError("Report store unavailable") from exc

    def _ensure_schema(self) -> None:
        with self._connect() as conn:
            conn.executescript(_DB_SCHEMA)
            conn.commit()

    # User management ---------------------------------------------------
    def create_user(
        self,
        username: str,
        email: str,
        *,
        role: UserRole = UserRole.USER,
        status: str = "active",
    ) -> User:
        with self._connect() as conn:
            cursor = conn.execute(
                "INSERT INTO users (username, email, role, status, created_at) VALUES (?, ?, ?, ?, ?)",
                (username, email, role.value, status, self._now()),
            )
            conn.commit()
            user_id = int(cursor.lastrowid)
        user = self.get_user(user_id)
        assert user is not None
        return user

    def get_user(self, user_id: int) -> Optional[User]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT id, username, email, role, status, created_at FROM users WHERE id = ?",
                (user_id,),
            ).fetchone()
        return _row_to_user(row) if row else None

    def get_user_by_username(self, username: str) -> Optional[User]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT id, username, email, role, status, created_at FROM users WHERE username = ?",
                (username,),
            ).fetchone()
        return _row_to_user(row) if row else None

    def list_users(self) -> List[User]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT id, username, email, role, status, created_at FROM users "
                "ORDER BY created_at DESC, id DESC"
            ).fetchall()
        return [_row_to_user(row) for row in rows]

    def count_users(self) -> int:
        with self._connect() as conn:
            row = conn.execute("SELECT COUNT(*) FROM users").fetchone()
        return int(row[0]) if row else 0

    # Integrations ------------------------------------------------------
    def ensure_integration(
        self,
        platform: Platform,
        external_id: str,
        external_username: Optional[str],
    ) -> Integration:
        """Insert the integration unless present, then read it back.

        Both statements run in the same transaction, and the UNIQUE constraint
        turns a concurrent insert of the same account into a no-op.
        """

        table, id_column, name_column = _INTEGRATION_TABLES[platform]
        with self._connect() as conn:
            conn.execute(
                f"INSERT OR IGNORE INTO {table} ({id_column}, {name_column}, created_at) "
                "VALUES (?, ?, ?)",
                (external_id, external_username, self._now()),
            )
            row = conn.execute(
                f"SELECT {id_column}, {name_column}, user_id, created_at FROM {table} "
                f"WHERE {id_column} = ?",
                (external_id,),
            ).fetchone()
            conn.commit()
        return self._row_to_integration(platform, row)

    def get_integration(self, platform: Platform, external_id: str) -> Optional[Integration]:
        table, id_column, name_column = _INTEGRATION_TABLES[platform]
        with self._connect() as conn:
            row = conn.execute(
                f"SELECT {id_column}, {name_column}, user_id, created_at FROM {table} "
                f"WHERE {id_column} = ?",
                (external_id,),
            ).fetchone()
        if not row:
            return None
        return self._row_to_integration(platform, row)

    def link_integration(self, platform: Platform, external_id: str, user_id: int) -> bool:
        table, id_column, _ = _INTEGRATION_TABLES[platform]
        with self._connect() as conn:
            cursor = conn.execute(
                f"UPDATE {table} SET user_id = ? WHERE {id_column} = ?",
                (user_id, external_id),
            )
            conn.commit()
            return cursor.rowcount > 0

    def count_integrations(self, platform: Platform) -> int:
        table, _, _ = _INTEGRATION_TABLES[platform]
        with self._connect() as conn:
            row = conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()
        return int(row[0]) if row else 0

    @staticmethod
    def _row_to_integration(platform: Platform, row) -> Integration:
        return Integration(
            platform=platform,
            external_user_id=row[0],
            external_username=row[1],
            user_id=int(row[2]) if row[2] is not None else None,
            created_at=datetime.fromisoformat(row[3]) if row[3] else None,
        )

    # Reports -----------------------------------------------------------
    def insert_report(
        self,
        *,
        user_id: int,
        title: str,
        description: str,
        category: Optional[str],
        priority: ReportPriority,
        status: ReportStatus,
        source: ReportSource,
    ) -> Report:
        now = self._now()
        with self._connect() as conn:
            cursor = conn.execute(
                """INSERT INTO reports
                       (user_id, title, description, category, priority, status, source, created_at, updated_at)
                       VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    user_id,
                    title,
                    description,
                    category,
                    category,
                    priority.value,
                    status.value,
                    source.value,
                    now,
                    now,
                ),
            )
            conn.commit()
            report_id = int(cursor.lastrowid)
        report = self.get_report(report_id)
        assert report is not None
        return report

    def get_report(self, report_id: int, user_id: Optional[int] = None) -> Optional[Report]:
        query = f"SELECT {_REPORT_COLUMNS} FROM reports r WHERE r.id = ?"
        params: List[object] = [report_id]
        if user_id is not None:
            query += " AND r.user_id = ?"
            params.append(user_id)
        with self._connect() as conn:
            row = conn.execute(query, params).fetchone()
        return _row_to_report(row) if row else None

    def list_reports_for_user(self, user_id: int, limit: Optional[int] = None) -> List[Report]:
        query = (
            f"SELECT {_REPORT_COLUMNS} FROM reports r WHERE r.user_id = ? "
            "ORDER BY r.created_at DESC, r.id DESC"
        )
        params: List[object] = [user_id]
        if limit is not None:
            query += " LIMIT ?"
            params.append(limit)
        with self._connect() as conn:
            rows = conn.execute(query, params).fetchall()
        return [_row_to_report(row) for row in rows]

    def update_report(
        self,
        report_id: int,
        user_id: int,
        *,
        title: Optional[str] = None,
        description: Optional[str] = None,
        category: Optional[str] = None,
        priority: Optional[ReportPriority] = None,
        status: Optional[ReportStatus] = None,
    ) -> Optional[Report]:
        """Apply a partial update; ``None`` keeps the stored value.

        An empty ``category`` clears it to NULL.
        """

        with self._connect() as conn:
            cursor = conn.execute(
                """UPDATE reports
                       SET title = COALESCE(?, title),
                           description = COALESCE(?, description),
                           category = CASE WHEN ? = '' THEN NULL ELSE COALESCE(?, category) END,
                           priority = COALESCE(?, priority),
                           status = COALESCE(?, status),
                           updated_at = ?
                       WHERE id = ? AND user_id = ?""",
                (
                    title,
                    description,
                    category,
                    category,
                    priority.value if priority else None,
                    status.value if status else None,
                    self._now(),
                    report_id,
                    user_id,
                ),
            )
            conn.commit()
            if cursor.rowcount == 0:
                return None
        return self.get_report(report_id)

    def update_report_status(self, report_id: int, status: ReportStatus) -> Optional[Report]:
        with self._connect() as conn:
            cursor = conn.execute(
                "UPDATE reports SET status = ?, updated_at = ? WHERE id = ?",
                (status.value, self._now(), report_id),
            )
            conn.commit()
            if cursor.rowcount == 0:
                return None
        return self.get_report(report_id)

    def delete_report(self, report_id: int, user_id: int) -> bool:
        with self._connect() as conn:
            cursor = conn.execute(
                "DELETE FROM reports WHERE id = ? AND user_id = ?",
                (report_id, user_id),
            )
            conn.commit()
            return cursor.rowcount > 0

    def list_reports(
        self,
        status: Optional[ReportStatus] = None,
        priority: Optional[ReportPriority] = None,
    ) -> List[Report]:
        query = (
            f"SELECT {_REPORT_COLUMNS}, u.username FROM reports r "
            "JOIN users u ON r.user_id = u.id"
        )
        conditions: List[str] = []
        params: List[object] = []
        if status:
            conditions.append("r.status = ?")
            params.append(status.value)
        if priority:
            conditions.append("r.priority = ?")
            params.append(priority.value)
        if conditions:
            query += " WHERE " + " AND ".join(conditions)
        query += " ORDER BY r.created_at DESC, r.id DESC"

        with self._connect() as conn:
            rows = conn.execute(query, params).fetchall()
        return [_row_to_report(row) for row in rows]

    def count_reports(self, status: Optional[ReportStatus] = None) -> int:
        with self._connect() as conn:
            if status is None:
                row = conn.execute("SELECT COUNT(*) FROM reports").fetchone()
            else:
                row = conn.execute(
                    "SELECT COUNT(*) FROM reports WHERE status = ?",
                    (status.value,),
                ).fetchone()
        return int(row[0]) if row else 0


__all__ = ["ReportState", "StoreUnavailableError"]
