"""SQLite-backed live session repository."""

import logging
import sqlite3
from dataclasses import dataclass
from pathlib import Path

from acfun_live_tracker.domain.models import LiveSession
from acfun_live_tracker.services.sessions import SessionRepository

_logger = logging.getLogger(__name__)

_TABLE = "acfunlive"

_COLUMNS = (
    "liveID, uid, name, streamName, startTime, title, "
    "duration, playbackURL, backupURL, liveCutNum"
)

_CREATE_TABLE = f"""
CREATE TABLE IF NOT EXISTS {_TABLE} (
    liveID TEXT PRIMARY KEY,
    uid INTEGER NOT NULL,
    name TEXT NOT NULL,
    streamName TEXT NOT NULL,
    startTime INTEGER NOT NULL,
    title TEXT NOT NULL,
    duration INTEGER NOT NULL DEFAULT 0,
    playbackURL TEXT NOT NULL DEFAULT '',
    backupURL TEXT NOT NULL DEFAULT '',
    liveCutNum INTEGER NOT NULL DEFAULT 0
)
"""

# Columns added after the first schema version, applied in order.
_MIGRATIONS = (
    ("liveCutNum", "INTEGER NOT NULL DEFAULT 0"),
)

_INDEXES = (
    f"CREATE INDEX IF NOT EXISTS liveIDIndex ON {_TABLE} (liveID)",
    f"CREATE INDEX IF NOT EXISTS uidIndex ON {_TABLE} (uid)",
)


@dataclass
class SqliteSessionRepository(SessionRepository):
    """SQLite implementation of live session storage.

    Holds a single connection; callers serialize access through
    SessionService.
    """

    connection: sqlite3.Connection

    @classmethod
    def open(cls, db_path: Path | str) -> "SqliteSessionRepository":
        """Open (and bootstrap) the database at ``db_path``."""
        path = Path(db_path)
        if path.parent != Path("."):
            path.parent.mkdir(parents=True, exist_ok=True)
        connection = sqlite3.connect(path, check_same_thread=False)
        connection.row_factory = sqlite3.Row
        repository = cls(connection)
        repository.prepare_schema()
        return repository

    def prepare_schema(self) -> None:
        """Create the table and indexes, adding columns missing from old files."""
        with self.connection:
            exists = self.connection.execute(
                "SELECT COUNT(*) FROM sqlite_master WHERE type = 'table' AND name = ?",
                (_TABLE,),
            ).fetchone()[0]
            if not exists:
                self.connection.execute(_CREATE_TABLE)
            else:
                present = {
                    row["name"]
                    for row in self.connection.execute(f"PRAGMA table_info({_TABLE})")
                }
                for column, definition in _MIGRATIONS:
                    if column not in present:
                        _logger.info("Adding column %s to %s", column, _TABLE)
                        self.connection.execute(
                            f"ALTER TABLE {_TABLE} ADD COLUMN {column} {definition}"
                        )
            for statement in _INDEXES:
                self.connection.execute(statement)

    def insert_if_absent(self, session: LiveSession) -> bool:
        """Insert a live row unless one with the same id exists."""
        with self.connection:
            cursor = self.connection.execute(
                f"INSERT OR IGNORE INTO {_TABLE} ({_COLUMNS}) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    session.live_id,
                    session.owner_id,
                    session.owner_name,
                    session.stream_name,
                    session.started_at_ms,
                    session.title,
                    session.duration_ms,
                    session.playback_url,
                    session.backup_url,
                    session.cut_number,
                ),
            )
        return cursor.rowcount == 1

    def set_duration_if_unset(self, live_id: str, duration_ms: int) -> bool:
        """Set duration only while it is still zero."""
        with self.connection:
            cursor = self.connection.execute(
                f"UPDATE {_TABLE} SET duration = ? WHERE liveID = ? AND duration = 0",
                (duration_ms, live_id),
            )
        return cursor.rowcount == 1

    def set_cut_number_if_unset(self, live_id: str, cut_number: int) -> bool:
        """Set the cut number only while it is still zero."""
        with self.connection:
            cursor = self.connection.execute(
                f"UPDATE {_TABLE} SET liveCutNum = ? "
                "WHERE liveID = ? AND liveCutNum = 0",
                (cut_number, live_id),
            )
        return cursor.rowcount == 1

    def set_playback_if_unset(self, live_id: str, url: str, backup_url: str) -> bool:
        """Set both playback urls only while both are empty."""
        with self.connection:
            cursor = self.connection.execute(
                f"UPDATE {_TABLE} SET playbackURL = ?, backupURL = ? "
                "WHERE liveID = ? AND playbackURL = '' AND backupURL = ''",
                (url, backup_url, live_id),
            )
        return cursor.rowcount == 1

    def get(self, live_id: str) -> LiveSession | None:
        """Return a live by id, if stored."""
        row = self.connection.execute(
            f"SELECT {_COLUMNS} FROM {_TABLE} WHERE liveID = ?",
            (live_id,),
        ).fetchone()
        return _row_to_session(row) if row else None

    def list_by_owner(self, owner_id: int, limit: int) -> list[LiveSession]:
        """Return an owner's lives, newest first; a negative limit is unbounded."""
        rows = self.connection.execute(
            f"SELECT {_COLUMNS} FROM {_TABLE} WHERE uid = ? "
            "ORDER BY startTime DESC LIMIT ?",
            (owner_id, limit),
        ).fetchall()
        return [_row_to_session(row) for row in rows]

    def close(self) -> None:
        """Close the database connection."""
        self.connection.close()


def _row_to_session(row: sqlite3.Row) -> LiveSession:
    return LiveSession(
        live_id=row["liveID"],
        owner_id=row["uid"],
        owner_name=row["name"],
        stream_name=row["streamName"],
        started_at_ms=row["startTime"],
        title=row["title"],
        duration_ms=row["duration"],
        playback_url=row["playbackURL"],
        backup_url=row["backupURL"],
        cut_number=row["liveCutNum"],
    )
