"""SQLite Session Store for thinking sessions.

Durable record of every session, thought, branch and tag:
- sessions: name, description, status and timestamps
- thoughts: append-only, unique per (session_id, thought_number)
- branches: lifecycle status, conclusion and merge strategy
- tags: many-to-many, replaced per thought in one transaction

Any sqlite3 failure surfaces as PersistenceError.
"""

import logging
import sqlite3
import threading
import time
import uuid
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple, Union

from ...exceptions import PersistenceError

logger = logging.getLogger(__name__)

MEMORY_DB = ":memory:"


SESSION_SCHEMA = """
CREATE TABLE IF NOT EXISTS sessions (
    id          TEXT PRIMARY KEY,
    name        TEXT NOT NULL,
    description TEXT,
    status      TEXT NOT NULL DEFAULT 'active',
    created_at  INTEGER NOT NULL,
    updated_at  INTEGER NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_sessions_status ON sessions(status);
CREATE INDEX IF NOT EXISTS idx_sessions_updated ON sessions(updated_at);

CREATE TABLE IF NOT EXISTS thoughts (
    id                  INTEGER PRIMARY KEY AUTOINCREMENT,
    session_id          TEXT NOT NULL REFERENCES sessions(id),
    thought_number      INTEGER NOT NULL,
    thought             TEXT NOT NULL,
    kind                TEXT NOT NULL DEFAULT 'thought',
    branch_id           TEXT,
    is_revision         INTEGER NOT NULL DEFAULT 0,
    revises_thought     INTEGER,
    branch_from_thought INTEGER,
    created_at          INTEGER NOT NULL,
    UNIQUE(session_id, thought_number)
);

CREATE INDEX IF NOT EXISTS idx_thoughts_kind ON thoughts(session_id, kind);

CREATE TABLE IF NOT EXISTS branches (
    id              TEXT NOT NULL,
    session_id      TEXT NOT NULL REFERENCES sessions(id),
    origin_thought  INTEGER NOT NULL,
    status          TEXT NOT NULL DEFAULT 'active',
    conclusion      TEXT,
    merge_strategy  TEXT,
    created_at      INTEGER NOT NULL,
    closed_at       INTEGER,
    merged_at       INTEGER,
    PRIMARY KEY (session_id, id)
);

CREATE TABLE IF NOT EXISTS tags (
    session_id      TEXT NOT NULL,
    thought_number  INTEGER NOT NULL,
    tag             TEXT NOT NULL,
    PRIMARY KEY (session_id, thought_number, tag)
);

CREATE INDEX IF NOT EXISTS idx_tags_tag ON tags(tag);
"""

_SESSION_COLUMNS = """
    SELECT s.*,
        (SELECT COUNT(*) FROM thoughts WHERE session_id = s.id) AS thought_count,
        (SELECT COUNT(*) FROM branches WHERE session_id = s.id) AS branch_count
    FROM sessions s
"""


class SessionStore:
    """
    SQLite-based storage engine for thinking sessions.

    ::: This is-in-layer Service-Layer.
    ::: This is a repository.
    ::: This is stateful.

    Features:
    - One connection per store, shared across threads under a lock
    - WAL mode for file databases, ``:memory:`` for ephemeral sessions
    - Strictly increasing clock so ``updated_at`` ordering is total
    - Transaction support via context manager

    Usage:
        store = SessionStore(":memory:")
        session_id = store.create_session("Debugging auth flow")
        store.insert_thought(session_id, thought_number=1, thought="...", ...)
    """

    def __init__(self, db_path: Union[str, Path] = MEMORY_DB):
        """
        Open (and if needed create) the session database.

        Args:
            db_path: Filesystem path, or ``:memory:`` for an ephemeral store

        Raises:
            PersistenceError: if the database cannot be opened or initialised
        """
        self._db_path = str(db_path)
        self._lock = threading.RLock()
        self._last_ts = 0

        self._conn = None
        try:
            if self._db_path != MEMORY_DB:
                Path(self._db_path).parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(
                self._db_path,
                check_same_thread=False,
                timeout=5.0
            )
            self._conn.row_factory = sqlite3.Row
            if self._db_path != MEMORY_DB:
                self._conn.execute("PRAGMA journal_mode=WAL")
            self._conn.execute("PRAGMA busy_timeout=5000")
            self._conn.execute("PRAGMA foreign_keys=ON")
            self._conn.executescript(SESSION_SCHEMA)
            self._conn.commit()
        except (sqlite3.Error, OSError) as e:
            if self._conn is not None:
                self._conn.close()
                self._conn = None
            raise PersistenceError(f"Cannot open session store at {self._db_path}: {e}") from e

        logger.debug("Session store opened at %s", self._db_path)

    @property
    def db_path(self) -> str:
        """Return the database path (``:memory:`` for ephemeral stores)."""
        return self._db_path

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """
        Context manager for database transactions.

        Usage:
            with store.transaction() as conn:
                conn.execute("DELETE FROM ...")
                conn.execute("INSERT INTO ...")
            # Auto-commits on success, rolls back on exception

        Raises:
            PersistenceError: wrapping any sqlite3 failure
        """
        with self._lock:
            try:
                yield self._conn
                self._conn.commit()
            except sqlite3.Error as e:
                self._rollback()
                raise PersistenceError(f"Session store error: {e}") from e
            except Exception:
                self._rollback()
                raise

    def _rollback(self) -> None:
        try:
            self._conn.rollback()
        except sqlite3.Error as e:
            # Connection already unusable; the original error is re-raised.
            logger.debug("Rollback failed: %s", e)

    def _fetch_one(self, sql: str, params: Tuple = ()) -> Optional[Dict[str, Any]]:
        with self.transaction() as conn:
            row = conn.execute(sql, params).fetchone()
        return dict(row) if row else None

    def _fetch_all(self, sql: str, params: Tuple = ()) -> List[Dict[str, Any]]:
        with self.transaction() as conn:
            rows = conn.execute(sql, params).fetchall()
        return [dict(row) for row in rows]

    def _now(self) -> int:
        """Epoch milliseconds, strictly increasing for this store."""
        with self._lock:
            now = int(time.time() * 1000)
            if now <= self._last_ts:
                now = self._last_ts + 1
            self._last_ts = now
            return now

    def close(self) -> None:
        """Close the database connection."""
        with self._lock:
            self._conn.close()

    # =========================================================================
    # Session Operations
    # =========================================================================

    def create_session(self, name: str, description: Optional[str] = None) -> str:
        """
        Create a new active session.

        Returns:
            session_id (UUID string)
        """
        session_id = str(uuid.uuid4())
        now = self._now()
        with self.transaction() as conn:
            conn.execute(
                """INSERT INTO sessions (id, name, description, status, created_at, updated_at)
                   VALUES (?, ?, ?, 'active', ?, ?)""",
                (session_id, name, description, now, now)
            )
        return session_id

    def update_session_name(
        self,
        session_id: str,
        name: str,
        description: Optional[str] = None
    ) -> None:
        with self.transaction() as conn:
            conn.execute(
                "UPDATE sessions SET name = ?, description = ?, updated_at = ? WHERE id = ?",
                (name, description, self._now(), session_id)
            )

    def update_session_status(self, session_id: str, status: str) -> None:
        with self.transaction() as conn:
            conn.execute(
                "UPDATE sessions SET status = ?, updated_at = ? WHERE id = ?",
                (status, self._now(), session_id)
            )

    def _touch(self, conn: sqlite3.Connection, session_id: str) -> None:
        conn.execute(
            "UPDATE sessions SET updated_at = ? WHERE id = ?",
            (self._now(), session_id)
        )

    def get_session(self, session_id: str) -> Optional[Dict[str, Any]]:
        """Get session row with live thought/branch counts, or None."""
        return self._fetch_one(_SESSION_COLUMNS + " WHERE s.id = ?", (session_id,))

    def list_sessions(
        self,
        status: Optional[str] = None,
        limit: int = 20,
        offset: int = 0
    ) -> List[Dict[str, Any]]:
        """
        List sessions, most recently updated first.

        Args:
            status: Optional status filter (active, complete, archived)
            limit: Maximum number of rows
            offset: Number of rows to skip
        """
        query = _SESSION_COLUMNS
        params: List[Any] = []
        if status:
            query += " WHERE s.status = ?"
            params.append(status)
        query += " ORDER BY s.updated_at DESC, s.rowid DESC LIMIT ? OFFSET ?"
        params.extend([limit, offset])
        return self._fetch_all(query, tuple(params))

    def count_sessions(self, status: Optional[str] = None) -> int:
        """Count sessions using the same filter as list_sessions."""
        if status:
            row = self._fetch_one(
                "SELECT COUNT(*) AS count FROM sessions WHERE status = ?", (status,)
            )
        else:
            row = self._fetch_one("SELECT COUNT(*) AS count FROM sessions")
        return row["count"] if row else 0

    # =========================================================================
    # Thought Operations
    # =========================================================================

    def insert_thought(
        self,
        session_id: str,
        thought_number: int,
        thought: str,
        kind: str = "thought",
        branch_id: Optional[str] = None,
        is_revision: bool = False,
        revises_thought: Optional[int] = None,
        branch_from_thought: Optional[int] = None,
        created_at: Optional[int] = None,
        tags: Iterable[str] = ()
    ) -> None:
        """Append a thought (and its tags) and stamp the session."""
        with self.transaction() as conn:
            conn.execute(
                """INSERT INTO thoughts
                   (session_id, thought_number, thought, kind, branch_id,
                    is_revision, revises_thought, branch_from_thought, created_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                (session_id, thought_number, thought, kind, branch_id,
                 1 if is_revision else 0, revises_thought, branch_from_thought,
                 created_at if created_at is not None else self._now())
            )
            self._replace_tags(conn, session_id, thought_number, tags)
            self._touch(conn, session_id)

    def get_thoughts(self, session_id: str) -> List[Dict[str, Any]]:
        """Get every thought of a session ordered by thought_number."""
        return self._fetch_all(
            "SELECT * FROM thoughts WHERE session_id = ? ORDER BY thought_number ASC",
            (session_id,)
        )

    # =========================================================================
    # Branch Operations
    # =========================================================================

    def insert_branch(
        self,
        session_id: str,
        branch_id: str,
        origin_thought: int,
        status: str = "active",
        conclusion: Optional[str] = None,
        created_at: Optional[int] = None
    ) -> None:
        with self.transaction() as conn:
            conn.execute(
                """INSERT INTO branches
                   (id, session_id, origin_thought, status, conclusion, created_at)
                   VALUES (?, ?, ?, ?, ?, ?)""",
                (branch_id, session_id, origin_thought, status, conclusion,
                 created_at if created_at is not None else self._now())
            )
            self._touch(conn, session_id)

    def close_branch(
        self,
        session_id: str,
        branch_id: str,
        conclusion: Optional[str],
        closed_at: int
    ) -> None:
        with self.transaction() as conn:
            conn.execute(
                """UPDATE branches SET status = 'closed', conclusion = ?, closed_at = ?
                   WHERE session_id = ? AND id = ?""",
                (conclusion, closed_at, session_id, branch_id)
            )
            self._touch(conn, session_id)

    def merge_branch(
        self,
        session_id: str,
        branch_id: str,
        strategy: str,
        merged_at: int
    ) -> None:
        with self.transaction() as conn:
            conn.execute(
                """UPDATE branches SET status = 'merged', merge_strategy = ?, merged_at = ?
                   WHERE session_id = ? AND id = ?""",
                (strategy, merged_at, session_id, branch_id)
            )
            self._touch(conn, session_id)

    def get_branches(self, session_id: str) -> List[Dict[str, Any]]:
        """Get branches in creation order (insertion order breaks ties)."""
        return self._fetch_all(
            """SELECT * FROM branches WHERE session_id = ?
               ORDER BY created_at ASC, rowid ASC""",
            (session_id,)
        )

    # =========================================================================
    # Tag Operations
    # =========================================================================

    def set_tags(self, session_id: str, thought_number: int, tags: Iterable[str]) -> None:
        """Replace all tags of one thought atomically."""
        with self.transaction() as conn:
            conn.execute(
                "DELETE FROM tags WHERE session_id = ? AND thought_number = ?",
                (session_id, thought_number)
            )
            self._replace_tags(conn, session_id, thought_number, tags)
            self._touch(conn, session_id)

    def _replace_tags(
        self,
        conn: sqlite3.Connection,
        session_id: str,
        thought_number: int,
        tags: Iterable[str]
    ) -> None:
        conn.executemany(
            "INSERT OR IGNORE INTO tags (session_id, thought_number, tag) VALUES (?, ?, ?)",
            [(session_id, thought_number, tag) for tag in tags]
        )

    def get_tags(self, session_id: str) -> Dict[int, List[str]]:
        """Get every tag of a session grouped by thought number."""
        rows = self._fetch_all(
            """SELECT thought_number, tag FROM tags WHERE session_id = ?
               ORDER BY thought_number ASC, rowid ASC""",
            (session_id,)
        )
        tag_map: Dict[int, List[str]] = {}
        for row in rows:
            tag_map.setdefault(row["thought_number"], []).append(row["tag"])
        return tag_map
