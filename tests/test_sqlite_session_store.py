"""
Tests for SessionStore

Uses shared fixtures from conftest.py:
- store: Temporary file-backed SessionStore
- memory_store: In-memory SessionStore
"""

import sqlite3

import pytest

from thoughtchain.exceptions import PersistenceError
from thoughtchain.tools.session_store import SessionStore
from thoughtchain.tools.session_store import sqlite_store


class TestStoreInitialization:
    """Test opening databases."""

    def test_file_database_uses_wal(self, store):
        """File databases run in WAL mode."""
        with store.transaction() as conn:
            mode = conn.execute("PRAGMA journal_mode").fetchone()[0]
        assert mode.lower() == "wal"

    def test_memory_database(self, memory_store):
        """':memory:' is accepted and usable."""
        assert memory_store.db_path == ":memory:"
        session_id = memory_store.create_session("ephemeral")
        assert memory_store.get_session(session_id)["name"] == "ephemeral"

    def test_creates_parent_directory(self, tmp_path):
        """Missing parent directories are created."""
        path = tmp_path / "nested" / "dir" / "thinking.db"
        store = SessionStore(str(path))
        try:
            assert path.parent.is_dir()
        finally:
            store.close()

    def test_unopenable_path_raises_persistence_error(self, tmp_path):
        """A path that cannot be opened surfaces as PersistenceError."""
        blocker = tmp_path / "file"
        blocker.write_text("not a directory")
        with pytest.raises(PersistenceError):
            SessionStore(str(blocker / "thinking.db"))

    def test_failed_schema_closes_connection(self, tmp_path, monkeypatch):
        """A connection opened before a failing schema step is closed again."""
        opened = []
        real_connect = sqlite3.connect

        def recording_connect(*args, **kwargs):
            conn = real_connect(*args, **kwargs)
            opened.append(conn)
            return conn

        monkeypatch.setattr(sqlite_store.sqlite3, "connect", recording_connect)
        monkeypatch.setattr(sqlite_store, "SESSION_SCHEMA", "CREATE TABLE broken (;")

        with pytest.raises(PersistenceError):
            SessionStore(str(tmp_path / "thinking.db"))

        assert len(opened) == 1
        with pytest.raises(sqlite3.ProgrammingError):
            opened[0].execute("SELECT 1")

    def test_reopen_keeps_data(self, db_path):
        """Data survives closing and reopening the store."""
        store = SessionStore(db_path)
        session_id = store.create_session("persistent")
        store.insert_thought(session_id, thought_number=1, thought="kept")
        store.close()

        reopened = SessionStore(db_path)
        try:
            assert reopened.get_thoughts(session_id)[0]["thought"] == "kept"
        finally:
            reopened.close()


class TestSessionRows:
    """Test session CRUD."""

    def test_create_session(self, store):
        """New sessions are active with zero counts."""
        session_id = store.create_session("Auth debugging", "why login fails")
        row = store.get_session(session_id)

        assert row["name"] == "Auth debugging"
        assert row["description"] == "why login fails"
        assert row["status"] == "active"
        assert row["thought_count"] == 0
        assert row["branch_count"] == 0
        assert row["created_at"] == row["updated_at"]

    def test_get_unknown_session(self, store):
        assert store.get_session("missing") is None

    def test_update_name_and_status(self, store):
        session_id = store.create_session("draft")
        store.update_session_name(session_id, "final", "described")
        store.update_session_status(session_id, "complete")

        row = store.get_session(session_id)
        assert row["name"] == "final"
        assert row["description"] == "described"
        assert row["status"] == "complete"

    def test_writes_stamp_updated_at(self, store):
        """Every write moves updated_at forward."""
        session_id = store.create_session("s")
        before = store.get_session(session_id)["updated_at"]

        store.insert_thought(session_id, thought_number=1, thought="t")
        after_thought = store.get_session(session_id)["updated_at"]
        store.set_tags(session_id, 1, ["x"])
        after_tags = store.get_session(session_id)["updated_at"]

        assert before < after_thought < after_tags

    def test_live_counts(self, store):
        session_id = store.create_session("s")
        store.insert_thought(session_id, thought_number=1, thought="a")
        store.insert_branch(session_id, "alt", origin_thought=1)
        store.insert_thought(session_id, thought_number=2, thought="b", branch_id="alt")

        row = store.get_session(session_id)
        assert row["thought_count"] == 2
        assert row["branch_count"] == 1


class TestListSessions:
    """Test listing and counting sessions."""

    def test_most_recently_updated_first(self, store):
        first = store.create_session("first")
        second = store.create_session("second")
        third = store.create_session("third")
        store.update_session_name(first, "first again")

        ids = [row["id"] for row in store.list_sessions()]
        assert ids == [first, third, second]

    def test_status_filter_and_count(self, store):
        a = store.create_session("a")
        store.create_session("b")
        store.update_session_status(a, "complete")

        rows = store.list_sessions(status="complete")
        assert [row["id"] for row in rows] == [a]
        assert store.count_sessions("complete") == 1
        assert store.count_sessions("active") == 1
        assert store.count_sessions() == 2

    def test_limit_and_offset(self, store):
        ids = [store.create_session(f"s{i}") for i in range(5)]

        page = store.list_sessions(limit=2, offset=1)
        assert [row["id"] for row in page] == [ids[3], ids[2]]

    def test_rows_carry_counts(self, store):
        session_id = store.create_session("s")
        store.insert_thought(session_id, thought_number=1, thought="a")

        row = store.list_sessions()[0]
        assert row["thought_count"] == 1
        assert row["branch_count"] == 0


class TestThoughtRows:
    """Test thought persistence."""

    def test_insert_and_read_back(self, store):
        session_id = store.create_session("s")
        store.insert_thought(
            session_id,
            thought_number=1,
            thought="revised idea",
            kind="revision",
            is_revision=True,
            revises_thought=1,
            tags=["a", "b"],
        )

        row = store.get_thoughts(session_id)[0]
        assert row["thought"] == "revised idea"
        assert row["kind"] == "revision"
        assert row["is_revision"] == 1
        assert row["revises_thought"] == 1
        assert store.get_tags(session_id) == {1: ["a", "b"]}

    def test_thought_numbers_unique_per_session(self, store):
        session_id = store.create_session("s")
        store.insert_thought(session_id, thought_number=1, thought="a")

        with pytest.raises(PersistenceError):
            store.insert_thought(session_id, thought_number=1, thought="dup")

        # Failed insert is rolled back completely
        assert len(store.get_thoughts(session_id)) == 1

    def test_same_number_in_different_sessions(self, store):
        a = store.create_session("a")
        b = store.create_session("b")
        store.insert_thought(a, thought_number=1, thought="in a")
        store.insert_thought(b, thought_number=1, thought="in b")

        assert store.get_thoughts(a)[0]["thought"] == "in a"
        assert store.get_thoughts(b)[0]["thought"] == "in b"

    def test_ordered_by_number(self, store):
        session_id = store.create_session("s")
        store.insert_thought(session_id, thought_number=2, thought="two", branch_id="alt")
        store.insert_thought(session_id, thought_number=1, thought="one")
        store.insert_thought(session_id, thought_number=3, thought="three", branch_id="alt")

        assert [r["thought_number"] for r in store.get_thoughts(session_id)] == [1, 2, 3]


class TestBranchRows:
    """Test branch persistence."""

    def test_branch_lifecycle(self, store):
        session_id = store.create_session("s")
        store.insert_branch(session_id, "alt", origin_thought=2)
        store.close_branch(session_id, "alt", "dead end", closed_at=111)

        row = store.get_branches(session_id)[0]
        assert row["status"] == "closed"
        assert row["conclusion"] == "dead end"
        assert row["closed_at"] == 111

        store.merge_branch(session_id, "alt", "summary", merged_at=222)
        row = store.get_branches(session_id)[0]
        assert row["status"] == "merged"
        assert row["merge_strategy"] == "summary"
        assert row["merged_at"] == 222

    def test_branches_in_creation_order(self, store):
        session_id = store.create_session("s")
        for name in ("zeta", "alpha", "mid"):
            store.insert_branch(session_id, name, origin_thought=0, created_at=1000)

        assert [r["id"] for r in store.get_branches(session_id)] == ["zeta", "alpha", "mid"]

    def test_branch_id_unique_per_session(self, store):
        session_id = store.create_session("s")
        store.insert_branch(session_id, "alt", origin_thought=0)
        with pytest.raises(PersistenceError):
            store.insert_branch(session_id, "alt", origin_thought=1)


class TestTagRows:
    """Test tag replacement."""

    def test_set_tags_replaces(self, store):
        session_id = store.create_session("s")
        store.insert_thought(session_id, thought_number=1, thought="t", tags=["old"])
        store.set_tags(session_id, 1, ["new", "other"])

        assert store.get_tags(session_id) == {1: ["new", "other"]}

    def test_set_tags_to_empty(self, store):
        session_id = store.create_session("s")
        store.insert_thought(session_id, thought_number=1, thought="t", tags=["x"])
        store.set_tags(session_id, 1, [])

        assert store.get_tags(session_id) == {}

    def test_failed_tag_write_keeps_previous_set(self, store):
        """Tag replacement is all-or-nothing."""
        session_id = store.create_session("s")
        store.insert_thought(session_id, thought_number=1, thought="t", tags=["keep"])

        with pytest.raises(PersistenceError):
            with store.transaction() as conn:
                conn.execute(
                    "DELETE FROM tags WHERE session_id = ? AND thought_number = ?",
                    (session_id, 1)
                )
                raise sqlite3.OperationalError("disk I/O error")

        assert store.get_tags(session_id) == {1: ["keep"]}


class TestTransaction:
    """Test transaction wrapping."""

    def test_non_sqlite_errors_roll_back_and_propagate(self, store):
        session_id = store.create_session("s")
        with pytest.raises(RuntimeError):
            with store.transaction() as conn:
                conn.execute(
                    "UPDATE sessions SET name = 'changed' WHERE id = ?", (session_id,)
                )
                raise RuntimeError("abort")

        assert store.get_session(session_id)["name"] == "s"

    def test_closed_store_raises_persistence_error(self, db_path):
        store = SessionStore(db_path)
        store.close()
        with pytest.raises(PersistenceError):
            store.create_session("late")
