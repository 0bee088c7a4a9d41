"""
Shared pytest fixtures for Thoughtchain tests.

This module provides common fixtures used across multiple test modules,
eliminating duplicate fixture definitions and ensuring consistency.
"""

import os
import tempfile

import pytest

from thoughtchain.mermaid import MermaidValidator
from thoughtchain.tools.session_store import SessionStore
from thoughtchain.tools.thinking import OperationsHandler, ThinkingSession


@pytest.fixture(autouse=True)
def reset_validator():
    """Reset the Mermaid validator singleton around each test."""
    MermaidValidator._instance = None
    yield
    MermaidValidator._instance = None


@pytest.fixture
def db_path():
    """
    Path of a temporary SQLite database file.

    The file (and its WAL side files) is removed after the test completes.
    """
    with tempfile.NamedTemporaryFile(suffix=".sqlite", delete=False) as f:
        path = f.name

    yield path

    for suffix in ("", "-wal", "-shm"):
        try:
            os.unlink(path + suffix)
        except OSError:
            pass


@pytest.fixture
def store(db_path):
    """
    Create a temporary SessionStore for testing.

    Yields:
        SessionStore: A store backed by a temporary SQLite database.
    """
    store = SessionStore(db_path)
    yield store
    store.close()


@pytest.fixture
def memory_store():
    """SessionStore backed by an in-memory database."""
    store = SessionStore(":memory:")
    yield store
    store.close()


@pytest.fixture
def session(store):
    """
    Create a ThinkingSession writing through to the test store.

    Args:
        store: The SessionStore fixture.
    """
    return ThinkingSession(store)


@pytest.fixture
def memory_session():
    """ThinkingSession with no storage engine (memory-only mode)."""
    return ThinkingSession(None)


@pytest.fixture
def handler(session):
    """
    Create an OperationsHandler over the test session.

    Args:
        session: The ThinkingSession fixture.
    """
    return OperationsHandler(session)


@pytest.fixture
def call(handler):
    """Shortcut: call(verb, **arguments) -> payload dict."""
    def _call(verb, **arguments):
        return handler.dispatch(verb, arguments)
    return _call
