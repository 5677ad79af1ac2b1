"""Shared fixtures: a throwaway SQLite database and an initialised store."""

import pytest
from sqlalchemy import create_engine

from optilock import Record, init_optilock


@pytest.fixture
def engine(tmp_path):
    """File-backed SQLite so several threads can share one database."""
    engine = create_engine(
        f"sqlite:///{tmp_path / 'optilock.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    yield engine
    engine.dispose()


@pytest.fixture
def store(engine):
    """Store wired into Record with the default (skip) missing-token policy."""
    store = init_optilock(engine)
    yield store
    Record._store = None


@pytest.fixture
def strict_store(engine):
    """Store that refuses to write records whose version was never read."""
    store = init_optilock(engine, policy="reject")
    yield store
    Record._store = None
