"""Shared fixtures for SQLGrid tests."""

import pytest

from sqlgrid.database import Database, set_db
from sqlgrid.grid.controller import ResultGridController
from sqlgrid.grid.result import Column, EditableInfo, QueryOutcome, ResultSet


@pytest.fixture(autouse=True)
def settings_db(tmp_path):
    """Keep settings and the save log out of the user's home directory."""
    db = Database(tmp_path / "settings.db")
    set_db(db)
    yield db
    set_db(None)


class MockPersistence:
    """Records batches; fails with ``error`` when set."""

    def __init__(self, error=None):
        self.error = error
        self.batches = []

    def save(self, batch):
        self.batches.append(batch)
        if self.error is not None:
            raise self.error


@pytest.fixture
def people():
    """Two-row id/name result editable on the people table."""
    return QueryOutcome(
        result=ResultSet(
            [Column("id", "INTEGER"), Column("name", "TEXT")],
            [{"id": 1, "name": "Alice"}, {"id": 2, "name": "Bob"}],
        ),
        elapsed_ms=12,
        editable=EditableInfo("people", "main", None, ("id",)),
    )


@pytest.fixture
def persistence():
    return MockPersistence()


@pytest.fixture
def controller(people, persistence):
    c = ResultGridController(persistence)
    c.load(people)
    return c


@pytest.fixture
def failing_controller(people):
    """Controller whose backend rejects every save."""
    c = ResultGridController(MockPersistence(RuntimeError("constraint violation")))
    c.load(people)
    return c
