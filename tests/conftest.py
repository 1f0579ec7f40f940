"""Shared pytest fixtures for Band Stage tests.

Stores are backed by an isolated SQLite file in a temporary directory so
every test starts from an empty inventory.
"""

import tempfile
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from bandstage.store import EquipmentStore
from services.equipment_api.main import app, override_store


@pytest.fixture
def temp_db_path():
    """Path to a not-yet-created database file in a temporary directory."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir) / "test.db"


@pytest.fixture
def store(temp_db_path):
    """Equipment store backed by a temporary database.

    Yields:
        EquipmentStore: closed after the test completes.
    """
    equipment_store = EquipmentStore.open(temp_db_path)
    yield equipment_store
    equipment_store.close()


@pytest.fixture
def client(store):
    """FastAPI test client bound to the temporary store.

    Yields:
        tuple: (test_client, store)
    """
    override_store(store)
    try:
        with TestClient(app) as test_client:
            yield test_client, store
    finally:
        override_store(None)


@pytest.fixture
def seed(store):
    """Return a helper that inserts rows directly, bypassing the service layer.

    Lets tests build states the mutators would refuse to create (dangling
    references, odd routings).
    """

    def _seed(*rows):
        with store.transaction() as session:
            session.add_all(rows)
        return rows

    return _seed
