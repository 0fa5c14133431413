"""Integration test fixtures for TravelScribe.

Wires the module-level database singletons to the in-memory test engine so
that adapters built with their defaults share the same SQLite database.
"""

import pytest

from travelscribe.services.storage import database
from travelscribe.services.storage.persistence import SqlPersistence


@pytest.fixture
def default_persistence(db_engine):
    """SqlPersistence using the application-wide session factory.

    Injects the test engine into the database module and resets it on
    teardown.
    """
    database._engine = db_engine
    database._session_factory = None
    yield SqlPersistence()
    database.reset_engine()
