"""
Storage module - Database and file system operations.
"""

from travelscribe.services.storage.base import PersistencePort
from travelscribe.services.storage.database import (
    Base,
    close_db,
    get_engine,
    get_session,
    get_session_factory,
    init_db,
    reset_engine,
)
from travelscribe.services.storage.models_db import TravelDayRecord, TravelLogRecord, TripRecord
from travelscribe.services.storage.persistence import SqlPersistence
from travelscribe.services.storage.repository import TravelRepository

__all__ = [
    "Base",
    "PersistencePort",
    "SqlPersistence",
    "TravelDayRecord",
    "TravelLogRecord",
    "TravelRepository",
    "TripRecord",
    "close_db",
    "get_engine",
    "get_session",
    "get_session_factory",
    "init_db",
    "reset_engine",
]
