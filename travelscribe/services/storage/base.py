"""
Abstract persistence interface for trips, travel days and travel logs.

Every operation returns a ``Resource``: missing rows come back as
``Error(code=NOT_FOUND)``, storage failures as ``Error(code=DATABASE_ERROR)``.
"""

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from datetime import date

from travelscribe.core.models import Expense, TravelDay, TravelLog, Trip
from travelscribe.core.resource import Resource


class PersistencePort(ABC):
    """Interface that every storage backend must implement."""

    # -- trips --

    @abstractmethod
    async def create_trip(self, trip: Trip) -> Resource[Trip]:
        """Insert a trip; the returned copy carries the assigned id."""

    @abstractmethod
    async def get_trip(self, trip_id: int) -> Resource[Trip]: ...

    @abstractmethod
    async def list_trips(self) -> Resource[list[Trip]]:
        """All trips, most recent start date first."""

    @abstractmethod
    async def update_trip(self, trip: Trip) -> Resource[Trip]: ...

    @abstractmethod
    async def delete_trip(self, trip_id: int) -> Resource[None]:
        """Delete a trip and, by cascade, its days and logs."""

    @abstractmethod
    async def search_trips(self, query: str) -> Resource[list[Trip]]: ...

    @abstractmethod
    async def trips_in_range(self, start: date, end: date) -> Resource[list[Trip]]: ...

    # -- travel days --

    @abstractmethod
    async def get_or_create_day(self, trip_id: int, day: date) -> Resource[TravelDay]:
        """Return the trip's day for ``day``, creating it if needed.

        A new day is numbered after the trip's existing days. Calling this
        twice with the same arguments returns the same day.
        """

    @abstractmethod
    async def get_day(self, day_id: int) -> Resource[TravelDay]: ...

    @abstractmethod
    async def get_day_by_date(self, trip_id: int, day: date) -> Resource[TravelDay | None]: ...

    @abstractmethod
    async def list_days(self, trip_id: int) -> Resource[list[TravelDay]]:
        """A trip's days in date order."""

    @abstractmethod
    async def update_day(self, day: TravelDay) -> Resource[TravelDay]: ...

    @abstractmethod
    async def delete_day(self, day_id: int) -> Resource[None]: ...

    @abstractmethod
    async def recalculate_day_numbers(self, trip_id: int) -> Resource[None]:
        """Renumber a trip's days 1..N in date order."""

    # -- travel logs --

    @abstractmethod
    async def create_log(self, log: TravelLog) -> Resource[TravelLog]:
        """Insert a log; the returned copy carries the assigned id."""

    @abstractmethod
    async def update_log(self, log: TravelLog) -> Resource[None]: ...

    @abstractmethod
    async def get_log(self, log_id: int) -> Resource[TravelLog]: ...

    @abstractmethod
    async def delete_log(self, log_id: int, delete_audio: bool = True) -> Resource[None]:
        """Delete a log, and its audio file unless ``delete_audio`` is False."""

    @abstractmethod
    async def update_transcribed_text(self, log_id: int, text: str) -> Resource[None]:
        """Replace the narrative and mark the log as edited."""

    @abstractmethod
    async def update_expenses(self, log_id: int, expenses: list[Expense]) -> Resource[None]: ...

    @abstractmethod
    async def add_expense(self, log_id: int, expense: Expense) -> Resource[None]: ...

    @abstractmethod
    async def remove_expense(self, log_id: int, expense_id: str) -> Resource[None]: ...

    @abstractmethod
    async def logs_for_day(self, day_id: int) -> Resource[list[TravelLog]]: ...

    @abstractmethod
    async def logs_for_trip(self, trip_id: int) -> Resource[list[TravelLog]]: ...

    @abstractmethod
    async def search_logs(
        self, query: str, trip_id: int | None = None
    ) -> Resource[list[TravelLog]]: ...

    @abstractmethod
    def observe_logs_for_day(self, day_id: int) -> AsyncIterator[list[TravelLog]]:
        """Yield the day's logs now and again after every change to them."""
