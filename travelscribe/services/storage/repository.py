"""
CRUD repository for the travel journal tables.

``TravelRepository`` receives an ``AsyncSession`` and provides all
data-access methods.  It calls ``flush()`` rather than ``commit()`` so
that transaction boundaries are controlled by the caller (typically
:func:`get_session`).
"""

import logging
from datetime import date
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from travelscribe.core.exceptions import (
    ErrorCode,
    TravelDayNotFoundError,
    TravelLogNotFoundError,
    TravelScribeError,
    TripNotFoundError,
)
from travelscribe.services.storage.models_db import TravelDayRecord, TravelLogRecord, TripRecord

logger = logging.getLogger(__name__)

_TRIP_FIELDS = frozenset({"title", "start_date", "end_date", "description", "cover_image_path"})
_DAY_FIELDS = frozenset({"date", "day_number", "notes", "weather_info", "location"})
_LOG_FIELDS = frozenset(
    {
        "raw_audio_path",
        "audio_duration_ms",
        "transcribed_text",
        "original_languages",
        "expenses",
        "location",
        "is_edited",
    }
)


def _apply(record: Any, fields: dict[str, Any], allowed: frozenset[str]) -> None:
    unknown = set(fields) - allowed
    if unknown:
        raise TravelScribeError(
            detail=f"Unknown fields for {type(record).__name__}: {sorted(unknown)}",
            code=ErrorCode.VALIDATION_ERROR,
        )
    for name, value in fields.items():
        setattr(record, name, value)


class TravelRepository:
    """Data-access layer for trips, travel days and travel logs.

    All methods use ``flush()`` instead of ``commit()`` so transaction
    boundaries are controlled by the caller (typically ``get_session()``
    context manager which commits on clean exit).

    Args:
        session: An active SQLAlchemy ``AsyncSession``.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    # ------------------------------------------------------------------
    # Trips
    # ------------------------------------------------------------------

    async def create_trip(
        self,
        title: str,
        start_date: date,
        end_date: date | None = None,
        description: str | None = None,
        cover_image_path: str | None = None,
    ) -> TripRecord:
        trip = TripRecord(
            title=title,
            start_date=start_date,
            end_date=end_date,
            description=description,
            cover_image_path=cover_image_path,
        )
        self._session.add(trip)
        await self._session.flush()
        return trip

    async def get_trip(self, trip_id: int) -> TripRecord:
        """Return a trip by ID or raise :class:`TripNotFoundError`."""
        trip = await self._session.get(TripRecord, trip_id)
        if trip is None:
            raise TripNotFoundError(trip_id)
        return trip

    async def list_trips(self) -> list[TripRecord]:
        """Return all trips, most recent start date first."""
        stmt = select(TripRecord).order_by(TripRecord.start_date.desc(), TripRecord.id.desc())
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def update_trip(self, trip_id: int, **fields: Any) -> TripRecord:
        trip = await self.get_trip(trip_id)
        _apply(trip, fields, _TRIP_FIELDS)
        await self._session.flush()
        return trip

    async def delete_trip(self, trip_id: int) -> None:
        """Delete a trip together with its days and logs."""
        trip = await self.get_trip(trip_id)
        await self._session.delete(trip)
        await self._session.flush()

    async def search_trips(self, query: str) -> list[TripRecord]:
        """Case-insensitive substring search on trip titles."""
        stmt = (
            select(TripRecord)
            .where(TripRecord.title.ilike(f"%{query}%"))
            .order_by(TripRecord.start_date.desc())
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def trips_in_range(self, start: date, end: date) -> list[TripRecord]:
        """Trips whose start date falls within ``[start, end]``."""
        stmt = (
            select(TripRecord)
            .where(TripRecord.start_date >= start, TripRecord.start_date <= end)
            .order_by(TripRecord.start_date.desc())
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    # ------------------------------------------------------------------
    # Travel days
    # ------------------------------------------------------------------

    async def get_day(self, day_id: int) -> TravelDayRecord:
        """Return a travel day by ID or raise :class:`TravelDayNotFoundError`."""
        day = await self._session.get(TravelDayRecord, day_id)
        if day is None:
            raise TravelDayNotFoundError(day_id)
        return day

    async def get_day_by_date(self, trip_id: int, day: date) -> TravelDayRecord | None:
        stmt = select(TravelDayRecord).where(
            TravelDayRecord.trip_id == trip_id,
            TravelDayRecord.date == day,
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_days(self, trip_id: int) -> list[TravelDayRecord]:
        stmt = (
            select(TravelDayRecord)
            .where(TravelDayRecord.trip_id == trip_id)
            .order_by(TravelDayRecord.date.asc())
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def count_days(self, trip_id: int) -> int:
        stmt = select(func.count()).select_from(TravelDayRecord).where(
            TravelDayRecord.trip_id == trip_id
        )
        result = await self._session.execute(stmt)
        return int(result.scalar_one())

    async def create_day(
        self,
        trip_id: int,
        day: date,
        day_number: int | None = None,
        **fields: Any,
    ) -> TravelDayRecord:
        """Insert a travel day. Raises IntegrityError on a duplicate date."""
        record = TravelDayRecord(trip_id=trip_id, date=day, day_number=day_number)
        _apply(record, fields, _DAY_FIELDS)
        self._session.add(record)
        await self._session.flush()
        return record

    async def update_day(self, day_id: int, **fields: Any) -> TravelDayRecord:
        day = await self.get_day(day_id)
        _apply(day, fields, _DAY_FIELDS)
        await self._session.flush()
        return day

    async def delete_day(self, day_id: int) -> None:
        day = await self.get_day(day_id)
        await self._session.delete(day)
        await self._session.flush()

    async def recalculate_day_numbers(self, trip_id: int) -> list[TravelDayRecord]:
        """Renumber a trip's days 1..N in date order."""
        days = await self.list_days(trip_id)
        for index, day in enumerate(days, start=1):
            day.day_number = index
        await self._session.flush()
        logger.debug("Renumbered %d days for trip %d", len(days), trip_id)
        return days

    # ------------------------------------------------------------------
    # Travel logs
    # ------------------------------------------------------------------

    async def create_log(
        self,
        day_id: int,
        transcribed_text: str,
        raw_audio_path: str | None = None,
        audio_duration_ms: int | None = None,
        original_languages: list[str] | None = None,
        expenses: list[dict] | None = None,
        location: str | None = None,
        is_edited: bool = False,
    ) -> TravelLogRecord:
        await self.get_day(day_id)
        log = TravelLogRecord(
            day_id=day_id,
            transcribed_text=transcribed_text,
            raw_audio_path=raw_audio_path,
            audio_duration_ms=audio_duration_ms,
            original_languages=list(original_languages or []),
            expenses=list(expenses or []),
            location=location,
            is_edited=is_edited,
        )
        self._session.add(log)
        await self._session.flush()
        return log

    async def get_log(self, log_id: int) -> TravelLogRecord:
        """Return a travel log by ID or raise :class:`TravelLogNotFoundError`."""
        log = await self._session.get(TravelLogRecord, log_id)
        if log is None:
            raise TravelLogNotFoundError(log_id)
        return log

    async def update_log(self, log_id: int, **fields: Any) -> TravelLogRecord:
        """Update log columns. JSON columns must be passed as new lists."""
        log = await self.get_log(log_id)
        _apply(log, fields, _LOG_FIELDS)
        await self._session.flush()
        return log

    async def delete_log(self, log_id: int) -> str | None:
        """Delete a log and return its audio path, if any."""
        log = await self.get_log(log_id)
        audio_path = log.raw_audio_path
        await self._session.delete(log)
        await self._session.flush()
        return audio_path

    async def logs_for_day(self, day_id: int) -> list[TravelLogRecord]:
        stmt = (
            select(TravelLogRecord)
            .where(TravelLogRecord.day_id == day_id)
            .order_by(TravelLogRecord.created_at.asc(), TravelLogRecord.id.asc())
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def logs_for_trip(self, trip_id: int) -> list[TravelLogRecord]:
        """All logs of a trip, ordered by day date then creation time."""
        stmt = (
            select(TravelLogRecord)
            .join(TravelDayRecord, TravelLogRecord.day_id == TravelDayRecord.id)
            .where(TravelDayRecord.trip_id == trip_id)
            .order_by(
                TravelDayRecord.date.asc(),
                TravelLogRecord.created_at.asc(),
                TravelLogRecord.id.asc(),
            )
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def search_logs(self, query: str, trip_id: int | None = None) -> list[TravelLogRecord]:
        """Substring search on transcribed text, newest first."""
        stmt = select(TravelLogRecord).where(TravelLogRecord.transcribed_text.ilike(f"%{query}%"))
        if trip_id is not None:
            stmt = stmt.join(TravelDayRecord, TravelLogRecord.day_id == TravelDayRecord.id).where(
                TravelDayRecord.trip_id == trip_id
            )
        stmt = stmt.order_by(TravelLogRecord.created_at.desc(), TravelLogRecord.id.desc())
        result = await self._session.execute(stmt)
        return list(result.scalars().all())
