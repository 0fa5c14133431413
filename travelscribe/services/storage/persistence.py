"""
SQLite-backed ``PersistencePort``.

Each call opens its own session through ``get_session()``, runs one or more
``TravelRepository`` operations, and converts the outcome into a
``Resource``. Log changes are broadcast per day id so
``observe_logs_for_day`` can push fresh snapshots.
"""

import asyncio
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from datetime import date
from pathlib import Path
from typing import TypeVar

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from travelscribe.core.exceptions import ErrorCode, TravelScribeError
from travelscribe.core.models import (
    Expense,
    TravelDay,
    TravelLog,
    Trip,
    dump_expenses,
)
from travelscribe.core.observable import EventChannel
from travelscribe.core.resource import Error, Resource, Success
from travelscribe.services.storage.base import PersistencePort
from travelscribe.services.storage.database import get_session
from travelscribe.services.storage.models_db import TravelDayRecord, TravelLogRecord
from travelscribe.services.storage.repository import TravelRepository

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _to_log(record: TravelLogRecord) -> TravelLog:
    return TravelLog(
        id=record.id,
        day_id=record.day_id,
        raw_audio_path=record.raw_audio_path,
        audio_duration_ms=record.audio_duration_ms,
        transcribed_text=record.transcribed_text,
        original_languages=list(record.original_languages or []),
        expenses=[Expense.model_validate(item) for item in record.expenses or []],
        location=record.location,
        is_edited=record.is_edited,
        created_at=record.created_at,
        updated_at=record.updated_at,
    )


def _to_day(record: TravelDayRecord) -> TravelDay:
    return TravelDay.model_validate(record)


class SqlPersistence(PersistencePort):
    """PersistencePort over async SQLAlchemy.

    Args:
        session_factory: Optional ``async_sessionmaker``; defaults to the
            application-wide factory from :mod:`database`.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._log_changes: EventChannel[int] = EventChannel()

    async def _run(
        self,
        action: str,
        operation: Callable[[TravelRepository], Awaitable[T]],
    ) -> Resource[T]:
        """Run ``operation`` in a committed session and wrap the outcome."""
        try:
            async with get_session(self._session_factory) as session:
                value = await operation(TravelRepository(session))
        except TravelScribeError as exc:
            logger.warning("Failed to %s: %s", action, exc.detail)
            return Error.from_exception(exc)
        except SQLAlchemyError as exc:
            logger.exception("Failed to %s", action)
            return Error(message=f"Failed to {action}", code=ErrorCode.DATABASE_ERROR, exception=exc)
        return Success(value)

    # ------------------------------------------------------------------
    # Trips
    # ------------------------------------------------------------------

    async def create_trip(self, trip: Trip) -> Resource[Trip]:
        async def op(repo: TravelRepository) -> Trip:
            record = await repo.create_trip(
                title=trip.title,
                start_date=trip.start_date,
                end_date=trip.end_date,
                description=trip.description,
                cover_image_path=trip.cover_image_path,
            )
            return Trip.model_validate(record)

        return await self._run("create trip", op)

    async def get_trip(self, trip_id: int) -> Resource[Trip]:
        async def op(repo: TravelRepository) -> Trip:
            return Trip.model_validate(await repo.get_trip(trip_id))

        return await self._run("get trip", op)

    async def list_trips(self) -> Resource[list[Trip]]:
        async def op(repo: TravelRepository) -> list[Trip]:
            return [Trip.model_validate(r) for r in await repo.list_trips()]

        return await self._run("list trips", op)

    async def update_trip(self, trip: Trip) -> Resource[Trip]:
        async def op(repo: TravelRepository) -> Trip:
            record = await repo.update_trip(
                trip.id,
                title=trip.title,
                start_date=trip.start_date,
                end_date=trip.end_date,
                description=trip.description,
                cover_image_path=trip.cover_image_path,
            )
            return Trip.model_validate(record)

        return await self._run("update trip", op)

    async def delete_trip(self, trip_id: int) -> Resource[None]:
        async def op(repo: TravelRepository) -> list[int]:
            day_ids = [day.id for day in await repo.list_days(trip_id)]
            await repo.delete_trip(trip_id)
            return day_ids

        result = await self._run("delete trip", op)
        if isinstance(result, Error):
            return result
        for day_id in result.data:
            self._log_changes.emit(day_id)
        logger.info("Deleted trip %d with %d days", trip_id, len(result.data))
        return Success(None)

    async def search_trips(self, query: str) -> Resource[list[Trip]]:
        async def op(repo: TravelRepository) -> list[Trip]:
            return [Trip.model_validate(r) for r in await repo.search_trips(query)]

        return await self._run("search trips", op)

    async def trips_in_range(self, start: date, end: date) -> Resource[list[Trip]]:
        async def op(repo: TravelRepository) -> list[Trip]:
            return [Trip.model_validate(r) for r in await repo.trips_in_range(start, end)]

        return await self._run("list trips in range", op)

    # ------------------------------------------------------------------
    # Travel days
    # ------------------------------------------------------------------

    async def get_or_create_day(self, trip_id: int, day: date) -> Resource[TravelDay]:
        async def create(repo: TravelRepository) -> TravelDay:
            existing = await repo.get_day_by_date(trip_id, day)
            if existing is not None:
                return _to_day(existing)
            await repo.get_trip(trip_id)
            day_number = await repo.count_days(trip_id) + 1
            record = await repo.create_day(trip_id, day, day_number=day_number)
            logger.info("Created day %d (%s) for trip %d", day_number, day, trip_id)
            return _to_day(record)

        async def fetch(repo: TravelRepository) -> TravelDay:
            existing = await repo.get_day_by_date(trip_id, day)
            if existing is None:
                raise TravelScribeError(
                    detail=f"Travel day {day} for trip {trip_id} disappeared",
                    code=ErrorCode.DATABASE_ERROR,
                )
            return _to_day(existing)

        result = await self._run("get or create travel day", create)
        if isinstance(result, Error) and isinstance(result.exception, IntegrityError):
            # Another writer inserted the same (trip_id, date) first
            logger.info("Travel day %s for trip %d created concurrently, reusing it", day, trip_id)
            result = await self._run("get travel day", fetch)
        return result

    async def get_day(self, day_id: int) -> Resource[TravelDay]:
        async def op(repo: TravelRepository) -> TravelDay:
            return _to_day(await repo.get_day(day_id))

        return await self._run("get travel day", op)

    async def get_day_by_date(self, trip_id: int, day: date) -> Resource[TravelDay | None]:
        async def op(repo: TravelRepository) -> TravelDay | None:
            record = await repo.get_day_by_date(trip_id, day)
            return None if record is None else _to_day(record)

        return await self._run("get travel day", op)

    async def list_days(self, trip_id: int) -> Resource[list[TravelDay]]:
        async def op(repo: TravelRepository) -> list[TravelDay]:
            return [_to_day(r) for r in await repo.list_days(trip_id)]

        return await self._run("list travel days", op)

    async def update_day(self, day: TravelDay) -> Resource[TravelDay]:
        async def op(repo: TravelRepository) -> TravelDay:
            record = await repo.update_day(
                day.id,
                date=day.date,
                day_number=day.day_number,
                notes=day.notes,
                weather_info=day.weather_info,
                location=day.location,
            )
            return _to_day(record)

        return await self._run("update travel day", op)

    async def delete_day(self, day_id: int) -> Resource[None]:
        result = await self._run("delete travel day", lambda repo: repo.delete_day(day_id))
        if isinstance(result, Success):
            self._log_changes.emit(day_id)
        return result

    async def recalculate_day_numbers(self, trip_id: int) -> Resource[None]:
        async def op(repo: TravelRepository) -> None:
            await repo.recalculate_day_numbers(trip_id)

        return await self._run("recalculate day numbers", op)

    # ------------------------------------------------------------------
    # Travel logs
    # ------------------------------------------------------------------

    async def create_log(self, log: TravelLog) -> Resource[TravelLog]:
        async def op(repo: TravelRepository) -> TravelLog:
            record = await repo.create_log(
                day_id=log.day_id,
                transcribed_text=log.transcribed_text,
                raw_audio_path=log.raw_audio_path,
                audio_duration_ms=log.audio_duration_ms,
                original_languages=log.original_languages,
                expenses=dump_expenses(log.expenses),
                location=log.location,
                is_edited=log.is_edited,
            )
            return _to_log(record)

        result = await self._run("create travel log", op)
        if isinstance(result, Success):
            self._log_changes.emit(log.day_id)
        return result

    async def update_log(self, log: TravelLog) -> Resource[None]:
        return await self._update_log_fields(
            "update travel log",
            log.id,
            raw_audio_path=log.raw_audio_path,
            audio_duration_ms=log.audio_duration_ms,
            transcribed_text=log.transcribed_text,
            original_languages=list(log.original_languages),
            expenses=dump_expenses(log.expenses),
            location=log.location,
            is_edited=log.is_edited,
        )

    async def get_log(self, log_id: int) -> Resource[TravelLog]:
        async def op(repo: TravelRepository) -> TravelLog:
            return _to_log(await repo.get_log(log_id))

        return await self._run("get travel log", op)

    async def delete_log(self, log_id: int, delete_audio: bool = True) -> Resource[None]:
        async def op(repo: TravelRepository) -> tuple[int, str | None]:
            record = await repo.get_log(log_id)
            day_id = record.day_id
            return day_id, await repo.delete_log(log_id)

        result = await self._run("delete travel log", op)
        if isinstance(result, Error):
            return result
        day_id, audio_path = result.data
        if delete_audio and audio_path:
            try:
                await asyncio.to_thread(Path(audio_path).unlink, missing_ok=True)
            except OSError as exc:
                logger.warning("Could not delete audio %s: %s", audio_path, exc)
        self._log_changes.emit(day_id)
        return Success(None)

    async def update_transcribed_text(self, log_id: int, text: str) -> Resource[None]:
        return await self._update_log_fields(
            "update transcribed text", log_id, transcribed_text=text, is_edited=True
        )

    async def update_expenses(self, log_id: int, expenses: list[Expense]) -> Resource[None]:
        return await self._update_log_fields(
            "update expenses", log_id, expenses=dump_expenses(expenses)
        )

    async def add_expense(self, log_id: int, expense: Expense) -> Resource[None]:
        async def op(repo: TravelRepository) -> int:
            record = await repo.get_log(log_id)
            expenses = list(record.expenses or []) + dump_expenses([expense])
            await repo.update_log(log_id, expenses=expenses)
            return record.day_id

        return await self._emit_after("add expense", op)

    async def remove_expense(self, log_id: int, expense_id: str) -> Resource[None]:
        async def op(repo: TravelRepository) -> int:
            record = await repo.get_log(log_id)
            expenses = [e for e in record.expenses or [] if e.get("id") != expense_id]
            await repo.update_log(log_id, expenses=expenses)
            return record.day_id

        return await self._emit_after("remove expense", op)

    async def logs_for_day(self, day_id: int) -> Resource[list[TravelLog]]:
        async def op(repo: TravelRepository) -> list[TravelLog]:
            return [_to_log(r) for r in await repo.logs_for_day(day_id)]

        return await self._run("list travel logs", op)

    async def logs_for_trip(self, trip_id: int) -> Resource[list[TravelLog]]:
        async def op(repo: TravelRepository) -> list[TravelLog]:
            return [_to_log(r) for r in await repo.logs_for_trip(trip_id)]

        return await self._run("list travel logs", op)

    async def search_logs(
        self, query: str, trip_id: int | None = None
    ) -> Resource[list[TravelLog]]:
        async def op(repo: TravelRepository) -> list[TravelLog]:
            return [_to_log(r) for r in await repo.search_logs(query, trip_id)]

        return await self._run("search travel logs", op)

    async def observe_logs_for_day(self, day_id: int) -> AsyncIterator[list[TravelLog]]:
        with self._log_changes.subscribe() as changes:
            yield (await self.logs_for_day(day_id)).get_or_raise()
            async for changed_day in changes:
                if changed_day == day_id:
                    yield (await self.logs_for_day(day_id)).get_or_raise()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _update_log_fields(self, action: str, log_id: int, **fields) -> Resource[None]:
        async def op(repo: TravelRepository) -> int:
            record = await repo.update_log(log_id, **fields)
            return record.day_id

        return await self._emit_after(action, op)

    async def _emit_after(
        self, action: str, operation: Callable[[TravelRepository], Awaitable[int]]
    ) -> Resource[None]:
        """Run a log mutation returning its day id, then notify observers."""
        result = await self._run(action, operation)
        if isinstance(result, Error):
            return result
        self._log_changes.emit(result.data)
        return Success(None)

