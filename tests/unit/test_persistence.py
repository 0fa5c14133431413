"""Tests for SqlPersistence, the Resource-returning storage adapter."""

import asyncio
from datetime import date
from unittest.mock import patch

from sqlalchemy.exc import OperationalError

from travelscribe.core.exceptions import ErrorCode
from travelscribe.core.models import Expense, ExpenseCategory, TravelLog, Trip
from travelscribe.core.resource import Error, Success
from travelscribe.services.storage.persistence import SqlPersistence
from travelscribe.services.storage.repository import TravelRepository

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


async def _trip(persistence: SqlPersistence, title: str = "Rajasthan") -> Trip:
    result = await persistence.create_trip(Trip(title=title, start_date=date(2024, 3, 1)))
    assert isinstance(result, Success), result
    return result.data


async def _log(persistence: SqlPersistence, day_id: int, text: str = "note", **fields) -> TravelLog:
    result = await persistence.create_log(TravelLog(day_id=day_id, transcribed_text=text, **fields))
    assert isinstance(result, Success), result
    return result.data


# ===================================================================
# Trips
# ===================================================================


class TestTrips:
    async def test_create_assigns_id(self, persistence) -> None:
        trip = await _trip(persistence)
        assert trip.id > 0
        assert (await persistence.get_trip(trip.id)).data.title == "Rajasthan"

    async def test_get_missing_is_not_found(self, persistence) -> None:
        result = await persistence.get_trip(999)
        assert isinstance(result, Error)
        assert result.code == ErrorCode.NOT_FOUND

    async def test_update(self, persistence) -> None:
        trip = await _trip(persistence)
        result = await persistence.update_trip(trip.model_copy(update={"title": "Kerala"}))
        assert result.data.title == "Kerala"

    async def test_list_and_search(self, persistence) -> None:
        await _trip(persistence, "Goa")
        await _trip(persistence, "Ladakh")
        assert len((await persistence.list_trips()).data) == 2
        assert [t.title for t in (await persistence.search_trips("lad")).data] == ["Ladakh"]

    async def test_database_failure_maps_to_error(self, persistence) -> None:
        failure = OperationalError("SELECT", {}, Exception("disk I/O error"))
        with patch.object(TravelRepository, "list_trips", side_effect=failure):
            result = await persistence.list_trips()
        assert isinstance(result, Error)
        assert result.code == ErrorCode.DATABASE_ERROR
        assert result.message == "Failed to list trips"


# ===================================================================
# Travel days
# ===================================================================


class TestGetOrCreateDay:
    """Verify day lookup, creation and numbering."""

    async def test_creates_with_next_number(self, persistence) -> None:
        trip = await _trip(persistence)

        first = (await persistence.get_or_create_day(trip.id, date(2024, 3, 1))).data
        second = (await persistence.get_or_create_day(trip.id, date(2024, 3, 2))).data

        assert first.day_number == 1
        assert second.day_number == 2

    async def test_is_idempotent(self, persistence) -> None:
        trip = await _trip(persistence)

        first = await persistence.get_or_create_day(trip.id, date(2024, 3, 1))
        again = await persistence.get_or_create_day(trip.id, date(2024, 3, 1))

        assert again.data.id == first.data.id
        assert len((await persistence.list_days(trip.id)).data) == 1

    async def test_unknown_trip(self, persistence) -> None:
        result = await persistence.get_or_create_day(999, date(2024, 3, 1))
        assert result.code == ErrorCode.NOT_FOUND

    async def test_concurrent_insert_reuses_existing_day(self, persistence) -> None:
        """A unique-constraint race falls back to the row the other writer made."""
        trip = await _trip(persistence)
        existing = (await persistence.get_or_create_day(trip.id, date(2024, 3, 1))).data

        real_lookup = TravelRepository.get_day_by_date
        calls = 0

        async def miss_once(self, trip_id, day):
            nonlocal calls
            calls += 1
            if calls == 1:
                return None
            return await real_lookup(self, trip_id, day)

        with patch.object(TravelRepository, "get_day_by_date", miss_once):
            result = await persistence.get_or_create_day(trip.id, date(2024, 3, 1))

        assert isinstance(result, Success)
        assert result.data.id == existing.id

    async def test_renumber(self, persistence) -> None:
        trip = await _trip(persistence)
        late = (await persistence.get_or_create_day(trip.id, date(2024, 3, 5))).data
        await persistence.get_or_create_day(trip.id, date(2024, 3, 2))

        await persistence.recalculate_day_numbers(trip.id)

        assert (await persistence.get_day(late.id)).data.day_number == 2

    async def test_update_day(self, persistence) -> None:
        trip = await _trip(persistence)
        day = (await persistence.get_or_create_day(trip.id, date(2024, 3, 1))).data

        result = await persistence.update_day(day.model_copy(update={"weather_info": "Sunny"}))

        assert result.data.weather_info == "Sunny"
        by_date = await persistence.get_day_by_date(trip.id, date(2024, 3, 1))
        assert by_date.data.weather_info == "Sunny"


class TestCascadeDelete:
    async def test_delete_trip_removes_everything(self, persistence) -> None:
        trip = await _trip(persistence)
        day = (await persistence.get_or_create_day(trip.id, date(2024, 3, 1))).data
        log = await _log(persistence, day.id)

        assert isinstance(await persistence.delete_trip(trip.id), Success)

        assert (await persistence.get_day(day.id)).code == ErrorCode.NOT_FOUND
        assert (await persistence.get_log(log.id)).code == ErrorCode.NOT_FOUND

    async def test_delete_day_notifies_observers(self, persistence) -> None:
        trip = await _trip(persistence)
        day = (await persistence.get_or_create_day(trip.id, date(2024, 3, 1))).data
        log = await _log(persistence, day.id)
        stream = persistence.observe_logs_for_day(day.id)
        assert len(await anext(stream)) == 1

        assert isinstance(await persistence.delete_day(day.id), Success)

        assert await asyncio.wait_for(anext(stream), timeout=1) == []
        assert (await persistence.get_log(log.id)).code == ErrorCode.NOT_FOUND
        await stream.aclose()

    async def test_delete_missing_trip(self, persistence) -> None:
        assert (await persistence.delete_trip(123)).code == ErrorCode.NOT_FOUND


# ===================================================================
# Travel logs
# ===================================================================


class TestTravelLogs:
    """Verify log storage, expense editing and audio cleanup."""

    async def test_round_trip_with_expenses(self, persistence) -> None:
        trip = await _trip(persistence)
        day = (await persistence.get_or_create_day(trip.id, date(2024, 3, 1))).data
        expense = Expense(item="Lunch", amount=200, currency="INR", category=ExpenseCategory.FOOD)

        log = await _log(persistence, day.id, "Lunch by the lake", expenses=[expense])

        fetched = (await persistence.get_log(log.id)).data
        assert fetched.expenses == [expense]
        assert fetched.original_languages == ["hi", "en"]

    async def test_create_for_missing_day(self, persistence) -> None:
        result = await persistence.create_log(TravelLog(day_id=77, transcribed_text="x"))
        assert result.code == ErrorCode.NOT_FOUND

    async def test_edit_text_marks_edited(self, persistence) -> None:
        trip = await _trip(persistence)
        day = (await persistence.get_or_create_day(trip.id, date(2024, 3, 1))).data
        log = await _log(persistence, day.id)

        await persistence.update_transcribed_text(log.id, "Corrected text")

        fetched = (await persistence.get_log(log.id)).data
        assert fetched.transcribed_text == "Corrected text"
        assert fetched.is_edited is True

    async def test_add_and_remove_expense(self, persistence) -> None:
        trip = await _trip(persistence)
        day = (await persistence.get_or_create_day(trip.id, date(2024, 3, 1))).data
        log = await _log(persistence, day.id)
        taxi = Expense(item="Taxi", amount=300, currency="INR", category=ExpenseCategory.TRANSPORT)
        tea = Expense(item="Tea", amount=20, currency="INR", category=ExpenseCategory.FOOD)

        await persistence.add_expense(log.id, taxi)
        await persistence.add_expense(log.id, tea)
        await persistence.remove_expense(log.id, taxi.id)

        assert (await persistence.get_log(log.id)).data.expenses == [tea]

    async def test_replace_expenses(self, persistence) -> None:
        trip = await _trip(persistence)
        day = (await persistence.get_or_create_day(trip.id, date(2024, 3, 1))).data
        log = await _log(persistence, day.id)
        fee = Expense(item="ATM fee", amount=5, currency="USD", category=ExpenseCategory.FEES)

        await persistence.update_expenses(log.id, [fee])

        assert (await persistence.get_log(log.id)).data.expenses == [fee]

    async def test_update_log(self, persistence) -> None:
        trip = await _trip(persistence)
        day = (await persistence.get_or_create_day(trip.id, date(2024, 3, 1))).data
        log = await _log(persistence, day.id)

        result = await persistence.update_log(log.model_copy(update={"location": "Udaipur"}))

        assert isinstance(result, Success)
        assert (await persistence.get_log(log.id)).data.location == "Udaipur"

    async def test_update_missing_log(self, persistence) -> None:
        result = await persistence.update_transcribed_text(999, "nope")
        assert result.code == ErrorCode.NOT_FOUND

    async def test_delete_removes_audio(self, persistence, audio_file) -> None:
        trip = await _trip(persistence)
        day = (await persistence.get_or_create_day(trip.id, date(2024, 3, 1))).data
        log = await _log(persistence, day.id, raw_audio_path=str(audio_file))

        assert isinstance(await persistence.delete_log(log.id), Success)

        assert not audio_file.exists()
        assert (await persistence.get_log(log.id)).code == ErrorCode.NOT_FOUND

    async def test_delete_can_keep_audio(self, persistence, audio_file) -> None:
        trip = await _trip(persistence)
        day = (await persistence.get_or_create_day(trip.id, date(2024, 3, 1))).data
        log = await _log(persistence, day.id, raw_audio_path=str(audio_file))

        await persistence.delete_log(log.id, delete_audio=False)

        assert audio_file.exists()

    async def test_logs_for_trip_and_search(self, persistence) -> None:
        trip = await _trip(persistence)
        day2 = (await persistence.get_or_create_day(trip.id, date(2024, 3, 2))).data
        day1 = (await persistence.get_or_create_day(trip.id, date(2024, 3, 1))).data
        await _log(persistence, day2.id, "Camel ride")
        await _log(persistence, day1.id, "Arrived by train")

        ordered = (await persistence.logs_for_trip(trip.id)).data
        assert [log.transcribed_text for log in ordered] == ["Arrived by train", "Camel ride"]
        found = (await persistence.search_logs("camel", trip_id=trip.id)).data
        assert [log.transcribed_text for log in found] == ["Camel ride"]

    async def test_trips_in_range(self, persistence) -> None:
        await _trip(persistence)
        result = await persistence.trips_in_range(date(2024, 1, 1), date(2024, 12, 31))
        assert len(result.data) == 1


# ===================================================================
# Observation
# ===================================================================


class TestObserveLogsForDay:
    """Verify snapshots are re-emitted after changes to the observed day."""

    async def test_emits_snapshot_then_changes(self, persistence) -> None:
        trip = await _trip(persistence)
        day = (await persistence.get_or_create_day(trip.id, date(2024, 3, 1))).data
        stream = persistence.observe_logs_for_day(day.id)

        assert await asyncio.wait_for(anext(stream), timeout=1) == []

        log = await _log(persistence, day.id, "first")
        snapshot = await asyncio.wait_for(anext(stream), timeout=1)
        assert [entry.id for entry in snapshot] == [log.id]

        await persistence.update_transcribed_text(log.id, "edited")
        snapshot = await asyncio.wait_for(anext(stream), timeout=1)
        assert snapshot[0].transcribed_text == "edited"

        await stream.aclose()

    async def test_ignores_other_days(self, persistence) -> None:
        trip = await _trip(persistence)
        watched = (await persistence.get_or_create_day(trip.id, date(2024, 3, 1))).data
        other = (await persistence.get_or_create_day(trip.id, date(2024, 3, 2))).data
        stream = persistence.observe_logs_for_day(watched.id)
        await anext(stream)

        await _log(persistence, other.id, "elsewhere")
        await _log(persistence, watched.id, "here")
        snapshot = await asyncio.wait_for(anext(stream), timeout=1)

        assert [entry.transcribed_text for entry in snapshot] == ["here"]
        await stream.aclose()
