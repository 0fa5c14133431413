"""
SQLAlchemy ORM models for the travel journal.

Tables: ``trips``, ``travel_days``, ``travel_logs``.
"""

import datetime as dt

from sqlalchemy import ForeignKey, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.types import JSON

from travelscribe.services.storage.database import Base


def _now() -> dt.datetime:
    return dt.datetime.now(dt.UTC)


class TripRecord(Base):
    """A journey spanning one or more travel days."""

    __tablename__ = "trips"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(255))
    start_date: Mapped[dt.date] = mapped_column(index=True)
    end_date: Mapped[dt.date | None] = mapped_column(nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    cover_image_path: Mapped[str | None] = mapped_column(String(512), nullable=True)
    created_at: Mapped[dt.datetime] = mapped_column(default=_now)
    updated_at: Mapped[dt.datetime] = mapped_column(default=_now, onupdate=_now)

    days: Mapped[list["TravelDayRecord"]] = relationship(
        back_populates="trip",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<TripRecord id={self.id} title={self.title!r}>"


class TravelDayRecord(Base):
    """One calendar date within a trip; (trip_id, date) is unique."""

    __tablename__ = "travel_days"
    __table_args__ = (UniqueConstraint("trip_id", "date", name="uq_travel_days_trip_date"),)

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    trip_id: Mapped[int] = mapped_column(ForeignKey("trips.id", ondelete="CASCADE"), index=True)
    date: Mapped[dt.date] = mapped_column()
    day_number: Mapped[int | None] = mapped_column(nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    weather_info: Mapped[str | None] = mapped_column(String(255), nullable=True)
    location: Mapped[str | None] = mapped_column(String(255), nullable=True)
    created_at: Mapped[dt.datetime] = mapped_column(default=_now)
    updated_at: Mapped[dt.datetime] = mapped_column(default=_now, onupdate=_now)

    trip: Mapped["TripRecord"] = relationship(back_populates="days")
    logs: Mapped[list["TravelLogRecord"]] = relationship(
        back_populates="day",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<TravelDayRecord id={self.id} trip={self.trip_id} date={self.date}>"


class TravelLogRecord(Base):
    """A transcribed voice note; expenses are stored as a JSON list."""

    __tablename__ = "travel_logs"
    __table_args__ = (Index("ix_travel_logs_day_created", "day_id", "created_at"),)

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    day_id: Mapped[int] = mapped_column(ForeignKey("travel_days.id", ondelete="CASCADE"))
    raw_audio_path: Mapped[str | None] = mapped_column(String(512), nullable=True)
    audio_duration_ms: Mapped[int | None] = mapped_column(nullable=True)
    transcribed_text: Mapped[str] = mapped_column(Text, default="")
    original_languages: Mapped[list] = mapped_column(JSON, default=list)
    expenses: Mapped[list] = mapped_column(JSON, default=list)
    location: Mapped[str | None] = mapped_column(String(255), nullable=True)
    is_edited: Mapped[bool] = mapped_column(default=False)
    created_at: Mapped[dt.datetime] = mapped_column(default=_now)
    updated_at: Mapped[dt.datetime] = mapped_column(default=_now, onupdate=_now)

    day: Mapped["TravelDayRecord"] = relationship(back_populates="logs")

    def __repr__(self) -> str:
        return f"<TravelLogRecord id={self.id} day={self.day_id}>"
