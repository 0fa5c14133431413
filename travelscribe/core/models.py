"""
Pydantic v2 domain models shared by the recorder pipeline, storage and
transcription layers.

Trip > TravelDay > TravelLog > Expense, plus the transcription outcome that
feeds new logs.
"""

import uuid
from datetime import UTC, date, datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


def _now() -> datetime:
    return datetime.now(UTC)


# ---------------------------------------------------------------------------
# Expense
# ---------------------------------------------------------------------------


class ExpenseCategory(StrEnum):
    """Closed set of expense categories with an OTHER fallback."""

    FOOD = "FOOD"
    TRANSPORT = "TRANSPORT"
    ACCOMMODATION = "ACCOMMODATION"
    ATTRACTION = "ATTRACTION"
    SHOPPING = "SHOPPING"
    HEALTH = "HEALTH"
    COMMUNICATION = "COMMUNICATION"
    ENTERTAINMENT = "ENTERTAINMENT"
    TIPS = "TIPS"
    FEES = "FEES"
    OTHER = "OTHER"

    @property
    def display_name(self) -> str:
        return _CATEGORY_DISPLAY_NAMES[self]

    @classmethod
    def from_string(cls, value: str) -> "ExpenseCategory":
        """Match a name or display name case-insensitively; OTHER if unknown."""
        needle = value.strip().lower()
        for category in cls:
            if category.value.lower() == needle or category.display_name.lower() == needle:
                return category
        return cls.OTHER


_CATEGORY_DISPLAY_NAMES = {
    ExpenseCategory.FOOD: "Food & Drinks",
    ExpenseCategory.TRANSPORT: "Transport",
    ExpenseCategory.ACCOMMODATION: "Accommodation",
    ExpenseCategory.ATTRACTION: "Attractions & Activities",
    ExpenseCategory.SHOPPING: "Shopping",
    ExpenseCategory.HEALTH: "Health & Medical",
    ExpenseCategory.COMMUNICATION: "Communication",
    ExpenseCategory.ENTERTAINMENT: "Entertainment",
    ExpenseCategory.TIPS: "Tips & Gratuity",
    ExpenseCategory.FEES: "Fees & Charges",
    ExpenseCategory.OTHER: "Other",
}

CURRENCY_SYMBOLS = {
    "INR": "₹",
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
    "JPY": "¥",
    "CNY": "¥",
    "THB": "฿",
    "AUD": "A$",
    "CAD": "C$",
    "SGD": "S$",
}

COMMON_CURRENCIES = list(CURRENCY_SYMBOLS)


class Expense(BaseModel):
    """A single spending line item inside a travel log."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    item: str
    amount: float = Field(ge=0)
    currency: str
    category: ExpenseCategory = ExpenseCategory.OTHER
    notes: str | None = None
    is_estimate: bool = False

    def formatted_amount(self) -> str:
        """Amount with currency symbol, e.g. ``₹200.00``."""
        symbol = CURRENCY_SYMBOLS.get(self.currency.upper(), f"{self.currency} ")
        return f"{symbol}{self.amount:.2f}"


class ExtractedExpense(BaseModel):
    """An expense as reported by the transcription service.

    ``category`` and ``is_estimate`` are optional on the wire; the category
    is inferred from ``item`` when the service leaves it out.
    """

    item: str
    amount: float = Field(ge=0)
    currency: str
    category: str | None = None
    notes: str | None = None
    is_estimate: bool | None = None

    @classmethod
    def from_expense(cls, expense: Expense) -> "ExtractedExpense":
        return cls(
            item=expense.item,
            amount=expense.amount,
            currency=expense.currency,
            category=expense.category.value,
            notes=expense.notes,
            is_estimate=expense.is_estimate,
        )


_expense_list = TypeAdapter(list[Expense])


def expenses_to_json(expenses: list[Expense]) -> str:
    return _expense_list.dump_json(expenses).decode()


def expenses_from_json(payload: str | bytes) -> list[Expense]:
    return _expense_list.validate_json(payload)


def dump_expenses(expenses: list[Expense]) -> list[dict[str, Any]]:
    """Plain JSON-compatible dicts for storage columns."""
    return _expense_list.dump_python(expenses, mode="json")


# ---------------------------------------------------------------------------
# Trip / TravelDay / TravelLog
# ---------------------------------------------------------------------------


class Trip(BaseModel):
    """Top-level container for a journey."""

    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: int = 0
    title: str
    start_date: date
    end_date: date | None = None
    description: str | None = None
    cover_image_path: str | None = None
    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)

    @property
    def is_ongoing(self) -> bool:
        return self.end_date is None

    @property
    def duration_days(self) -> int | None:
        if self.end_date is None:
            return None
        return (self.end_date - self.start_date).days + 1

    def formatted_date_range(self) -> str:
        end = self.end_date.isoformat() if self.end_date else "Ongoing"
        return f"{self.start_date.isoformat()} - {end}"


class TravelDay(BaseModel):
    """A calendar date within a trip; groups the logs recorded that day."""

    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: int = 0
    trip_id: int
    date: date
    day_number: int | None = None
    notes: str | None = None
    weather_info: str | None = None
    location: str | None = None
    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)

    def display_title(self) -> str:
        if self.day_number is not None:
            return f"Day {self.day_number} - {self.date.isoformat()}"
        return self.date.isoformat()


class TravelLog(BaseModel):
    """One transcribed voice note with its extracted expenses."""

    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: int = 0
    day_id: int
    raw_audio_path: str | None = None
    audio_duration_ms: int | None = None
    transcribed_text: str
    original_languages: list[str] = Field(default_factory=lambda: ["hi", "en"])
    expenses: list[Expense] = Field(default_factory=list)
    location: str | None = None
    is_edited: bool = False
    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)

    def total_expenses(self, currency: str) -> float:
        return sum(e.amount for e in self.expenses if e.currency.upper() == currency.upper())

    def unique_currencies(self) -> set[str]:
        return {e.currency for e in self.expenses}

    def expenses_by_category(self) -> dict[ExpenseCategory, list[Expense]]:
        grouped: dict[ExpenseCategory, list[Expense]] = {}
        for expense in self.expenses:
            grouped.setdefault(expense.category, []).append(expense)
        return grouped

    def text_preview(self, max_length: int = 100) -> str:
        if len(self.transcribed_text) <= max_length:
            return self.transcribed_text
        return f"{self.transcribed_text[:max_length]}..."

    def formatted_duration(self) -> str | None:
        """``m:ss`` or ``h:mm:ss``; None when the duration is unknown."""
        if self.audio_duration_ms is None:
            return None
        total_seconds = self.audio_duration_ms // 1000
        hours, remainder = divmod(total_seconds, 3600)
        minutes, seconds = divmod(remainder, 60)
        if hours:
            return f"{hours}:{minutes:02d}:{seconds:02d}"
        return f"{minutes}:{seconds:02d}"


# ---------------------------------------------------------------------------
# Transcription
# ---------------------------------------------------------------------------


class TranscriptionOutcome(BaseModel):
    """Result of transcribing one audio file; consumed once to build a log."""

    narrative: str
    expenses: list[ExtractedExpense] = Field(default_factory=list)
    detected_languages: list[str] | None = None
    confidence: float = Field(default=0.9, ge=0.0, le=1.0)
    processing_time_ms: int = 0
    request_id: str | None = None
    metadata: dict[str, Any] | None = None
