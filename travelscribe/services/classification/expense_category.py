"""Keyword-based expense category inference.

Used when the transcription service returns an expense without a category.
Keyword groups are checked in a fixed order and the first substring match
wins, so an item naming several things ("hotel taxi") lands in whichever
group comes first.
"""

import logging

from travelscribe.core.models import Expense, ExpenseCategory, ExtractedExpense

logger = logging.getLogger(__name__)

# Order matters: first matching group wins.
CATEGORY_KEYWORDS: tuple[tuple[ExpenseCategory, tuple[str, ...]], ...] = (
    (
        ExpenseCategory.FOOD,
        (
            "food", "lunch", "dinner", "breakfast", "coffee", "tea", "restaurant",
            "cafe", "snack", "meal", "drink", "beer", "wine",
        ),
    ),
    (
        ExpenseCategory.TRANSPORT,
        (
            "taxi", "uber", "ola", "cab", "bus", "train", "metro", "flight",
            "ticket", "petrol", "gas", "fuel", "rickshaw", "auto",
        ),
    ),
    (
        ExpenseCategory.ACCOMMODATION,
        ("hotel", "hostel", "airbnb", "stay", "room", "accommodation", "lodge", "resort"),
    ),
    (
        ExpenseCategory.ATTRACTION,
        ("entry", "museum", "temple", "tour", "guide", "park", "zoo", "show", "ticket"),
    ),
    (ExpenseCategory.SHOPPING, ("shop", "souvenir", "gift", "clothes", "market", "store")),
    (ExpenseCategory.HEALTH, ("medicine", "pharmacy", "doctor", "hospital", "health")),
    (ExpenseCategory.COMMUNICATION, ("sim", "phone", "internet", "wifi", "data", "call")),
    (ExpenseCategory.TIPS, ("tip", "gratuity")),
    (ExpenseCategory.FEES, ("fee", "visa", "tax", "charge", "atm", "currency")),
)


def infer_category(item: str) -> ExpenseCategory:
    """Guess a category from the item description.

    Args:
        item: Free-text item name, e.g. "Lunch at cafe".

    Returns:
        The first category whose keyword occurs in the lowercased item,
        or ``ExpenseCategory.OTHER``.
    """
    text = item.lower()
    for category, keywords in CATEGORY_KEYWORDS:
        if any(keyword in text for keyword in keywords):
            return category
    return ExpenseCategory.OTHER


def resolve_category(raw: str | None, item: str) -> ExpenseCategory:
    """Use the reported category when present, otherwise infer from ``item``."""
    if raw is None or not raw.strip():
        return infer_category(item)
    return ExpenseCategory.from_string(raw)


def build_expense(extracted: ExtractedExpense) -> Expense:
    """Turn a service-reported expense into a domain Expense."""
    category = resolve_category(extracted.category, extracted.item)
    if extracted.category is None:
        logger.debug("Inferred %s for %r", category.value, extracted.item)
    return Expense(
        item=extracted.item,
        amount=extracted.amount,
        currency=extracted.currency,
        category=category,
        notes=extracted.notes,
        is_estimate=bool(extracted.is_estimate),
    )
