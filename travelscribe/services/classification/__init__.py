"""
Classification module - expense category inference.
"""

from .expense_category import CATEGORY_KEYWORDS, build_expense, infer_category, resolve_category

__all__ = ["CATEGORY_KEYWORDS", "build_expense", "infer_category", "resolve_category"]
