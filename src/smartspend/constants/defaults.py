"""
Built-in sources and categories used when no ledger has been stored yet.
Category ids are stable slugs so budgets and legacy records keep resolving.
"""

from __future__ import annotations

from ..models.category import Category
from ..models.source import Source, SourceKind

DEFAULT_SOURCES: tuple[Source, ...] = (
    Source(id="1", name="Bank A", balance=5000.0, kind=SourceKind.BANK, color_tag="bg-blue-500"),
    Source(id="2", name="Bank B", balance=6000.0, kind=SourceKind.BANK, color_tag="bg-indigo-500"),
    Source(id="3", name="Cash", balance=500.0, kind=SourceKind.CASH, color_tag="bg-green-500"),
)

DEFAULT_CATEGORIES: tuple[Category, ...] = (
    Category(id="food", name="Food & Dining", icon="🍽️", color_tag="#ef4444"),
    Category(id="transport", name="Transportation", icon="🚌", color_tag="#f59e0b"),
    Category(id="shopping", name="Shopping", icon="🛍️", color_tag="#ec4899"),
    Category(id="personal", name="Personal Care", icon="💇", color_tag="#8b5cf6"),
    Category(id="housing", name="Housing", icon="🏠", color_tag="#3b82f6"),
    Category(id="entertainment", name="Entertainment", icon="🎬", color_tag="#10b981"),
    Category(id="utilities", name="Utilities", icon="⚡", color_tag="#6366f1"),
    Category(id="health", name="Health", icon="⚕️", color_tag="#ef4444"),
)

# Preferred category for goal deposits when the caller does not pick one.
SAVINGS_CATEGORY_ID = "savings"


def default_sources() -> list[Source]:
    """Fresh copies of the built-in sources."""

    return [source.model_copy() for source in DEFAULT_SOURCES]


def default_categories() -> list[Category]:
    """Fresh copies of the built-in categories."""

    return [category.model_copy() for category in DEFAULT_CATEGORIES]
