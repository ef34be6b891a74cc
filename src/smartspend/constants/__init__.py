"""Static defaults shipped with the application."""

from .defaults import (
    DEFAULT_CATEGORIES,
    DEFAULT_SOURCES,
    SAVINGS_CATEGORY_ID,
    default_categories,
    default_sources,
)

__all__ = [
    "DEFAULT_CATEGORIES",
    "DEFAULT_SOURCES",
    "SAVINGS_CATEGORY_ID",
    "default_categories",
    "default_sources",
]
