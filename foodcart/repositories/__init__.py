"""
Repositories over the relational store.

Each repository receives its AsyncSession at construction time.
"""

from foodcart.repositories.menu import (
    CATEGORY_COLORS,
    LogicalDish,
    MenuRepository,
    filter_dishes,
    group_dishes,
    slugify_category,
)
from foodcart.repositories.orders import OrderRepository

__all__ = [
    "CATEGORY_COLORS",
    "LogicalDish",
    "MenuRepository",
    "OrderRepository",
    "filter_dishes",
    "group_dishes",
    "slugify_category",
]
