"""
Menu Repository

CRUD over categories and dishes.

A dish that belongs to several categories is stored as one row per
category. Rows written by a single create_dish() call share a
group_key; group_dishes() folds them back into logical dishes.

Author: Khalil Bannouri
Version: 1.0.0
"""

import logging
import re
import uuid
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Iterable, Optional, Sequence

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from foodcart.core.exceptions import (
    DuplicateIdError,
    NoCategoryError,
    NotFoundError,
    UnknownCategoryError,
    ValidationError,
)
from foodcart.core.locks import PendingOperations
from foodcart.models import Category, Dish
from foodcart.pricing import to_money

logger = logging.getLogger(__name__)

CATEGORY_COLORS = [
    "bg-emerald-500",
    "bg-orange-400",
    "bg-yellow-300",
    "bg-pink-300",
    "bg-purple-300",
    "bg-blue-300",
    "bg-teal-300",
    "bg-emerald-300",
    "bg-orange-300",
    "bg-lime-300",
    "bg-rose-300",
    "bg-sky-300",
]


def slugify_category(name: str) -> str:
    """'Main Courses' -> 'main-courses'"""
    return re.sub(r"\s+", "-", name.strip().lower())


@dataclass
class LogicalDish:
    """One menu dish, however many category rows back it."""
    key: str
    name: str
    description: str
    price: Decimal
    image: str
    category_ids: list[str] = field(default_factory=list)
    row_ids: list[int] = field(default_factory=list)

    @property
    def id(self) -> int:
        """Lowest row id, stable for as long as that row exists."""
        return min(self.row_ids)


def group_dishes(rows: Iterable[Dish]) -> list[LogicalDish]:
    """
    Fold dish rows into logical dishes.

    Rows with a group_key are grouped by it. Rows without one (written
    before group keys existed) fall back to grouping by name, so two
    such dishes with the same name merge into one.
    """
    grouped: dict[str, LogicalDish] = {}
    for row in rows:
        key = row.group_key or f"name:{row.name}"
        dish = grouped.get(key)
        if dish is None:
            dish = LogicalDish(
                key=key,
                name=row.name,
                description=row.description or "",
                price=to_money(row.price),
                image=row.image,
            )
            grouped[key] = dish
        if row.category_id not in dish.category_ids:
            dish.category_ids.append(row.category_id)
        dish.row_ids.append(row.id)
    return list(grouped.values())


def filter_dishes(
    dishes: Iterable[LogicalDish],
    category_id: Optional[str] = None,
    search: Optional[str] = None,
) -> list[LogicalDish]:
    """Menu filter: category membership and case-insensitive text search."""
    term = search.strip().lower() if search else ""
    result = []
    for dish in dishes:
        if category_id and category_id not in dish.category_ids:
            continue
        if term and term not in dish.name.lower() and term not in dish.description.lower():
            continue
        result.append(dish)
    return result


class MenuRepository:
    """
    Category and dish persistence.

    Example:
        >>> repo = MenuRepository(session)
        >>> await repo.create_category("main", "Main Courses", "bg-emerald-500")
        >>> rows = await repo.create_dish("Pizza", "Cheesy", Decimal("12.99"), url, ["main"])
    """

    def __init__(self, session: AsyncSession, locks: Optional[PendingOperations] = None):
        self.session = session
        self.locks = locks or PendingOperations()

    # =========================================================================
    # CATEGORIES
    # =========================================================================

    async def list_categories(self) -> list[Category]:
        result = await self.session.execute(select(Category).order_by(Category.name))
        return list(result.scalars().all())

    async def get_category(self, category_id: str) -> Optional[Category]:
        return await self.session.get(Category, category_id)

    async def create_category(
        self,
        category_id: str,
        name: str,
        color: str = CATEGORY_COLORS[0],
        description: Optional[str] = None,
    ) -> Category:
        """
        Insert a category.

        Raises:
            ValidationError: Empty id or name
            DuplicateIdError: A category with this id already exists
        """
        if not category_id or not name or not name.strip():
            raise ValidationError("Please enter a category name")

        async with self.locks.hold("category", category_id):
            if await self.get_category(category_id) is not None:
                raise DuplicateIdError("Category", category_id)

            category = Category(
                id=category_id,
                name=name.strip(),
                color=color or CATEGORY_COLORS[0],
                description=description or f"{name.strip()} category",
            )
            self.session.add(category)
            await self.session.commit()

        logger.info(f"Category created: {category_id}")
        return category

    async def create_category_from_name(
        self,
        name: str,
        color: Optional[str] = None,
        description: Optional[str] = None,
    ) -> Category:
        """Create a category whose id is derived from its name."""
        return await self.create_category(
            slugify_category(name or ""),
            name,
            color or CATEGORY_COLORS[0],
            description,
        )

    async def delete_category(self, category_id: str) -> int:
        """
        Delete a category and every dish row referencing it.

        Both deletes run in one transaction.

        Returns:
            int: Number of dish rows removed
        """
        async with self.locks.hold("category", category_id):
            if await self.get_category(category_id) is None:
                raise NotFoundError("Category", category_id)

            try:
                result = await self.session.execute(
                    delete(Dish).where(Dish.category_id == category_id)
                )
                await self.session.execute(
                    delete(Category).where(Category.id == category_id)
                )
                await self.session.commit()
            except Exception:
                await self.session.rollback()
                raise

        removed = result.rowcount or 0
        logger.info(f"Category {category_id} deleted with {removed} dish rows")
        return removed

    # =========================================================================
    # DISHES
    # =========================================================================

    async def list_dishes(self) -> list[Dish]:
        """Flat dish rows ordered by name. Use group_dishes() for the menu."""
        result = await self.session.execute(select(Dish).order_by(Dish.name, Dish.id))
        return list(result.scalars().all())

    async def list_dishes_by_category(self, category_id: str) -> list[Dish]:
        result = await self.session.execute(
            select(Dish).where(Dish.category_id == category_id).order_by(Dish.name, Dish.id)
        )
        return list(result.scalars().all())

    async def get_dish(self, dish_id: int) -> Optional[Dish]:
        return await self.session.get(Dish, dish_id)

    async def validate_category_ids(self, category_ids: Sequence[str]) -> list[str]:
        """
        Check dish categories without writing anything.

        Returns:
            list[str]: The ids with duplicates removed, in order

        Raises:
            NoCategoryError: category_ids is empty
            UnknownCategoryError: Some category id does not exist
        """
        if not category_ids:
            raise NoCategoryError()

        unique_ids = list(dict.fromkeys(category_ids))
        for category_id in unique_ids:
            if await self.get_category(category_id) is None:
                raise UnknownCategoryError(category_id)
        return unique_ids

    async def create_dish(
        self,
        name: str,
        description: str,
        price: Any,
        image: str,
        category_ids: Sequence[str],
    ) -> list[Dish]:
        """
        Insert one row per category.

        Raises:
            NoCategoryError: category_ids is empty
            UnknownCategoryError: Some category id does not exist
            ValidationError: Missing name or negative price
        """
        if not category_ids:
            raise NoCategoryError()
        if not name or not name.strip():
            raise ValidationError("Please fill in the dish name")

        amount = to_money(price)
        if amount < 0:
            raise ValidationError("Price must not be negative")

        unique_ids = await self.validate_category_ids(category_ids)

        group_key = uuid.uuid4().hex
        rows = [
            Dish(
                group_key=group_key,
                name=name.strip(),
                description=description or "",
                price=amount,
                image=image,
                category_id=category_id,
            )
            for category_id in unique_ids
        ]
        self.session.add_all(rows)
        await self.session.commit()

        logger.info(f"Dish created: {name} in {unique_ids} ({len(rows)} rows)")
        return rows

    async def delete_dish(self, dish_id: int) -> None:
        """
        Delete a single dish row.

        Sibling rows of the same logical dish under other categories
        are left in place; use delete_dish_group() to remove them all.
        """
        async with self.locks.hold("dish", dish_id):
            dish = await self.get_dish(dish_id)
            if dish is None:
                raise NotFoundError("Dish", dish_id)
            await self.session.delete(dish)
            await self.session.commit()
        logger.info(f"Dish row #{dish_id} deleted")

    async def delete_dish_group(self, group_key: str) -> int:
        """Delete every row of one logical dish."""
        async with self.locks.hold("dish-group", group_key):
            result = await self.session.execute(
                delete(Dish).where(Dish.group_key == group_key)
            )
            await self.session.commit()

        removed = result.rowcount or 0
        if not removed:
            raise NotFoundError("Dish group", group_key)
        logger.info(f"Dish group {group_key} deleted ({removed} rows)")
        return removed
