"""
Menu repository tests: categories, dish fan-out and regrouping.
"""
from decimal import Decimal

import pytest

from foodcart.core.exceptions import (
    DuplicateIdError,
    NoCategoryError,
    NotFoundError,
    OperationInProgressError,
    UnknownCategoryError,
    ValidationError,
)
from foodcart.models import Dish
from foodcart.repositories import filter_dishes, group_dishes, slugify_category


# ===================== CATEGORIES =====================


def test_slugify_category():
    assert slugify_category("Main Courses") == "main-courses"
    assert slugify_category("  Soups   and Stews ") == "soups-and-stews"


async def test_create_category_defaults(menu_repo):
    category = await menu_repo.create_category_from_name("Main Courses")

    assert category.id == "main-courses"
    assert category.color == "bg-emerald-500"
    assert category.description == "Main Courses category"
    assert [c.id for c in await menu_repo.list_categories()] == ["main-courses"]


async def test_create_category_rejects_duplicate_id(menu_repo):
    await menu_repo.create_category("main", "Main")
    with pytest.raises(DuplicateIdError):
        await menu_repo.create_category("main", "Other Main")


async def test_create_category_rejects_blank_name(menu_repo):
    with pytest.raises(ValidationError):
        await menu_repo.create_category_from_name("   ")


async def test_create_category_rejected_while_same_id_in_flight(menu_repo, locks):
    async with locks.hold("category", "main"):
        with pytest.raises(OperationInProgressError):
            await menu_repo.create_category("main", "Main")


async def test_delete_category_removes_its_dish_rows(menu_repo, seed_menu):
    removed = await menu_repo.delete_category("vegetarian")

    assert removed == 1
    assert await menu_repo.get_category("vegetarian") is None
    assert await menu_repo.list_dishes_by_category("vegetarian") == []
    remaining = await menu_repo.list_dishes()
    assert [row.category_id for row in remaining] == ["main"]


async def test_delete_unknown_category(menu_repo):
    with pytest.raises(NotFoundError):
        await menu_repo.delete_category("nope")


# ===================== DISHES =====================


async def test_create_dish_requires_a_category(menu_repo):
    with pytest.raises(NoCategoryError):
        await menu_repo.create_dish("Pizza", "", "10.00", "http://img/p.jpg", [])


async def test_create_dish_rejects_unknown_category(menu_repo):
    await menu_repo.create_category("main", "Main")
    with pytest.raises(UnknownCategoryError) as exc_info:
        await menu_repo.create_dish("Pizza", "", "10.00", "http://img/p.jpg", ["main", "ghost"])

    assert exc_info.value.category_id == "ghost"
    assert await menu_repo.list_dishes() == []


async def test_create_dish_rejects_negative_price(menu_repo):
    await menu_repo.create_category("main", "Main")
    with pytest.raises(ValidationError):
        await menu_repo.create_dish("Pizza", "", "-1", "http://img/p.jpg", ["main"])


async def test_dish_in_two_categories_is_two_rows_one_logical_dish(menu_repo, seed_menu):
    rows = seed_menu["rows"]
    assert len(rows) == 2
    assert {row.category_id for row in rows} == {"main", "vegetarian"}
    assert rows[0].group_key == rows[1].group_key

    dishes = group_dishes(await menu_repo.list_dishes())
    assert len(dishes) == 1
    assert sorted(dishes[0].category_ids) == ["main", "vegetarian"]
    assert dishes[0].price == Decimal("12.99")
    assert dishes[0].id == min(row.id for row in rows)


async def test_duplicate_category_ids_are_collapsed(menu_repo):
    await menu_repo.create_category("main", "Main")
    rows = await menu_repo.create_dish("Soup", "", "4.00", "http://img/s.jpg", ["main", "main"])
    assert len(rows) == 1


async def test_same_name_dishes_stay_separate(menu_repo):
    await menu_repo.create_category("main", "Main")
    await menu_repo.create_dish("Soup", "Tomato", "4.00", "http://img/a.jpg", ["main"])
    await menu_repo.create_dish("Soup", "Onion", "5.00", "http://img/b.jpg", ["main"])

    assert len(group_dishes(await menu_repo.list_dishes())) == 2


def test_legacy_rows_without_group_key_group_by_name():
    rows = [
        Dish(id=1, group_key=None, name="Soup", description="", price=Decimal("4.00"), image="x", category_id="a"),
        Dish(id=2, group_key=None, name="Soup", description="", price=Decimal("4.00"), image="x", category_id="b"),
    ]
    dishes = group_dishes(rows)

    assert len(dishes) == 1
    assert dishes[0].category_ids == ["a", "b"]
    assert dishes[0].row_ids == [1, 2]


async def test_filter_by_category_and_search(menu_repo, seed_menu):
    await menu_repo.create_dish("Beef Burger", "Grilled", "14.50", "http://img/b.jpg", ["main"])
    dishes = group_dishes(await menu_repo.list_dishes())

    assert [d.name for d in filter_dishes(dishes, "vegetarian")] == ["Margherita Pizza"]
    assert [d.name for d in filter_dishes(dishes, search="GRILL")] == ["Beef Burger"]
    assert [d.name for d in filter_dishes(dishes, "vegetarian", "burger")] == []
    assert len(filter_dishes(dishes)) == 2


async def test_delete_dish_row_keeps_siblings(menu_repo, seed_menu):
    first, second = seed_menu["rows"]
    await menu_repo.delete_dish(first.id)

    remaining = await menu_repo.list_dishes()
    assert [row.id for row in remaining] == [second.id]

    with pytest.raises(NotFoundError):
        await menu_repo.delete_dish(first.id)


async def test_delete_dish_group(menu_repo, seed_menu):
    group_key = seed_menu["rows"][0].group_key
    assert await menu_repo.delete_dish_group(group_key) == 2
    assert await menu_repo.list_dishes() == []

    with pytest.raises(NotFoundError):
        await menu_repo.delete_dish_group(group_key)
