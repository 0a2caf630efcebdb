"""
Sample Data Seeding Script

Creates a few categories and dishes and one test order through the
HTTP API. Run from project root against a running server:

    python scripts/seed.py --base-url http://localhost:8001

Author: Khalil Bannouri
Version: 1.0.0
"""

import asyncio
import sys
import argparse
from typing import Any, Optional

import httpx

# Windows event loop fix
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

# Configuration
API_BASE_URL = "http://localhost:8001"

SAMPLE_CATEGORIES = [
    {"id": "main", "name": "Main Courses", "color": "bg-emerald-500", "description": "Hearty main dishes"},
    {"id": "vegetarian", "name": "Vegetarian", "color": "bg-lime-300", "description": "No meat, all flavour"},
    {"id": "desserts", "name": "Desserts", "color": "bg-pink-300", "description": "Something sweet"},
]

SAMPLE_DISHES = [
    {
        "name": "Margherita Pizza",
        "description": "Tomato, mozzarella and fresh basil",
        "price": "12.99",
        "category_ids": ["main", "vegetarian"],
    },
    {
        "name": "Beef Burger",
        "description": "Grilled beef patty with cheddar",
        "price": "14.50",
        "category_ids": ["main"],
    },
    {
        "name": "Tiramisu",
        "description": "Coffee-soaked ladyfingers and mascarpone",
        "price": "7.99",
        "category_ids": ["desserts", "vegetarian"],
    },
]


# =============================================================================
# SEEDING STEPS
# =============================================================================

async def seed_categories(client: httpx.AsyncClient) -> int:
    """Create sample categories, skipping ones that already exist."""
    created = 0
    for category in SAMPLE_CATEGORIES:
        response = await client.post("/api/categories", json=category)
        if response.status_code == 201:
            created += 1
            print(f"   ✅ Category: {category['name']}")
        elif response.status_code == 409:
            print(f"   ⏭️  Category exists: {category['name']}")
        else:
            print(f"   ❌ Category {category['name']}: {response.text[:100]}")
    return created


async def seed_dishes(client: httpx.AsyncClient) -> list[dict[str, Any]]:
    """Create sample dishes; returns the first row of each."""
    rows = []
    for dish in SAMPLE_DISHES:
        response = await client.post("/api/dishes", json=dish)
        if response.status_code == 201:
            first = response.json()["rows"][0]
            rows.append(first)
            print(f"   ✅ Dish: {dish['name']} ({len(dish['category_ids'])} categories)")
        else:
            print(f"   ❌ Dish {dish['name']}: {response.text[:100]}")
    return rows


async def seed_order(client: httpx.AsyncClient, dishes: list[dict[str, Any]]) -> Optional[int]:
    """Submit one test order using the seeded dishes."""
    if not dishes:
        print("   ⏭️  No dishes, skipping test order")
        return None

    payload = {
        "customerName": "Test Customer",
        "notes": "Seed data order",
        "items": [
            {
                "dishId": dish["id"],
                "dishName": dish["name"],
                "quantity": index + 1,
                "price": dish["price"],
                "note": "",
            }
            for index, dish in enumerate(dishes)
        ],
    }
    response = await client.post("/order", json=payload)
    if response.status_code != 200:
        print(f"   ❌ Order: {response.text[:100]}")
        return None

    order_id = response.json()["orderId"]
    print(f"   ✅ Order #{order_id}")
    return order_id


# =============================================================================
# MAIN
# =============================================================================

async def run_seed(base_url: str = API_BASE_URL) -> None:
    print("=" * 70)
    print("🌱 SEEDING SAMPLE DATA")
    print("=" * 70)
    print(f"🎯 Target: {base_url}")

    async with httpx.AsyncClient(base_url=base_url, timeout=30.0) as client:
        try:
            health = await client.get("/health")
            print(f"✅ Server status: {health.json().get('status')}")
        except httpx.HTTPError as e:
            print(f"❌ Cannot reach server: {e}")
            return

        print("\n📂 Categories")
        await seed_categories(client)

        print("\n🍽️  Dishes")
        dishes = await seed_dishes(client)

        print("\n🧾 Test order")
        await seed_order(client, dishes)

    print("=" * 70)
    print("✅ Done")
    print("=" * 70)


def main() -> None:
    parser = argparse.ArgumentParser(description="Seed sample menu data")
    parser.add_argument("--base-url", default=API_BASE_URL, help="API base URL")
    args = parser.parse_args()

    asyncio.run(run_seed(args.base_url))


if __name__ == "__main__":
    main()
