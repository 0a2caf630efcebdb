"""
API endpoint tests.
Uses in-memory SQLite + dependency-overridden FastAPI test client.
"""
import base64

import pytest

PIZZA = {"dishId": 1, "dishName": "Pizza", "quantity": 2, "price": "10.00", "note": ""}
DATA_URL = "data:image/jpeg;base64," + base64.b64encode(b"jpeg-bytes").decode("ascii")


async def create_menu(client):
    await client.post("/api/categories", json={"id": "main", "name": "Main Courses"})
    await client.post("/api/categories", json={"name": "Vegetarian"})
    r = await client.post(
        "/api/dishes",
        json={
            "name": "Margherita Pizza",
            "description": "Tomato and mozzarella",
            "price": "12.99",
            "image": "http://img/pizza.jpg",
            "category_ids": ["main", "vegetarian"],
        },
    )
    assert r.status_code == 201
    return r.json()


# ===================== HEALTH / ROOT =====================


async def test_root(client):
    r = await client.get("/")
    assert r.status_code == 200
    assert r.json()["environment"] == "development"


async def test_health(client):
    r = await client.get("/health")
    assert r.status_code == 200
    body = r.json()
    assert body["status"] == "operational"
    assert body["database"] == "healthy"


# ===================== ORDERS =====================


async def test_submit_order(client, notifier):
    r = await client.post(
        "/order",
        json={"items": [PIZZA], "customerName": "Alice", "notes": "Ring twice"},
    )
    assert r.status_code == 200
    body = r.json()
    assert body["success"] is True
    assert isinstance(body["orderId"], int)
    assert len(notifier.sent) == 1


async def test_submit_empty_order_is_400(client):
    r = await client.post("/order", json={"items": [], "customerName": "Alice"})
    assert r.status_code == 400
    body = r.json()
    assert body["success"] is False
    assert body["retryable"] is False


async def test_submit_order_invalid_email(client):
    r = await client.post("/order", json={"items": [PIZZA], "customerEmail": "nope"})
    assert r.status_code == 422


async def test_admin_orders_recomputes_total(client):
    await client.post("/order", json={"items": [PIZZA], "customerName": "Alice"})
    await client.post(
        "/order",
        json={"items": [{"dishName": "Tea", "quantity": 3, "price": "0.10"}], "customerName": ""},
    )

    r = await client.get("/admin/orders")
    assert r.status_code == 200
    orders = r.json()["orders"]
    assert len(orders) == 2
    assert orders[0]["customer_name"] == "Customer"
    assert orders[0]["total"] == "0.30"
    assert orders[1]["total"] == "20.00"
    assert orders[1]["items"][0]["dishName"] == "Pizza"
    assert orders[1]["items"][0]["subtotal"] == "20.00"


async def test_get_order_and_404(client):
    r = await client.post("/order", json={"items": [PIZZA]})
    order_id = r.json()["orderId"]

    r = await client.get(f"/api/orders/{order_id}")
    assert r.status_code == 200
    assert r.json()["images"] == []

    r = await client.get("/api/orders/9999")
    assert r.status_code == 404


async def test_attach_order_photo(client, image_bytes):
    r = await client.post("/order", json={"items": [PIZZA]})
    order_id = r.json()["orderId"]

    r = await client.post(
        f"/api/orders/{order_id}/photos",
        files={"file": ("meal.png", image_bytes(1200, 900), "image/png")},
    )
    assert r.status_code == 200
    url = r.json()["url"]
    assert f"/food-images/orders/{order_id}/" in url

    r = await client.get(f"/api/orders/{order_id}")
    assert r.json()["images"] == [url]

    # development mode serves the stored object
    r = await client.get(url.replace("http://test", ""))
    assert r.status_code == 200
    assert r.headers["content-type"] == "image/jpeg"


async def test_attach_photo_storage_down_is_503(client, storage, image_bytes):
    r = await client.post("/order", json={"items": [PIZZA]})
    order_id = r.json()["orderId"]
    storage.fail_listing = True

    r = await client.post(
        f"/api/orders/{order_id}/photos",
        files={"file": ("meal.png", image_bytes(20, 20), "image/png")},
    )
    assert r.status_code == 503
    assert r.json()["retryable"] is True


# ===================== MENU =====================


async def test_categories(client):
    r = await client.post("/api/categories", json={"name": "Main Courses"})
    assert r.status_code == 201
    assert r.json()["id"] == "main-courses"

    r = await client.post("/api/categories", json={"name": "Main Courses"})
    assert r.status_code == 409

    r = await client.get("/api/categories")
    assert [c["id"] for c in r.json()] == ["main-courses"]


async def test_create_dish_requires_category(client):
    r = await client.post("/api/dishes", json={"name": "Pizza", "price": "9.00", "category_ids": []})
    assert r.status_code == 400


async def test_create_dish_unknown_category(client):
    r = await client.post("/api/dishes", json={"name": "Pizza", "price": "9.00", "category_ids": ["ghost"]})
    assert r.status_code == 400
    assert r.json()["detail"] == {"category_id": "ghost"}


async def test_menu_groups_and_filters(client):
    created = await create_menu(client)
    assert len(created["rows"]) == 2

    r = await client.get("/api/menu")
    body = r.json()
    assert len(body["categories"]) == 2
    assert len(body["dishes"]) == 1
    assert sorted(body["dishes"][0]["category_ids"]) == ["main", "vegetarian"]

    r = await client.get("/api/menu", params={"q": "burger"})
    assert r.json()["dishes"] == []

    r = await client.get("/api/dishes", params={"category": "main"})
    assert len(r.json()) == 1


async def test_delete_category_cascades(client):
    await create_menu(client)

    r = await client.delete("/api/categories/vegetarian")
    assert r.status_code == 200
    assert r.json()["deleted"] == 1

    r = await client.get("/api/dishes")
    assert [row["category_id"] for row in r.json()] == ["main"]


async def test_delete_dish_group(client):
    created = await create_menu(client)
    group_key = created["rows"][0]["group_key"]

    r = await client.delete(f"/api/dishes/groups/{group_key}")
    assert r.json()["deleted"] == 2

    r = await client.delete(f"/api/dishes/{created['rows'][0]['id']}")
    assert r.status_code == 404


async def test_create_dish_uploads_data_url(client, storage):
    await client.post("/api/categories", json={"id": "main", "name": "Main"})
    r = await client.post(
        "/api/dishes",
        json={"name": "Soup", "price": "4.00", "image": DATA_URL, "category_ids": ["main"]},
    )
    assert r.status_code == 201
    body = r.json()
    assert body["image"].startswith("http://test/storage/v1/object/public/food-images/dishes/")
    assert body["image_degraded"] is False
    assert body["rows"][0]["image"] == body["image"]


async def test_create_dish_accepts_uppercase_data_url(client, storage):
    await client.post("/api/categories", json={"id": "main", "name": "Main"})
    image = "DATA:IMAGE/JPEG;BASE64," + DATA_URL.split(",", 1)[1]

    r = await client.post(
        "/api/dishes",
        json={"name": "Soup", "price": "4.00", "image": image, "category_ids": ["main"]},
    )
    assert r.status_code == 201
    assert r.json()["image"].startswith("http://test/storage/v1/object/public/food-images/dishes/")
    assert len(storage.objects) == 1


@pytest.mark.parametrize("image", ["data:image/svg+xml,<svg/>", "data:image/png,abc", " data:text/plain;base64,AAAA"])
async def test_create_dish_rejects_other_data_urls(client, storage, image):
    await client.post("/api/categories", json={"id": "main", "name": "Main"})

    r = await client.post(
        "/api/dishes",
        json={"name": "Soup", "price": "4.00", "image": image, "category_ids": ["main"]},
    )
    assert r.status_code == 400
    assert (await client.get("/api/dishes")).json() == []
    assert storage.objects == {}


async def test_create_dish_bad_category_uploads_nothing(client, storage):
    await client.post("/api/categories", json={"id": "main", "name": "Main"})

    for category_ids in ([], ["nope"]):
        r = await client.post(
            "/api/dishes",
            json={"name": "Soup", "price": "4.00", "image": DATA_URL, "category_ids": category_ids},
        )
        assert r.status_code == 400

    assert storage.objects == {}
    assert storage.calls == []


async def test_create_dish_upload_failure_is_503_without_opt_in(client, storage):
    await client.post("/api/categories", json={"id": "main", "name": "Main"})
    storage.fail_next_uploads = 10

    r = await client.post(
        "/api/dishes",
        json={"name": "Soup", "price": "4.00", "image": DATA_URL, "category_ids": ["main"]},
    )
    assert r.status_code == 503

    r = await client.get("/api/dishes")
    assert r.json() == []


async def test_create_dish_placeholder_opt_in(client, storage):
    await client.post("/api/categories", json={"id": "main", "name": "Main"})
    storage.fail_next_uploads = 10

    r = await client.post(
        "/api/dishes",
        json={
            "name": "Soup",
            "price": "4.00",
            "image": DATA_URL,
            "category_ids": ["main"],
            "allow_placeholder": True,
        },
    )
    assert r.status_code == 201
    assert r.json()["image"] == "/placeholder.svg"
    assert r.json()["image_degraded"] is True


# ===================== IMAGES / STORAGE =====================


async def test_image_preview(client, image_bytes):
    r = await client.post(
        "/api/images/preview",
        files={"file": ("big.png", image_bytes(2000, 1000), "image/png")},
    )
    assert r.status_code == 200
    body = r.json()
    assert body["data_url"].startswith("data:image/jpeg;base64,")
    assert body["size"] == len(body["data_url"])


async def test_image_preview_rejects_garbage(client):
    r = await client.post(
        "/api/images/preview",
        files={"file": ("x.png", b"garbage", "image/png")},
    )
    assert r.status_code == 400


async def test_image_upload(client, image_bytes):
    r = await client.post(
        "/api/images",
        files={"file": ("dish.png", image_bytes(100, 100), "image/png")},
    )
    assert r.status_code == 201
    assert "/food-images/dishes/" in r.json()["url"]


async def test_storage_status(client, storage):
    r = await client.get("/api/storage/status")
    assert r.json()["ready"] is True

    storage.fail_bucket_creation = True
    storage.buckets.clear()
    r = await client.get("/api/storage/status")
    body = r.json()
    assert body["ready"] is False
    assert body["checked"] is True
