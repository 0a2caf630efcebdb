"""
Order service tests: submission, notification and meal photos.
"""
from decimal import Decimal

import pytest

from foodcart.core.exceptions import (
    DecodeError,
    EmptyOrderError,
    ImageTooLargeError,
    NotFoundError,
    OperationInProgressError,
    UploadError,
)
from foodcart.services.cart import CartState, DishSnapshot, OrderHistoryView
from foodcart.services.images import ImageProcessor
from foodcart.services.notifications import NotificationResult
from foodcart.services.orders import OrderService


PIZZA = {"dishId": 1, "dishName": "Pizza", "quantity": 2, "price": "10", "note": ""}


# ===================== SUBMISSION =====================


async def test_empty_order_is_rejected(order_service, order_repo, notifier):
    with pytest.raises(EmptyOrderError):
        await order_service.submit_order([], "Alice")

    assert await order_repo.list_all() == []
    assert notifier.sent == []


async def test_submit_order_persists_and_notifies(order_service, order_repo, notifier):
    order_id = await order_service.submit_order([PIZZA], "Alice", "alice@example.com", "No onions")

    order = await order_repo.get(order_id)
    assert order.customer_name == "Alice"
    assert order.customer_email == "alice@example.com"
    assert order.notes == "No onions"
    assert order.items == [
        {"dishId": 1, "dishName": "Pizza", "quantity": 2, "price": "10.00", "note": ""},
    ]
    assert order.created_at is not None

    assert len(notifier.sent) == 1
    assert notifier.sent[0]["subject"] == "New order - from Alice"
    assert "Pizza" in notifier.sent[0]["html"]
    assert "20.00" in notifier.sent[0]["text"]


async def test_two_times_ten_shows_total_twenty(order_service, order_repo):
    order_id = await order_service.submit_order([PIZZA], "Alice")

    history = OrderHistoryView(order_repo)
    await history.fetch_history()
    assert history.find(order_id).total == Decimal("20.00")


async def test_blank_customer_name_defaults(order_service, order_repo):
    order_id = await order_service.submit_order([PIZZA], "   ")
    order = await order_repo.get(order_id)
    assert order.customer_name == "Customer"


async def test_cart_payload_submits(order_service, order_repo):
    cart = CartState()
    cart.add_item(DishSnapshot.create(7, "Soup", "4.25"))
    cart.add_item(DishSnapshot.create(7, "Soup", "4.25"))

    order_id = await order_service.submit_order(cart.to_order_items(), "Bob")

    order = await order_repo.get(order_id)
    assert order.items[0]["quantity"] == 2
    assert order.items[0]["price"] == "4.25"


async def test_notification_failure_does_not_fail_order(order_service, order_repo, notifier):
    async def failing_send(*args, **kwargs):
        return NotificationResult(success=False, error_message="mailbox full", provider="mock")

    notifier.send_email = failing_send
    order_id = await order_service.submit_order([PIZZA], "Alice")

    assert await order_repo.exists(order_id)


async def test_notification_exception_does_not_fail_order(order_service, order_repo, notifier):
    async def exploding_send(*args, **kwargs):
        raise RuntimeError("smtp down")

    notifier.send_email = exploding_send
    order_id = await order_service.submit_order([PIZZA], "Alice")

    assert await order_repo.exists(order_id)


async def test_concurrent_submission_from_same_session_rejected(order_service, locks):
    async with locks.hold("order-submission", "session-1"):
        with pytest.raises(OperationInProgressError):
            await order_service.submit_order([PIZZA], "Alice", session_key="session-1")

    assert await order_service.submit_order([PIZZA], "Alice", session_key="session-1")


# ===================== MEAL PHOTOS =====================


async def test_attach_meal_photo(order_service, order_repo, storage, image_bytes):
    order_id = await order_service.submit_order([PIZZA], "Alice")

    url = await order_service.attach_meal_photo(order_id, image_bytes(1600, 1200))

    assert url.startswith(f"http://test/storage/v1/object/public/food-images/orders/{order_id}/")
    assert url.endswith(".jpg")
    order = await order_repo.get(order_id)
    assert order.image_urls == [url]

    second = await order_service.attach_meal_photo(order_id, image_bytes(300, 300))
    order = await order_repo.get(order_id)
    assert order.image_urls == [url, second]


async def test_attach_photo_unknown_order(order_service, storage, image_bytes):
    with pytest.raises(NotFoundError):
        await order_service.attach_meal_photo(999, image_bytes(10, 10))
    assert storage.calls == []


async def test_attach_photo_rejects_non_image(order_service):
    order_id = await order_service.submit_order([PIZZA], "Alice")
    with pytest.raises(DecodeError):
        await order_service.attach_meal_photo(order_id, b"not an image")


async def test_attach_photo_too_large(order_repo, notifier, uploader, locks, storage, image_bytes):
    service = OrderService(order_repo, notifier, uploader, ImageProcessor(), locks)
    service.settings = service.settings.model_copy(update={"max_inline_image_bytes": 100})
    order_id = await service.submit_order([PIZZA], "Alice")

    with pytest.raises(ImageTooLargeError):
        await service.attach_meal_photo(order_id, image_bytes(200, 200))

    assert "upload_object" not in storage.calls
    assert (await order_repo.get(order_id)).image_urls == []


async def test_attach_photo_upload_failure_leaves_order_unchanged(order_service, order_repo, storage, image_bytes):
    order_id = await order_service.submit_order([PIZZA], "Alice")
    storage.fail_next_uploads = 10

    with pytest.raises(UploadError):
        await order_service.attach_meal_photo(order_id, image_bytes(50, 50))

    assert storage.calls.count("upload_object") == 3
    assert (await order_repo.get(order_id)).image_urls == []


async def test_attach_photo_rejected_while_another_in_flight(order_service, locks, image_bytes):
    order_id = await order_service.submit_order([PIZZA], "Alice")

    async with locks.hold("order-photo", order_id):
        with pytest.raises(OperationInProgressError):
            await order_service.attach_meal_photo(order_id, image_bytes(10, 10))
