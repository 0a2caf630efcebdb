"""
Order Service

Validates and persists orders, sends the best-effort restaurant
notification and attaches meal photos after the fact.

Flow (submit_order):
    1. Reject empty orders
    2. Persist items + customer info (server timestamp)
    3. Email the restaurant; failures are logged, never raised
    4. Return the new order id

Flow (attach_meal_photo):
    1. Compress the photo (thread offload)
    2. Reject photos still larger than the inline limit
    3. Upload to orders/{id}/ with retry
    4. Append the URL as a new order_images row

Author: Khalil Bannouri
Version: 1.0.0
"""

import logging
from contextlib import nullcontext
from typing import Any, Mapping, Optional, Sequence, Union

from foodcart.core.config import Settings, get_settings
from foodcart.core.exceptions import EmptyOrderError, ImageTooLargeError, NotFoundError
from foodcart.core.locks import PendingOperations
from foodcart.pricing import to_money
from foodcart.repositories.orders import OrderRepository
from foodcart.schemas import OrderItemIn
from foodcart.services.images import ImageProcessor, data_url_size
from foodcart.services.notifications import BaseNotificationService, OrderNotification
from foodcart.services.storage import StorageUploader

logger = logging.getLogger(__name__)

DEFAULT_CUSTOMER_NAME = "Customer"


class OrderService:
    """
    Order write path.

    Example:
        >>> service = OrderService(OrderRepository(session), notifier, uploader, processor)
        >>> order_id = await service.submit_order(cart.to_order_items(), "Alice")
    """

    def __init__(
        self,
        repository: OrderRepository,
        notifier: BaseNotificationService,
        uploader: StorageUploader,
        processor: ImageProcessor,
        locks: Optional[PendingOperations] = None,
        settings: Optional[Settings] = None,
    ):
        self.repository = repository
        self.notifier = notifier
        self.uploader = uploader
        self.processor = processor
        self.locks = locks or PendingOperations()
        self.settings = settings or get_settings()

    @staticmethod
    def _normalize_items(items: Sequence[Union[OrderItemIn, Mapping[str, Any]]]) -> list[dict[str, Any]]:
        """Validated items in their stored JSON shape."""
        normalized = []
        for item in items:
            line = item if isinstance(item, OrderItemIn) else OrderItemIn.model_validate(item)
            normalized.append({
                "dishId": line.dish_id,
                "dishName": line.dish_name,
                "quantity": line.quantity,
                "price": str(to_money(line.price)),
                "note": line.note or "",
            })
        return normalized

    async def submit_order(
        self,
        items: Sequence[Union[OrderItemIn, Mapping[str, Any]]],
        customer_name: Optional[str],
        customer_email: Optional[str] = None,
        notes: Optional[str] = None,
        session_key: Optional[str] = None,
    ) -> int:
        """
        Persist an order and notify the restaurant.

        Args:
            items: Order lines (dishId, dishName, quantity, price, note)
            customer_name: Display name, "Customer" when blank
            customer_email: Optional contact address
            notes: Free-text instructions
            session_key: Client session; concurrent submits from it are rejected

        Returns:
            int: The new order id

        Raises:
            EmptyOrderError: If items is empty
        """
        if not items:
            raise EmptyOrderError()

        stored_items = self._normalize_items(items)
        name = (customer_name or "").strip() or DEFAULT_CUSTOMER_NAME

        guard = self.locks.hold("order-submission", session_key) if session_key else nullcontext()
        async with guard:
            order = await self.repository.create(stored_items, name, customer_email or None, notes or None)

        await self._notify(order)
        return order.id

    async def _notify(self, order: Any) -> bool:
        """Send the new-order email. Never raises."""
        notification = OrderNotification(
            order_id=order.id,
            customer_name=order.customer_name,
            customer_email=order.customer_email,
            notes=order.notes,
            items=order.items,
        )
        if order.created_at is not None:
            notification.created_at = order.created_at

        try:
            result = await self.notifier.send_order_notification(notification)
        except Exception as e:
            logger.exception(f"Order #{order.id} saved but notification raised: {e}")
            return False

        if not result.success:
            logger.warning(
                f"Order #{order.id} saved but notification failed "
                f"({result.provider}): {result.error_message}"
            )
            return False

        logger.info(f"Order #{order.id} notification sent ({result.message_id})")
        return True

    async def attach_meal_photo(self, order_id: int, image_file: bytes) -> str:
        """
        Compress, upload and attach a meal photo to an order.

        Returns:
            str: Public URL of the stored photo

        Raises:
            NotFoundError: Unknown order
            DecodeError: The file is not an image
            ImageTooLargeError: Still above the size limit after compression
            RemoteUnavailableError: Storage failed after retries
            OperationInProgressError: Another photo is being attached to this order
        """
        async with self.locks.hold("order-photo", order_id):
            if not await self.repository.exists(order_id):
                raise NotFoundError("Order", order_id)

            data_url = await self.processor.process_async(image_file)

            size = data_url_size(data_url)
            limit = self.settings.max_inline_image_bytes
            if size > limit:
                raise ImageTooLargeError(size, limit)

            url = await self.uploader.upload_with_retry(
                data_url,
                f"orders/{order_id}",
                retries=self.settings.upload_retries,
            )
            await self.repository.append_image(order_id, url)

        return url
