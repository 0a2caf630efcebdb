"""
Order Repository

Write and read path for the orders table. Meal photos live in
order_images, one row per photo, so attaching a photo is a single
INSERT and two concurrent attachments cannot overwrite each other.
"""

import logging
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from foodcart.core.exceptions import NotFoundError
from foodcart.models import Order, OrderImage

logger = logging.getLogger(__name__)


class OrderRepository:
    """Order persistence."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(
        self,
        items: list[dict[str, Any]],
        customer_name: str,
        customer_email: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> Order:
        order = Order(
            items=items,
            customer_name=customer_name,
            customer_email=customer_email,
            notes=notes,
            images=[],
        )
        self.session.add(order)
        await self.session.commit()
        # created_at comes from the server default
        await self.session.refresh(order, attribute_names=["created_at"])

        logger.info(f"Order #{order.id} saved ({len(items)} items)")
        return order

    def _select_orders(self):
        return (
            select(Order)
            .options(selectinload(Order.images))
            .execution_options(populate_existing=True)
        )

    async def get(self, order_id: int) -> Optional[Order]:
        result = await self.session.execute(self._select_orders().where(Order.id == order_id))
        return result.scalar_one_or_none()

    async def list_all(self) -> list[Order]:
        """All orders, newest first."""
        result = await self.session.execute(
            self._select_orders().order_by(Order.created_at.desc(), Order.id.desc())
        )
        return list(result.scalars().all())

    async def exists(self, order_id: int) -> bool:
        result = await self.session.execute(select(Order.id).where(Order.id == order_id))
        return result.scalar_one_or_none() is not None

    async def append_image(self, order_id: int, url: str) -> OrderImage:
        """
        Attach a photo URL to an order.

        Raises:
            NotFoundError: If the order does not exist
        """
        if not await self.exists(order_id):
            raise NotFoundError("Order", order_id)

        image = OrderImage(order_id=order_id, url=url)
        self.session.add(image)
        await self.session.commit()

        logger.info(f"Photo attached to order #{order_id}: {url}")
        return image
