"""
SQLAlchemy Database Models

Tables:
- categories: named, coloured menu tags
- dishes: one row per (dish, category) membership
- orders: submitted orders with their items as JSON
- order_images: meal photos attached to an order after submission

Author: Khalil Bannouri
Version: 1.0.0
"""

from sqlalchemy import Column, Integer, String, Numeric, DateTime, Text, JSON, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from foodcart.database import Base


class Category(Base):
    """Menu category. The id is a slug derived from the name."""
    __tablename__ = "categories"

    id = Column(String(100), primary_key=True)
    name = Column(String(100), nullable=False)
    color = Column(String(50), nullable=False, default="bg-emerald-500")
    description = Column(Text, nullable=True)

    def __repr__(self):
        return f"<Category {self.id} - {self.name}>"


class Dish(Base):
    """
    One physical dish row.

    A dish listed under N categories is stored as N rows. Rows created
    together share a group_key so they can be regrouped into one
    logical dish without relying on the name.
    """
    __tablename__ = "dishes"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    group_key = Column(String(36), nullable=True, index=True)
    name = Column(String(200), nullable=False, index=True)
    description = Column(Text, nullable=False, default="")
    price = Column(Numeric(10, 2), nullable=False)
    image = Column(Text, nullable=False)
    category_id = Column(
        String(100),
        ForeignKey("categories.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self):
        return f"<Dish #{self.id} - {self.name} ({self.category_id})>"


class Order(Base):
    """Submitted order. Items are stored as a JSON list."""
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # =========================================================================
    # CUSTOMER INFORMATION
    # =========================================================================
    customer_name = Column(String(100), nullable=False)
    customer_email = Column(String(255), nullable=True)
    notes = Column(Text, nullable=True)

    # =========================================================================
    # ORDER DETAILS
    # =========================================================================
    items = Column(JSON, nullable=False)  # [{dishId, dishName, quantity, price, note}]

    # =========================================================================
    # TIMESTAMPS
    # =========================================================================
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)

    images = relationship(
        "OrderImage",
        order_by="OrderImage.id",
        cascade="all, delete-orphan",
        lazy="raise",
    )

    @property
    def image_urls(self) -> list[str]:
        return [image.url for image in self.images]

    def __repr__(self):
        return f"<Order #{self.id} - {self.customer_name}>"


class OrderImage(Base):
    """Meal photo attached to an order. Appending is a single INSERT."""
    __tablename__ = "order_images"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    order_id = Column(
        Integer,
        ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    url = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self):
        return f"<OrderImage #{self.id} for Order #{self.order_id}>"
