"""
Cart State and Order History

In-memory, per-session derived state:

    CartState         - dishes and quantities being assembled before submission
    OrderHistoryView  - orders re-read from the store with recomputed totals

Neither owns persistent data. Totals are computed in integer cents.

Author: Khalil Bannouri
Version: 1.0.0
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from foodcart.pricing import from_cents, sum_lines, to_cents, to_money
from foodcart.repositories.orders import OrderRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DishSnapshot:
    """Copy of a dish taken when it was put in the cart."""
    id: int
    name: str
    price: Decimal
    description: str = ""
    image: str = ""
    category_ids: tuple[str, ...] = ()

    @classmethod
    def create(cls, id: int, name: str, price: Any, **extra: Any) -> "DishSnapshot":
        return cls(id=id, name=name, price=to_money(price), **extra)


@dataclass
class CartItem:
    dish: DishSnapshot
    quantity: int = 1

    @property
    def subtotal(self) -> Decimal:
        return from_cents(to_cents(self.dish.price) * self.quantity)


class CartState:
    """
    Shopping cart for one browsing session.

    Example:
        >>> cart = CartState()
        >>> cart.add_item(DishSnapshot.create(1, "Pizza", "10.00"))
        >>> cart.add_item(DishSnapshot.create(1, "Pizza", "10.00"))
        >>> cart.total()
        Decimal('20.00')
    """

    def __init__(self) -> None:
        self._items: list[CartItem] = []

    @property
    def items(self) -> list[CartItem]:
        return list(self._items)

    def _find(self, dish_id: int) -> Optional[CartItem]:
        return next((item for item in self._items if item.dish.id == dish_id), None)

    def add_item(self, dish: DishSnapshot) -> None:
        """Add one of a dish, incrementing if it is already in the cart."""
        existing = self._find(dish.id)
        if existing:
            existing.quantity += 1
        else:
            self._items.append(CartItem(dish=dish, quantity=1))

    def remove_item(self, dish_id: int) -> None:
        """Drop a dish from the cart. Unknown ids are ignored."""
        self._items = [item for item in self._items if item.dish.id != dish_id]

    def set_quantity(self, dish_id: int, quantity: int) -> None:
        """Replace a quantity; anything below 1 removes the dish."""
        if quantity < 1:
            self.remove_item(dish_id)
            return
        existing = self._find(dish_id)
        if existing:
            existing.quantity = quantity

    def clear(self) -> None:
        self._items = []

    def is_empty(self) -> bool:
        return not self._items

    def item_count(self) -> int:
        return sum(item.quantity for item in self._items)

    def total(self) -> Decimal:
        return sum_lines((item.dish.price, item.quantity) for item in self._items)

    def to_order_items(self) -> list[dict[str, Any]]:
        """Payload for OrderService.submit_order()."""
        return [
            {
                "dishId": item.dish.id,
                "dishName": item.dish.name,
                "quantity": item.quantity,
                "price": item.dish.price,
                "note": "",
            }
            for item in self._items
        ]


# =============================================================================
# ORDER HISTORY
# =============================================================================

@dataclass
class HistoryLine:
    dish_id: Optional[int]
    dish_name: str
    quantity: int
    price: Decimal
    note: str = ""

    @property
    def subtotal(self) -> Decimal:
        return from_cents(to_cents(self.price) * self.quantity)


@dataclass
class HistoryEntry:
    """One order as shown in the history list."""
    id: int
    customer_name: str
    customer_email: Optional[str]
    notes: str
    created_at: Optional[datetime]
    lines: list[HistoryLine] = field(default_factory=list)
    images: list[str] = field(default_factory=list)

    @property
    def total(self) -> Decimal:
        """Sum of line subtotals; no stored total is trusted."""
        return sum_lines((line.price, line.quantity) for line in self.lines)


def history_entry_from_order(order: Any) -> HistoryEntry:
    """Build a history entry from a loaded Order row."""
    lines = [
        HistoryLine(
            dish_id=item.get("dishId"),
            dish_name=item.get("dishName", ""),
            quantity=int(item.get("quantity", 0)),
            price=to_money(item.get("price", 0)),
            note=item.get("note") or "",
        )
        for item in (order.items or [])
    ]
    return HistoryEntry(
        id=order.id,
        customer_name=order.customer_name,
        customer_email=order.customer_email,
        notes=order.notes or "",
        created_at=order.created_at,
        lines=lines,
        images=order.image_urls,
    )


class OrderHistoryView:
    """Order list re-derived from the store on every refresh."""

    def __init__(self, repository: OrderRepository):
        self.repository = repository
        self.entries: list[HistoryEntry] = []

    async def fetch_history(self) -> list[HistoryEntry]:
        orders = await self.repository.list_all()
        self.entries = [history_entry_from_order(order) for order in orders]
        logger.debug(f"Order history refreshed: {len(self.entries)} orders")
        return self.entries

    def find(self, order_id: int) -> Optional[HistoryEntry]:
        return next((entry for entry in self.entries if entry.id == order_id), None)
