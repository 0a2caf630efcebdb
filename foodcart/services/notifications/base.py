"""
Notification Service Abstract Base Class

Defines the interface for sending new-order emails.
Supports both Mock (development) and Real (production) implementations.

Author: Khalil Bannouri
Version: 1.0.0
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from jinja2 import Environment, PackageLoader, select_autoescape

from foodcart.core.config import get_settings
from foodcart.pricing import to_money

_templates = Environment(
    loader=PackageLoader("foodcart", "templates"),
    autoescape=select_autoescape(["html"]),
)


@dataclass
class NotificationResult:
    """Result from sending a notification."""
    success: bool
    message_id: Optional[str] = None
    error_message: Optional[str] = None
    provider: str = "unknown"


@dataclass
class OrderNotification:
    """Everything the new-order email shows."""
    order_id: int
    customer_name: str
    items: list[dict[str, Any]]
    customer_email: Optional[str] = None
    notes: Optional[str] = None
    created_at: datetime = field(default_factory=datetime.now)

    @property
    def total(self) -> Decimal:
        return sum((line["subtotal"] for line in self.lines()), Decimal("0.00"))

    def lines(self) -> list[dict[str, Any]]:
        rows = []
        for item in self.items:
            price = to_money(item.get("price", 0))
            quantity = int(item.get("quantity", 0))
            rows.append({
                "name": item.get("dishName", ""),
                "quantity": quantity,
                "price": price,
                "subtotal": price * quantity,
                "note": item.get("note") or "",
            })
        return rows


def render_order_email(notification: OrderNotification) -> tuple[str, str, str]:
    """
    Build the new-order email.

    Returns:
        (subject, html body, plain-text body)
    """
    settings = get_settings()
    lines = notification.lines()

    html = _templates.get_template("order_email.html").render(
        order_id=notification.order_id,
        customer_name=notification.customer_name,
        customer_email=notification.customer_email,
        notes=notification.notes,
        created_at=notification.created_at.strftime("%Y-%m-%d %H:%M"),
        lines=lines,
        total=notification.total,
        currency=settings.currency_symbol,
        restaurant_name=settings.restaurant_name,
    )

    text_lines = [
        f"New order #{notification.order_id} from {notification.customer_name}",
    ]
    text_lines += [
        f"- {line['name']} x{line['quantity']}: {settings.currency_symbol}{line['subtotal']}"
        for line in lines
    ]
    text_lines.append(f"Total: {settings.currency_symbol}{notification.total}")
    if notification.notes:
        text_lines.append(f"Notes: {notification.notes}")

    subject = f"New order - from {notification.customer_name}"
    return subject, html, "\n".join(text_lines)


class BaseNotificationService(ABC):
    """Abstract base class for notification services."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the provider name."""
        pass

    @abstractmethod
    async def send_email(
        self,
        to_email: str,
        subject: str,
        body_html: str,
        body_text: Optional[str] = None,
    ) -> NotificationResult:
        """Send an email."""
        pass

    async def send_order_notification(self, notification: OrderNotification) -> NotificationResult:
        """Email the restaurant about a new order."""
        subject, html, text = render_order_email(notification)
        return await self.send_email(
            to_email=get_settings().notification_recipient,
            subject=subject,
            body_html=html,
            body_text=text,
        )

    @abstractmethod
    async def health_check(self) -> bool:
        """Check service connectivity."""
        pass
