"""
Best-effort order mail.

Notifications are scheduled as background tasks and never raise into the
caller: a failed or slow SMTP server must not hold up an order transition.
"""

import asyncio
import html
import logging
from email.message import EmailMessage
from typing import List, Optional, Set

import aiosmtplib

from schemas import Order

logger = logging.getLogger("datahub")

BRAND = "IdealDataHub"


class Notifier:
    """No-op notifier, used when mail is not configured."""

    enabled = False

    def order_created(self, order: Order) -> None:
        logger.debug("Mail disabled; skipping order-created mail for %s", order.orderId)

    def order_paid(self, order: Order, reference: str) -> None:
        logger.debug("Mail disabled; skipping payment mail for %s", order.orderId)

    async def send_contact_message(self, name: str, email: str, message: str) -> bool:
        return False

    async def drain(self) -> None:
        return None


def _items_text(order: Order) -> str:
    lines = []
    for item in order.items:
        line_total = item.price * item.quantity
        lines.append(f"• {item.name or item.id} × {item.quantity} — {order.currency} {line_total:.2f}")
    return "\n".join(lines)


def _field(value: Optional[str]) -> str:
    return html.escape(value) if value else "—"


def render_order_created(order: Order) -> str:
    return (
        f"<h2>New Order: {html.escape(order.orderId)}</h2>"
        f"<p><strong>Status:</strong> {order.status}</p>"
        f"<p><strong>Customer:</strong> {_field(order.name)}</p>"
        f"<p><strong>Phone:</strong> {_field(order.phone)}</p>"
        f"<p><strong>Email:</strong> {_field(order.email)}</p>"
        f"<p><strong>Items:</strong></p><pre>{html.escape(_items_text(order))}</pre>"
        f"<p><strong>Total:</strong> {order.currency} {order.total:.2f}</p>"
        f"<p><strong>Date:</strong> {order.createdAt}</p>"
    )


def render_payment_received(order: Order, reference: str) -> str:
    return (
        "<h2>Payment Received</h2>"
        f"<p><strong>Order ID:</strong> {html.escape(order.orderId)}</p>"
        f"<p><strong>Payment Ref:</strong> {html.escape(reference)}</p>"
        f"<p><strong>Customer:</strong> {_field(order.name)}</p>"
        f"<p><strong>Phone:</strong> {_field(order.phone)}</p>"
        f"<p><strong>Email:</strong> {_field(order.email)}</p>"
        f"<pre>{html.escape(_items_text(order))}</pre>"
        f"<p><strong>Total:</strong> {order.currency} {order.total:.2f}</p>"
    )


def render_payment_confirmation(order: Order, reference: str) -> str:
    return (
        "<h2>Payment Successful</h2>"
        f"<p>Hello {html.escape(order.name or 'Customer')},</p>"
        "<p>Your payment was successful.</p>"
        f"<p><strong>Order ID:</strong> {html.escape(order.orderId)}</p>"
        f"<p><strong>Payment Reference:</strong> {html.escape(reference)}</p>"
        f"<pre>{html.escape(_items_text(order))}</pre>"
        f"<p><strong>Total Paid:</strong> {order.currency} {order.total:.2f}</p>"
        f"<p>Your data will be delivered shortly. Thank you for choosing {BRAND}.</p>"
    )


class EmailNotifier(Notifier):
    enabled = True

    def __init__(
        self,
        *,
        host: str,
        port: int,
        username: str,
        password: str,
        operator_address: Optional[str] = None,
    ) -> None:
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.operator_address = operator_address or username
        self._tasks: Set[asyncio.Task] = set()

    def _build(self, to: str, subject: str, body: str, reply_to: Optional[str] = None) -> EmailMessage:
        message = EmailMessage()
        message["From"] = self.username
        message["To"] = to
        message["Subject"] = subject
        if reply_to:
            message["Reply-To"] = reply_to
        message.set_content("This message requires an HTML capable mail client.")
        message.add_alternative(body, subtype="html")
        return message

    async def _deliver(self, message: EmailMessage) -> bool:
        try:
            await aiosmtplib.send(
                message,
                hostname=self.host,
                port=self.port,
                username=self.username,
                password=self.password,
                use_tls=self.port == 465,
                start_tls=self.port == 587,
                timeout=20,
            )
        except Exception as exc:
            logger.warning("Email failed subject=%r: %s", message["Subject"], exc)
            return False
        logger.info("Email sent subject=%r", message["Subject"])
        return True

    def _dispatch(self, messages: List[EmailMessage]) -> None:
        for message in messages:
            task = asyncio.create_task(self._deliver(message))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

    def order_created(self, order: Order) -> None:
        self._dispatch(
            [
                self._build(
                    self.operator_address,
                    f"[{BRAND}] New Order {order.orderId}",
                    render_order_created(order),
                )
            ]
        )

    def order_paid(self, order: Order, reference: str) -> None:
        messages = [
            self._build(
                self.operator_address,
                f"[{BRAND}] Payment Received — {order.orderId}",
                render_payment_received(order, reference),
            )
        ]
        if order.email:
            messages.append(
                self._build(
                    order.email,
                    f"Payment Confirmation — {order.orderId}",
                    render_payment_confirmation(order, reference),
                )
            )
        self._dispatch(messages)

    async def send_contact_message(self, name: str, email: str, message: str) -> bool:
        body = (
            f"<h2>Contact form — {BRAND}</h2>"
            f"<p><strong>From:</strong> {html.escape(name)}</p>"
            f"<p><strong>Email:</strong> {html.escape(email)}</p>"
            f"<p><strong>Message:</strong></p><pre>{html.escape(message)}</pre>"
        )
        return await self._deliver(
            self._build(
                self.operator_address,
                f"[{BRAND}] Contact from {name}",
                body,
                reply_to=email,
            )
        )

    async def drain(self) -> None:
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
