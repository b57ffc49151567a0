import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Sequence

from auth import Identity
from errors import (
    Conflict,
    EmptyCart,
    Forbidden,
    InvalidPhone,
    InvalidStatus,
    NotFound,
    Unauthorized,
)
from lifecycle import (
    ORDER_STATUSES,
    OrderStatus,
    PaymentChannel,
    PaymentOutcome,
    allowed_sources,
    compute_total,
    line_quantity,
    new_order_id,
    normalize_phone,
    target_status,
)
from repositories.base import OrderRepository, UserRepository
from schemas import CartLine, Order, OrderItem
from services.catalog_service import CatalogService, snapshot_item
from services.notifier import Notifier

logger = logging.getLogger("datahub")

ORDER_ID_ATTEMPTS = 3


def format_order(row: Dict[str, Any]) -> Order:
    return Order(
        orderId=row["order_id"],
        userId=row.get("user_id"),
        items=[OrderItem(**item) for item in row.get("items") or []],
        total=float(row.get("total") or 0),
        currency=row.get("currency") or "GHS",
        phone=row["phone"],
        email=row.get("email"),
        name=row.get("name"),
        status=row["status"],
        paymentReference=row.get("payment_reference"),
        createdAt=row.get("created_at"),
        updatedAt=row.get("updated_at"),
    )


class OrderService:
    """
    Owns every status change an order goes through.

    Payment results reach ``apply_payment_outcome`` from the webhook and the
    redirect callback independently and possibly at the same time. Each call
    is one conditional update in the repository; the caller that loses the
    race sees the order already moved and returns it untouched, so the
    payment mail goes out once per order.
    """

    def __init__(
        self,
        orders: OrderRepository,
        users: UserRepository,
        catalog: CatalogService,
        notifier: Notifier,
        *,
        currency: str = "GHS",
    ) -> None:
        self._orders = orders
        self._users = users
        self._catalog = catalog
        self._notifier = notifier
        self.currency = currency

    def _notify(self, callback: Callable[..., None], *args: Any) -> None:
        try:
            callback(*args)
        except Exception:
            logger.exception("Notifier failed in %s", getattr(callback, "__name__", callback))

    async def _insert(self, record: Dict[str, Any]) -> Dict[str, Any]:
        for attempt in range(ORDER_ID_ATTEMPTS):
            try:
                return await asyncio.to_thread(self._orders.insert, record)
            except Conflict:
                if attempt == ORDER_ID_ATTEMPTS - 1:
                    raise
                logger.warning("Order id collision on %s, retrying", record["order_id"])
                record = {**record, "order_id": new_order_id()}

    async def create_order(
        self,
        lines: Sequence[CartLine],
        *,
        phone: Optional[str],
        email: Optional[str] = None,
        name: Optional[str] = None,
        identity: Optional[Identity] = None,
    ) -> Order:
        if not lines:
            raise EmptyCart("Cart is empty")
        phone_clean = normalize_phone(phone)
        if not phone_clean:
            raise InvalidPhone()

        bundles = await self._catalog.resolve(line.id for line in lines)
        items: List[OrderItem] = [
            snapshot_item(bundles[line.id], line_quantity(line.quantity))
            for line in lines
            if line.id in bundles
        ]
        if not items:
            raise EmptyCart()

        now = datetime.now(timezone.utc).isoformat()
        record = {
            "order_id": new_order_id(),
            "user_id": identity.user_id if identity and identity.is_account else None,
            "items": [item.model_dump() for item in items],
            "total": float(compute_total((item.price, item.quantity) for item in items)),
            "currency": self.currency,
            "phone": phone_clean,
            "email": email or None,
            "name": name or None,
            "status": OrderStatus.PENDING_PAYMENT.value,
            "payment_reference": None,
            "created_at": now,
            "updated_at": now,
        }
        order = format_order(await self._insert(record))
        logger.info("Order created order=%s total=%.2f items=%d", order.orderId, order.total, len(items))
        self._notify(self._notifier.order_created, order)
        return order

    async def get_order(self, order_id: str) -> Order:
        row = await asyncio.to_thread(self._orders.fetch, order_id)
        if not row:
            raise NotFound("Order not found")
        return format_order(row)

    async def apply_payment_outcome(
        self,
        order_id: str,
        outcome: PaymentOutcome,
        channel: PaymentChannel,
        reference: Optional[str] = None,
    ) -> Order:
        target = target_status(outcome)
        sources = [status.value for status in allowed_sources(outcome)]
        payment_reference = (reference or order_id) if target is OrderStatus.PAID else None

        change = await asyncio.to_thread(
            self._orders.compare_and_set_status,
            order_id,
            sources,
            target.value,
            payment_reference=payment_reference,
        )
        if change is None:
            current = await asyncio.to_thread(self._orders.fetch, order_id)
            if current is None:
                raise NotFound("Order not found")
            logger.debug(
                "Ignoring %s outcome for order=%s via %s: status is %s",
                outcome.value,
                order_id,
                channel.value,
                current.get("status"),
            )
            return format_order(current)

        order = format_order(change.row)
        logger.info("Order %s -> %s via %s", order_id, order.status, channel.value)
        if change.reference_written:
            self._notify(self._notifier.order_paid, order, order.paymentReference or order_id)
        elif target is OrderStatus.PAID:
            # Reference already stored by an earlier payment.
            logger.info("Order %s keeps payment reference %s", order_id, order.paymentReference)
        return order

    async def update_status_as_admin(
        self,
        order_id: str,
        new_status: Optional[str],
        identity: Optional[Identity],
    ) -> Order:
        if identity is None:
            raise Unauthorized("No admin token provided")
        if not identity.is_admin:
            raise Forbidden("Not an admin")
        if not new_status or new_status not in ORDER_STATUSES:
            raise InvalidStatus("Invalid status. Use: " + ", ".join(ORDER_STATUSES))
        row = await asyncio.to_thread(self._orders.set_status, order_id, new_status)
        if row is None:
            raise NotFound("Order not found")
        logger.info("Order %s set to %s by %s", order_id, new_status, identity.user_id)
        return format_order(row)

    async def list_orders(
        self,
        identity: Optional[Identity],
        phone: Optional[str] = None,
    ) -> List[Order]:
        if identity and identity.is_admin:
            rows = await asyncio.to_thread(self._orders.fetch_all)
            return [format_order(row) for row in rows]
        if identity:
            user = await asyncio.to_thread(self._users.fetch, identity.user_id)
            if user:
                return await self._orders_for_account(identity, user)
            logger.debug("Token for unknown user %s; falling back to phone lookup", identity.user_id)
        phone_clean = normalize_phone(phone)
        if not phone_clean:
            raise InvalidPhone("Phone number required to view orders")
        rows = await asyncio.to_thread(self._orders.fetch_for_owner, phone=phone_clean)
        return [format_order(row) for row in rows]

    async def list_account_orders(self, identity: Identity) -> List[Order]:
        """Orders owned by a signed-in customer, including guest orders placed with their phone."""
        user = None
        if identity.is_account:
            user = await asyncio.to_thread(self._users.fetch, identity.user_id)
        if not user:
            raise Unauthorized("User not found")
        return await self._orders_for_account(identity, user)

    async def _orders_for_account(self, identity: Identity, user: Dict[str, Any]) -> List[Order]:
        rows = await asyncio.to_thread(
            self._orders.fetch_for_owner,
            user_id=identity.user_id,
            phone=user.get("phone"),
        )
        return [format_order(row) for row in rows]
