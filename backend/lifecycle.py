"""
Order statuses, payment outcomes and the automatic transition table.

Payment confirmations arrive from two uncoordinated channels (the provider
webhook and the browser redirect callback). Both feed the same table, and the
repository applies each row as a single conditional update, so duplicate or
out-of-order deliveries converge on one state.
"""

from __future__ import annotations

import re
import secrets
import string
import time
from decimal import ROUND_FLOOR, ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Dict, FrozenSet, Iterable, Tuple


class OrderStatus(str, Enum):
    PENDING_PAYMENT = "pending_payment"
    PENDING = "pending"
    PAID = "paid"
    COMPLETED = "completed"
    FAILED = "failed"


class PaymentOutcome(str, Enum):
    SETTLED = "settled"
    PROCESSING = "processing"
    FAILED = "failed"


class PaymentChannel(str, Enum):
    WEBHOOK = "webhook"
    CALLBACK = "callback"


ORDER_STATUSES: Tuple[str, ...] = tuple(item.value for item in OrderStatus)

# outcome -> (statuses the order may currently be in, status it moves to)
AUTOMATIC_TRANSITIONS: Dict[PaymentOutcome, Tuple[FrozenSet[OrderStatus], OrderStatus]] = {
    PaymentOutcome.SETTLED: (
        frozenset({OrderStatus.PENDING_PAYMENT, OrderStatus.PENDING, OrderStatus.FAILED}),
        OrderStatus.PAID,
    ),
    PaymentOutcome.PROCESSING: (
        frozenset({OrderStatus.PENDING_PAYMENT}),
        OrderStatus.PENDING,
    ),
    PaymentOutcome.FAILED: (
        frozenset({OrderStatus.PENDING_PAYMENT, OrderStatus.PENDING}),
        OrderStatus.FAILED,
    ),
}

TERMINAL_FOR_AUTOMATION = frozenset({OrderStatus.PAID, OrderStatus.COMPLETED})

PROVIDER_SUCCESS_STATUSES = {"success"}
PROVIDER_IN_FLIGHT_STATUSES = {"pending", "ongoing", "processing", "queued"}

PHONE_PATTERN = re.compile(r"^0\d{9}$")
TWO_PLACES = Decimal("0.01")
_ID_ALPHABET = string.ascii_uppercase + string.digits


def allowed_sources(outcome: PaymentOutcome) -> FrozenSet[OrderStatus]:
    return AUTOMATIC_TRANSITIONS[outcome][0]


def target_status(outcome: PaymentOutcome) -> OrderStatus:
    return AUTOMATIC_TRANSITIONS[outcome][1]


def outcome_from_provider_status(value: str | None) -> PaymentOutcome:
    text = str(value or "").strip().lower()
    if text in PROVIDER_SUCCESS_STATUSES:
        return PaymentOutcome.SETTLED
    if text in PROVIDER_IN_FLIGHT_STATUSES:
        return PaymentOutcome.PROCESSING
    return PaymentOutcome.FAILED


def normalize_phone(value: str | None) -> str | None:
    """Strip whitespace and return the 10-digit local number, or None when malformed."""
    if value is None:
        return None
    cleaned = re.sub(r"\s", "", str(value))
    if PHONE_PATTERN.fullmatch(cleaned):
        return cleaned
    return None


def round_money(value: Decimal) -> Decimal:
    # Half-up to two places: 0.125 -> 0.13.
    return value.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def line_quantity(value) -> int:
    try:
        quantity = int(Decimal(str(value)).to_integral_value(rounding=ROUND_FLOOR))
    except (ArithmeticError, TypeError, ValueError):
        return 1
    return max(1, quantity)


def compute_total(lines: Iterable[Tuple[float | Decimal, int]]) -> Decimal:
    """Sum ``price * quantity`` pairs and round the result to two places."""
    total = Decimal("0")
    for price, quantity in lines:
        total += Decimal(str(price)) * quantity
    return round_money(total)


def to_minor_units(amount: float | Decimal) -> int:
    return int((Decimal(str(amount)) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _random_suffix(length: int) -> str:
    return "".join(secrets.choice(_ID_ALPHABET) for _ in range(length))


def new_order_id() -> str:
    return f"ORD-{int(time.time() * 1000)}-{_random_suffix(6)}"


def new_user_id() -> str:
    return f"usr_{int(time.time() * 1000)}_{_random_suffix(8).lower()}"
