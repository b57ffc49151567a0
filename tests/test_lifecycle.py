"""Unit tests for order statuses, totals, phone rules and the transition table."""

from decimal import Decimal

import pytest

from lifecycle import (
    OrderStatus,
    PaymentOutcome,
    TERMINAL_FOR_AUTOMATION,
    allowed_sources,
    compute_total,
    line_quantity,
    new_order_id,
    normalize_phone,
    outcome_from_provider_status,
    target_status,
    to_minor_units,
)


class TestTotals:
    def test_cart_total(self):
        assert compute_total([(12.50, 2), (5.00, 1)]) == Decimal("30.00")

    def test_total_rounds_half_up(self):
        assert compute_total([(0.125, 1)]) == Decimal("0.13")
        assert compute_total([(0.005, 1)]) == Decimal("0.01")

    def test_float_prices_do_not_drift(self):
        assert compute_total([(0.1, 1), (0.2, 1)]) == Decimal("0.30")
        assert compute_total([(19.99, 3)]) == Decimal("59.97")

    @pytest.mark.parametrize(
        "raw, expected",
        [(1, 1), (2.9, 2), (0, 1), (-3, 1), ("4", 4), (None, 1), ("abc", 1)],
    )
    def test_line_quantity(self, raw, expected):
        assert line_quantity(raw) == expected

    def test_minor_units(self):
        assert to_minor_units(30.0) == 3000
        assert to_minor_units(19.99) == 1999
        assert to_minor_units(0.285) == 29


class TestPhone:
    def test_valid_local_number(self):
        assert normalize_phone("0241234567") == "0241234567"

    def test_whitespace_is_removed(self):
        assert normalize_phone(" 024 123 4567 ") == "0241234567"

    @pytest.mark.parametrize("value", ["241234567", "02412345678", "1241234567", "02412a4567", "", None])
    def test_invalid_numbers(self, value):
        assert normalize_phone(value) is None


class TestTransitions:
    def test_settled_moves_open_and_failed_orders_to_paid(self):
        assert target_status(PaymentOutcome.SETTLED) is OrderStatus.PAID
        assert allowed_sources(PaymentOutcome.SETTLED) == {
            OrderStatus.PENDING_PAYMENT,
            OrderStatus.PENDING,
            OrderStatus.FAILED,
        }

    def test_processing_only_leaves_pending_payment(self):
        assert target_status(PaymentOutcome.PROCESSING) is OrderStatus.PENDING
        assert allowed_sources(PaymentOutcome.PROCESSING) == {OrderStatus.PENDING_PAYMENT}

    def test_failed_never_reopens_a_failed_order(self):
        assert target_status(PaymentOutcome.FAILED) is OrderStatus.FAILED
        assert OrderStatus.FAILED not in allowed_sources(PaymentOutcome.FAILED)

    def test_terminal_states_are_never_a_source(self):
        for outcome in PaymentOutcome:
            assert not (allowed_sources(outcome) & TERMINAL_FOR_AUTOMATION)

    def test_nothing_returns_to_pending_payment(self):
        for outcome in PaymentOutcome:
            assert target_status(outcome) is not OrderStatus.PENDING_PAYMENT

    @pytest.mark.parametrize(
        "provider_status, outcome",
        [
            ("success", PaymentOutcome.SETTLED),
            ("SUCCESS", PaymentOutcome.SETTLED),
            ("pending", PaymentOutcome.PROCESSING),
            ("ongoing", PaymentOutcome.PROCESSING),
            ("processing", PaymentOutcome.PROCESSING),
            ("queued", PaymentOutcome.PROCESSING),
            ("abandoned", PaymentOutcome.FAILED),
            ("failed", PaymentOutcome.FAILED),
            ("reversed", PaymentOutcome.FAILED),
            (None, PaymentOutcome.FAILED),
        ],
    )
    def test_provider_status_mapping(self, provider_status, outcome):
        assert outcome_from_provider_status(provider_status) is outcome


def test_order_ids_are_unique():
    ids = {new_order_id() for _ in range(500)}
    assert len(ids) == 500
    assert all(order_id.startswith("ORD-") for order_id in ids)
