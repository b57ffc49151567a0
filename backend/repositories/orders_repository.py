from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from postgrest.exceptions import APIError
from supabase import Client

from errors import Conflict

from .base import OrderRepository, OrderRow, StatusChange

TABLE_NAME = "orders"
UNIQUE_VIOLATION = "23505"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _first(response) -> Optional[OrderRow]:
    items = response.data or []
    return items[0] if items else None


class SupabaseOrderRepository(OrderRepository):
    def __init__(self, client: Client) -> None:
        self._client = client

    def _table(self):
        return self._client.table(TABLE_NAME)

    def insert(self, record: OrderRow) -> OrderRow:
        try:
            response = self._table().insert(record).execute()
        except APIError as exc:
            if exc.code == UNIQUE_VIOLATION:
                raise Conflict(f"Order {record.get('order_id')} already exists") from exc
            raise
        if not response.data:
            raise RuntimeError("Failed to store order")
        return response.data[0]

    def fetch(self, order_id: str) -> Optional[OrderRow]:
        response = (
            self._table()
            .select("*")
            .eq("order_id", order_id)
            .limit(1)
            .execute()
        )
        return _first(response)

    def fetch_all(self) -> List[OrderRow]:
        response = self._table().select("*").order("created_at", desc=True).execute()
        return response.data or []

    def fetch_for_owner(
        self,
        *,
        phone: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> List[OrderRow]:
        clauses = []
        if user_id:
            clauses.append(f"user_id.eq.{user_id}")
        if phone:
            clauses.append(f"phone.eq.{phone}")
        if not clauses:
            return []
        response = (
            self._table()
            .select("*")
            .or_(",".join(clauses))
            .order("created_at", desc=True)
            .execute()
        )
        return response.data or []

    def compare_and_set_status(
        self,
        order_id: str,
        expected: Iterable[str],
        new_status: str,
        *,
        payment_reference: Optional[str] = None,
    ) -> Optional[StatusChange]:
        expected_values = sorted(str(getattr(item, "value", item)) for item in expected)
        payload: Dict[str, Any] = {"status": new_status, "updated_at": _now()}

        def conditional_update(values: Dict[str, Any]):
            # One UPDATE ... WHERE; PostgREST returns only the rows it changed.
            return (
                self._table()
                .update(values)
                .eq("order_id", order_id)
                .in_("status", expected_values)
            )

        if payment_reference is None:
            row = _first(conditional_update(payload).execute())
            return StatusChange(row) if row else None

        # The reference only ever goes from NULL to set, so these two
        # updates cover disjoint rows and at most one of them applies.
        row = _first(
            conditional_update({**payload, "payment_reference": payment_reference})
            .is_("payment_reference", "null")
            .execute()
        )
        if row:
            return StatusChange(row, reference_written=True)
        row = _first(
            conditional_update(payload)
            .not_.is_("payment_reference", "null")
            .execute()
        )
        return StatusChange(row) if row else None

    def set_status(self, order_id: str, new_status: str) -> Optional[OrderRow]:
        response = (
            self._table()
            .update({"status": new_status, "updated_at": _now()})
            .eq("order_id", order_id)
            .execute()
        )
        return _first(response)
