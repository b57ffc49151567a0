"""
In-memory repositories for local runs and tests.

Every method holds a single lock for its whole read-decide-write sequence, so
``compare_and_set_status`` is atomic across threads the same way a conditional
UPDATE is atomic in the database.
"""

import copy
import itertools
import json
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from errors import Conflict

from .base import BundleRepository, OrderRepository, OrderRow, StatusChange, UserRepository


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class InMemoryOrderRepository(OrderRepository):
    def __init__(self) -> None:
        self._rows: Dict[str, OrderRow] = {}
        self._sequence: Dict[str, int] = {}
        self._counter = itertools.count()
        self._lock = threading.RLock()

    def _newest_first(self, rows: Iterable[OrderRow]) -> List[OrderRow]:
        ordered = sorted(
            rows,
            key=lambda row: (row.get("created_at") or "", self._sequence[row["order_id"]]),
            reverse=True,
        )
        return [copy.deepcopy(row) for row in ordered]

    def insert(self, record: OrderRow) -> OrderRow:
        with self._lock:
            order_id = record["order_id"]
            if order_id in self._rows:
                raise Conflict(f"Order {order_id} already exists")
            row = copy.deepcopy(record)
            row.setdefault("created_at", _now())
            row.setdefault("updated_at", row["created_at"])
            self._rows[order_id] = row
            self._sequence[order_id] = next(self._counter)
            return copy.deepcopy(row)

    def fetch(self, order_id: str) -> Optional[OrderRow]:
        with self._lock:
            row = self._rows.get(order_id)
            return copy.deepcopy(row) if row else None

    def fetch_all(self) -> List[OrderRow]:
        with self._lock:
            return self._newest_first(self._rows.values())

    def fetch_for_owner(
        self,
        *,
        phone: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> List[OrderRow]:
        with self._lock:
            matches = [
                row
                for row in self._rows.values()
                if (user_id and row.get("user_id") == user_id)
                or (phone and row.get("phone") == phone)
            ]
            return self._newest_first(matches)

    def compare_and_set_status(
        self,
        order_id: str,
        expected: Iterable[str],
        new_status: str,
        *,
        payment_reference: Optional[str] = None,
    ) -> Optional[StatusChange]:
        expected_values = {str(getattr(item, "value", item)) for item in expected}
        with self._lock:
            row = self._rows.get(order_id)
            if row is None or row.get("status") not in expected_values:
                return None
            reference_written = payment_reference is not None and not row.get("payment_reference")
            if reference_written:
                row["payment_reference"] = payment_reference
            row["status"] = new_status
            row["updated_at"] = _now()
            return StatusChange(copy.deepcopy(row), reference_written)

    def set_status(self, order_id: str, new_status: str) -> Optional[OrderRow]:
        with self._lock:
            row = self._rows.get(order_id)
            if row is None:
                return None
            row["status"] = new_status
            row["updated_at"] = _now()
            return copy.deepcopy(row)


class InMemoryUserRepository(UserRepository):
    def __init__(self) -> None:
        self._rows: Dict[str, Dict[str, Any]] = {}
        self._lock = threading.RLock()

    def _find(self, column: str, value: str) -> Optional[Dict[str, Any]]:
        for row in self._rows.values():
            if row.get(column) == value:
                return copy.deepcopy(row)
        return None

    def insert(self, record: Dict[str, Any]) -> Dict[str, Any]:
        with self._lock:
            for column in ("id", "email", "phone"):
                if self._find(column, record[column]):
                    raise Conflict(f"An account with this {column} already exists")
            row = copy.deepcopy(record)
            row.setdefault("created_at", _now())
            row.setdefault("updated_at", row["created_at"])
            self._rows[row["id"]] = row
            return copy.deepcopy(row)

    def fetch(self, user_id: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            row = self._rows.get(user_id)
            return copy.deepcopy(row) if row else None

    def fetch_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            return self._find("email", email)

    def fetch_by_phone(self, phone: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            return self._find("phone", phone)


class InMemoryBundleRepository(BundleRepository):
    def __init__(self, bundles: Optional[Iterable[Dict[str, Any]]] = None) -> None:
        self._rows: Dict[str, Dict[str, Any]] = {}
        self._lock = threading.RLock()
        for bundle in bundles or []:
            self.upsert(bundle)

    @classmethod
    def from_file(cls, path: str) -> "InMemoryBundleRepository":
        raw = json.loads(Path(path).read_text(encoding="utf-8"))
        return cls(item for item in raw if item.get("id"))

    def upsert(self, bundle: Dict[str, Any]) -> None:
        with self._lock:
            self._rows[str(bundle["id"])] = {**copy.deepcopy(bundle), "id": str(bundle["id"])}

    def fetch_all(
        self,
        *,
        carrier: Optional[str] = None,
        validity: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        with self._lock:
            rows = list(self._rows.values())
        if carrier:
            rows = [row for row in rows if row.get("carrier") == carrier]
        if validity:
            needle = validity.lower()
            rows = [row for row in rows if needle in str(row.get("validity") or "").lower()]
        return [copy.deepcopy(row) for row in sorted(rows, key=lambda row: row.get("price") or 0)]

    def fetch_many(self, bundle_ids: Iterable[str]) -> List[Dict[str, Any]]:
        with self._lock:
            return [
                copy.deepcopy(self._rows[str(item)])
                for item in dict.fromkeys(bundle_ids)
                if str(item) in self._rows
            ]
