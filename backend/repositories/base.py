"""
Repository contracts shared by the supabase and in-memory backends.

Rows are plain dicts using the table's snake_case column names. Methods are
synchronous; services call them through ``asyncio.to_thread``.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, NamedTuple, Optional

OrderRow = Dict[str, Any]


class StatusChange(NamedTuple):
    row: OrderRow
    reference_written: bool = False


class OrderRepository(ABC):
    @abstractmethod
    def insert(self, record: OrderRow) -> OrderRow:
        """Store a new order. Raises ``errors.Conflict`` if the order id is taken."""

    @abstractmethod
    def fetch(self, order_id: str) -> Optional[OrderRow]:
        pass

    @abstractmethod
    def fetch_all(self) -> List[OrderRow]:
        """All orders, newest first."""

    @abstractmethod
    def fetch_for_owner(
        self,
        *,
        phone: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> List[OrderRow]:
        """Orders matching the user id OR the phone, newest first."""

    @abstractmethod
    def compare_and_set_status(
        self,
        order_id: str,
        expected: Iterable[str],
        new_status: str,
        *,
        payment_reference: Optional[str] = None,
    ) -> Optional[StatusChange]:
        """
        Atomically move ``order_id`` to ``new_status`` if its current status is
        one of ``expected``.

        ``payment_reference`` is stored only when the order has none yet; a
        stored reference is never replaced. ``reference_written`` tells the
        caller whether this call stored it. Returns None when the status
        precondition did not hold (or the order does not exist).
        """

    @abstractmethod
    def set_status(self, order_id: str, new_status: str) -> Optional[OrderRow]:
        """Unconditional status overwrite. Returns None for an unknown order."""


class UserRepository(ABC):
    @abstractmethod
    def insert(self, record: Dict[str, Any]) -> Dict[str, Any]:
        """Raises ``errors.Conflict`` on a duplicate email or phone."""

    @abstractmethod
    def fetch(self, user_id: str) -> Optional[Dict[str, Any]]:
        pass

    @abstractmethod
    def fetch_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        pass

    @abstractmethod
    def fetch_by_phone(self, phone: str) -> Optional[Dict[str, Any]]:
        pass


class BundleRepository(ABC):
    @abstractmethod
    def fetch_all(
        self,
        *,
        carrier: Optional[str] = None,
        validity: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        pass

    @abstractmethod
    def fetch_many(self, bundle_ids: Iterable[str]) -> List[Dict[str, Any]]:
        pass
