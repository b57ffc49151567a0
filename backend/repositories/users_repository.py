from typing import Any, Dict, Optional

from postgrest.exceptions import APIError
from supabase import Client

from errors import Conflict

from .base import UserRepository

TABLE_NAME = "users"
UNIQUE_VIOLATION = "23505"


class SupabaseUserRepository(UserRepository):
    def __init__(self, client: Client) -> None:
        self._client = client

    def _fetch_one(self, column: str, value: str) -> Optional[Dict[str, Any]]:
        response = (
            self._client.table(TABLE_NAME)
            .select("*")
            .eq(column, value)
            .limit(1)
            .execute()
        )
        items = response.data or []
        return items[0] if items else None

    def insert(self, record: Dict[str, Any]) -> Dict[str, Any]:
        try:
            response = self._client.table(TABLE_NAME).insert(record).execute()
        except APIError as exc:
            if exc.code == UNIQUE_VIOLATION:
                raise Conflict("An account with these details already exists") from exc
            raise
        if not response.data:
            raise RuntimeError("Failed to store user")
        return response.data[0]

    def fetch(self, user_id: str) -> Optional[Dict[str, Any]]:
        return self._fetch_one("id", user_id)

    def fetch_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        return self._fetch_one("email", email)

    def fetch_by_phone(self, phone: str) -> Optional[Dict[str, Any]]:
        return self._fetch_one("phone", phone)
