from typing import Any, Dict, Iterable, List, Optional

from supabase import Client

from .base import BundleRepository

TABLE_NAME = "bundles"


class SupabaseBundleRepository(BundleRepository):
    def __init__(self, client: Client) -> None:
        self._client = client

    def fetch_all(
        self,
        *,
        carrier: Optional[str] = None,
        validity: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        query = self._client.table(TABLE_NAME).select("*")
        if carrier:
            query = query.eq("carrier", carrier)
        if validity:
            query = query.ilike("validity", f"%{validity}%")
        response = query.order("price").execute()
        return response.data or []

    def fetch_many(self, bundle_ids: Iterable[str]) -> List[Dict[str, Any]]:
        ids = sorted({str(item) for item in bundle_ids})
        if not ids:
            return []
        response = self._client.table(TABLE_NAME).select("*").in_("id", ids).execute()
        return response.data or []
