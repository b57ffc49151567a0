import asyncio
from typing import Dict, Iterable, List, Optional

from repositories.base import BundleRepository
from schemas import Bundle, OrderItem

CARRIERS = ["MTN", "AirtelTigo", "Telecel"]


def _format_bundle(row: Dict) -> Bundle:
    return Bundle(
        id=str(row["id"]),
        name=row.get("name"),
        carrier=row.get("carrier"),
        data=row.get("data"),
        validity=row.get("validity"),
        price=float(row.get("price") or 0),
        currency=row.get("currency") or "GHS",
    )


def snapshot_item(bundle: Bundle, quantity: int) -> OrderItem:
    """Copy the catalog fields an order keeps, frozen at the price in effect now."""
    return OrderItem(
        id=bundle.id,
        name=bundle.name,
        carrier=bundle.carrier,
        data=bundle.data,
        price=bundle.price,
        quantity=quantity,
    )


class CatalogService:
    def __init__(self, repository: BundleRepository) -> None:
        self._repository = repository

    async def list_bundles(
        self,
        carrier: Optional[str] = None,
        validity: Optional[str] = None,
    ) -> List[Bundle]:
        rows = await asyncio.to_thread(
            self._repository.fetch_all, carrier=carrier, validity=validity
        )
        return [_format_bundle(row) for row in rows]

    async def resolve(self, bundle_ids: Iterable[str]) -> Dict[str, Bundle]:
        rows = await asyncio.to_thread(self._repository.fetch_many, list(bundle_ids))
        return {str(row["id"]): _format_bundle(row) for row in rows}

    @staticmethod
    def carriers() -> List[str]:
        return list(CARRIERS)
