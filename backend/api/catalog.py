from typing import List, Optional

from fastapi import APIRouter, Depends

from dependencies import Services, get_services
from schemas import Bundle
from services.catalog_service import CatalogService

router = APIRouter(prefix="/api", tags=["catalog"])


@router.get("/bundles", response_model=List[Bundle])
async def list_bundles(
    carrier: Optional[str] = None,
    validity: Optional[str] = None,
    services: Services = Depends(get_services),
) -> List[Bundle]:
    return await services.catalog.list_bundles(carrier=carrier, validity=validity)


@router.get("/carriers", response_model=List[str])
async def list_carriers() -> List[str]:
    return CatalogService.carriers()
