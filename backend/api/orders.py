from typing import List, Optional

from fastapi import APIRouter, Depends, status

from auth import Identity, get_current_identity, get_optional_identity, require_admin
from dependencies import Services, get_services
from schemas import CreateOrderRequest, CreateOrderResponse, Order, StatusUpdateRequest

router = APIRouter(prefix="/api", tags=["orders"])


@router.post("/order", response_model=CreateOrderResponse, status_code=status.HTTP_201_CREATED)
async def create_order(
    payload: CreateOrderRequest,
    identity: Optional[Identity] = Depends(get_optional_identity),
    services: Services = Depends(get_services),
) -> CreateOrderResponse:
    order = await services.orders.create_order(
        payload.items,
        phone=payload.phone,
        email=payload.email,
        name=payload.name,
        identity=identity,
    )
    return CreateOrderResponse(order=order)


@router.get("/orders", response_model=List[Order])
async def list_orders(
    phone: Optional[str] = None,
    identity: Optional[Identity] = Depends(get_optional_identity),
    services: Services = Depends(get_services),
) -> List[Order]:
    return await services.orders.list_orders(identity, phone)


@router.get("/account/orders", response_model=List[Order])
async def list_account_orders(
    identity: Identity = Depends(get_current_identity),
    services: Services = Depends(get_services),
) -> List[Order]:
    return await services.orders.list_account_orders(identity)


@router.get("/orders/{order_id}", response_model=Order)
async def read_order(
    order_id: str,
    services: Services = Depends(get_services),
) -> Order:
    return await services.orders.get_order(order_id)


@router.patch("/orders/{order_id}", response_model=Order)
async def update_order_status(
    order_id: str,
    payload: StatusUpdateRequest,
    identity: Identity = Depends(require_admin),
    services: Services = Depends(get_services),
) -> Order:
    return await services.orders.update_status_as_admin(order_id, payload.status, identity)
