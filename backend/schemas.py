from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

StatusValue = Literal["pending_payment", "pending", "paid", "completed", "failed"]


class Bundle(BaseModel):
    id: str
    name: Optional[str] = None
    carrier: Optional[str] = None
    data: Optional[str] = None
    validity: Optional[str] = None
    price: float
    currency: str = "GHS"


class OrderItem(BaseModel):
    """Catalog fields copied into an order when it is placed."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: Optional[str] = None
    carrier: Optional[str] = None
    data: Optional[str] = None
    price: float
    quantity: int = Field(..., ge=1)


class Order(BaseModel):
    orderId: str
    userId: Optional[str] = None
    items: List[OrderItem]
    total: float
    currency: str = "GHS"
    phone: str
    email: Optional[str] = None
    name: Optional[str] = None
    status: StatusValue
    paymentReference: Optional[str] = None
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None


class CartLine(BaseModel):
    id: str
    quantity: float = 1


class CreateOrderRequest(BaseModel):
    items: List[CartLine] = []
    phone: Optional[str] = None
    name: Optional[str] = None
    email: Optional[str] = None


class CreateOrderResponse(BaseModel):
    success: bool = True
    message: str = "Order created. Proceed to payment."
    order: Order


class StatusUpdateRequest(BaseModel):
    status: Optional[str] = None


class PaymentInitializeRequest(BaseModel):
    orderId: Optional[str] = None
    email: Optional[str] = None
    amount: Optional[float] = None


class PaymentInitializeResponse(BaseModel):
    authorization_url: str
    access_code: Optional[str] = None


class UserPublic(BaseModel):
    id: str
    email: str
    name: Optional[str] = None
    phone: str


class SignupRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None
    name: Optional[str] = None
    phone: Optional[str] = None


class LoginRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class AuthResponse(BaseModel):
    token: str
    user: UserPublic


class MeResponse(BaseModel):
    user: UserPublic


class AdminLoginRequest(BaseModel):
    password: Optional[str] = None


class TokenResponse(BaseModel):
    token: str


class ContactRequest(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    message: Optional[str] = None


class SuccessResponse(BaseModel):
    success: bool = True
