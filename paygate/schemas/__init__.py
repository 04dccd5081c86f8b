"""Pydantic schemas used across the project."""
from datetime import datetime
from decimal import Decimal
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field


class OrderResponse(BaseModel):
    order_id: str
    status: str
    amount_usd: Decimal
    currency: str
    email: Optional[str] = None
    telegram_handle: str = ""
    timestamp: str = ""
    payment_address: Optional[str] = None
    crypto_amount: Optional[Decimal] = None
    crypto_price: Optional[Decimal] = None
    network: Optional[str] = None
    tx_reference: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class AdminOrderResponse(OrderResponse):
    user_ip: str = "Unknown"
    user_country: str = "Unknown"
    user_agent: str = ""


class ProbeResponse(BaseModel):
    status: str
    tx_reference: Optional[str] = None
    checked_at: datetime


class LifecycleResponse(BaseModel):
    order_id: str
    status: str
    remaining_seconds: int
    policy: Optional[str] = None
    tx_reference: Optional[str] = None
    last_probe: Optional[ProbeResponse] = None
    error: Optional[str] = None
    retry: bool = False


class CheckoutResponse(LifecycleResponse):
    order: OrderResponse
    qr_payload: Optional[str] = None


class SessionCreateRequest(BaseModel):
    data: Optional[str] = None
    token: Optional[str] = None
    orderId: Optional[str] = None
    amount: Optional[str] = None
    currency: Optional[str] = None
    email: Optional[str] = None
    telegram: Optional[str] = None
    timestamp: Optional[str] = None


class SessionResponse(BaseModel):
    session_id: str
    order_id: str
    expires_at: datetime


class AdminLoginRequest(BaseModel):
    username: str = Field(..., min_length=3, max_length=50)
    password: str = Field(..., min_length=6)


class AdminLoginResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    username: str


class AdminStatusUpdate(BaseModel):
    status: Literal["confirmed", "failed", "expired"]
    tx_reference: Optional[str] = None


class OrderListResponse(BaseModel):
    total: int
    orders: list[AdminOrderResponse] = Field(default_factory=list)


class OrderStatsResponse(BaseModel):
    total: int = 0
    pending: int = 0
    confirmed: int = 0
    expired: int = 0
    error: int = 0
    failed: int = 0
    confirmed_revenue_usd: Decimal = Decimal("0")


class SweepResponse(BaseModel):
    removed: int


class SuccessResponse(BaseModel):
    success: bool = True
    message: str = "操作成功"
    data: Optional[Any] = None
