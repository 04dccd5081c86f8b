"""Order domain models."""

from __future__ import annotations

import secrets
import string
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

ORDER_ID_PREFIX = "CRY"
_RAND_ALPHABET = string.digits + string.ascii_uppercase


class OrderStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    EXPIRED = "expired"
    ERROR = "error"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self is not OrderStatus.PENDING


TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PENDING: frozenset(
        {OrderStatus.CONFIRMED, OrderStatus.EXPIRED, OrderStatus.ERROR, OrderStatus.FAILED}
    ),
}


def can_transition(current: OrderStatus, new: OrderStatus) -> bool:
    return new in TRANSITIONS.get(current, frozenset())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def generate_order_id(now: Optional[datetime] = None) -> str:
    """Build an id shaped like ``CRY-20240101-000000-AB12``."""
    now = now or utcnow()
    suffix = "".join(secrets.choice(_RAND_ALPHABET) for _ in range(4))
    return f"{ORDER_ID_PREFIX}-{now:%Y%m%d}-{now:%H%M%S}-{suffix}"


@dataclass(frozen=True, slots=True)
class OrderData:
    order_id: str
    amount_usd: Decimal
    currency: str
    telegram_handle: str = ""
    timestamp: str = ""
    email: Optional[str] = None
    payment_address: Optional[str] = None
    crypto_amount: Optional[Decimal] = None
    network: Optional[str] = None

    def with_payment(self, *, payment_address: str, crypto_amount: Decimal) -> "OrderData":
        return replace(self, payment_address=payment_address, crypto_amount=crypto_amount)

    def to_payload(self) -> dict[str, Any]:
        """Canonical camelCase mapping, as carried in sessions and notifications."""
        return {
            "orderId": self.order_id,
            "usdAmount": str(self.amount_usd),
            "currency": self.currency,
            "email": self.email,
            "telegramHandle": self.telegram_handle,
            "timestamp": self.timestamp,
            "paymentAddress": self.payment_address,
            "cryptoAmount": _decimal_to_str(self.crypto_amount),
            "network": self.network,
        }


@dataclass(slots=True)
class OrderRecord:
    order: OrderData
    status: OrderStatus = OrderStatus.PENDING
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    tx_reference: Optional[str] = None
    crypto_price: Optional[Decimal] = None
    user_ip: str = "Unknown"
    user_country: str = "Unknown"
    user_agent: str = ""

    @property
    def order_id(self) -> str:
        return self.order.order_id

    def to_dict(self) -> dict[str, Any]:
        order = self.order
        return {
            "orderId": order.order_id,
            "amountUsd": str(order.amount_usd),
            "currency": order.currency,
            "email": order.email,
            "telegramHandle": order.telegram_handle,
            "timestamp": order.timestamp,
            "paymentAddress": order.payment_address,
            "cryptoAmount": _decimal_to_str(order.crypto_amount),
            "network": order.network,
            "cryptoPrice": _decimal_to_str(self.crypto_price),
            "status": self.status.value,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
            "txReference": self.tx_reference,
            "userIP": self.user_ip,
            "userCountry": self.user_country,
            "userAgent": self.user_agent,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "OrderRecord":
        order = OrderData(
            order_id=data["orderId"],
            amount_usd=Decimal(data.get("amountUsd") or "0"),
            currency=data["currency"],
            email=data.get("email"),
            telegram_handle=data.get("telegramHandle") or "",
            timestamp=data.get("timestamp") or "",
            payment_address=data.get("paymentAddress"),
            crypto_amount=_str_to_decimal(data.get("cryptoAmount")),
            network=data.get("network"),
        )
        return cls(
            order=order,
            status=OrderStatus(data.get("status", OrderStatus.PENDING.value)),
            created_at=_parse_datetime(data.get("createdAt")),
            updated_at=_parse_datetime(data.get("updatedAt")),
            tx_reference=data.get("txReference"),
            crypto_price=_str_to_decimal(data.get("cryptoPrice")),
            user_ip=data.get("userIP") or "Unknown",
            user_country=data.get("userCountry") or "Unknown",
            user_agent=data.get("userAgent") or "",
        )


@dataclass(slots=True)
class OrderStats:
    total: int
    by_status: dict[str, int]
    confirmed_revenue_usd: Decimal


def _decimal_to_str(value: Optional[Decimal]) -> Optional[str]:
    return str(value) if value is not None else None


def _str_to_decimal(value: Any) -> Optional[Decimal]:
    if value is None or value == "":
        return None
    return Decimal(str(value))


def _parse_datetime(value: Any) -> Optional[datetime]:
    if not value:
        return None
    return datetime.fromisoformat(value)
