"""Payment domain value objects and collaborator contracts."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional, Protocol

from paygate.domain.orders.models import OrderRecord, OrderStatus, utcnow


class ProbeStatus(str, Enum):
    CONFIRMED = "confirmed"
    PENDING = "pending"
    NOT_FOUND = "not_found"


@dataclass(frozen=True, slots=True)
class ProbeResult:
    status: ProbeStatus
    tx_reference: Optional[str] = None
    amount: Optional[Decimal] = None
    checked_at: datetime = field(default_factory=utcnow)


@dataclass(frozen=True, slots=True)
class RequestContext:
    """Client details captured when a checkout starts; audit only."""

    user_ip: str = "Unknown"
    user_agent: str = ""


@dataclass(frozen=True, slots=True)
class PaymentEvent:
    """Message handed to the notifier on creation and on every transition."""

    kind: str
    record: OrderRecord
    status: OrderStatus
    tx_reference: Optional[str] = None
    detail: Optional[str] = None


@dataclass(frozen=True, slots=True)
class LifecycleSnapshot:
    order_id: str
    status: OrderStatus
    remaining_seconds: int
    policy: str
    tx_reference: Optional[str] = None
    last_probe: Optional[ProbeResult] = None
    error: Optional[str] = None
    record: Optional[OrderRecord] = None


class ConfirmationProbe(Protocol):
    async def probe(self, address: str, expected_amount: Decimal, currency: str) -> ProbeResult:
        ...


class Notifier(Protocol):
    async def send(self, event: PaymentEvent) -> bool:
        ...


class PriceOracle(Protocol):
    async def get_price(self, currency: str) -> Decimal:
        ...


class AddressBook(Protocol):
    def address_for(self, currency: str) -> str:
        ...


class GeoLocator(Protocol):
    async def country_for(self, ip: str) -> str:
        ...
