from __future__ import annotations

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Iterable, Optional

import pytest

from paygate.core.tokens import TokenCodec
from paygate.domain.orders import OrderData, OrderLedger, OrderRecord
from paygate.domain.payments import PaymentEvent, ProbeResult, ProbeStatus
from paygate.infrastructure.memory import MemoryKeyValueStore

ORDER_SECRET = "test-order-secret"


class FakeClock:
    def __init__(self, start: Optional[datetime] = None) -> None:
        self.now = start or datetime(2024, 1, 1, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


class FakePrices:
    def __init__(self, prices: Optional[dict[str, Decimal]] = None) -> None:
        self.prices = prices if prices is not None else {"SOL": Decimal("100"), "BTC": Decimal("50000")}

    async def get_price(self, currency: str) -> Decimal:
        return self.prices[currency]


class FakeAddresses:
    def __init__(self, missing: Iterable[str] = ()) -> None:
        self.missing = set(missing)

    def address_for(self, currency: str) -> str:
        if currency in self.missing:
            raise KeyError(currency)
        return f"{currency.lower()}-test-address"


class ScriptedProbe:
    """Replays the given statuses, repeating the last one."""

    def __init__(self, *statuses: ProbeStatus) -> None:
        self.statuses = list(statuses) or [ProbeStatus.PENDING]
        self.calls = 0

    async def probe(self, address: str, expected_amount: Decimal, currency: str) -> ProbeResult:
        status = self.statuses[min(self.calls, len(self.statuses) - 1)]
        self.calls += 1
        tx_reference = f"tx-{self.calls}" if status is ProbeStatus.CONFIRMED else None
        return ProbeResult(status=status, tx_reference=tx_reference)


class RecordingNotifier:
    def __init__(self) -> None:
        self.events: list[PaymentEvent] = []

    async def send(self, event: PaymentEvent) -> bool:
        self.events.append(event)
        return True

    def kinds(self) -> list[tuple[str, str]]:
        return [(event.kind, event.status.value) for event in self.events]


class StaticGeoLocator:
    async def country_for(self, ip: str) -> str:
        return "Testland"


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> MemoryKeyValueStore:
    return MemoryKeyValueStore()


@pytest.fixture
def ledger(store, clock) -> OrderLedger:
    return OrderLedger(store, clock=clock)


@pytest.fixture
def codec() -> TokenCodec:
    return TokenCodec(ORDER_SECRET)


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


def make_order(order_id: str = "CRY-20240101-000000-AB12", amount: str = "50", **overrides) -> OrderData:
    values = {
        "order_id": order_id,
        "amount_usd": Decimal(amount),
        "currency": "SOL",
        "telegram_handle": "@buyer",
        "timestamp": "2024-01-01T00:00:00Z",
        "email": "buyer@example.com",
        "payment_address": "sol-test-address",
        "crypto_amount": Decimal(amount) / Decimal("100"),
    }
    values.update(overrides)
    return OrderData(**values)


def make_record(order_id: str = "CRY-20240101-000000-AB12", **overrides) -> OrderRecord:
    return OrderRecord(order=make_order(order_id, **overrides))
