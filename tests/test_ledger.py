import json
from decimal import Decimal

import pytest

from conftest import make_record
from paygate.domain.common import StorageError
from paygate.domain.orders import (
    DuplicateOrderError,
    InvalidTransitionError,
    OrderLedger,
    OrderNotFoundError,
    OrderStatus,
)
from paygate.domain.orders.ledger import ORDERS_NAMESPACE
from paygate.infrastructure.memory import MemoryKeyValueStore

pytestmark = pytest.mark.anyio


async def test_create_and_get(ledger, clock):
    created = await ledger.create(make_record())

    assert created.status is OrderStatus.PENDING
    assert created.created_at == clock()
    stored = await ledger.get(created.order_id)
    assert stored.order == created.order
    assert stored.order.crypto_amount == Decimal("0.5")


async def test_create_twice_is_rejected(ledger):
    first = await ledger.create(make_record())
    with pytest.raises(DuplicateOrderError):
        await ledger.create(make_record(amount="999", email="other@example.com"))

    stored = await ledger.get(first.order_id)
    assert stored.order.amount_usd == Decimal("50")
    assert stored.order.email == "buyer@example.com"


async def test_records_are_stored_with_camel_case_keys(ledger, store):
    await ledger.create(make_record())
    raw = json.loads(await store.get(ORDERS_NAMESPACE, "CRY-20240101-000000-AB12"))

    assert raw["orderId"] == "CRY-20240101-000000-AB12"
    assert raw["amountUsd"] == "50"
    assert raw["userIP"] == "Unknown"
    assert raw["status"] == "pending"


async def test_get_unknown_order(ledger):
    with pytest.raises(OrderNotFoundError):
        await ledger.get("missing")


async def test_pending_order_can_be_confirmed_once(ledger, clock):
    await ledger.create(make_record())
    clock.advance(60)
    confirmed = await ledger.update_status("CRY-20240101-000000-AB12", OrderStatus.CONFIRMED, "tx-1")

    assert confirmed.status is OrderStatus.CONFIRMED
    assert confirmed.tx_reference == "tx-1"
    assert confirmed.updated_at == clock()

    with pytest.raises(InvalidTransitionError) as excinfo:
        await ledger.update_status("CRY-20240101-000000-AB12", OrderStatus.EXPIRED)
    assert excinfo.value.current is OrderStatus.CONFIRMED
    assert (await ledger.get("CRY-20240101-000000-AB12")).status is OrderStatus.CONFIRMED


async def test_repeating_the_current_status_is_a_no_op(ledger):
    await ledger.create(make_record())
    first = await ledger.update_status("CRY-20240101-000000-AB12", OrderStatus.EXPIRED)
    again = await ledger.update_status("CRY-20240101-000000-AB12", OrderStatus.EXPIRED)

    assert again == first


async def test_update_unknown_order(ledger):
    with pytest.raises(OrderNotFoundError):
        await ledger.update_status("missing", OrderStatus.CONFIRMED)


class RacingStore(MemoryKeyValueStore):
    """Lets another writer settle the order right before our first write."""

    def __init__(self, competing_status: str) -> None:
        super().__init__()
        self.competing_status = competing_status
        self.raced = False

    async def replace(self, namespace, key, expected, value):
        if not self.raced:
            self.raced = True
            record = json.loads(expected)
            record["status"] = self.competing_status
            await self.put(namespace, key, json.dumps(record, sort_keys=True))
        return await super().replace(namespace, key, expected, value)


async def test_concurrent_writer_wins_and_loser_sees_its_status(clock):
    ledger = OrderLedger(RacingStore("confirmed"), clock=clock)
    await ledger.create(make_record())

    with pytest.raises(InvalidTransitionError) as excinfo:
        await ledger.update_status("CRY-20240101-000000-AB12", OrderStatus.EXPIRED)
    assert excinfo.value.current is OrderStatus.CONFIRMED


class AlwaysConflictingStore(MemoryKeyValueStore):
    async def replace(self, namespace, key, expected, value):
        return False


async def test_persistent_contention_gives_up(clock):
    ledger = OrderLedger(AlwaysConflictingStore(), clock=clock)
    await ledger.create(make_record())

    with pytest.raises(StorageError):
        await ledger.update_status("CRY-20240101-000000-AB12", OrderStatus.CONFIRMED)


async def test_list_filters_searches_and_sorts(ledger, clock):
    await ledger.create(make_record("CRY-A", email="alice@example.com"))
    clock.advance(10)
    await ledger.create(make_record("CRY-B", telegram_handle="@Bob"))
    clock.advance(10)
    await ledger.create(make_record("CRY-C"))
    await ledger.update_status("CRY-C", OrderStatus.CONFIRMED)

    assert [r.order_id for r in await ledger.list()] == ["CRY-C", "CRY-B", "CRY-A"]
    assert [r.order_id for r in await ledger.list(status="pending")] == ["CRY-B", "CRY-A"]
    assert [r.order_id for r in await ledger.list(status="all", search="bob")] == ["CRY-B"]
    assert [r.order_id for r in await ledger.list(search="ALICE")] == ["CRY-A"]


async def test_stats_count_statuses_and_confirmed_revenue(ledger):
    await ledger.create(make_record("CRY-A", amount="10"))
    await ledger.create(make_record("CRY-B", amount="20"))
    await ledger.create(make_record("CRY-C", amount="40"))
    await ledger.update_status("CRY-A", OrderStatus.CONFIRMED)
    await ledger.update_status("CRY-B", OrderStatus.CONFIRMED)
    await ledger.update_status("CRY-C", OrderStatus.FAILED)

    stats = await ledger.stats()
    assert stats.total == 3
    assert stats.by_status["confirmed"] == 2
    assert stats.by_status["failed"] == 1
    assert stats.by_status["pending"] == 0
    assert stats.confirmed_revenue_usd == Decimal("30")


async def test_export_returns_plain_dicts(ledger):
    await ledger.create(make_record())
    exported = await ledger.export()

    assert exported[0]["orderId"] == "CRY-20240101-000000-AB12"
    json.dumps(exported)
