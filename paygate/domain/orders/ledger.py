"""Order ledger backed by the key-value persistence capability."""

from __future__ import annotations

import json
import logging
from dataclasses import replace
from datetime import datetime
from decimal import Decimal
from typing import Callable, Optional

from paygate.domain.common import KeyValueStore, StorageError

from .exceptions import DuplicateOrderError, InvalidTransitionError, OrderNotFoundError
from .models import OrderRecord, OrderStats, OrderStatus, can_transition, utcnow

logger = logging.getLogger(__name__)

ORDERS_NAMESPACE = "orders"


class OrderLedger:
    """Keyed store of order records; the only writer of order state.

    Status changes go through :meth:`update_status`, a compare-and-swap
    read-modify-write that re-reads the stored status right before writing,
    so two checkouts (or a checkout and the admin) racing on the same order
    cannot both win.
    """

    max_write_attempts = 5

    def __init__(self, store: KeyValueStore, clock: Callable[[], datetime] = utcnow) -> None:
        self._store = store
        self._clock = clock

    async def create(self, record: OrderRecord) -> OrderRecord:
        record = replace(
            record,
            status=OrderStatus.PENDING,
            created_at=record.created_at or self._clock(),
            updated_at=None,
            tx_reference=None,
        )
        inserted = await self._store.insert(ORDERS_NAMESPACE, record.order_id, _dump(record))
        if not inserted:
            raise DuplicateOrderError(f"order already exists: {record.order_id}")
        logger.info("Order %s stored (%s %s)", record.order_id, record.order.amount_usd, record.order.currency)
        return record

    async def get(self, order_id: str) -> OrderRecord:
        raw = await self._store.get(ORDERS_NAMESPACE, order_id)
        if raw is None:
            raise OrderNotFoundError(f"order not found: {order_id}")
        return _load(raw)

    async def update_status(
        self,
        order_id: str,
        status: OrderStatus,
        tx_reference: Optional[str] = None,
    ) -> OrderRecord:
        status = OrderStatus(status)
        for _ in range(self.max_write_attempts):
            raw = await self._store.get(ORDERS_NAMESPACE, order_id)
            if raw is None:
                raise OrderNotFoundError(f"order not found: {order_id}")
            current = _load(raw)
            if current.status is status:
                return current
            if not can_transition(current.status, status):
                raise InvalidTransitionError(order_id, current.status, status)

            updated = replace(
                current,
                status=status,
                updated_at=self._clock(),
                tx_reference=tx_reference or current.tx_reference,
            )
            if await self._store.replace(ORDERS_NAMESPACE, order_id, raw, _dump(updated)):
                logger.info("Order %s: %s -> %s", order_id, current.status.value, status.value)
                return updated
            logger.debug("Order %s changed concurrently, re-reading", order_id)
        raise StorageError(f"could not update order {order_id}: too much contention")

    async def list(
        self,
        status: Optional[str] = None,
        search: Optional[str] = None,
    ) -> list[OrderRecord]:
        records = [_load(raw) for _, raw in await self._store.scan(ORDERS_NAMESPACE)]
        if status and status != "all":
            records = [record for record in records if record.status.value == status]
        if search:
            needle = search.strip().lower()
            records = [record for record in records if _matches(record, needle)]
        records.sort(key=_created_key, reverse=True)
        return records

    async def stats(self) -> OrderStats:
        records = await self.list()
        by_status = {item.value: 0 for item in OrderStatus}
        revenue = Decimal("0")
        for record in records:
            by_status[record.status.value] += 1
            if record.status is OrderStatus.CONFIRMED:
                revenue += record.order.amount_usd
        return OrderStats(total=len(records), by_status=by_status, confirmed_revenue_usd=revenue)

    async def export(self) -> list[dict]:
        return [record.to_dict() for record in await self.list()]


def _dump(record: OrderRecord) -> str:
    return json.dumps(record.to_dict(), ensure_ascii=False, sort_keys=True)


def _load(raw: str) -> OrderRecord:
    return OrderRecord.from_dict(json.loads(raw))


def _matches(record: OrderRecord, needle: str) -> bool:
    haystacks = (record.order_id, record.order.email, record.order.telegram_handle)
    return any(value and needle in value.lower() for value in haystacks)


def _created_key(record: OrderRecord) -> float:
    return record.created_at.timestamp() if record.created_at else 0.0
