"""Checkout setup and the registry of live payment lifecycles."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Callable, Optional

from paygate.domain.common import StorageError
from paygate.domain.orders import (
    DuplicateOrderError,
    OrderData,
    OrderError,
    OrderLedger,
    OrderRecord,
)
from paygate.domain.orders.models import utcnow

from .exceptions import SetupFailure
from .lifecycle import ConfirmationPolicy, PaymentLifecycle
from .models import AddressBook, GeoLocator, Notifier, PaymentEvent, PriceOracle, RequestContext

logger = logging.getLogger(__name__)


def calculate_crypto_amount(amount_usd: Decimal, price: Decimal) -> Decimal:
    if price <= 0:
        raise SetupFailure(f"invalid price {price}")
    try:
        return amount_usd / price
    except InvalidOperation as exc:
        raise SetupFailure(f"cannot convert {amount_usd} USD at {price}") from exc


class CheckoutRegistry:
    """Live lifecycles by order id, released on navigation away or shutdown."""

    def __init__(self) -> None:
        self._lifecycles: dict[str, PaymentLifecycle] = {}

    def get(self, order_id: str) -> Optional[PaymentLifecycle]:
        return self._lifecycles.get(order_id)

    def add(self, lifecycle: PaymentLifecycle) -> PaymentLifecycle:
        """Register ``lifecycle`` unless a pending one for the order is already live.

        Returns whichever lifecycle ends up registered for the order.
        """
        current = self._lifecycles.get(lifecycle.order_id)
        if current is not None and current is not lifecycle and current.is_pending:
            return current
        self._lifecycles[lifecycle.order_id] = lifecycle
        return lifecycle

    def discard(self, lifecycle: PaymentLifecycle) -> None:
        if self._lifecycles.get(lifecycle.order_id) is lifecycle:
            self._lifecycles.pop(lifecycle.order_id, None)

    async def release(self, order_id: str) -> bool:
        lifecycle = self._lifecycles.pop(order_id, None)
        if lifecycle is None:
            return False
        await lifecycle.close()
        logger.info("Released payment lifecycle for %s", order_id)
        return True

    async def close_all(self) -> None:
        lifecycles = list(self._lifecycles.values())
        self._lifecycles.clear()
        if lifecycles:
            await asyncio.gather(*(lifecycle.close() for lifecycle in lifecycles), return_exceptions=True)

    def __len__(self) -> int:
        return len(self._lifecycles)

    def __contains__(self, order_id: object) -> bool:
        return order_id in self._lifecycles


@dataclass(slots=True)
class CheckoutService:
    ledger: OrderLedger
    prices: PriceOracle
    addresses: AddressBook
    policy_factory: Callable[[], ConfirmationPolicy]
    registry: CheckoutRegistry = field(default_factory=CheckoutRegistry)
    notifier: Optional[Notifier] = None
    geolocator: Optional[GeoLocator] = None
    window_seconds: int = 15 * 60
    time_scale: float = 1.0
    clock: Callable[[], datetime] = utcnow

    async def start(self, order: OrderData, context: Optional[RequestContext] = None) -> PaymentLifecycle:
        """Run the setup sequence and start the order's payment window.

        Setup failures do not raise: the returned lifecycle is in the ``error``
        state with :attr:`PaymentLifecycle.error` describing the problem.
        """
        active = self.registry.get(order.order_id)
        if active is not None:
            return active

        context = context or RequestContext()
        lifecycle = self._new_lifecycle(order)
        try:
            record = await self._prepare(order, context)
            record = await self.ledger.create(record)
        except DuplicateOrderError:
            return await self.resume(order.order_id)
        except SetupFailure as exc:
            logger.error("Checkout setup failed for %s: %s", order.order_id, exc)
            await lifecycle.fail(exc)
            return lifecycle
        except (OrderError, StorageError) as exc:
            logger.error("Could not store order %s: %s", order.order_id, exc)
            await lifecycle.fail(SetupFailure(f"could not store order: {exc}"))
            return lifecycle

        # registered before the next await so a concurrent start resumes this one
        lifecycle.attach(record)
        registered = self.registry.add(lifecycle)
        if registered is lifecycle:
            lifecycle.start()
        await self._announce(record)
        return registered

    async def resume(self, order_id: str) -> PaymentLifecycle:
        """Rebuild the lifecycle of a stored order, e.g. after a page reload."""
        active = self.registry.get(order_id)
        if active is not None:
            return active

        record = await self.ledger.get(order_id)
        lifecycle = self._new_lifecycle(
            record.order,
            record=record,
            remaining_seconds=self.remaining_for(record),
        )
        if lifecycle.is_pending:
            registered = self.registry.add(lifecycle)
            if registered is not lifecycle:
                return registered
            lifecycle.start()
            logger.info("Resumed checkout %s with %ss left", order_id, lifecycle.remaining)
        return lifecycle

    def remaining_for(self, record: OrderRecord) -> int:
        """Seconds left in the payment window of a stored order."""
        if record.status.is_terminal:
            return 0
        elapsed = 0
        if record.created_at is not None:
            elapsed = int((self.clock() - record.created_at).total_seconds())
        return max(0, self.window_seconds - elapsed)

    async def _prepare(self, order: OrderData, context: RequestContext) -> OrderRecord:
        price = await self._price_for(order.currency)
        crypto_amount = calculate_crypto_amount(order.amount_usd, price)
        if crypto_amount <= 0:
            raise SetupFailure(f"order amount must be positive, got {order.amount_usd} USD")

        address = order.payment_address
        if not address:
            try:
                address = self.addresses.address_for(order.currency)
            except (KeyError, ValueError) as exc:
                raise SetupFailure(f"no payment address for {order.currency}") from exc

        return OrderRecord(
            order=order.with_payment(payment_address=address, crypto_amount=crypto_amount),
            crypto_price=price,
            created_at=self.clock(),
            user_ip=context.user_ip,
            user_country=await self._country_for(context.user_ip),
            user_agent=context.user_agent,
        )

    async def _price_for(self, currency: str) -> Decimal:
        try:
            return await self.prices.get_price(currency)
        except (KeyError, ValueError) as exc:
            raise SetupFailure(f"no price for {currency}") from exc

    async def _country_for(self, ip: str) -> str:
        if self.geolocator is None or not ip or ip == "Unknown":
            return "Unknown"
        try:
            return await self.geolocator.country_for(ip)
        except Exception as exc:  # pylint: disable=broad-except
            logger.warning("Geolocation lookup for %s failed: %s", ip, exc)
            return "Unknown"

    async def _announce(self, record: OrderRecord) -> None:
        if self.notifier is None:
            return
        try:
            await self.notifier.send(PaymentEvent(kind="created", record=record, status=record.status))
        except Exception as exc:  # pylint: disable=broad-except
            logger.warning("Creation notification for %s failed: %s", record.order_id, exc)

    def _new_lifecycle(
        self,
        order: OrderData,
        *,
        record: Optional[OrderRecord] = None,
        remaining_seconds: Optional[int] = None,
    ) -> PaymentLifecycle:
        return PaymentLifecycle(
            order,
            ledger=self.ledger,
            policy=self.policy_factory(),
            notifier=self.notifier,
            record=record,
            window_seconds=self.window_seconds,
            remaining_seconds=remaining_seconds,
            time_scale=self.time_scale,
            on_finish=self.registry.discard,
        )
