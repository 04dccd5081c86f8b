"""Timed payment lifecycle for a single order.

A lifecycle owns two asyncio tasks while its order is pending:

* the countdown, which ticks once per second and expires the order when it
  reaches zero;
* the confirmation task, driven by the configured policy: either polling an
  external probe (:class:`ProbePolicy`) or confirming unconditionally when the
  window ends (:class:`TimerPolicy`).

Whichever transition claims the in-memory status first wins; the other task is
cancelled and any later transition request is a no-op. Both tasks are released
by :meth:`PaymentLifecycle.close`, which the registry calls when the customer
leaves the checkout and on shutdown.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import replace
from typing import Awaitable, Callable, Optional, Protocol

from paygate.domain.common import StorageError
from paygate.domain.orders import (
    InvalidTransitionError,
    OrderData,
    OrderError,
    OrderLedger,
    OrderRecord,
    OrderStatus,
)

from .models import (
    ConfirmationProbe,
    LifecycleSnapshot,
    Notifier,
    PaymentEvent,
    ProbeResult,
    ProbeStatus,
)

logger = logging.getLogger(__name__)

DEFAULT_WINDOW_SECONDS = 15 * 60
DEFAULT_PROBE_INTERVAL = 30


class ConfirmationPolicy(Protocol):
    name: str
    probe: Optional[ConfirmationProbe]
    # the policy settles the order itself when the window ends
    settles_at_deadline: bool

    async def run(self, lifecycle: "PaymentLifecycle") -> None:
        ...


class ProbePolicy:
    """Poll the confirmation probe; the first ``confirmed`` answer wins."""

    name = "probe"
    settles_at_deadline = False

    def __init__(self, probe: ConfirmationProbe, interval_seconds: float = DEFAULT_PROBE_INTERVAL) -> None:
        self.probe = probe
        self.interval_seconds = interval_seconds

    async def run(self, lifecycle: "PaymentLifecycle") -> None:
        while lifecycle.is_pending:
            await lifecycle.sleep(self.interval_seconds)
            if not lifecycle.is_pending:
                return
            result = await lifecycle.probe_once()
            if result is not None and result.status is ProbeStatus.CONFIRMED:
                await lifecycle.confirm(result.tx_reference)
                return


class TimerPolicy:
    """Confirm when the payment window ends, without looking at any payment.

    This mirrors the storefront's timer-only mode: an order is reported as
    paid although nothing verified that funds arrived.
    """

    name = "timer"
    probe = None
    settles_at_deadline = True

    async def run(self, lifecycle: "PaymentLifecycle") -> None:
        await lifecycle.sleep(lifecycle.deadline_seconds)
        if lifecycle.is_pending:
            await lifecycle.confirm(f"timer-{lifecycle.order_id}")


class PaymentLifecycle:
    def __init__(
        self,
        order: OrderData,
        *,
        ledger: OrderLedger,
        policy: ConfirmationPolicy,
        notifier: Optional[Notifier] = None,
        record: Optional[OrderRecord] = None,
        window_seconds: int = DEFAULT_WINDOW_SECONDS,
        remaining_seconds: Optional[int] = None,
        time_scale: float = 1.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        on_finish: Optional[Callable[["PaymentLifecycle"], None]] = None,
    ) -> None:
        self.order = order
        self.record = record
        self.status = record.status if record else OrderStatus.PENDING
        self.tx_reference = record.tx_reference if record else None
        self.window_seconds = window_seconds
        if remaining_seconds is None:
            remaining_seconds = window_seconds
        self.remaining = max(0, min(int(remaining_seconds), window_seconds))
        self.deadline_seconds = self.remaining
        self.last_probe: Optional[ProbeResult] = None
        self.error: Optional[str] = None

        self._ledger = ledger
        self._policy = policy
        self._notifier = notifier
        self._time_scale = time_scale
        self._sleep = sleep
        self._on_finish = on_finish
        self._tasks: dict[str, asyncio.Task] = {}
        self._checking = False
        self._finished = asyncio.Event()
        if self.status.is_terminal:
            self._finished.set()

    @property
    def order_id(self) -> str:
        return self.order.order_id

    @property
    def policy_name(self) -> str:
        return self._policy.name

    @property
    def is_pending(self) -> bool:
        return self.status is OrderStatus.PENDING

    @property
    def is_running(self) -> bool:
        return any(not task.done() for task in self._tasks.values())

    def attach(self, record: OrderRecord) -> None:
        self.record = record
        self.order = record.order

    def start(self) -> None:
        if not self.is_pending or self._tasks:
            return
        if self.record is None:
            raise RuntimeError(f"order {self.order_id} must be stored before its lifecycle starts")
        self._tasks["confirmation"] = asyncio.create_task(
            self._run_policy(), name=f"confirmation:{self.order_id}"
        )
        self._tasks["countdown"] = asyncio.create_task(
            self._run_countdown(), name=f"countdown:{self.order_id}"
        )
        logger.info(
            "Payment window opened for %s: %ss, policy=%s",
            self.order_id,
            self.remaining,
            self.policy_name,
        )

    async def close(self) -> None:
        """Cancel both timers and wait for them to finish."""
        tasks = [task for task in self._tasks.values() if task is not asyncio.current_task()]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    async def __aenter__(self) -> "PaymentLifecycle":
        self.start()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def wait(self, timeout: Optional[float] = None) -> OrderStatus:
        await asyncio.wait_for(self._finished.wait(), timeout)
        return self.status

    async def sleep(self, seconds: float) -> None:
        await self._sleep(seconds * self._time_scale)

    async def confirm(self, tx_reference: Optional[str] = None) -> bool:
        return await self._transition(OrderStatus.CONFIRMED, tx_reference=tx_reference)

    async def expire(self) -> bool:
        return await self._transition(OrderStatus.EXPIRED)

    async def fail(self, reason: object) -> bool:
        self.error = str(reason)
        return await self._transition(OrderStatus.ERROR, detail=self.error)

    async def probe_once(self) -> Optional[ProbeResult]:
        probe = self._policy.probe
        if probe is None or not self.order.payment_address:
            return None
        try:
            result = await probe.probe(
                self.order.payment_address,
                self.order.crypto_amount,
                self.order.currency,
            )
        except Exception as exc:  # pylint: disable=broad-except
            logger.warning("Payment probe for %s failed: %s", self.order_id, exc)
            return None
        self.last_probe = result
        return result

    async def check_now(self) -> Optional[ProbeResult]:
        """Ask the probe again for display purposes; never changes the status."""
        if not self.is_pending or self._checking:
            return self.last_probe
        self._checking = True
        try:
            return await self.probe_once()
        finally:
            self._checking = False

    def snapshot(self) -> LifecycleSnapshot:
        return LifecycleSnapshot(
            order_id=self.order_id,
            status=self.status,
            remaining_seconds=max(0, self.remaining) if self.is_pending else 0,
            policy=self.policy_name,
            tx_reference=self.tx_reference,
            last_probe=self.last_probe,
            error=self.error,
            record=self.record,
        )

    async def _run_countdown(self) -> None:
        while self.is_pending and self.remaining > 0:
            await self.sleep(1)
            if not self.is_pending:
                return
            self.remaining = max(0, self.remaining - 1)
        if not self.is_pending:
            return

        confirmation = self._tasks.get("confirmation")
        if self._policy.settles_at_deadline and confirmation is not None and not confirmation.done():
            await asyncio.wait({confirmation})
        await self.expire()

    async def _run_policy(self) -> None:
        try:
            await self._policy.run(self)
        except asyncio.CancelledError:
            raise
        except Exception:  # pylint: disable=broad-except
            logger.exception("Confirmation policy %s crashed for %s", self.policy_name, self.order_id)

    async def _transition(
        self,
        status: OrderStatus,
        *,
        tx_reference: Optional[str] = None,
        detail: Optional[str] = None,
    ) -> bool:
        if not self.is_pending:
            logger.debug("Order %s already %s, ignoring %s", self.order_id, self.status.value, status.value)
            return False

        # claimed before the first await, so a lagging timer sees a terminal state
        previous = self.status
        self.status = status
        if tx_reference:
            self.tx_reference = tx_reference
        self._cancel_timers()
        try:
            return await asyncio.shield(self._commit(previous, status, detail))
        finally:
            self._finished.set()
            if self._on_finish is not None:
                self._on_finish(self)

    async def _commit(self, previous: OrderStatus, status: OrderStatus, detail: Optional[str]) -> bool:
        if self.record is not None:
            try:
                self.record = await self._ledger.update_status(self.order_id, status, self.tx_reference)
            except InvalidTransitionError as exc:
                self.status = exc.current
                await self._reload()
                logger.warning(
                    "Order %s was already %s elsewhere, dropped %s",
                    self.order_id,
                    exc.current.value,
                    status.value,
                )
                return False
            except (OrderError, StorageError) as exc:
                logger.error("Could not persist %s for order %s: %s", status.value, self.order_id, exc)
                self.status = OrderStatus.ERROR
                self.error = f"could not record {status.value} status: {exc}"
                await self._notify(OrderStatus.ERROR, self.error)
                return False

        logger.info("Order %s: %s -> %s", self.order_id, previous.value, status.value)
        await self._notify(status, detail)
        return True

    async def _reload(self) -> None:
        try:
            self.record = await self._ledger.get(self.order_id)
        except (OrderError, StorageError) as exc:
            logger.error("Could not reload order %s: %s", self.order_id, exc)
            return
        self.tx_reference = self.record.tx_reference

    async def _notify(self, status: OrderStatus, detail: Optional[str]) -> None:
        if self._notifier is None:
            return
        record = self.record or OrderRecord(order=self.order)
        event = PaymentEvent(
            kind="status",
            record=replace(record, status=status, tx_reference=self.tx_reference),
            status=status,
            tx_reference=self.tx_reference,
            detail=detail,
        )
        try:
            await self._notifier.send(event)
        except Exception as exc:  # pylint: disable=broad-except
            logger.warning("Notification for order %s failed: %s", self.order_id, exc)

    def _cancel_timers(self) -> None:
        current = asyncio.current_task()
        for task in self._tasks.values():
            if task is not current and not task.done():
                task.cancel()
