"""Conversions from domain objects to response schemas."""
from typing import Optional

from paygate.domain.orders import OrderRecord, OrderStatus
from paygate.domain.payments import LifecycleSnapshot, PaymentLifecycle, ProbeResult
from paygate.schemas import (
    AdminOrderResponse,
    CheckoutResponse,
    LifecycleResponse,
    OrderResponse,
    ProbeResponse,
)


def order_response(record: OrderRecord) -> OrderResponse:
    return OrderResponse(**_order_fields(record))


def admin_order_response(record: OrderRecord) -> AdminOrderResponse:
    return AdminOrderResponse(
        **_order_fields(record),
        user_ip=record.user_ip,
        user_country=record.user_country,
        user_agent=record.user_agent,
    )


def probe_response(result: Optional[ProbeResult]) -> Optional[ProbeResponse]:
    if result is None:
        return None
    return ProbeResponse(
        status=result.status.value,
        tx_reference=result.tx_reference,
        checked_at=result.checked_at,
    )


def lifecycle_response(snapshot: LifecycleSnapshot) -> LifecycleResponse:
    return LifecycleResponse(**_lifecycle_fields(snapshot))


def checkout_response(lifecycle: PaymentLifecycle) -> CheckoutResponse:
    snapshot = lifecycle.snapshot()
    record = snapshot.record or OrderRecord(order=lifecycle.order, status=lifecycle.status)
    return CheckoutResponse(
        **_lifecycle_fields(snapshot),
        order=order_response(record),
        qr_payload=qr_payload(record),
    )


def qr_payload(record: OrderRecord) -> Optional[str]:
    """Payment URI shown as a QR code: ``<ticker>:<address>?amount=<crypto>``."""
    order = record.order
    if not order.payment_address or order.crypto_amount is None:
        return None
    return f"{order.currency}:{order.payment_address}?amount={order.crypto_amount:.8f}"


def _lifecycle_fields(snapshot: LifecycleSnapshot) -> dict:
    return {
        "order_id": snapshot.order_id,
        "status": snapshot.status.value,
        "remaining_seconds": snapshot.remaining_seconds,
        "policy": snapshot.policy,
        "tx_reference": snapshot.tx_reference,
        "last_probe": probe_response(snapshot.last_probe),
        "error": snapshot.error,
        "retry": snapshot.status is OrderStatus.ERROR,
    }


def _order_fields(record: OrderRecord) -> dict:
    order = record.order
    return {
        "order_id": order.order_id,
        "status": record.status.value,
        "amount_usd": order.amount_usd,
        "currency": order.currency,
        "email": order.email,
        "telegram_handle": order.telegram_handle,
        "timestamp": order.timestamp,
        "payment_address": order.payment_address,
        "crypto_amount": order.crypto_amount,
        "crypto_price": record.crypto_price,
        "network": order.network,
        "tx_reference": record.tx_reference,
        "created_at": record.created_at,
        "updated_at": record.updated_at,
    }
