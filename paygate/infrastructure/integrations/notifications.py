"""Discord webhook notifications for order events."""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from paygate.domain.orders import OrderStatus
from paygate.domain.payments import PaymentEvent

logger = logging.getLogger(__name__)

FOOTER = {"text": "Cryoner Payment Processor", "icon_url": "https://cryoner.store/log0.png"}

_TITLES = {
    "created": ("💳 Payment Processing Started", 0x00FFFF),
    OrderStatus.CONFIRMED.value: ("✅ Payment Confirmed", 0x22C55E),
    OrderStatus.EXPIRED.value: ("⌛ Payment Expired", 0xEF4444),
    OrderStatus.ERROR.value: ("⚠️ Payment Setup Failed", 0xF59E0B),
    OrderStatus.FAILED.value: ("❌ Payment Failed", 0xEF4444),
}


def build_embed(event: PaymentEvent) -> dict[str, Any]:
    record = event.record
    order = record.order
    key = "created" if event.kind == "created" else event.status.value
    title, color = _TITLES.get(key, (f"Order {event.status.value}", 0x9CA3AF))

    fields = [
        {"name": "📋 Order ID", "value": order.order_id, "inline": True},
        {"name": "💰 Amount", "value": f"${order.amount_usd} USD", "inline": True},
        {"name": "💎 Payment Method", "value": order.currency, "inline": True},
        {
            "name": "📧 Contact",
            "value": f"**Email:** {order.email or 'Not provided'}\n**Telegram:** {order.telegram_handle or 'Not provided'}",
            "inline": False,
        },
        {
            "name": "🌍 Location",
            "value": f"**IP:** {record.user_ip}\n**Country:** {record.user_country}",
            "inline": False,
        },
        {"name": "🏦 Payment Address", "value": order.payment_address or "Not assigned", "inline": False},
    ]
    if event.tx_reference:
        fields.append({"name": "🔗 Transaction", "value": event.tx_reference, "inline": False})
    if event.detail:
        fields.append({"name": "ℹ️ Detail", "value": event.detail, "inline": False})

    stamp = record.updated_at or record.created_at
    return {
        "title": title,
        "color": color,
        "fields": fields,
        "footer": FOOTER,
        "timestamp": stamp.isoformat() if stamp else None,
    }


class DiscordWebhookNotifier:
    """Posts an embed per event. Delivery problems are logged, never raised."""

    def __init__(
        self,
        webhook_url: Optional[str],
        *,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._webhook_url = webhook_url
        self._timeout = timeout
        self._transport = transport

    @property
    def enabled(self) -> bool:
        return bool(self._webhook_url)

    async def send(self, event: PaymentEvent) -> bool:
        if not self._webhook_url:
            logger.debug("Webhook disabled, skipping %s event for %s", event.kind, event.record.order_id)
            return False
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                response = await client.post(self._webhook_url, json={"embeds": [build_embed(event)]})
            response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.error("Failed to send webhook for %s: %s", event.record.order_id, exc)
            return False
        return True
