"""Turn checkout request parameters into validated order data."""

from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Mapping, Optional, Sequence

from paygate.core.config import SUPPORTED_CURRENCIES
from paygate.core.tokens import (
    DecodeError,
    TokenCodec,
    address_field,
    amount_field,
    currency_field,
    first_present,
    telegram_field,
)

from .exceptions import VerificationFailure
from .models import OrderData, generate_order_id, utcnow

logger = logging.getLogger(__name__)

GATE_PARAMS = ("data", "orderId", "amount", "currency", "session")


def has_order_params(params: Mapping[str, Any]) -> bool:
    """Whether a request carries anything that looks like an order."""
    return any(params.get(name) for name in GATE_PARAMS)


class OrderIntake:
    """Builds :class:`OrderData` from query parameters or trusted payloads.

    With ``strict=True`` an encoded payload that fails decoding or verification
    raises :class:`VerificationFailure`, and plain parameters are only accepted
    when no ``data``/``token`` parameter was sent at all. With ``strict=False``
    the storefront's historical behaviour is kept: any failure falls back to the
    plain parameters.
    """

    def __init__(
        self,
        codec: TokenCodec,
        *,
        strict: bool = True,
        default_currency: str = "SOL",
        currencies: Sequence[str] = SUPPORTED_CURRENCIES,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._codec = codec
        self.strict = strict
        self._currencies = tuple(currencies)
        self._default_currency = default_currency
        self._clock = clock

    def parse(self, params: Mapping[str, Any]) -> OrderData:
        data = params.get("data")
        token = params.get("token")

        if data and token:
            try:
                fields = self._codec.decode(data)
            except DecodeError as exc:
                self._reject_or_log(f"undecodable order payload: {exc}")
            else:
                if self._codec.verify(fields, token):
                    return self.from_payload(fields, with_address=self._codec.covers_address)
                self._reject_or_log(f"order token mismatch for {fields.get('orderId')!r}")
        elif data or token:
            self._reject_or_log("order payload and token must be sent together")

        return self.from_legacy(params)

    def from_payload(self, fields: Mapping[str, Any], *, with_address: bool = True) -> OrderData:
        """Map trusted fields; ``with_address=False`` drops any destination address."""
        address = address_field(fields) if with_address else None
        return OrderData(
            order_id=_text(fields.get("orderId")) or generate_order_id(self._clock()),
            amount_usd=_amount(amount_field(fields)),
            currency=self._currency(currency_field(fields)),
            email=_text(fields.get("email")),
            telegram_handle=_text(telegram_field(fields)) or "",
            timestamp=_text(fields.get("timestamp")) or self._clock().isoformat(),
            payment_address=_text(address),
            network=_text(first_present(fields, "network", "paymentMethod.network")),
        )

    def from_legacy(self, params: Mapping[str, Any]) -> OrderData:
        return OrderData(
            order_id=_text(params.get("orderId")) or generate_order_id(self._clock()),
            amount_usd=_amount(params.get("amount")),
            currency=self._currency(params.get("currency")),
            email=_text(params.get("email")),
            telegram_handle=_text(params.get("telegram")) or "",
            timestamp=_text(params.get("timestamp")) or self._clock().isoformat(),
        )

    def _reject_or_log(self, reason: str) -> None:
        if self.strict:
            logger.warning("Rejected checkout request: %s", reason)
            raise VerificationFailure(reason)
        logger.warning("Falling back to plain order parameters: %s", reason)

    def _currency(self, value: Any) -> str:
        ticker = (_text(value) or "").upper()
        if ticker in self._currencies:
            return ticker
        if ticker:
            logger.info("Unsupported currency %r, using %s", value, self._default_currency)
        return self._default_currency


def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _amount(value: Any) -> Decimal:
    if value is None or isinstance(value, bool):
        return Decimal("0")
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return Decimal("0")
    if not amount.is_finite() or amount < 0:
        return Decimal("0")
    return amount
