"""USD prices for the supported tickers."""

from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation
from typing import Mapping, Optional

import httpx

logger = logging.getLogger(__name__)

STABLE_TICKERS = frozenset({"USDT"})


class BinancePriceOracle:
    """Spot prices from Binance's public ticker, with static fallbacks.

    A failed lookup never blocks a checkout: the configured fallback price is
    used instead, as the storefront always did.
    """

    def __init__(
        self,
        url: str,
        fallback_prices: Mapping[str, Decimal],
        *,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._url = url
        self._fallback = {ticker.upper(): Decimal(str(price)) for ticker, price in fallback_prices.items()}
        self._timeout = timeout
        self._transport = transport

    async def get_price(self, currency: str) -> Decimal:
        ticker = currency.upper()
        if ticker in STABLE_TICKERS:
            return Decimal("1")
        try:
            return await self._fetch(ticker)
        except (httpx.HTTPError, KeyError, ValueError, InvalidOperation) as exc:
            logger.warning("Price lookup for %s failed, using fallback: %s", ticker, exc)
        if ticker not in self._fallback:
            raise KeyError(ticker)
        return self._fallback[ticker]

    async def _fetch(self, ticker: str) -> Decimal:
        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
            response = await client.get(self._url, params={"symbol": f"{ticker}USDT"})
            response.raise_for_status()
            price = Decimal(str(response.json()["price"]))
        if price <= 0:
            raise ValueError(f"non-positive price {price}")
        return price
