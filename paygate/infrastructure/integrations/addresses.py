"""Destination addresses per ticker."""

from __future__ import annotations

import logging
import secrets
import string
from typing import Mapping

logger = logging.getLogger(__name__)

MOCK_PREFIXES = {
    "SOL": "CryonerSol",
    "BTC": "1CryonerBtc",
    "ETH": "0xCryonerEth",
    "USDT": "TCryonerUsdt",
}
_ALPHABET = string.digits + string.ascii_lowercase


def generate_mock_address(currency: str) -> str:
    prefix = MOCK_PREFIXES.get(currency.upper())
    if prefix is None:
        raise KeyError(currency)
    return prefix + "".join(secrets.choice(_ALPHABET) for _ in range(13))


class ConfiguredAddressBook:
    """Receiving addresses from settings, optionally padded with mock ones."""

    def __init__(self, addresses: Mapping[str, str], *, generate_missing: bool = False) -> None:
        self._addresses = {ticker.upper(): address for ticker, address in addresses.items() if address}
        self._generate_missing = generate_missing

    def address_for(self, currency: str) -> str:
        ticker = currency.upper()
        address = self._addresses.get(ticker)
        if address:
            return address
        if not self._generate_missing:
            raise KeyError(ticker)
        logger.debug("No address configured for %s, generating a mock one", ticker)
        return generate_mock_address(ticker)
