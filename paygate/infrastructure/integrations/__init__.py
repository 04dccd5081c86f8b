"""Outbound collaborators used by the checkout flow."""

from .addresses import ConfiguredAddressBook, generate_mock_address
from .geolocation import IpApiGeoLocator
from .notifications import DiscordWebhookNotifier, build_embed
from .prices import BinancePriceOracle
from .probes import RandomConfirmationProbe

__all__ = [
    "BinancePriceOracle",
    "ConfiguredAddressBook",
    "DiscordWebhookNotifier",
    "IpApiGeoLocator",
    "RandomConfirmationProbe",
    "build_embed",
    "generate_mock_address",
]
