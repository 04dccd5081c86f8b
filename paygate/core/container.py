"""Simple dependency container for wiring core services."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from functools import lru_cache
from typing import Optional

from paygate.core.config import Settings, get_settings
from paygate.core.tokens import TokenCodec
from paygate.domain.common import KeyValueStore
from paygate.domain.orders import OrderIntake, OrderLedger
from paygate.domain.payments import (
    AddressBook,
    CheckoutRegistry,
    CheckoutService,
    ConfirmationPolicy,
    ConfirmationProbe,
    GeoLocator,
    Notifier,
    PriceOracle,
    ProbePolicy,
    TimerPolicy,
)
from paygate.domain.sessions import SessionStore
from paygate.infrastructure.integrations import (
    BinancePriceOracle,
    ConfiguredAddressBook,
    DiscordWebhookNotifier,
    IpApiGeoLocator,
    RandomConfirmationProbe,
)


@dataclass(slots=True)
class ApplicationContainer:
    settings: Settings
    store: KeyValueStore
    codec: TokenCodec
    intake: OrderIntake
    ledger: OrderLedger
    sessions: SessionStore
    checkout: CheckoutService

    @property
    def registry(self) -> CheckoutRegistry:
        return self.checkout.registry

    async def init_infrastructure(self) -> None:
        """Ensure database tables exist when the SQL store is in use."""
        if self.settings.storage.backend == "database":
            from paygate.infrastructure.database import init_db

            await init_db()

    async def shutdown(self) -> None:
        await self.registry.close_all()


def build_policy_factory(settings: Settings, probe: ConfirmationProbe):
    policy = settings.payments.confirmation_policy

    def factory() -> ConfirmationPolicy:
        if policy == "timer":
            return TimerPolicy()
        return ProbePolicy(probe, interval_seconds=settings.payments.probe_interval_seconds)

    return factory


def _default_store(settings: Settings) -> KeyValueStore:
    if settings.storage.backend == "memory":
        from paygate.infrastructure.memory import MemoryKeyValueStore

        return MemoryKeyValueStore()

    from paygate.infrastructure.database import SqlKeyValueStore, get_session_factory

    return SqlKeyValueStore(get_session_factory())


def build_container(
    settings: Settings,
    *,
    store: Optional[KeyValueStore] = None,
    prices: Optional[PriceOracle] = None,
    addresses: Optional[AddressBook] = None,
    probe: Optional[ConfirmationProbe] = None,
    notifier: Optional[Notifier] = None,
    geolocator: Optional[GeoLocator] = None,
) -> ApplicationContainer:
    """Wire the services; any collaborator can be replaced (tests do)."""
    store = store or _default_store(settings)
    integrations = settings.integrations
    payments = settings.payments

    codec = TokenCodec(settings.intake.order_secret, settings.intake.token_algorithm)
    intake = OrderIntake(
        codec,
        strict=settings.intake.strict_verification,
        default_currency=settings.intake.default_currency,
    )
    ledger = OrderLedger(store)
    sessions = SessionStore(store, ttl=timedelta(minutes=settings.sessions.ttl_minutes))

    probe = probe or RandomConfirmationProbe(delay=payments.probe_delay_seconds)
    checkout = CheckoutService(
        ledger=ledger,
        prices=prices
        or BinancePriceOracle(
            integrations.price_api_url,
            payments.fallback_prices,
            timeout=integrations.http_timeout,
        ),
        addresses=addresses
        or ConfiguredAddressBook(payments.addresses, generate_missing=payments.generate_mock_addresses),
        policy_factory=build_policy_factory(settings, probe),
        notifier=notifier
        or DiscordWebhookNotifier(integrations.discord_webhook_url, timeout=integrations.http_timeout),
        geolocator=geolocator or IpApiGeoLocator(integrations.geo_api_url, timeout=integrations.http_timeout),
        window_seconds=payments.window_seconds,
        time_scale=payments.time_scale,
    )
    return ApplicationContainer(
        settings=settings,
        store=store,
        codec=codec,
        intake=intake,
        ledger=ledger,
        sessions=sessions,
        checkout=checkout,
    )


@lru_cache()
def get_container() -> ApplicationContainer:
    return build_container(get_settings())


__all__ = ["ApplicationContainer", "build_container", "build_policy_factory", "get_container"]
