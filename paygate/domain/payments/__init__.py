"""Payment lifecycle, checkout setup and collaborator contracts."""

from .exceptions import PaymentError, SetupFailure
from .lifecycle import ConfirmationPolicy, PaymentLifecycle, ProbePolicy, TimerPolicy
from .models import (
    AddressBook,
    ConfirmationProbe,
    GeoLocator,
    LifecycleSnapshot,
    Notifier,
    PaymentEvent,
    PriceOracle,
    ProbeResult,
    ProbeStatus,
    RequestContext,
)
from .service import CheckoutRegistry, CheckoutService, calculate_crypto_amount

__all__ = [
    "AddressBook",
    "CheckoutRegistry",
    "CheckoutService",
    "ConfirmationPolicy",
    "ConfirmationProbe",
    "GeoLocator",
    "LifecycleSnapshot",
    "Notifier",
    "PaymentError",
    "PaymentEvent",
    "PaymentLifecycle",
    "PriceOracle",
    "ProbePolicy",
    "ProbeResult",
    "ProbeStatus",
    "RequestContext",
    "SetupFailure",
    "TimerPolicy",
    "calculate_crypto_amount",
]
