"""Order domain: models, ledger and intake."""

from .exceptions import (
    DuplicateOrderError,
    InvalidTransitionError,
    OrderError,
    OrderNotFoundError,
    VerificationFailure,
)
from .intake import OrderIntake, has_order_params
from .ledger import OrderLedger
from .models import (
    OrderData,
    OrderRecord,
    OrderStats,
    OrderStatus,
    can_transition,
    generate_order_id,
)

__all__ = [
    "DuplicateOrderError",
    "InvalidTransitionError",
    "OrderData",
    "OrderError",
    "OrderIntake",
    "OrderLedger",
    "OrderNotFoundError",
    "OrderRecord",
    "OrderStats",
    "OrderStatus",
    "VerificationFailure",
    "can_transition",
    "generate_order_id",
    "has_order_params",
]
