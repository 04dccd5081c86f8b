"""Order domain specific exceptions."""

from __future__ import annotations

from .models import OrderStatus


class OrderError(Exception):
    """Base class for order related domain errors."""


class DuplicateOrderError(OrderError):
    """Raised when creating an order whose id already exists."""


class OrderNotFoundError(OrderError):
    """Raised when the requested order could not be found."""


class InvalidTransitionError(OrderError):
    """Raised when a status change is not allowed from the stored status."""

    def __init__(self, order_id: str, current: OrderStatus, requested: OrderStatus) -> None:
        super().__init__(f"order {order_id} is {current.value}, cannot become {requested.value}")
        self.order_id = order_id
        self.current = current
        self.requested = requested


class VerificationFailure(OrderError):
    """Raised when an encoded order payload fails its integrity check."""
