"""Container backed dependency providers."""

from fastapi import Depends, Request

from paygate.core.container import ApplicationContainer
from paygate.domain.orders import OrderLedger


def get_container(request: Request) -> ApplicationContainer:
    return request.app.state.container


def get_ledger(container: ApplicationContainer = Depends(get_container)) -> OrderLedger:
    return container.ledger


__all__ = [
    "get_container",
    "get_ledger",
]
