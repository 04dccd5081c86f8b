"""HTTP interface: routers and dependencies."""
from fastapi import APIRouter

from .routers import admin, checkout, orders


def create_api_router(prefix: str = "") -> APIRouter:
    router = APIRouter(prefix=prefix)
    router.include_router(checkout.router, prefix="/checkout", tags=["支付"])
    router.include_router(orders.router, prefix="/orders", tags=["订单"])
    router.include_router(admin.router, prefix="/admin", tags=["后台管理"])
    return router


__all__ = [
    "create_api_router",
]
