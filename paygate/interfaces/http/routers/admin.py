"""Administrative endpoints for reviewing and settling orders."""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import JSONResponse

from paygate.core.container import ApplicationContainer
from paygate.core.security import TokenData, authenticate_admin, create_access_token
from paygate.domain.orders import InvalidTransitionError, OrderNotFoundError, OrderStatus
from paygate.domain.orders.models import utcnow
from paygate.interfaces.http.deps import get_container, get_current_admin
from paygate.schemas import (
    AdminLoginRequest,
    AdminLoginResponse,
    AdminOrderResponse,
    AdminStatusUpdate,
    OrderListResponse,
    OrderStatsResponse,
    SweepResponse,
)

from ._views import admin_order_response

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/login", response_model=AdminLoginResponse, summary="管理员登录")
async def admin_login(
    payload: AdminLoginRequest,
    container: ApplicationContainer = Depends(get_container),
):
    if not authenticate_admin(container.settings, payload.username, payload.password):
        logger.warning("Failed admin login for %r", payload.username)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="用户名或密码错误")

    token = create_access_token(payload.username, settings=container.settings)
    return AdminLoginResponse(access_token=token, username=payload.username)


@router.get("/orders", response_model=OrderListResponse, summary="订单列表")
async def list_orders(
    status_filter: Optional[str] = Query(None, alias="status"),
    search: Optional[str] = Query(None, max_length=100),
    container: ApplicationContainer = Depends(get_container),
    _: TokenData = Depends(get_current_admin),
):
    records = await container.ledger.list(status=status_filter, search=search)
    return OrderListResponse(total=len(records), orders=[admin_order_response(record) for record in records])


@router.get("/orders/stats", response_model=OrderStatsResponse, summary="订单统计")
async def order_stats(
    container: ApplicationContainer = Depends(get_container),
    _: TokenData = Depends(get_current_admin),
):
    stats = await container.ledger.stats()
    return OrderStatsResponse(
        total=stats.total,
        confirmed_revenue_usd=stats.confirmed_revenue_usd,
        **stats.by_status,
    )


@router.get("/orders/export", summary="导出订单")
async def export_orders(
    container: ApplicationContainer = Depends(get_container),
    _: TokenData = Depends(get_current_admin),
):
    filename = f"cryoner-orders-{utcnow():%Y-%m-%d}.json"
    return JSONResponse(
        content=await container.ledger.export(),
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post("/orders/{order_id}/status", response_model=AdminOrderResponse, summary="更新订单状态")
async def update_order_status(
    order_id: str,
    payload: AdminStatusUpdate,
    container: ApplicationContainer = Depends(get_container),
    admin: TokenData = Depends(get_current_admin),
):
    try:
        record = await container.ledger.update_status(order_id, OrderStatus(payload.status), payload.tx_reference)
    except OrderNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="订单不存在") from exc
    except InvalidTransitionError as exc:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"订单状态为 {exc.current.value}，无法修改",
        ) from exc

    # the live checkout, if any, must not settle the order a second time
    await container.registry.release(order_id)
    logger.info("Admin %s set order %s to %s", admin.username, order_id, record.status.value)
    return admin_order_response(record)


@router.post("/sessions/sweep", response_model=SweepResponse, summary="清理过期会话")
async def sweep_sessions(
    container: ApplicationContainer = Depends(get_container),
    _: TokenData = Depends(get_current_admin),
):
    return SweepResponse(removed=await container.sessions.sweep_expired())
