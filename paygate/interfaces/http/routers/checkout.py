"""Customer facing checkout endpoints."""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status

from paygate.core.container import ApplicationContainer
from paygate.domain.orders import OrderData, OrderNotFoundError, VerificationFailure, has_order_params
from paygate.domain.payments import RequestContext
from paygate.domain.sessions import SessionExpiredError, SessionNotFoundError
from paygate.interfaces.http.deps import get_container
from paygate.schemas import (
    CheckoutResponse,
    LifecycleResponse,
    SessionCreateRequest,
    SessionResponse,
    SuccessResponse,
)

from ._views import checkout_response, lifecycle_response, probe_response

router = APIRouter()


def request_context(request: Request) -> RequestContext:
    forwarded = request.headers.get("x-forwarded-for", "")
    user_ip = forwarded.split(",")[0].strip()
    if not user_ip and request.client is not None:
        user_ip = request.client.host
    return RequestContext(
        user_ip=user_ip or "Unknown",
        user_agent=request.headers.get("user-agent", ""),
    )


def _rejected(exc: VerificationFailure) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail={"status": "rejected", "reason": str(exc)},
    )


async def _order_from_request(container: ApplicationContainer, params: dict) -> OrderData:
    session_id: Optional[str] = params.get("session")
    if session_id:
        try:
            payload = await container.sessions.read(session_id)
        except SessionExpiredError as exc:
            raise HTTPException(status_code=status.HTTP_410_GONE, detail="支付会话已过期") from exc
        except SessionNotFoundError as exc:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="支付会话不存在") from exc
        return container.intake.from_payload(payload)

    try:
        return container.intake.parse(params)
    except VerificationFailure as exc:
        raise _rejected(exc) from exc


@router.get("", response_model=CheckoutResponse, summary="打开支付页面")
async def open_checkout(
    request: Request,
    container: ApplicationContainer = Depends(get_container),
):
    params = dict(request.query_params)
    if not has_order_params(params):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="缺少订单信息")

    order = await _order_from_request(container, params)
    lifecycle = await container.checkout.start(order, request_context(request))
    return checkout_response(lifecycle)


@router.post("/sessions", response_model=SessionResponse, status_code=status.HTTP_201_CREATED, summary="创建支付会话")
async def create_session(
    payload: SessionCreateRequest,
    container: ApplicationContainer = Depends(get_container),
):
    params = payload.model_dump(exclude_none=True)
    if not has_order_params(params):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="缺少订单信息")
    try:
        order = container.intake.parse(params)
    except VerificationFailure as exc:
        raise _rejected(exc) from exc

    session = await container.sessions.create(order.to_payload())
    return SessionResponse(session_id=session.id, order_id=order.order_id, expires_at=session.expires_at)


@router.get("/{order_id}", response_model=LifecycleResponse, summary="查询支付状态")
async def checkout_status(
    order_id: str,
    container: ApplicationContainer = Depends(get_container),
):
    lifecycle = container.registry.get(order_id)
    if lifecycle is not None:
        return lifecycle_response(lifecycle.snapshot())

    try:
        record = await container.ledger.get(order_id)
    except OrderNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="订单不存在") from exc
    return LifecycleResponse(
        order_id=record.order_id,
        status=record.status.value,
        remaining_seconds=container.checkout.remaining_for(record),
        tx_reference=record.tx_reference,
    )


@router.post("/{order_id}/check", response_model=LifecycleResponse, summary="手动检查支付")
async def check_payment(
    order_id: str,
    container: ApplicationContainer = Depends(get_container),
):
    lifecycle = container.registry.get(order_id)
    if lifecycle is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="支付会话不存在或已结束")

    result = await lifecycle.check_now()
    response = lifecycle_response(lifecycle.snapshot())
    response.last_probe = probe_response(result)
    return response


@router.delete("/{order_id}", response_model=SuccessResponse, summary="离开支付页面")
async def leave_checkout(
    order_id: str,
    container: ApplicationContainer = Depends(get_container),
):
    released = await container.registry.release(order_id)
    return SuccessResponse(message="已释放" if released else "无进行中的支付", data={"released": released})
