"""Read-only order lookup for customers."""
from fastapi import APIRouter, Depends, HTTPException, status

from paygate.domain.orders import OrderLedger, OrderNotFoundError
from paygate.interfaces.http.deps import get_ledger
from paygate.schemas import OrderResponse

from ._views import order_response

router = APIRouter()


@router.get("/{order_id}", response_model=OrderResponse, summary="查询订单")
async def get_order(order_id: str, ledger: OrderLedger = Depends(get_ledger)):
    try:
        record = await ledger.get(order_id)
    except OrderNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="订单不存在") from exc
    return order_response(record)
