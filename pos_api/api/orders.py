from functools import lru_cache
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse

from ..config import settings
from ..core.permissions import get_current_principal
from ..models.order import (
    ApiResponse,
    OrderCreate,
    OrderStatusUpdate,
    PaymentCreate,
    PaymentMethodUpdate,
)
from ..models.user import Principal
from ..services.order_store import InMemoryOrderStore, SupabaseOrderStore
from .orders_service import OrderService
from .websocket import manager

router = APIRouter(prefix="/orders", tags=["Orders"])


@lru_cache
def get_order_service() -> OrderService:
    store = InMemoryOrderStore() if settings.uses_memory_store else SupabaseOrderStore()
    return OrderService(store, manager)


def envelope(data, status_code: int = status.HTTP_200_OK, **extra) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ApiResponse(success=True, data=data, **extra).to_body(),
    )


@router.get("")
async def list_orders(
    branch_id: Optional[str] = Query(None, alias="branchId"),
    current_user: Principal = Depends(get_current_principal),
    service: OrderService = Depends(get_order_service),
):
    orders = await service.list_orders(current_user, branch_id)
    return envelope([order.to_public() for order in orders])


@router.post("")
async def create_order(
    order_data: OrderCreate,
    current_user: Principal = Depends(get_current_principal),
    service: OrderService = Depends(get_order_service),
):
    order, replayed = await service.create_order(current_user, order_data)
    if replayed:
        return envelope(order.to_public(), idempotent=True)
    return envelope(order.to_public(), status.HTTP_201_CREATED)


@router.put("/{order_id}/status")
async def update_order_status(
    order_id: str,
    status_update: OrderStatusUpdate,
    current_user: Principal = Depends(get_current_principal),
    service: OrderService = Depends(get_order_service),
):
    order = await service.set_status(order_id, status_update.status, current_user)
    return envelope(order.to_public())


@router.post("/{order_id}/payment")
async def complete_payment(
    order_id: str,
    payment: PaymentCreate,
    current_user: Principal = Depends(get_current_principal),
    service: OrderService = Depends(get_order_service),
):
    order = await service.complete_payment(order_id, payment, current_user)
    return envelope(order.to_public())


@router.put("/{order_id}/payment-method")
async def update_payment_method(
    order_id: str,
    update: PaymentMethodUpdate,
    current_user: Principal = Depends(get_current_principal),
    service: OrderService = Depends(get_order_service),
):
    """Cashier/admin correction of how an order was paid."""
    order = await service.update_payment_method(current_user, order_id, update)
    return envelope(order.to_public())
