# storefront/api/routers/orders.py
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query

from storefront.api.deps import (
    get_checkout_service,
    get_current_user,
    get_order_service,
    require_admin,
)
from storefront.data.models.user import UserModel
from storefront.domain.order_status import OrderStatus
from storefront.domain.schemas import (
    ApiResponse,
    CheckoutIn,
    OrderListOut,
    OrderOut,
    OrderStatistics,
    OrderStatusUpdate,
    PaymentStatusUpdate,
)
from storefront.services.checkout_service import CheckoutService
from storefront.services.order_service import OrderService

router = APIRouter(prefix="/orders", tags=["orders"])


@router.post("/checkout", response_model=ApiResponse[OrderOut], status_code=201)
def checkout(
    payload: CheckoutIn,
    user: UserModel = Depends(get_current_user),
    svc: CheckoutService = Depends(get_checkout_service),
):
    """
    Creates an order from the customer's cart.
    Reserves stock and empties the cart in the same transaction.
    """
    order = svc.checkout(
        user_id=user.id,
        shipping_address=payload.shipping_address.model_dump(),
        billing_address=payload.billing_address.model_dump() if payload.billing_address else None,
        payment_method=payload.payment_method,
        phone_number=payload.phone_number,
    )
    return ApiResponse(message="Order created successfully", data=order)


@router.get("/my", response_model=ApiResponse[OrderListOut])
def my_orders(
    status: Optional[OrderStatus] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    user: UserModel = Depends(get_current_user),
    svc: OrderService = Depends(get_order_service),
):
    result = svc.list_user_orders(user.id, status.value if status else None, page, limit)
    return ApiResponse(data=result)


@router.get("", response_model=ApiResponse[OrderListOut])
def all_orders(
    status: Optional[OrderStatus] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    admin: UserModel = Depends(require_admin),
    svc: OrderService = Depends(get_order_service),
):
    result = svc.list_all_orders(status.value if status else None, start_date, end_date, page, limit)
    return ApiResponse(data=result)


@router.get("/statistics", response_model=ApiResponse[OrderStatistics])
def statistics(
    admin: UserModel = Depends(require_admin),
    svc: OrderService = Depends(get_order_service),
):
    return ApiResponse(data=svc.statistics())


@router.get("/{order_id}", response_model=ApiResponse[OrderOut])
def get_order(
    order_id: int,
    user: UserModel = Depends(get_current_user),
    svc: OrderService = Depends(get_order_service),
):
    return ApiResponse(data=svc.get_order(order_id, user.id, is_admin=user.role == "admin"))


@router.post("/{order_id}/cancel", response_model=ApiResponse[OrderOut])
def cancel_order(
    order_id: int,
    user: UserModel = Depends(get_current_user),
    svc: OrderService = Depends(get_order_service),
):
    return ApiResponse(message="Order cancelled successfully", data=svc.cancel_order(order_id, user.id))


@router.put("/{order_id}/status", response_model=ApiResponse[OrderOut])
def update_status(
    order_id: int,
    payload: OrderStatusUpdate,
    admin: UserModel = Depends(require_admin),
    svc: OrderService = Depends(get_order_service),
):
    order = svc.update_status(order_id, payload.status.value)
    return ApiResponse(message="Order status updated successfully", data=order)


@router.put("/{order_id}/payment-status", response_model=ApiResponse[OrderOut])
def update_payment_status(
    order_id: int,
    payload: PaymentStatusUpdate,
    admin: UserModel = Depends(require_admin),
    svc: OrderService = Depends(get_order_service),
):
    order = svc.update_payment_status(order_id, payload.payment_status.value, payload.transaction_id)
    return ApiResponse(message="Payment status updated successfully", data=order)
