# storefront/api/routers/payments.py
from typing import List, Optional

from fastapi import APIRouter, Depends, Header, Request
from starlette.concurrency import run_in_threadpool

from storefront.api.deps import get_current_user, get_payment_service
from storefront.data.models.user import UserModel
from storefront.domain.schemas import ApiResponse, PaymentInitializeIn, PaymentInitializeOut, PaymentOut
from storefront.services.payment_service import PaymentService

router = APIRouter(prefix="/payment", tags=["payment"])


@router.post("/initialize", response_model=ApiResponse[PaymentInitializeOut])
def initialize_payment(
    payload: PaymentInitializeIn,
    user: UserModel = Depends(get_current_user),
    svc: PaymentService = Depends(get_payment_service),
):
    result = svc.initialize(
        user,
        amount=payload.amount,
        email=payload.email,
        order_id=payload.order_id,
        metadata=payload.metadata,
    )
    return ApiResponse(message="Payment initialized successfully", data=result)


@router.get("/verify/{reference}", response_model=ApiResponse[PaymentOut])
def verify_payment(
    reference: str,
    user: UserModel = Depends(get_current_user),
    svc: PaymentService = Depends(get_payment_service),
):
    payment = svc.verify(user.id, reference)
    return ApiResponse(message=f"Payment {payment.status}", data=payment)


@router.post("/webhook")
async def paystack_webhook(
    request: Request,
    x_paystack_signature: Optional[str] = Header(None),
    svc: PaymentService = Depends(get_payment_service),
):
    """
    Paystack callback. The signature is checked against the raw body,
    so the body is read as bytes, never re-serialized.
    """
    raw_body = await request.body()
    result = await run_in_threadpool(svc.handle_webhook, raw_body, x_paystack_signature)
    return {"success": True, "message": "Webhook received", "data": result}


@router.get("/history", response_model=ApiResponse[List[PaymentOut]])
def payment_history(
    user: UserModel = Depends(get_current_user),
    svc: PaymentService = Depends(get_payment_service),
):
    return ApiResponse(data=svc.list_payments(user.id))


@router.get("/{payment_id}", response_model=ApiResponse[PaymentOut])
def payment_details(
    payment_id: int,
    user: UserModel = Depends(get_current_user),
    svc: PaymentService = Depends(get_payment_service),
):
    return ApiResponse(data=svc.get_payment(user.id, payment_id))
