# storefront/domain/schemas.py
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Generic, List, Literal, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field

from storefront.domain.order_status import OrderPaymentStatus, OrderStatus

T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    """Uniform response envelope."""

    success: bool = True
    message: Optional[str] = None
    data: Optional[T] = None


class Pagination(BaseModel):
    current_page: int
    total_pages: int
    total_items: int
    items_per_page: int


# users

class UserCreate(BaseModel):
    """Schema for creating a user."""

    id: int = Field(..., gt=0, description="User ID (must be > 0)")
    name: str = Field(..., min_length=1, max_length=100, description="User name")
    email: Optional[str] = Field(None, max_length=255)
    role: Literal["customer", "admin"] = "customer"


class UserRead(BaseModel):
    id: int
    name: str
    email: Optional[str] = None
    role: str

    model_config = ConfigDict(from_attributes=True)


# cart

class CartItemIn(BaseModel):
    """Schema for adding a product to the cart."""

    product_id: int = Field(..., gt=0, description="Product ID (must be > 0)")
    size: Optional[str] = Field(None, max_length=50)
    color: Optional[str] = Field(None, max_length=50)
    quantity: int = Field(1, ge=1, description="Quantity (defaults to 1)")


class CartItemUpdate(BaseModel):
    quantity: int = Field(..., ge=1)


class CartLineOut(BaseModel):
    id: int
    product_id: int
    size: Optional[str] = None
    color: Optional[str] = None
    quantity: int
    unit_price: Decimal
    line_total: Decimal
    created_at: datetime


class CartOut(BaseModel):
    items: List[CartLineOut]
    total: Decimal


# orders

class AddressIn(BaseModel):
    name: str = Field(..., min_length=1)
    address: str = Field(..., min_length=1)
    city: str = Field(..., min_length=1)
    state: str = Field(..., min_length=1)
    zip: str = Field(..., min_length=1)
    country: str = Field(..., min_length=1)


class CheckoutIn(BaseModel):
    """Schema for turning the cart into an order."""

    shipping_address: AddressIn
    billing_address: Optional[AddressIn] = None
    payment_method: str = Field(..., min_length=1, max_length=50)
    phone_number: Optional[str] = Field(None, max_length=30)


class OrderItemOut(BaseModel):
    id: int
    product_id: int
    product_name: str
    quantity: int
    unit_price: Decimal
    subtotal: Decimal
    size: Optional[str] = None
    color: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class OrderOut(BaseModel):
    id: int
    order_number: str
    user_id: int
    status: str
    payment_status: str
    subtotal: Decimal
    shipping_fee: Decimal
    tax: Decimal
    total_amount: Decimal
    shipping_address: Dict[str, Any]
    billing_address: Dict[str, Any]
    payment_method: str
    phone_number: Optional[str] = None
    transaction_id: Optional[str] = None
    paid_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    created_at: datetime
    items: List[OrderItemOut] = []

    model_config = ConfigDict(from_attributes=True)


class OrderListOut(BaseModel):
    orders: List[OrderOut]
    pagination: Pagination


class OrderStatusUpdate(BaseModel):
    status: OrderStatus


class PaymentStatusUpdate(BaseModel):
    payment_status: OrderPaymentStatus
    transaction_id: Optional[str] = Field(None, max_length=255)


class OrderStatistics(BaseModel):
    total_orders: int
    pending_orders: int
    processing_orders: int
    shipped_orders: int
    delivered_orders: int
    cancelled_orders: int
    total_revenue: Decimal
    monthly_revenue: Decimal


# payments

class PaymentInitializeIn(BaseModel):
    """Schema for starting a payment with the provider."""

    amount: Optional[Decimal] = Field(None, gt=0, description="Defaults to the order total")
    email: Optional[str] = Field(None, max_length=255)
    order_id: Optional[int] = Field(None, gt=0)
    metadata: Optional[Dict[str, Any]] = None


class PaymentInitializeOut(BaseModel):
    authorization_url: str
    access_code: Optional[str] = None
    reference: str
    payment_id: int


class PaymentOut(BaseModel):
    id: int
    order_id: Optional[int] = None
    amount: Decimal
    currency: str
    reference: str
    status: str
    payment_method: Optional[str] = None
    channel: Optional[str] = None
    paid_at: Optional[datetime] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
