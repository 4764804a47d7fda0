# storefront/api/routers/carts.py
from fastapi import APIRouter, Depends

from storefront.api.deps import get_cart_service, get_current_user
from storefront.data.models.user import UserModel
from storefront.domain.schemas import ApiResponse, CartItemIn, CartItemUpdate, CartLineOut, CartOut
from storefront.services.cart_service import CartService

router = APIRouter(prefix="/cart", tags=["cart"])


@router.get("", response_model=ApiResponse[CartOut])
def get_cart(
    user: UserModel = Depends(get_current_user),
    svc: CartService = Depends(get_cart_service),
):
    return ApiResponse(data=svc.list_lines(user.id))


@router.post("/items", response_model=ApiResponse[CartLineOut], status_code=201)
def add_item(
    payload: CartItemIn,
    user: UserModel = Depends(get_current_user),
    svc: CartService = Depends(get_cart_service),
):
    line = svc.add_line(
        user_id=user.id,
        product_id=payload.product_id,
        quantity=payload.quantity,
        size=payload.size,
        color=payload.color,
    )
    return ApiResponse(message="Item added to cart", data=line)


@router.put("/items/{line_id}", response_model=ApiResponse[CartLineOut])
def update_item(
    line_id: int,
    payload: CartItemUpdate,
    user: UserModel = Depends(get_current_user),
    svc: CartService = Depends(get_cart_service),
):
    return ApiResponse(data=svc.update_line(user.id, line_id, payload.quantity))


@router.delete("/items/{line_id}", response_model=ApiResponse[None])
def remove_item(
    line_id: int,
    user: UserModel = Depends(get_current_user),
    svc: CartService = Depends(get_cart_service),
):
    svc.remove_line(user.id, line_id)
    return ApiResponse(message="Item removed from cart")


@router.delete("", response_model=ApiResponse[None])
def clear_cart(
    user: UserModel = Depends(get_current_user),
    svc: CartService = Depends(get_cart_service),
):
    svc.clear_all(user.id)
    return ApiResponse(message="Cart cleared")
