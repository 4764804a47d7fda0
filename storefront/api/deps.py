# storefront/api/deps.py
from fastapi import Depends, Query
from sqlalchemy.orm import Session

from storefront.data.database import get_db
from storefront.data.models.user import UserModel
from storefront.domain.errors import ForbiddenError, UnauthorizedError
from storefront.repos.user_repo import UserRepo
from storefront.services.cart_service import CartService
from storefront.services.checkout_service import CheckoutService
from storefront.services.notification_service import NotificationService
from storefront.services.order_service import OrderService
from storefront.services.payment_service import PaymentService
from storefront.services.paystack_client import PaystackClient
from storefront.utils.settings import CheckoutConfig, PaystackConfig


def get_current_user(
    user_id: int = Query(..., gt=0, description="Authenticated user id"),
    db: Session = Depends(get_db),
) -> UserModel:
    user = UserRepo(db).get_user(user_id)
    if not user:
        raise UnauthorizedError()
    return user


def require_admin(user: UserModel = Depends(get_current_user)) -> UserModel:
    if user.role != "admin":
        raise ForbiddenError("Admin access required")
    return user


def get_checkout_config() -> CheckoutConfig:
    return CheckoutConfig()


def get_paystack_config() -> PaystackConfig:
    return PaystackConfig()


def get_paystack_client(config: PaystackConfig = Depends(get_paystack_config)) -> PaystackClient:
    return PaystackClient(config)


def get_notification_service() -> NotificationService:
    return NotificationService()


def get_cart_service(db: Session = Depends(get_db)) -> CartService:
    return CartService(db)


def get_checkout_service(
    db: Session = Depends(get_db),
    config: CheckoutConfig = Depends(get_checkout_config),
    notifications: NotificationService = Depends(get_notification_service),
) -> CheckoutService:
    return CheckoutService(db, config, notification_service=notifications)


def get_order_service(db: Session = Depends(get_db)) -> OrderService:
    return OrderService(db)


def get_payment_service(
    db: Session = Depends(get_db),
    client: PaystackClient = Depends(get_paystack_client),
    config: PaystackConfig = Depends(get_paystack_config),
    notifications: NotificationService = Depends(get_notification_service),
) -> PaymentService:
    return PaymentService(db, client, config, notification_service=notifications)
