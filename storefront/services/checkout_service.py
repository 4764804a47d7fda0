# storefront/services/checkout_service.py
import secrets
import time
from collections import defaultdict
from typing import Any, Callable, Dict

from sqlalchemy.orm import Session

from storefront.data.models.order import OrderModel
from storefront.data.models.order_item import OrderItemModel
from storefront.domain.errors import (
    DuplicateReferenceError,
    EmptyCartError,
    InsufficientStockError,
    NotFoundError,
)
from storefront.domain.order_status import OrderPaymentStatus, OrderStatus
from storefront.domain.pricing import compute_totals, to_money
from storefront.domain.schemas import OrderOut
from storefront.repos.cart_repo import CartRepo
from storefront.repos.catalog_repo import CatalogRepo
from storefront.repos.order_repo import OrderRepo
from storefront.services.notification_service import NotificationService
from storefront.utils.logging import get_logger
from storefront.utils.settings import CheckoutConfig

logger = get_logger(__name__)


def generate_order_number() -> str:
    """ORD-<last 8 digits of epoch millis>-<4 random digits>"""
    timestamp = str(int(time.time() * 1000))
    return f"ORD-{timestamp[-8:]}-{secrets.randbelow(10000):04d}"


class CheckoutService:
    """
    Turns a customer's cart into an order.

    Everything happens in one database transaction: order, items, stock
    reservation and cart clearing are committed together or not at all.
    """

    def __init__(
        self,
        db: Session,
        config: CheckoutConfig,
        notification_service: NotificationService | None = None,
        order_number_factory: Callable[[], str] = generate_order_number,
    ):
        self.db = db
        self.config = config
        self.cart_repo = CartRepo(db)
        self.catalog = CatalogRepo(db)
        self.order_repo = OrderRepo(db)
        self.notification_service = notification_service or NotificationService()
        self.order_number_factory = order_number_factory

    def checkout(
        self,
        user_id: int,
        shipping_address: Dict[str, Any],
        payment_method: str,
        billing_address: Dict[str, Any] | None = None,
        phone_number: str | None = None,
    ) -> OrderOut:
        """
        Use Case: create an order from the cart.

        1. loads the cart (EmptyCartError when there is nothing)
        2. re-reads price and stock of every product
        3. computes totals
        4. inserts the order with a unique order number, then its items
        5. reserves stock with conditional decrements
        6. clears the cart
        Any failure rolls the whole transaction back.
        """
        try:
            order = self._place_order(
                user_id=user_id,
                shipping_address=shipping_address,
                billing_address=billing_address or shipping_address,
                payment_method=payment_method,
                phone_number=phone_number,
            )
            self.order_repo.commit()
        except Exception:
            self.order_repo.rollback()
            raise

        logger.info(f"Order {order.order_number} (id {order.id}) created for user {user_id}")

        result = OrderOut.model_validate(order)
        self._notify(user_id, order.id)
        return result

    def _place_order(self, user_id, shipping_address, billing_address, payment_method, phone_number) -> OrderModel:
        lines = self.cart_repo.list_lines(user_id)
        if not lines:
            raise EmptyCartError()

        products = self.catalog.get_products([line.product_id for line in lines])

        # several lines (sizes/colors) may draw from the same product
        requested = defaultdict(int)
        for line in lines:
            if line.product_id not in products:
                raise NotFoundError("Product not found", product_id=line.product_id)
            requested[line.product_id] += line.quantity

        for product_id, quantity in requested.items():
            product = products[product_id]
            if product.stock < quantity:
                raise InsufficientStockError(product.id, product.name, quantity, product.stock)

        # cart prices are display only, totals use the catalog
        totals = compute_totals(
            ((products[line.product_id].price, line.quantity) for line in lines),
            self.config,
        )

        order = self._insert_order(
            user_id=user_id,
            status=OrderStatus.PENDING.value,
            payment_status=OrderPaymentStatus.PENDING.value,
            subtotal=totals.subtotal,
            shipping_fee=totals.shipping_fee,
            tax=totals.tax,
            total_amount=totals.total_amount,
            shipping_address=shipping_address,
            billing_address=billing_address,
            payment_method=payment_method,
            phone_number=phone_number,
        )

        for line in lines:
            product = products[line.product_id]
            self.order_repo.add_item(
                OrderItemModel(
                    order_id=order.id,
                    product_id=product.id,
                    product_name=product.name,
                    quantity=line.quantity,
                    unit_price=product.price,
                    subtotal=to_money(product.price * line.quantity),
                    size=line.size or None,
                    color=line.color or None,
                )
            )

        for line in lines:
            if not self.catalog.decrement_stock(line.product_id, line.quantity):
                product = products[line.product_id]
                available = self.catalog.current_stock(line.product_id)
                logger.warning(
                    f"Stock reservation for product {product.id} failed "
                    f"(requested {line.quantity}, available {available}), rolling back order {order.order_number}"
                )
                raise InsufficientStockError(product.id, product.name, line.quantity, available)
            logger.info(f"Reserved {line.quantity} x product {line.product_id} for order {order.order_number}")

        self.cart_repo.clear(user_id)
        self.db.flush()
        return order

    def _insert_order(self, **fields) -> OrderModel:
        attempts = self.config.reference_attempts
        for attempt in range(1, attempts + 1):
            order_number = self.order_number_factory()

            if self.order_repo.order_number_exists(order_number):
                logger.warning(f"Order number {order_number} taken, attempt {attempt}/{attempts}")
                continue

            try:
                return self.order_repo.insert_order(OrderModel(order_number=order_number, **fields))
            except DuplicateReferenceError:
                # lost the race to a concurrent checkout between the check and the insert
                logger.warning(f"Order number {order_number} inserted concurrently, attempt {attempt}/{attempts}")

        raise DuplicateReferenceError(f"Could not generate a unique order number after {attempts} attempts")

    def _notify(self, user_id: int, order_id: int):
        try:
            self.notification_service.send_order_notification(user_id, order_id)
        except Exception as e:
            logger.warning(f"Failed to queue notification for order {order_id}: {e}")
