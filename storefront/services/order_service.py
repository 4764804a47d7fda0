# storefront/services/order_service.py
import math
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from sqlalchemy.orm import Session

from storefront.data.models.order import OrderModel
from storefront.domain.errors import ForbiddenError, InvalidTransitionError, NotFoundError
from storefront.domain.order_status import OrderPaymentStatus, OrderStatus, check_transition
from storefront.domain.schemas import OrderOut, OrderStatistics
from storefront.repos.catalog_repo import CatalogRepo
from storefront.repos.order_repo import OrderRepo
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class OrderService:
    """
    Orders after checkout: queries, status transitions and cancellation.
    """

    def __init__(self, db: Session):
        self.db = db
        self.repo = OrderRepo(db)
        self.catalog = CatalogRepo(db)

    # queries

    def get_order(self, order_id: int, user_id: int, is_admin: bool = False) -> OrderOut:
        order = self._load(order_id)

        if not is_admin and order.user_id != user_id:
            raise ForbiddenError("Unauthorized to view this order")

        return OrderOut.model_validate(order)

    def list_user_orders(self, user_id: int, status: str | None = None, page: int = 1, limit: int = 10):
        orders, total = self.repo.list_orders(
            user_id=user_id,
            status=status,
            offset=(page - 1) * limit,
            limit=limit,
        )
        return self._page(orders, total, page, limit)

    def list_all_orders(
        self,
        status: str | None = None,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
        page: int = 1,
        limit: int = 20,
    ):
        orders, total = self.repo.list_orders(
            status=status,
            start=start_date,
            end=end_date,
            offset=(page - 1) * limit,
            limit=limit,
        )
        return self._page(orders, total, page, limit)

    def statistics(self) -> OrderStatistics:
        counts = self.repo.count_by_status()
        month_ago = datetime.now(timezone.utc) - timedelta(days=30)

        return OrderStatistics(
            total_orders=sum(counts.values()),
            pending_orders=counts.get(OrderStatus.PENDING.value, 0),
            processing_orders=counts.get(OrderStatus.PROCESSING.value, 0),
            shipped_orders=counts.get(OrderStatus.SHIPPED.value, 0),
            delivered_orders=counts.get(OrderStatus.DELIVERED.value, 0),
            cancelled_orders=counts.get(OrderStatus.CANCELLED.value, 0),
            total_revenue=Decimal(str(self.repo.revenue())),
            monthly_revenue=Decimal(str(self.repo.revenue(since=month_ago))),
        )

    # commands

    def cancel_order(self, order_id: int, user_id: int) -> OrderOut:
        """
        Use Case: customer cancels their order.
        Stock of every item goes back to the catalog, whatever the payment status.
        """
        order = self._load(order_id)

        if order.user_id != user_id:
            raise ForbiddenError("Unauthorized to cancel this order")

        return self._cancel(order)

    def update_status(self, order_id: int, status: str) -> OrderOut:
        """Use Case: back office moves an order through the pipeline."""
        order = self._load(order_id)
        target = OrderStatus(status)

        if target is OrderStatus.CANCELLED:
            return self._cancel(order)

        current = order.status
        check_transition(current, target.value)

        stamps = {}
        if target is OrderStatus.DELIVERED:
            stamps["delivered_at"] = datetime.now(timezone.utc)

        try:
            if not self.repo.transition_status(order.id, current, target.value, **stamps):
                raise InvalidTransitionError(current, target.value, "Order was modified concurrently")
            self.repo.commit()
        except Exception:
            self.repo.rollback()
            raise

        logger.info(f"Order {order.order_number} status {current} -> {target.value}")
        return OrderOut.model_validate(self.repo.refresh(order))

    def update_payment_status(self, order_id: int, payment_status: str, transaction_id: str | None = None) -> OrderOut:
        """Use Case: back office overrides the payment status (e.g. a refund done by hand)."""
        order = self._load(order_id)
        target = OrderPaymentStatus(payment_status)

        order.payment_status = target.value
        if transaction_id:
            order.transaction_id = transaction_id
        if target is OrderPaymentStatus.PAID:
            order.paid_at = datetime.now(timezone.utc)

        self.repo.commit()

        logger.info(f"Order {order.order_number} payment status set to {target.value}")
        return OrderOut.model_validate(order)

    def _cancel(self, order: OrderModel) -> OrderOut:
        current = order.status
        check_transition(current, OrderStatus.CANCELLED.value)

        try:
            # status first: a concurrent cancel loses here and never restocks twice
            if not self.repo.transition_status(
                order.id,
                current,
                OrderStatus.CANCELLED.value,
                cancelled_at=datetime.now(timezone.utc),
            ):
                raise InvalidTransitionError(current, OrderStatus.CANCELLED.value, "Order was modified concurrently")

            for item in self.repo.list_items(order.id):
                self.catalog.increment_stock(item.product_id, item.quantity)
                logger.info(f"Restored {item.quantity} x product {item.product_id} from order {order.order_number}")

            self.repo.commit()
        except Exception:
            self.repo.rollback()
            raise

        logger.info(f"Order {order.order_number} cancelled (was {current})")
        return OrderOut.model_validate(self.repo.refresh(order))

    def _load(self, order_id: int) -> OrderModel:
        order = self.repo.get_order(order_id)
        if not order:
            raise NotFoundError("Order not found", order_id=order_id)
        return order

    @staticmethod
    def _page(orders, total: int, page: int, limit: int):
        return {
            "orders": [OrderOut.model_validate(o) for o in orders],
            "pagination": {
                "current_page": page,
                "total_pages": math.ceil(total / limit) if limit else 0,
                "total_items": total,
                "items_per_page": limit,
            },
        }
