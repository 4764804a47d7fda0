# storefront/repos/order_repo.py
from datetime import datetime

from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from storefront.data.models.order import OrderModel
from storefront.data.models.order_item import OrderItemModel
from storefront.domain.errors import DuplicateReferenceError


class OrderRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_order(self, order_id: int) -> OrderModel | None:
        return self.db.get(OrderModel, order_id)

    def order_number_exists(self, order_number: str) -> bool:
        return (
            self.db.query(OrderModel.id).filter(OrderModel.order_number == order_number).first()
            is not None
        )

    def insert_order(self, order: OrderModel) -> OrderModel:
        """Insert inside a savepoint; a taken order number surfaces as DuplicateReferenceError."""
        try:
            with self.db.begin_nested():
                self.db.add(order)
                self.db.flush()
        except IntegrityError as e:
            raise DuplicateReferenceError(
                f"Order number {order.order_number} already exists",
                reference=order.order_number,
            ) from e
        return order

    def add_item(self, item: OrderItemModel) -> OrderItemModel:
        self.db.add(item)
        return item

    def list_items(self, order_id: int) -> list[OrderItemModel]:
        return (
            self.db.query(OrderItemModel)
            .filter(OrderItemModel.order_id == order_id)
            .order_by(OrderItemModel.id)
            .all()
        )

    def list_orders(
        self,
        user_id: int | None = None,
        status: str | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
        offset: int = 0,
        limit: int = 10,
    ) -> tuple[list[OrderModel], int]:
        query = self.db.query(OrderModel)
        if user_id is not None:
            query = query.filter(OrderModel.user_id == user_id)
        if status:
            query = query.filter(OrderModel.status == status)
        if start:
            query = query.filter(OrderModel.created_at >= start)
        if end:
            query = query.filter(OrderModel.created_at <= end)

        total = query.count()
        orders = (
            query.options(selectinload(OrderModel.items))
            .order_by(OrderModel.created_at.desc(), OrderModel.id.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )
        return orders, total

    def transition_status(self, order_id: int, from_status: str, to_status: str, **stamps) -> bool:
        """
        Compare-and-set on status.

        UPDATE orders SET status = :to WHERE id = :id AND status = :from
        rowcount 0 means someone else moved the order first.
        """
        result = self.db.execute(
            update(OrderModel)
            .where(OrderModel.id == order_id, OrderModel.status == from_status)
            .values(status=to_status, **stamps)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def mark_paid(self, order_id: int, paid_at: datetime) -> bool:
        result = self.db.execute(
            update(OrderModel)
            .where(OrderModel.id == order_id, OrderModel.payment_status != "paid")
            .values(payment_status="paid", paid_at=paid_at)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def count_by_status(self) -> dict[str, int]:
        rows = self.db.query(OrderModel.status, func.count(OrderModel.id)).group_by(OrderModel.status).all()
        return {status: count for status, count in rows}

    def revenue(self, since: datetime | None = None):
        query = self.db.query(func.coalesce(func.sum(OrderModel.total_amount), 0)).filter(
            OrderModel.status == "delivered",
            OrderModel.payment_status == "paid",
        )
        if since:
            query = query.filter(OrderModel.created_at >= since)
        return query.scalar()

    def refresh(self, order: OrderModel) -> OrderModel:
        self.db.refresh(order)
        return order

    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()
