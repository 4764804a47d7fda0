# storefront/repos/cart_repo.py
from sqlalchemy.orm import Session

from storefront.data.models.cart_item import CartItemModel


class CartRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_line(self, line_id: int) -> CartItemModel | None:
        return self.db.get(CartItemModel, line_id)

    def find_line(self, user_id: int, product_id: int, size: str, color: str) -> CartItemModel | None:
        return (
            self.db.query(CartItemModel)
            .filter(
                CartItemModel.user_id == user_id,
                CartItemModel.product_id == product_id,
                CartItemModel.size == size,
                CartItemModel.color == color,
            )
            .one_or_none()
        )

    def list_lines(self, user_id: int) -> list[CartItemModel]:
        # newest first
        return (
            self.db.query(CartItemModel)
            .filter(CartItemModel.user_id == user_id)
            .order_by(CartItemModel.created_at.desc(), CartItemModel.id.desc())
            .all()
        )

    def add_line(self, line: CartItemModel) -> CartItemModel:
        self.db.add(line)
        self.db.flush()
        return line

    def delete_line(self, line: CartItemModel) -> None:
        self.db.delete(line)

    def clear(self, user_id: int) -> int:
        return (
            self.db.query(CartItemModel)
            .filter(CartItemModel.user_id == user_id)
            .delete(synchronize_session=False)
        )

    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()
