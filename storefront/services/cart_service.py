from decimal import Decimal
from typing import Any, Dict

from sqlalchemy.orm import Session

from storefront.data.models.cart_item import CartItemModel
from storefront.domain.errors import NotFoundError, ValidationError
from storefront.repos.cart_repo import CartRepo
from storefront.repos.catalog_repo import CatalogRepo
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


def _quantity(value) -> int:
    # bool is an int subclass, but True is not a quantity
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ValidationError("quantity must be an integer >= 1", quantity=value)
    return value


class CartService:
    """
    Cart lines of one customer.
    commands (add, update, remove, clear) change state
    query (list) only reads
    """

    def __init__(self, db: Session):
        self.repo = CartRepo(db)
        self.catalog = CatalogRepo(db)

    #query
    def list_lines(self, user_id: int) -> Dict[str, Any]:
        lines = self.repo.list_lines(user_id)
        total = sum((line.price * line.quantity for line in lines), Decimal("0.00"))

        return {
            "items": [self._line_out(line) for line in lines],
            "total": total,
        }

    #commands
    def add_line(
        self,
        user_id: int,
        product_id: int,
        quantity: int = 1,
        size: str | None = None,
        color: str | None = None,
    ) -> Dict[str, Any]:
        """
        Use Case: add a product to the cart.

        The same (product, size, color) merges into the existing line by
        summing quantities. The price snapshot is refreshed to the current
        catalog price; checkout re-reads prices anyway.
        """
        quantity = _quantity(quantity)

        product = self.catalog.get_product(product_id)
        if not product:
            raise NotFoundError("Product not found", product_id=product_id)

        size, color = size or "", color or ""
        line = self.repo.find_line(user_id, product_id, size, color)

        if line:
            logger.info(
                f"Product {product_id} already in cart of user {user_id}, "
                f"quantity {line.quantity} -> {line.quantity + quantity}"
            )
            line.quantity += quantity
            line.price = product.price
        else:
            logger.info(f"Adding product {product_id} to cart of user {user_id}")
            line = self.repo.add_line(
                CartItemModel(
                    user_id=user_id,
                    product_id=product_id,
                    size=size,
                    color=color,
                    quantity=quantity,
                    price=product.price,
                )
            )

        self.repo.commit()
        return self._line_out(line)

    def update_line(self, user_id: int, line_id: int, quantity: int) -> Dict[str, Any]:
        quantity = _quantity(quantity)
        line = self._owned_line(user_id, line_id)

        line.quantity = quantity
        self.repo.commit()

        logger.info(f"Cart line {line_id} of user {user_id} set to quantity {quantity}")
        return self._line_out(line)

    def remove_line(self, user_id: int, line_id: int) -> None:
        line = self._owned_line(user_id, line_id)
        self.repo.delete_line(line)
        self.repo.commit()

        logger.info(f"Cart line {line_id} removed for user {user_id}")

    def clear_all(self, user_id: int) -> int:
        removed = self.repo.clear(user_id)
        self.repo.commit()

        logger.info(f"Cart of user {user_id} cleared ({removed} lines)")
        return removed

    def _owned_line(self, user_id: int, line_id: int) -> CartItemModel:
        line = self.repo.get_line(line_id)
        # a line of another customer is reported exactly like a missing one
        if not line or line.user_id != user_id:
            raise NotFoundError("Cart item not found", line_id=line_id)
        return line

    @staticmethod
    def _line_out(line: CartItemModel) -> Dict[str, Any]:
        return {
            "id": line.id,
            "product_id": line.product_id,
            "size": line.size or None,
            "color": line.color or None,
            "quantity": line.quantity,
            "unit_price": line.price,
            "line_total": line.price * line.quantity,
            "created_at": line.created_at,
        }
