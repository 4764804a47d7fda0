# storefront/repos/catalog_repo.py
from sqlalchemy import update
from sqlalchemy.orm import Session

from storefront.data.models.product import ProductModel


class CatalogRepo:
    """
    Price and stock of products.

    Stock only moves through single UPDATE statements, never read-then-write,
    so two concurrent checkouts cannot both take the last unit.
    """

    def __init__(self, db: Session):
        self.db = db

    def get_product(self, product_id: int) -> ProductModel | None:
        return self.db.get(ProductModel, product_id)

    def get_products(self, product_ids) -> dict[int, ProductModel]:
        if not product_ids:
            return {}
        rows = self.db.query(ProductModel).filter(ProductModel.id.in_(set(product_ids))).all()
        return {p.id: p for p in rows}

    def current_stock(self, product_id: int) -> int:
        # column query, bypasses the identity map
        return self.db.query(ProductModel.stock).filter(ProductModel.id == product_id).scalar() or 0

    def decrement_stock(self, product_id: int, quantity: int) -> bool:
        # UPDATE products SET stock = stock - :q WHERE id = :id AND stock >= :q
        result = self.db.execute(
            update(ProductModel)
            .where(ProductModel.id == product_id, ProductModel.stock >= quantity)
            .values(stock=ProductModel.stock - quantity)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def increment_stock(self, product_id: int, quantity: int) -> None:
        self.db.execute(
            update(ProductModel)
            .where(ProductModel.id == product_id)
            .values(stock=ProductModel.stock + quantity)
            .execution_options(synchronize_session=False)
        )
