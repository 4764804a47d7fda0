# storefront/data/seed.py
from decimal import Decimal

from storefront.data.database import SessionLocal, init_db
from storefront.data.models.product import ProductModel
from storefront.data.models.user import UserModel

PRODUCTS = [
    {"name": "Ankara Shirt", "price": Decimal("5000.00"), "stock": 25},
    {"name": "Leather Sandals", "price": Decimal("3000.00"), "stock": 40},
    {"name": "Kente Scarf", "price": Decimal("1500.00"), "stock": 60},
]


def seed(session_factory=SessionLocal) -> bool:
    """Fills an empty database with a small catalog and an admin. Returns False if there was data already."""
    db = session_factory()
    try:
        # not forcing: only seed if empty
        if db.query(ProductModel).first():
            return False
        db.add(UserModel(id=1, name="Admin", email="admin@example.com", role="admin"))
        db.add_all(ProductModel(**p) for p in PRODUCTS)
        db.commit()
        return True
    finally:
        db.close()


if __name__ == "__main__":
    init_db()
    seed()
