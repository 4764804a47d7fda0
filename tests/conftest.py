import os

# settings are read at import time, so the environment goes first
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["CELERY_TASK_ALWAYS_EAGER"] = "true"
os.environ["PAYSTACK_SECRET_KEY"] = "sk_test_secret"
os.environ["ENVIRONMENT"] = "test"

from decimal import Decimal  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402

from storefront.api.deps import (  # noqa: E402
    get_notification_service,
    get_paystack_client,
    get_paystack_config,
)
from storefront.data.database import get_db, init_db, make_engine  # noqa: E402
from storefront.data.models.product import ProductModel  # noqa: E402
from storefront.data.models.user import UserModel  # noqa: E402
from storefront.domain.errors import PaymentProviderError  # noqa: E402
from storefront.main import create_app  # noqa: E402
from storefront.services.cart_service import CartService  # noqa: E402
from storefront.services.checkout_service import CheckoutService  # noqa: E402
from storefront.services.paystack_client import PaystackClient, to_minor_units  # noqa: E402
from storefront.utils.settings import CheckoutConfig, PaystackConfig  # noqa: E402

TEST_SECRET = "sk_test_secret"

ADDRESS = {
    "name": "Ada Obi",
    "address": "12 Marina Road",
    "city": "Lagos",
    "state": "Lagos",
    "zip": "100001",
    "country": "NG",
}


class RecordingNotifications:
    def __init__(self):
        self.orders = []
        self.receipts = []

    def send_order_notification(self, user_id, order_id):
        self.orders.append((user_id, order_id))

    def send_payment_receipt(self, user_id, reference):
        self.receipts.append((user_id, reference))


class FakePaystackClient(PaystackClient):
    """In-memory provider. Signing stays real so webhooks are checked end to end."""

    def __init__(self, config: PaystackConfig):
        super().__init__(config)
        self.transactions = {}
        self.initialized = []
        self.verified = []
        self.error = None

    def initialize_transaction(self, email, amount, reference, metadata=None):
        if self.error:
            raise self.error
        self.initialized.append({"email": email, "amount": amount, "reference": reference, "metadata": metadata})
        self.transactions[reference] = {
            "reference": reference,
            "status": "ongoing",
            "amount": to_minor_units(amount),
            "currency": self.config.currency,
            "metadata": metadata or "",
            "customer": {"email": email},
        }
        return {
            "authorization_url": f"https://checkout.paystack.test/{reference}",
            "access_code": f"ac_{reference}",
            "reference": reference,
        }

    def verify_transaction(self, reference):
        self.verified.append(reference)
        if self.error:
            raise self.error
        if reference not in self.transactions:
            raise PaymentProviderError("Transaction reference not found", upstream_status=400)
        return dict(self.transactions[reference])

    def settle(self, reference, status="success", channel="card", brand="visa", paid_at="2026-10-19T10:00:00.000Z"):
        self.transactions[reference].update(
            {
                "status": status,
                "channel": channel,
                "authorization": {"brand": brand},
                "paid_at": paid_at,
            }
        )
        return dict(self.transactions[reference])


@pytest.fixture
def engine(tmp_path):
    engine = make_engine(f"sqlite:///{tmp_path / 'storefront.db'}")
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def make_user(db):
    def _make(user_id, role="customer", email=None):
        user = UserModel(id=user_id, name=f"User {user_id}", email=email or f"user{user_id}@example.com", role=role)
        db.add(user)
        db.commit()
        return user

    return _make


@pytest.fixture
def customer(make_user):
    return make_user(10)


@pytest.fixture
def other_customer(make_user):
    return make_user(11)


@pytest.fixture
def admin(make_user):
    return make_user(1, role="admin")


@pytest.fixture
def make_product(db):
    def _make(name, price, stock):
        product = ProductModel(name=name, price=Decimal(str(price)), stock=stock)
        db.add(product)
        db.commit()
        return product

    return _make


@pytest.fixture
def product_a(make_product):
    return make_product("Product A", "5000.00", 10)


@pytest.fixture
def product_b(make_product):
    return make_product("Product B", "3000.00", 5)


@pytest.fixture
def stock_of(db):
    def _stock(product_id):
        db.expire_all()
        return db.get(ProductModel, product_id).stock

    return _stock


@pytest.fixture
def notifications():
    return RecordingNotifications()


@pytest.fixture
def checkout_config():
    return CheckoutConfig(
        free_shipping_threshold=Decimal("10000"),
        flat_shipping_fee=Decimal("500"),
        tax_rate=Decimal("0.075"),
        reference_attempts=5,
    )


@pytest.fixture
def cart_service(db):
    return CartService(db)


@pytest.fixture
def checkout_service(db, checkout_config, notifications):
    return CheckoutService(db, checkout_config, notification_service=notifications)


@pytest.fixture
def place_order(cart_service, checkout_service):
    def _place(user, lines, payment_method="card"):
        for product, quantity in lines:
            cart_service.add_line(user.id, product.id, quantity)
        return checkout_service.checkout(user.id, ADDRESS, payment_method)

    return _place


@pytest.fixture
def paystack_config():
    return PaystackConfig(secret_key=TEST_SECRET, min_amount=Decimal("100"))


@pytest.fixture
def paystack(paystack_config):
    return FakePaystackClient(paystack_config)


@pytest.fixture
def app(db, paystack, notifications):
    app = create_app()
    app.dependency_overrides[get_notification_service] = lambda: notifications
    app.dependency_overrides[get_db] = lambda: db
    app.dependency_overrides[get_paystack_client] = lambda: paystack
    app.dependency_overrides[get_paystack_config] = lambda: paystack.config
    return app


@pytest.fixture
def client(app):
    return TestClient(app)
