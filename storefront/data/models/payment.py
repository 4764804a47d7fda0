from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Integer, Numeric, String

from storefront.data.database import Base


def _utcnow():
    return datetime.now(timezone.utc)


class PaymentModel(Base):
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    # weak link: a payment can exist before (or without) its order
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=True)
    email = Column(String, nullable=True)

    amount = Column(Numeric(12, 2), nullable=False)
    currency = Column(String, nullable=False, default="NGN")
    reference = Column(String, nullable=False, unique=True)
    provider_reference = Column(String, nullable=True, index=True)

    status = Column(String, nullable=False, default="pending", index=True)  # pending, success, failed, abandoned
    payment_method = Column(String, nullable=True)
    channel = Column(String, nullable=True)
    paid_at = Column(DateTime(timezone=True), nullable=True)

    # "metadata" is reserved on declarative classes
    meta = Column("metadata", JSON, nullable=True)
    provider_response = Column(JSON, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)
