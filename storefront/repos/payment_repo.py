# storefront/repos/payment_repo.py
from datetime import datetime

from sqlalchemy import or_, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from storefront.data.models.payment import PaymentModel
from storefront.domain.errors import DuplicateReferenceError


class PaymentRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_payment(self, payment_id: int) -> PaymentModel | None:
        return self.db.get(PaymentModel, payment_id)

    def find_by_reference(self, reference: str) -> PaymentModel | None:
        # the provider may answer with its own reference, so both columns are searched
        return (
            self.db.query(PaymentModel)
            .filter(
                or_(
                    PaymentModel.reference == reference,
                    PaymentModel.provider_reference == reference,
                )
            )
            .order_by(PaymentModel.id)
            .first()
        )

    def reference_exists(self, reference: str) -> bool:
        return self.db.query(PaymentModel.id).filter(PaymentModel.reference == reference).first() is not None

    def insert_payment(self, payment: PaymentModel) -> PaymentModel:
        try:
            with self.db.begin_nested():
                self.db.add(payment)
                self.db.flush()
        except IntegrityError as e:
            raise DuplicateReferenceError(
                f"Payment reference {payment.reference} already exists",
                reference=payment.reference,
            ) from e
        return payment

    def apply_unsettled(self, payment_id: int, **values) -> bool:
        """
        Write provider state unless the payment is already settled.

        UPDATE payments SET ... WHERE id = :id AND status != 'success'
        rowcount 0 means another writer settled it first.
        """
        result = self.db.execute(
            update(PaymentModel)
            .where(PaymentModel.id == payment_id, PaymentModel.status != "success")
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def list_for_user(self, user_id: int) -> list[PaymentModel]:
        return (
            self.db.query(PaymentModel)
            .filter(PaymentModel.user_id == user_id)
            .order_by(PaymentModel.created_at.desc(), PaymentModel.id.desc())
            .all()
        )

    def list_stale_pending(self, older_than: datetime, limit: int = 100) -> list[PaymentModel]:
        return (
            self.db.query(PaymentModel)
            .filter(PaymentModel.status == "pending", PaymentModel.created_at < older_than)
            .order_by(PaymentModel.created_at)
            .limit(limit)
            .all()
        )

    def refresh(self, payment: PaymentModel) -> PaymentModel:
        self.db.refresh(payment)
        return payment

    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()
