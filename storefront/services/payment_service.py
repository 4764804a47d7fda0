# storefront/services/payment_service.py
import json
import secrets
import time
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Callable, Dict, List

from sqlalchemy.orm import Session

from storefront.data.models.payment import PaymentModel
from storefront.data.models.user import UserModel
from storefront.domain.errors import (
    DuplicateReferenceError,
    ForbiddenError,
    InvalidSignatureError,
    NotFoundError,
    PaymentProviderError,
    ValidationError,
)
from storefront.domain.order_status import OrderPaymentStatus, OrderStatus
from storefront.domain.pricing import to_money
from storefront.domain.schemas import PaymentOut
from storefront.repos.order_repo import OrderRepo
from storefront.repos.payment_repo import PaymentRepo
from storefront.repos.user_repo import UserRepo
from storefront.services.notification_service import NotificationService
from storefront.services.paystack_client import PaystackClient, from_minor_units
from storefront.utils.logging import get_logger
from storefront.utils.settings import PaystackConfig

logger = get_logger(__name__)

SUCCESS = "success"
FAILED = "failed"
ABANDONED = "abandoned"
PENDING = "pending"

PROVIDER_STATUS_MAP = {
    "success": SUCCESS,
    "failed": FAILED,
    "reversed": FAILED,
    "abandoned": ABANDONED,
}

HANDLED_EVENTS = {
    "charge.success": SUCCESS,
    "charge.failed": FAILED,
}


def map_provider_status(status: str | None) -> str:
    return PROVIDER_STATUS_MAP.get((status or "").lower(), PENDING)


def generate_payment_reference() -> str:
    return f"TXN_{int(time.time() * 1000)}_{secrets.token_hex(4)}"


def _metadata(data: Dict[str, Any]) -> Dict[str, Any]:
    # Paystack sends "" when a transaction carries no metadata
    meta = data.get("metadata")
    return meta if isinstance(meta, dict) else {}


def _as_int(value) -> int | None:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _parse_timestamp(value) -> datetime | None:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


class PaymentService:
    """
    Payment reconciliation.

    The synchronous verify, the webhook and the periodic re-check all end in
    apply_provider_status, so there is exactly one idempotence guard:
    a payment that is already ``success`` is never changed again.
    """

    def __init__(
        self,
        db: Session,
        client: PaystackClient,
        config: PaystackConfig,
        notification_service: NotificationService | None = None,
        reference_factory: Callable[[], str] = generate_payment_reference,
    ):
        self.db = db
        self.client = client
        self.config = config
        self.repo = PaymentRepo(db)
        self.order_repo = OrderRepo(db)
        self.user_repo = UserRepo(db)
        self.notification_service = notification_service or NotificationService()
        self.reference_factory = reference_factory

    # initialization

    def initialize(
        self,
        user: UserModel,
        amount: Decimal | None = None,
        email: str | None = None,
        order_id: int | None = None,
        metadata: Dict[str, Any] | None = None,
    ) -> Dict[str, Any]:
        """
        Use Case: start a payment with the provider.

        Amount defaults to the order total. The provider is called first;
        the local pending payment is stored only when it accepted.
        """
        email = email or user.email
        if not email:
            raise ValidationError("Email is required")

        order = None
        if order_id is not None:
            order = self.order_repo.get_order(order_id)
            if not order or order.user_id != user.id:
                raise NotFoundError("Order not found", order_id=order_id)
            if order.status == OrderStatus.CANCELLED.value:
                raise ValidationError("Cannot pay for a cancelled order", order_id=order_id)
            if order.payment_status == OrderPaymentStatus.PAID.value:
                raise ValidationError("Order is already paid", order_id=order_id)

        if amount is None and order is not None:
            amount = order.total_amount
        if amount is None:
            raise ValidationError("Amount is required")

        amount = to_money(amount)
        if amount < self.config.min_amount:
            raise ValidationError(f"Amount must be at least {self.config.min_amount}", amount=str(amount))

        reference = self._new_reference()
        payment_metadata = {**(metadata or {}), "user_id": user.id, "order_id": order_id}

        data = self.client.initialize_transaction(email, amount, reference, payment_metadata)
        if not data.get("authorization_url"):
            logger.error(f"Paystack initialized {reference} without an authorization url")
            raise PaymentProviderError("Payment provider returned no authorization url", reference=reference)

        payment = PaymentModel(
            user_id=user.id,
            order_id=order_id,
            email=email,
            amount=amount,
            currency=self.config.currency,
            reference=reference,
            provider_reference=data.get("reference") or reference,
            status=PENDING,
            meta=payment_metadata,
        )
        try:
            self.repo.insert_payment(payment)
            self.repo.commit()
        except Exception:
            self.repo.rollback()
            raise

        logger.info(f"Payment {reference} initialized for user {user.id}, amount {amount}")

        return {
            "authorization_url": data.get("authorization_url"),
            "access_code": data.get("access_code"),
            "reference": payment.provider_reference,
            "payment_id": payment.id,
        }

    # reconciliation entry points

    def verify(self, user_id: int, reference: str) -> PaymentOut:
        """Use Case: the client returns from checkout and asks for the verdict."""
        existing = self.repo.find_by_reference(reference)
        if existing and existing.user_id != user_id:
            raise ForbiddenError("Unauthorized to verify this payment")

        data = self.client.verify_transaction(reference)

        owner = _as_int(_metadata(data).get("user_id"))
        if existing is None and owner is not None and owner != user_id:
            raise ForbiddenError("Unauthorized to verify this payment")

        payment = self.apply_provider_status(reference, data, customer_id=user_id)
        return PaymentOut.model_validate(payment)

    def handle_webhook(self, raw_body: bytes, signature: str | None) -> Dict[str, Any]:
        """
        Use Case: provider pushes an event.

        Only a bad signature is an error for the provider. A recognised event
        that cannot be applied is logged for out-of-band reconciliation and
        still acknowledged, otherwise the provider keeps retrying it.
        """
        if not self.client.verify_signature(raw_body, signature):
            logger.warning("Rejected webhook with invalid signature")
            raise InvalidSignatureError()

        try:
            event = json.loads(raw_body)
        except ValueError:
            logger.error("Signed webhook body is not valid JSON")
            return {"event": None, "handled": False}

        name = event.get("event") if isinstance(event, dict) else None
        data = event.get("data") if isinstance(event, dict) else None

        if name not in HANDLED_EVENTS:
            logger.info(f"Unhandled webhook event {name}")
            return {"event": name, "handled": False}

        reference = data.get("reference") if isinstance(data, dict) else None
        if not reference:
            logger.error(f"Webhook {name} without a reference")
            return {"event": name, "handled": False}

        try:
            self.apply_provider_status(reference, {**data, "status": HANDLED_EVENTS[name]})
        except Exception:
            logger.exception(f"Webhook {name} for payment {reference} could not be applied, needs reconciliation")
            return {"event": name, "reference": reference, "handled": False}

        return {"event": name, "reference": reference, "handled": True}

    def reconcile_pending(self, max_age_minutes: int) -> Dict[str, int]:
        """Re-verify payments still pending after ``max_age_minutes``."""
        cutoff = datetime.now(timezone.utc) - timedelta(minutes=max_age_minutes)
        stale = [(p.reference, p.provider_reference or p.reference) for p in self.repo.list_stale_pending(cutoff)]
        self.repo.commit()

        stats = {"checked": 0, "updated": 0, "failed": 0}
        for reference, provider_reference in stale:
            try:
                data = self.client.verify_transaction(provider_reference)
                payment = self.apply_provider_status(reference, data)
            except PaymentProviderError as e:
                logger.warning(f"Could not verify pending payment {reference}: {e.message}")
                stats["failed"] += 1
                continue
            except Exception:
                logger.exception(f"Could not reconcile pending payment {reference}")
                stats["failed"] += 1
                continue

            stats["checked"] += 1
            if payment.status != PENDING:
                stats["updated"] += 1

        logger.info(f"Pending payment reconciliation done: {stats}")
        return stats

    def apply_provider_status(
        self,
        reference: str,
        data: Dict[str, Any],
        customer_id: int | None = None,
    ) -> PaymentModel:
        """
        Upsert the local payment from provider data and propagate success to its order.

        Safe to call any number of times with the same data.
        """
        try:
            payment, became_successful = self._apply(reference, data, customer_id)
            self.repo.commit()
        except Exception:
            self.repo.rollback()
            raise

        if became_successful:
            self._send_receipt(payment)
        return payment

    def _apply(self, reference: str, data: Dict[str, Any], customer_id: int | None):
        status = map_provider_status(data.get("status"))

        payment = self.repo.find_by_reference(reference)
        if payment is None:
            try:
                payment = self._create_from_provider(reference, data, customer_id)
            except DuplicateReferenceError:
                # verify and webhook raced on the first sighting, the other one inserted
                payment = self.repo.find_by_reference(reference)
                if payment is None:
                    raise

        became_successful = False
        if payment.status == SUCCESS:
            # settled payments are final, replays touch neither the payment nor its order
            if status != SUCCESS:
                logger.warning(f"Ignoring provider status {status} for settled payment {payment.reference}")
            return payment, became_successful

        changed = self.repo.apply_unsettled(payment.id, **self._provider_fields(payment, status, data))
        self.repo.refresh(payment)
        if not changed:
            logger.info(f"Payment {payment.reference} was settled concurrently, nothing to apply")
            return payment, became_successful

        logger.info(f"Payment {payment.reference} status -> {status}")
        if status == SUCCESS:
            became_successful = True
            self._link_order(payment, data)
            self._propagate_to_order(payment)
            self.db.flush()
        return payment, became_successful

    def _create_from_provider(self, reference: str, data: Dict[str, Any], customer_id: int | None) -> PaymentModel:
        meta = _metadata(data)
        owner = customer_id if customer_id is not None else _as_int(meta.get("user_id"))
        if owner is None or not self.user_repo.get_user(owner):
            raise NotFoundError("Payment record not found", reference=reference)

        amount = data.get("amount")
        payment = PaymentModel(
            user_id=owner,
            email=(data.get("customer") or {}).get("email"),
            amount=from_minor_units(amount) if amount is not None else Decimal("0.00"),
            currency=data.get("currency") or self.config.currency,
            reference=reference,
            provider_reference=data.get("reference") or reference,
            status=PENDING,
            meta=meta or None,
        )
        logger.info(f"First sighting of payment {reference}, creating local record for user {owner}")
        return self.repo.insert_payment(payment)

    def _provider_fields(self, payment: PaymentModel, status: str, data: Dict[str, Any]) -> Dict[str, Any]:
        fields = {
            "status": status,
            "provider_reference": data.get("reference") or payment.provider_reference,
            "channel": data.get("channel") or payment.channel,
            "payment_method": (data.get("authorization") or {}).get("brand") or payment.payment_method,
            "provider_response": data,
        }

        if status == SUCCESS:
            fields["paid_at"] = _parse_timestamp(data.get("paid_at") or data.get("paidAt")) or datetime.now(timezone.utc)

            amount = data.get("amount")
            if amount is not None and from_minor_units(amount) != to_money(payment.amount):
                logger.warning(
                    f"Payment {payment.reference} settled {from_minor_units(amount)}, expected {payment.amount}"
                )
        return fields

    def _link_order(self, payment: PaymentModel, data: Dict[str, Any]):
        if payment.order_id is not None:
            return

        order_id = _as_int(_metadata(data).get("order_id"))
        if order_id is None:
            return

        order = self.order_repo.get_order(order_id)
        if order and order.user_id == payment.user_id:
            payment.order_id = order.id
        else:
            logger.warning(f"Payment {payment.reference} names order {order_id} it cannot be linked to")

    def _propagate_to_order(self, payment: PaymentModel):
        if payment.status != SUCCESS or payment.order_id is None:
            return

        order = self.order_repo.get_order(payment.order_id)
        if not order:
            logger.warning(f"Payment {payment.reference} linked to missing order {payment.order_id}")
            return

        if self.order_repo.mark_paid(order.id, payment.paid_at or datetime.now(timezone.utc)):
            logger.info(f"Order {order.order_number} marked paid by payment {payment.reference}")

        if order.status == OrderStatus.CANCELLED.value:
            logger.warning(f"Order {order.order_number} is cancelled but payment {payment.reference} succeeded, refund needed")
        # never regress an order that is already further along
        elif self.order_repo.transition_status(order.id, OrderStatus.PENDING.value, OrderStatus.PROCESSING.value):
            logger.info(f"Order {order.order_number} status pending -> processing")

    def _new_reference(self) -> str:
        attempts = self.config.reference_attempts
        for attempt in range(1, attempts + 1):
            reference = self.reference_factory()
            if not self.repo.reference_exists(reference):
                return reference
            logger.warning(f"Payment reference {reference} taken, attempt {attempt}/{attempts}")
        raise DuplicateReferenceError(f"Could not generate a unique payment reference after {attempts} attempts")

    def _send_receipt(self, payment: PaymentModel):
        try:
            self.notification_service.send_payment_receipt(payment.user_id, payment.reference)
        except Exception as e:
            logger.warning(f"Failed to queue receipt for payment {payment.reference}: {e}")

    # queries

    def list_payments(self, user_id: int) -> List[PaymentOut]:
        return [PaymentOut.model_validate(p) for p in self.repo.list_for_user(user_id)]

    def get_payment(self, user_id: int, payment_id: int) -> PaymentOut:
        payment = self.repo.get_payment(payment_id)
        if not payment or payment.user_id != user_id:
            raise NotFoundError("Payment not found", payment_id=payment_id)
        return PaymentOut.model_validate(payment)
