# storefront/tasks/reconcile.py
from storefront.celery_worker import celery_app
from storefront.data.database import SessionLocal
from storefront.services.payment_service import PaymentService
from storefront.services.paystack_client import PaystackClient
from storefront.utils.logging import get_logger
from storefront.utils.settings import PENDING_PAYMENT_MAX_AGE_MINUTES, PaystackConfig

logger = get_logger(__name__)


def reconcile_pending_payments(session_factory=SessionLocal, client: PaystackClient | None = None,
                               max_age_minutes: int = PENDING_PAYMENT_MAX_AGE_MINUTES):
    config = PaystackConfig()
    db = session_factory()
    try:
        service = PaymentService(db, client or PaystackClient(config), config)
        return service.reconcile_pending(max_age_minutes)
    finally:
        db.close()


@celery_app.task(name="storefront.tasks.reconcile.reconcile_pending_payments_task")
def reconcile_pending_payments_task():
    logger.info("Reconcile pending payments task started")
    return reconcile_pending_payments()
