# storefront/services/notification_service.py
from storefront.celery_worker import celery_app
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class NotificationService:
    """
    Customer notifications.
    Sent through Celery so a slow mail gateway never holds up a request.
    """

    @staticmethod
    def send_order_notification(user_id: int, order_id: int):
        send_order_notification_task.delay(user_id, order_id)

    @staticmethod
    def send_payment_receipt(user_id: int, reference: str):
        send_payment_receipt_task.delay(user_id, reference)


@celery_app.task(name="storefront.services.notification_service.send_order_notification_task")
def send_order_notification_task(user_id: int, order_id: int):
    """Mail delivery is an external collaborator; the task only records the event."""
    logger.info(f"[NOTIFICATION] User {user_id}: Order {order_id} has been placed")
    return {"user_id": user_id, "order_id": order_id, "status": "sent"}


@celery_app.task(name="storefront.services.notification_service.send_payment_receipt_task")
def send_payment_receipt_task(user_id: int, reference: str):
    logger.info(f"[NOTIFICATION] User {user_id}: payment {reference} received")
    return {"user_id": user_id, "reference": reference, "status": "sent"}
