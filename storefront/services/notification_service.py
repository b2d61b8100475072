# storefront/services/notification_service.py
from storefront.celery_worker import celery_app
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class NotificationService:
    """
    Powiadomienia o wyslanym checkoucie.
    Uzywa Celery do asynchronicznego przetwarzania.
    """

    @staticmethod
    def send_checkout_notification(cart_key: str, count: int, total: int):
        #bez ponawiania polaczenia z brokerem i bez czekania na result backend
        send_checkout_notification_task.apply_async(
            args=(cart_key, count, total),
            retry=False,
            ignore_result=True,
        )


@celery_app.task(name="storefront.services.notification_service.send_checkout_notification_task")
def send_checkout_notification_task(cart_key: str, count: int, total: int):
    """
    Sklep nie tworzy zamowien po stronie serwera, zamowienie idzie przez WhatsApp.
    Task tylko loguje fakt przekazania koszyka.
    """
    logger.info(f"[CHECKOUT] Cart {cart_key}: {count} item(s), total {total} handed off to WhatsApp")
    return {"cart_key": cart_key, "count": count, "total": total, "status": "dispatched"}
