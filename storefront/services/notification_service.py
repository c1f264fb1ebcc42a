# storefront/services/notification_service.py
import requests

from storefront.celery_worker import celery_app
from storefront.utils.retry import http_retry
from storefront.utils.settings import NOTIFICATION_SERVICE_URL, ALERT_WEBHOOK_URL
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class NotificationService:
    """
    Efekty uboczne po commicie transakcji (fire-and-forget przez Celery).
    Blad wysylki nigdy nie cofa zamowienia.
    """

    @staticmethod
    def send_order_confirmation(order, recipient: str | None):
        if not recipient:
            logger.info(f"Zamowienie {order.id}: brak adresu email, pomijam potwierdzenie")
            return

        payload = {
            "to": recipient,
            "subject": f"Order Confirmation #{order.id}",
            "template": "order-confirmation",
            "templateData": {
                "orderId": order.id,
                "items": [
                    {
                        "productId": line.product_id,
                        "quantity": line.quantity,
                        "price": str(line.unit_price_at_purchase),
                    }
                    for line in order.lines
                ],
                "total": str(order.total),
                "currency": order.currency,
                "shippingAddress": order.shipping_address,
            },
        }
        try:
            send_order_confirmation_task.delay(payload)
        except Exception as e:
            logger.warning(f"Nie udalo sie zlecic potwierdzenia zamowienia {order.id}: {e}")

    @staticmethod
    def alert_operators(kind: str, payment_reference: str | None, detail: str):
        """
        Alert dla operatorow (bledy spojnosci / anomalie bramki).
        Log CRITICAL zawsze, niezaleznie od tego czy broker przyjmie task.
        """
        logger.critical(f"[ALERT] {kind} payment={payment_reference}: {detail}")
        try:
            alert_operators_task.delay(kind, payment_reference, detail)
        except Exception as e:
            logger.error(f"Nie udalo sie zlecic alertu {kind} dla {payment_reference}: {e}")


@http_retry()
def _post_json(url: str, payload: dict) -> None:
    resp = requests.post(url, json=payload, timeout=5)
    resp.raise_for_status()


@celery_app.task(name="storefront.services.notification_service.send_order_confirmation_task")
def send_order_confirmation_task(payload: dict):
    order_id = payload["templateData"]["orderId"]
    if not NOTIFICATION_SERVICE_URL:
        logger.info(f"[NOTIFICATION] {payload['to']}: Order {order_id} confirmed")
        return {"order_id": order_id, "status": "logged"}

    _post_json(f"{NOTIFICATION_SERVICE_URL.rstrip('/')}/send-email", payload)
    logger.info(f"[NOTIFICATION] Potwierdzenie zamowienia {order_id} wyslane do {payload['to']}")
    return {"order_id": order_id, "status": "sent"}


@celery_app.task(name="storefront.services.notification_service.alert_operators_task")
def alert_operators_task(kind: str, payment_reference: str | None, detail: str):
    if not ALERT_WEBHOOK_URL:
        return {"kind": kind, "status": "logged"}

    _post_json(
        ALERT_WEBHOOK_URL,
        {"kind": kind, "payment_reference": payment_reference, "detail": detail},
    )
    return {"kind": kind, "status": "sent"}
