# storefront/services/order_service.py
from sqlalchemy.orm import Session

from storefront.repos.order_repo import OrderRepo
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class OrderService:
    """
    Odczyt zamowien (query). Zamowienia powstaja wylacznie w OrderCommitter.
    """

    def __init__(self, db: Session):
        self.repo = OrderRepo(db)

    def get_order(self, order_id: int, user_id: int):
        order = self.repo.get_order(order_id)

        if not order:
            raise ValueError("Zamowienie nie istnieje")

        if order.user_id != user_id:
            raise PermissionError("Brak dostepu do zamowienia")

        return {
            "id": order.id,
            "user_id": order.user_id,
            "status": order.status,
            "subtotal": order.subtotal,
            "discount": order.discount,
            "shipping_cost": order.shipping_cost,
            "tax": order.tax,
            "total": order.total,
            "currency": order.currency,
            "shipping_address": order.shipping_address,
            "payment_reference": order.payment_reference,
            "created_at": order.created_at,
            "lines": [
                {
                    "product_id": line.product_id,
                    "quantity": line.quantity,
                    "unit_price_at_purchase": line.unit_price_at_purchase,
                }
                for line in order.lines
            ],
        }
