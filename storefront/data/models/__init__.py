#import wszystkich modeli zeby SQLAlchemy je zarejestrowal w base metadata

from storefront.data.models.user import UserModel
from storefront.data.models.product import ProductModel
from storefront.data.models.cart_item import CartItemModel
from storefront.data.models.order import OrderModel, OrderLineModel
from storefront.data.models.checkout import CheckoutSessionModel
from storefront.data.models.payment_event import PaymentEventModel
from storefront.data.models.refund import RefundModel

__all__ = [
    "UserModel",
    "ProductModel",
    "CartItemModel",
    "OrderModel",
    "OrderLineModel",
    "CheckoutSessionModel",
    "PaymentEventModel",
    "RefundModel",
]
