# storefront/services/pricing_service.py
from decimal import Decimal

from sqlalchemy.orm import Session

from storefront.domain.checkout import (
    CartLine,
    ProductSnapshot,
    Totals,
    ValidatedLine,
    to_money,
)
from storefront.domain.errors import InsufficientInventory, InvalidCart, ProductNotFound
from storefront.repos.product_repo import ProductRepo
from storefront.utils import settings
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class PricingService:
    """
    Snapshot cen i stanow z katalogu w momencie checkoutu.
    Odczyt doradczy - autorytatywny check jest powtarzany pod lockiem w OrderCommitter.
    """

    def __init__(self, db: Session):
        self.products = ProductRepo(db)

    def snapshot(self, cart_lines: list[CartLine]) -> list[ProductSnapshot]:
        if not cart_lines:
            raise InvalidCart("Koszyk jest pusty")

        products = self.products.get_products(line.product_id for line in cart_lines)
        snapshots = []

        for line in cart_lines:
            if line.quantity <= 0:
                raise InvalidCart(f"Niepoprawna ilosc produktu {line.product_id}: {line.quantity}")

            product = products.get(line.product_id)
            if product is None:
                raise ProductNotFound(line.product_id)

            if product.available_quantity < line.quantity:
                raise InsufficientInventory(
                    line.product_id, line.quantity, product.available_quantity
                )

            snapshots.append(
                ProductSnapshot(
                    product_id=product.id,
                    name=product.name,
                    unit_price=to_money(product.price),
                    available_quantity=product.available_quantity,
                )
            )

        logger.info(f"Snapshot {len(snapshots)} produktow dla uzytkownika {cart_lines[0].user_id}")
        return snapshots

    def validated_lines(self, cart_lines: list[CartLine], snapshots: list[ProductSnapshot]) -> list[ValidatedLine]:
        #cena zawsze z katalogu, nigdy z klienta
        prices = {s.product_id: s.unit_price for s in snapshots}
        return [
            ValidatedLine(
                product_id=line.product_id,
                quantity=line.quantity,
                unit_price=prices[line.product_id],
            )
            for line in cart_lines
        ]

    def quote(self, lines: list[ValidatedLine], discount_code: str | None = None) -> Totals:
        subtotal = to_money(sum((line.line_total for line in lines), Decimal("0.00")))

        discount = Decimal("0.00")
        if discount_code:
            if discount_code.strip().upper() not in settings.DISCOUNT_CODES:
                raise InvalidCart(f"Nieznany kod rabatowy {discount_code}")
            discount = to_money(subtotal * settings.DISCOUNT_RATE)

        tax = to_money((subtotal - discount) * settings.TAX_RATE)
        shipping = Decimal("0.00") if subtotal > settings.FREE_SHIPPING_THRESHOLD else to_money(settings.SHIPPING_COST)
        total = to_money(subtotal - discount + tax + shipping)

        return Totals(
            subtotal=subtotal,
            discount=discount,
            shipping_cost=shipping,
            tax=tax,
            total=total,
        )
