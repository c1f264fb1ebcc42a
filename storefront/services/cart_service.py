# storefront/services/cart_service.py
from decimal import Decimal
from typing import Dict, Any

from sqlalchemy.orm import Session

from storefront.data.models.cart_item import CartItemModel
from storefront.domain.checkout import to_money
from storefront.domain.errors import InvalidCart, ProductNotFound
from storefront.repos.cart_repo import CartRepo
from storefront.repos.product_repo import ProductRepo
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class CartService:
    """
    Prosta implementacja cqrs dla koszyka
    commands (add, remove) modyfikuja stan
    query (get) tylko odczyt, ceny biezace z katalogu (orientacyjne, checkout bierze snapshot)
    """

    def __init__(self, db: Session):
        self.repo = CartRepo(db)
        self.products = ProductRepo(db)

    #query - odczyt
    def get_cart(self, user_id: int) -> Dict[str, Any]:
        items = self.repo.get_cart_lines(user_id)
        products = self.products.get_products(i.product_id for i in items)

        lines = []
        for i in items:
            product = products.get(i.product_id)
            price = to_money(product.price) if product else Decimal("0.00")
            lines.append({
                "product_id": i.product_id,
                "quantity": i.quantity,
                "price": price,
            })

        total = to_money(sum((line["price"] * line["quantity"] for line in lines), Decimal("0.00")))

        #dict przyksztalcany w jsona
        return {
            "user_id": user_id,
            "items": lines,
            "total": total,
        }

    #commands
    def add_product(self, user_id: int, product_id: str, quantity: int) -> Dict[str, Any]:
        if quantity <= 0:
            raise InvalidCart("Ilosc musi byc wieksza niz 0")

        #check czy produkt istnieje w katalogu
        if self.products.get_product(product_id) is None:
            raise ProductNotFound(product_id)

        existing = self.repo.get_cart_line(user_id, product_id)
        if existing:
            logger.info(
                f"Produkt {product_id} juz jest w koszyku, zwiekszam ilosc "
                f"z {existing.quantity} do {existing.quantity + quantity}"
            )
            existing.quantity += quantity
        else:
            logger.info(f"Dodaje produkt {product_id} do koszyka uzytkownika {user_id}")
            self.repo.add_cart_line(
                CartItemModel(user_id=user_id, product_id=product_id, quantity=quantity)
            )

        try:
            self.repo.commit()
        except Exception as e:
            logger.error(f"Blad podczas dodawania produktu: {e}")
            self.repo.rollback()
            raise

        return self.get_cart(user_id)

    def remove_product(self, user_id: int, product_id: str) -> Dict[str, Any]:
        logger.info(f"Usuwanie produktu {product_id} z koszyka uzytkownika {user_id}")

        if self.repo.delete_cart_line(user_id, product_id) == 0:
            self.repo.rollback()
            raise ValueError(f"Produktu {product_id} nie ma w koszyku")

        self.repo.commit()
        return self.get_cart(user_id)
