"""Application tests for cart store operations."""

from decimal import Decimal

import pytest

from storefront.domain.errors import InvalidCart, ProductNotFound
from storefront.services.cart_service import CartService


@pytest.fixture
def catalog(make_user, make_product):
    make_user(1)
    make_product("P1", "10.00", 5)
    make_product("P2", "2.50", 5)


class TestCart:
    def test_add_and_read(self, db, catalog):
        svc = CartService(db)
        svc.add_product(1, "P1", 2)
        cart = svc.add_product(1, "P2", 1)

        assert cart["total"] == Decimal("22.50")
        assert [(i["product_id"], i["quantity"]) for i in cart["items"]] == [("P1", 2), ("P2", 1)]

    def test_adding_same_product_increases_quantity(self, db, catalog):
        svc = CartService(db)
        svc.add_product(1, "P1", 1)
        cart = svc.add_product(1, "P1", 2)

        assert cart["items"] == [{"product_id": "P1", "quantity": 3, "price": Decimal("10.00")}]

    def test_unknown_product(self, db, catalog):
        with pytest.raises(ProductNotFound):
            CartService(db).add_product(1, "NOPE", 1)

    def test_quantity_must_be_positive(self, db, catalog):
        with pytest.raises(InvalidCart):
            CartService(db).add_product(1, "P1", 0)

    def test_remove(self, db, catalog):
        svc = CartService(db)
        svc.add_product(1, "P1", 1)
        assert svc.remove_product(1, "P1")["items"] == []

    def test_remove_missing_line(self, db, catalog):
        with pytest.raises(ValueError):
            CartService(db).remove_product(1, "P1")
