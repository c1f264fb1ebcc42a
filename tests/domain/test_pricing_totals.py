"""Domain tests for checkout totals (subtotal, discount, tax, shipping)."""

from decimal import Decimal

import pytest

from storefront.domain.checkout import ValidatedLine, to_minor_units, to_money
from storefront.domain.errors import InvalidCart
from storefront.services.pricing_service import PricingService


def _quote(lines, discount_code=None):
    return PricingService(db=None).quote(lines, discount_code)


def _line(product_id="P1", quantity=1, price="10.00"):
    return ValidatedLine(product_id=product_id, quantity=quantity, unit_price=Decimal(price))


class TestQuote:
    def test_small_order_pays_shipping(self):
        totals = _quote([_line(quantity=2)])
        assert totals.subtotal == Decimal("20.00")
        assert totals.discount == Decimal("0.00")
        assert totals.tax == Decimal("1.60")
        assert totals.shipping_cost == Decimal("5.99")
        assert totals.total == Decimal("27.59")

    def test_shipping_is_free_above_threshold(self):
        totals = _quote([_line(quantity=6)])
        assert totals.subtotal == Decimal("60.00")
        assert totals.shipping_cost == Decimal("0.00")
        assert totals.total == Decimal("64.80")

    def test_threshold_itself_still_pays_shipping(self):
        totals = _quote([_line(quantity=5)])
        assert totals.subtotal == Decimal("50.00")
        assert totals.shipping_cost == Decimal("5.99")

    def test_discount_reduces_taxable_amount(self):
        totals = _quote([_line(quantity=6)], discount_code="save10")
        # 60 - 6 = 54, tax 4.32
        assert totals.discount == Decimal("6.00")
        assert totals.tax == Decimal("4.32")
        assert totals.total == Decimal("58.32")

    def test_unknown_discount_code_is_rejected(self):
        with pytest.raises(InvalidCart):
            _quote([_line()], discount_code="NOPE")

    def test_total_equals_sum_of_components(self):
        totals = _quote([_line("P1", 3, "19.99"), _line("P2", 1, "0.35")], discount_code="SAVE10")
        assert totals.total == totals.subtotal - totals.discount + totals.tax + totals.shipping_cost

    def test_rounding_is_half_up_to_cents(self):
        totals = _quote([_line(quantity=1, price="0.0625")])
        assert totals.subtotal == Decimal("0.06")


class TestMoney:
    def test_to_money_rounds_half_up(self):
        assert to_money("2.345") == Decimal("2.35")
        assert to_money(Decimal("2.344")) == Decimal("2.34")

    def test_minor_units(self):
        assert to_minor_units(Decimal("27.59")) == 2759
        assert to_minor_units(Decimal("0.10")) == 10

    def test_line_total_uses_frozen_price(self):
        line = _line(quantity=3, price="19.99")
        assert line.line_total == Decimal("59.97")

    def test_validated_line_survives_json_storage(self):
        line = _line(quantity=2, price="10.00")
        assert ValidatedLine.from_dict(line.to_dict()) == line
