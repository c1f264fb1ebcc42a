"""Application tests for the checkout use case (validate, charge, commit, compensate)."""

from decimal import Decimal

import pytest
from sqlalchemy import select

from storefront.data.database import SessionLocal
from storefront.data.models.cart_item import CartItemModel
from storefront.data.models.checkout import CheckoutSessionModel
from storefront.data.models.order import OrderModel
from storefront.data.models.product import ProductModel
from storefront.domain.errors import (
    CheckoutInProgress,
    GatewayError,
    InsufficientInventory,
    InvalidCart,
    OrderNotCommitted,
    PaymentDeclined,
    ProductNotFound,
    RefundFailed,
)
from storefront.services.checkout_service import CheckoutService
from storefront.services.reconciler_service import PaymentReconciler


@pytest.fixture
def checkout(db, fake_gateway, lock_service, address):
    def _checkout(user_id=1, discount_code=None):
        return CheckoutService(db, fake_gateway, lock_service).checkout(
            user_id=user_id,
            shipping_address=address,
            payment_method="pm_card_visa",
            currency="usd",
            discount_code=discount_code,
        )

    return _checkout


@pytest.fixture
def p1(make_user, make_product):
    make_user(1)
    make_product("P1", "10.00", 5)


def _cart(db, user_id=1):
    return db.execute(select(CartItemModel).where(CartItemModel.user_id == user_id)).scalars().all()


def _sessions(db):
    return db.execute(select(CheckoutSessionModel)).scalars().all()


class TestHappyPath:
    def test_p1_scenario(self, db, p1, fill_cart, checkout, stock_of, confirmations):
        fill_cart(1, "P1", 2)

        outcome = checkout()

        assert outcome.status == "completed"
        order = db.get(OrderModel, outcome.order_id)
        assert order.subtotal == Decimal("20.00")
        assert order.total == Decimal("27.59")
        assert order.payment_reference == outcome.payment_reference
        assert stock_of("P1") == 3
        assert _cart(db) == []
        assert len(confirmations) == 1

    def test_second_checkout_beyond_stock_writes_nothing(self, db, p1, fill_cart, checkout, stock_of, fake_gateway):
        fill_cart(1, "P1", 2)
        checkout()
        fill_cart(1, "P1", 4)
        calls_before = len(fake_gateway.calls)

        with pytest.raises(InsufficientInventory):
            checkout()

        assert stock_of("P1") == 3
        assert len(db.execute(select(OrderModel)).all()) == 1
        assert len(_sessions(db)) == 1
        assert len(fake_gateway.calls) == calls_before
        assert len(_cart(db)) == 1

    def test_charged_amount_matches_order_total(self, db, p1, fill_cart, checkout, fake_gateway):
        fill_cart(1, "P1", 2)
        outcome = checkout(discount_code="SAVE10")

        order = db.get(OrderModel, outcome.order_id)
        charged = fake_gateway.calls_to("create_payment_intent")[0]["amount"]
        assert order.discount == Decimal("2.00")
        assert charged == int(order.total * 100)

    def test_price_change_during_payment_does_not_affect_order(self, db, p1, fill_cart, checkout, fake_gateway, monkeypatch):
        fill_cart(1, "P1", 2)
        original = fake_gateway.confirm_payment_intent

        def confirm_and_reprice(intent_id):
            with SessionLocal() as other:
                other.get(ProductModel, "P1").price = Decimal("12.00")
                other.commit()
            return original(intent_id)

        monkeypatch.setattr(fake_gateway, "confirm_payment_intent", confirm_and_reprice)

        outcome = checkout()

        order = db.get(OrderModel, outcome.order_id)
        assert order.lines[0].unit_price_at_purchase == Decimal("10.00")
        assert order.subtotal == Decimal("20.00")
        assert fake_gateway.calls_to("create_payment_intent")[0]["amount"] == 2759


class TestValidation:
    def test_empty_cart(self, p1, checkout):
        with pytest.raises(InvalidCart):
            checkout()

    def test_unknown_user(self, checkout):
        with pytest.raises(InvalidCart):
            checkout(user_id=42)

    def test_product_removed_from_catalog(self, db, p1, make_product, fill_cart, checkout):
        make_product("P2", "3.00", 1)
        fill_cart(1, "P2", 1)
        db.delete(db.get(ProductModel, "P2"))
        db.commit()

        with pytest.raises(ProductNotFound):
            checkout()

    def test_unknown_discount_code(self, p1, fill_cart, checkout, fake_gateway):
        fill_cart(1, "P1", 1)
        with pytest.raises(InvalidCart):
            checkout(discount_code="BOGUS")
        assert fake_gateway.calls == []


class TestPaymentOutcomes:
    def test_decline_cancels_session_and_keeps_cart(self, db, p1, fill_cart, checkout, fake_gateway, stock_of):
        fill_cart(1, "P1", 2)
        fake_gateway.configure(charge_outcome="declined")

        with pytest.raises(PaymentDeclined):
            checkout()

        [session] = _sessions(db)
        assert session.status == "cancelled"
        assert stock_of("P1") == 5
        assert len(_cart(db)) == 1

    def test_requires_action_leaves_session_pending(self, db, p1, fill_cart, checkout, fake_gateway, stock_of):
        fill_cart(1, "P1", 2)
        fake_gateway.configure(charge_outcome="requires_action")

        outcome = checkout()

        assert outcome.status == "pending"
        assert outcome.client_secret
        assert outcome.order_id is None
        [session] = _sessions(db)
        assert session.payment_reference == outcome.payment_reference
        assert stock_of("P1") == 5

    def test_items_added_during_3ds_stay_in_cart(self, db, p1, make_product, fill_cart, checkout, fake_gateway, confirmations):
        make_product("P2", "4.00", 5)
        fill_cart(1, "P1", 2)
        fake_gateway.configure(charge_outcome="requires_action")
        outcome = checkout()
        fill_cart(1, "P2", 1)

        fake_gateway.complete_action(outcome.payment_reference)
        payload = fake_gateway.build_event("payment_intent.succeeded", outcome.payment_reference)
        ack = PaymentReconciler(db, fake_gateway).handle_event(payload, fake_gateway.sign(payload))

        assert ack.outcome == "order_created"
        order = db.get(OrderModel, ack.order_id)
        assert [(l.product_id, l.quantity) for l in order.lines] == [("P1", 2)]
        assert [(c.product_id, c.quantity) for c in _cart(db)] == [("P2", 1)]

    def test_transient_error_keeps_session_pending(self, db, p1, fill_cart, checkout, fake_gateway):
        fill_cart(1, "P1", 2)
        fake_gateway.fail_next("confirm_payment_intent", times=3, transient=True)

        with pytest.raises(GatewayError) as exc:
            checkout()

        assert exc.value.transient is True
        [session] = _sessions(db)
        assert session.status == "pending"
        assert session.payment_reference is not None
        assert db.execute(select(OrderModel)).first() is None

    def test_permanent_error_cancels_session(self, db, p1, fill_cart, checkout, fake_gateway):
        fill_cart(1, "P1", 2)
        fake_gateway.fail_next("create_payment_intent", times=1, transient=False)

        with pytest.raises(GatewayError) as exc:
            checkout()

        assert exc.value.transient is False
        assert _sessions(db)[0].status == "cancelled"


class TestConcurrency:
    def test_pending_checkout_blocks_a_new_one(self, p1, fill_cart, checkout, fake_gateway):
        fill_cart(1, "P1", 2)
        fake_gateway.configure(charge_outcome="requires_action")
        checkout()

        with pytest.raises(CheckoutInProgress):
            checkout()
        assert len(fake_gateway.calls_to("create_payment_intent")) == 1

    def test_held_lock_rejects_checkout(self, p1, fill_cart, checkout, lock_service, fake_gateway):
        fill_cart(1, "P1", 2)
        lock_service.acquire_checkout_lock(1, "chk_other", 60)

        with pytest.raises(CheckoutInProgress):
            checkout()
        assert fake_gateway.calls == []

    def test_lock_released_after_failure(self, p1, checkout, lock_service):
        with pytest.raises(InvalidCart):
            checkout()
        assert lock_service.locks == {}


class TestCompensation:
    def _oversell_during_payment(self, fake_gateway, monkeypatch):
        original = fake_gateway.confirm_payment_intent

        def confirm_while_someone_else_buys(intent_id):
            with SessionLocal() as other:
                other.get(ProductModel, "P1").available_quantity = 1
                other.commit()
            return original(intent_id)

        monkeypatch.setattr(fake_gateway, "confirm_payment_intent", confirm_while_someone_else_buys)

    def test_oversell_after_payment_refunds(self, db, p1, fill_cart, checkout, fake_gateway, monkeypatch, stock_of):
        fill_cart(1, "P1", 2)
        self._oversell_during_payment(fake_gateway, monkeypatch)

        with pytest.raises(OrderNotCommitted) as exc:
            checkout()

        refunds = fake_gateway.calls_to("create_refund")
        assert len(refunds) == 1
        assert refunds[0]["intent_id"] == exc.value.payment_reference
        assert refunds[0]["amount"] == 2759
        assert _sessions(db)[0].status == "compensated"
        assert db.execute(select(OrderModel)).first() is None
        assert stock_of("P1") == 1
        assert len(_cart(db)) == 1

    def test_failed_refund_escalates(self, db, p1, fill_cart, checkout, fake_gateway, monkeypatch, alerts):
        fill_cart(1, "P1", 2)
        self._oversell_during_payment(fake_gateway, monkeypatch)
        fake_gateway.configure(refund_should_succeed=False)

        with pytest.raises(RefundFailed):
            checkout()

        assert [a["kind"] for a in alerts] == ["refund_failed"]
        assert _sessions(db)[0].status == "compensated"
