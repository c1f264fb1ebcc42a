"""Domain tests for order and checkout session state machines."""

import pytest

from storefront.data.models.checkout import CheckoutSessionModel
from storefront.data.models.order import OrderModel
from storefront.domain.checkout import CheckoutStatus, OrderStatus
from storefront.domain.errors import InvalidTransition


class TestOrderStatus:
    def test_pending_order_can_be_confirmed(self):
        order = OrderModel(status=OrderStatus.PENDING.value)
        order.transition_to(OrderStatus.CONFIRMED)
        assert order.status == "confirmed"

    @pytest.mark.parametrize("target", [OrderStatus.FULFILLED, OrderStatus.CANCELLED])
    def test_confirmed_order_moves_forward(self, target):
        order = OrderModel(status=OrderStatus.CONFIRMED.value)
        order.transition_to(target)
        assert order.status == target.value

    def test_pending_order_cannot_be_fulfilled(self):
        order = OrderModel(status=OrderStatus.PENDING.value)
        with pytest.raises(InvalidTransition):
            order.transition_to(OrderStatus.FULFILLED)

    def test_terminal_states_do_not_move(self):
        order = OrderModel(status=OrderStatus.CANCELLED.value)
        with pytest.raises(InvalidTransition):
            order.transition_to(OrderStatus.CONFIRMED)


class TestCheckoutStatus:
    def test_pending_session_can_be_compensated(self):
        session = CheckoutSessionModel(status=CheckoutStatus.PENDING.value)
        session.transition_to(CheckoutStatus.COMPENSATED, reason="insufficient_inventory")
        assert session.status == "compensated"
        assert session.failure_reason == "insufficient_inventory"

    def test_cancelled_session_cannot_complete(self):
        session = CheckoutSessionModel(status=CheckoutStatus.CANCELLED.value)
        with pytest.raises(InvalidTransition):
            session.transition_to(CheckoutStatus.COMPLETED)

    def test_completed_session_is_final(self):
        session = CheckoutSessionModel(status=CheckoutStatus.COMPLETED.value)
        with pytest.raises(InvalidTransition):
            session.transition_to(CheckoutStatus.CANCELLED)
