"""Domain tests for mapping gateway intent states onto payment results."""

import pytest

from storefront.domain.checkout import PaymentStatus
from storefront.services.payment_gateway import IntentResult
from storefront.services.payment_service import map_intent_status


class TestMapIntentStatus:
    def test_succeeded(self):
        result = map_intent_status(IntentResult(id="pi_1", status="succeeded"))
        assert result.status == PaymentStatus.SUCCEEDED
        assert result.payment_reference == "pi_1"

    @pytest.mark.parametrize("status", ["requires_action", "processing", "requires_capture"])
    def test_pending_states_require_action(self, status):
        result = map_intent_status(IntentResult(id="pi_1", status=status, client_secret="sec"))
        assert result.status == PaymentStatus.REQUIRES_ACTION
        assert result.client_secret == "sec"

    def test_requires_payment_method_is_a_decline(self):
        result = map_intent_status(
            IntentResult(id="pi_1", status="requires_payment_method", failure_reason="Card declined")
        )
        assert result.status == PaymentStatus.DECLINED
        assert result.reason == "Card declined"

    def test_unexpected_status_is_transient_error(self):
        result = map_intent_status(IntentResult(id="pi_1", status="requires_confirmation"))
        assert result.status == PaymentStatus.GATEWAY_ERROR
        assert result.transient is True
