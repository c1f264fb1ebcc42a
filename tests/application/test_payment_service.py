"""Application tests for payment orchestration against the fake gateway."""

from decimal import Decimal

from storefront.domain.checkout import PaymentStatus
from storefront.services.payment_service import PaymentService


def _charge(gateway, amount="27.59", checkout_id="chk_1"):
    return PaymentService(gateway).charge(
        amount=Decimal(amount),
        currency="usd",
        payment_method="pm_card_visa",
        checkout_id=checkout_id,
    )


class TestCharge:
    def test_successful_charge(self, fake_gateway):
        result = _charge(fake_gateway)

        assert result.status == PaymentStatus.SUCCEEDED
        create = fake_gateway.calls_to("create_payment_intent")[0]
        assert create["amount"] == 2759
        assert create["idempotency_key"] == "chk_1"
        assert fake_gateway.intents[result.payment_reference]["metadata"]["checkout_id"] == "chk_1"

    def test_decline(self, fake_gateway):
        fake_gateway.configure(charge_outcome="declined")
        result = _charge(fake_gateway)

        assert result.status == PaymentStatus.DECLINED
        assert result.reason == "Your card was declined."

    def test_requires_action_carries_client_secret(self, fake_gateway):
        fake_gateway.configure(charge_outcome="requires_action")
        result = _charge(fake_gateway)

        assert result.status == PaymentStatus.REQUIRES_ACTION
        assert result.client_secret

    def test_transient_error_is_retried_with_same_key(self, fake_gateway):
        fake_gateway.fail_next("create_payment_intent", times=2, transient=True)
        result = _charge(fake_gateway)

        assert result.status == PaymentStatus.SUCCEEDED
        keys = {c["idempotency_key"] for c in fake_gateway.calls_to("create_payment_intent")}
        assert keys == {"chk_1"}
        assert len(fake_gateway.intents) == 1

    def test_timeout_after_create_keeps_reference(self, fake_gateway):
        fake_gateway.fail_next("confirm_payment_intent", times=3, transient=True)
        result = _charge(fake_gateway)

        assert result.status == PaymentStatus.GATEWAY_ERROR
        assert result.transient is True
        assert result.payment_reference in fake_gateway.intents

    def test_permanent_error_is_not_retried(self, fake_gateway):
        fake_gateway.fail_next("create_payment_intent", times=1, transient=False)
        result = _charge(fake_gateway)

        assert result.status == PaymentStatus.GATEWAY_ERROR
        assert result.transient is False
        assert len(fake_gateway.calls_to("create_payment_intent")) == 1

    def test_zero_amount_never_reaches_gateway(self, fake_gateway):
        result = _charge(fake_gateway, amount="0.00")

        assert result.status == PaymentStatus.GATEWAY_ERROR
        assert fake_gateway.calls == []


class TestPaymentStatus:
    def test_unconfirmed_intent_counts_as_declined(self, fake_gateway):
        intent = fake_gateway.create_payment_intent(100, "usd", "pm_card_visa", "k1", {})
        result = PaymentService(fake_gateway).payment_status(intent.id)
        assert result.status == PaymentStatus.DECLINED

    def test_completed_action_reads_as_success(self, fake_gateway):
        fake_gateway.configure(charge_outcome="requires_action")
        reference = _charge(fake_gateway).payment_reference
        fake_gateway.complete_action(reference)

        assert PaymentService(fake_gateway).payment_status(reference).status == PaymentStatus.SUCCEEDED
