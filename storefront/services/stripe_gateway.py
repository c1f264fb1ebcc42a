# storefront/services/stripe_gateway.py
import stripe

from storefront.domain.errors import GatewayError
from storefront.services.payment_gateway import (
    IntentResult,
    PaymentGateway,
    RefundResult,
    verify_stripe_signature,
)
from storefront.utils.settings import (
    STRIPE_SECRET_KEY,
    STRIPE_WEBHOOK_SECRET,
    GATEWAY_TIMEOUT_SECONDS,
)
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


def _translate(e: stripe.StripeError) -> GatewayError:
    #timeout / brak polaczenia / 429 / 5xx - platnosc mogla przejsc, los ustala webhook
    transient = isinstance(e, (stripe.APIConnectionError, stripe.RateLimitError, stripe.APIError))
    return GatewayError(f"Stripe: {e.user_message or str(e)}", transient=transient)


def _field(obj, name):
    try:
        return obj[name]
    except KeyError:
        return None


def _intent_result(intent) -> IntentResult:
    last_error = _field(intent, "last_payment_error")
    return IntentResult(
        id=intent["id"],
        status=intent["status"],
        client_secret=_field(intent, "client_secret"),
        failure_reason=_field(last_error, "message") if last_error else None,
    )


class StripeGateway(PaymentGateway):

    def __init__(
        self,
        api_key: str | None = None,
        webhook_secret: str | None = None,
        timeout: int = GATEWAY_TIMEOUT_SECONDS,
    ):
        self.api_key = api_key or STRIPE_SECRET_KEY
        self.webhook_secret = webhook_secret or STRIPE_WEBHOOK_SECRET
        #ograniczony timeout kazdego wywolania bramki
        stripe.default_http_client = stripe.RequestsClient(timeout=timeout)

    def create_payment_intent(self, amount, currency, payment_method, idempotency_key, metadata):
        logger.info(f"Stripe create PaymentIntent {amount} {currency} key={idempotency_key}")
        try:
            intent = stripe.PaymentIntent.create(
                amount=amount,
                currency=currency,
                payment_method=payment_method,
                confirm=False,
                metadata=metadata,
                api_key=self.api_key,
                idempotency_key=idempotency_key,
            )
        except stripe.StripeError as e:
            raise _translate(e) from e
        return _intent_result(intent)

    def confirm_payment_intent(self, intent_id):
        logger.info(f"Stripe confirm PaymentIntent {intent_id}")
        try:
            intent = stripe.PaymentIntent.confirm(
                intent_id,
                api_key=self.api_key,
                idempotency_key=f"confirm_{intent_id}",
            )
        except stripe.CardError as e:
            #karta odrzucona przy potwierdzeniu, intent wraca do requires_payment_method
            return IntentResult(
                id=intent_id,
                status="requires_payment_method",
                failure_reason=e.user_message or "Karta odrzucona",
            )
        except stripe.StripeError as e:
            raise _translate(e) from e
        return _intent_result(intent)

    def retrieve_payment_intent(self, intent_id):
        try:
            intent = stripe.PaymentIntent.retrieve(intent_id, api_key=self.api_key)
        except stripe.StripeError as e:
            raise _translate(e) from e
        return _intent_result(intent)

    def cancel_payment_intent(self, intent_id):
        logger.info(f"Stripe cancel PaymentIntent {intent_id}")
        try:
            intent = stripe.PaymentIntent.cancel(intent_id, api_key=self.api_key)
        except stripe.StripeError as e:
            raise _translate(e) from e
        return _intent_result(intent)

    def create_refund(self, intent_id, amount, reason, idempotency_key):
        logger.info(f"Stripe refund {intent_id} ({reason})")
        params = {
            "payment_intent": intent_id,
            "metadata": {"reason": reason},
        }
        if amount is not None:
            params["amount"] = amount
        try:
            refund = stripe.Refund.create(
                api_key=self.api_key,
                idempotency_key=idempotency_key,
                **params,
            )
        except stripe.StripeError as e:
            error = _translate(e)
            if error.transient:
                raise error from e
            return RefundResult(success=False, failure_reason=error.message)

        if refund["status"] in ("failed", "canceled"):
            return RefundResult(
                success=False,
                gateway_refund_id=refund["id"],
                failure_reason=_field(refund, "failure_reason") or refund["status"],
            )
        return RefundResult(success=True, gateway_refund_id=refund["id"])

    def parse_webhook(self, payload, signature):
        return verify_stripe_signature(payload, signature, self.webhook_secret)
