# storefront/services/payment_service.py
from decimal import Decimal

from storefront.domain.checkout import PaymentResult, PaymentStatus, to_minor_units
from storefront.domain.errors import GatewayError
from storefront.services.payment_gateway import IntentResult, PaymentGateway
from storefront.utils.retry import gateway_retry
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

SUCCEEDED_STATUSES = {"succeeded"}
PENDING_STATUSES = {"requires_action", "processing", "requires_capture"}
FAILED_STATUSES = {"requires_payment_method", "canceled"}


def map_intent_status(intent: IntentResult) -> PaymentResult:
    if intent.status in SUCCEEDED_STATUSES:
        return PaymentResult.succeeded(intent.id)
    if intent.status in PENDING_STATUSES:
        return PaymentResult.requires_action(intent.id, intent.client_secret)
    if intent.status in FAILED_STATUSES:
        return PaymentResult.declined(intent.failure_reason or intent.status, payment_reference=intent.id)
    #requires_confirmation itp. po potwierdzeniu nie powinno sie zdarzyc
    return PaymentResult.gateway_error(
        f"Nieoczekiwany status intentu {intent.status}",
        transient=True,
        payment_reference=intent.id,
    )


class PaymentService:
    """
    Orkiestracja platnosci: create intent -> confirm -> status.

    Bledy przejsciowe sa ponawiane z tym samym idempotency key, wiec retry
    nie obciazy klienta drugi raz. Timeout to GatewayError(transient), nigdy
    "platnosc nieudana" - los platnosci rozstrzyga webhook.
    """

    def __init__(self, gateway: PaymentGateway):
        self.gateway = gateway

    def charge(
        self,
        amount: Decimal,
        currency: str,
        payment_method: str,
        checkout_id: str,
        metadata: dict | None = None,
    ) -> PaymentResult:
        amount_minor = to_minor_units(amount)
        if amount_minor <= 0:
            return PaymentResult.gateway_error("Kwota musi byc wieksza niz 0", transient=False)

        meta = {"checkout_id": checkout_id, **(metadata or {})}
        intent = None
        try:
            intent = self._create_intent(amount_minor, currency, payment_method, checkout_id, meta)
            logger.info(f"PaymentIntent {intent.id} dla checkoutu {checkout_id}: {intent.status}")

            if intent.status == "requires_confirmation":
                intent = self._confirm_intent(intent.id)
                logger.info(f"PaymentIntent {intent.id} po potwierdzeniu: {intent.status}")

        except GatewayError as e:
            reference = intent.id if intent else None
            level = logger.warning if e.transient else logger.error
            level(f"Blad bramki dla checkoutu {checkout_id} (transient={e.transient}): {e.message}")
            return PaymentResult.gateway_error(e.message, transient=e.transient, payment_reference=reference)

        result = map_intent_status(intent)
        if result.status == PaymentStatus.DECLINED:
            logger.info(f"Platnosc {intent.id} odrzucona: {result.reason}")
        return result

    def payment_status(self, payment_reference: str) -> PaymentResult:
        try:
            intent = self._retrieve_intent(payment_reference)
        except GatewayError as e:
            return PaymentResult.gateway_error(e.message, transient=e.transient, payment_reference=payment_reference)
        if intent.status == "requires_confirmation":
            #nigdy nie potwierdzony (np. pad workera miedzy create a confirm)
            return PaymentResult.declined("requires_confirmation", payment_reference=payment_reference)
        return map_intent_status(intent)

    def cancel(self, payment_reference: str) -> PaymentResult:
        try:
            intent = self._cancel_intent(payment_reference)
        except GatewayError as e:
            return PaymentResult.gateway_error(e.message, transient=e.transient, payment_reference=payment_reference)
        return map_intent_status(intent)

    @gateway_retry()
    def _create_intent(self, amount, currency, payment_method, idempotency_key, metadata) -> IntentResult:
        return self.gateway.create_payment_intent(
            amount=amount,
            currency=currency,
            payment_method=payment_method,
            idempotency_key=idempotency_key,
            metadata=metadata,
        )

    @gateway_retry()
    def _confirm_intent(self, intent_id: str) -> IntentResult:
        return self.gateway.confirm_payment_intent(intent_id)

    @gateway_retry()
    def _retrieve_intent(self, intent_id: str) -> IntentResult:
        return self.gateway.retrieve_payment_intent(intent_id)

    @gateway_retry()
    def _cancel_intent(self, intent_id: str) -> IntentResult:
        return self.gateway.cancel_payment_intent(intent_id)
