# storefront/services/payment_gateway.py
"""
Port bramki platnosci + fabryka adapterow.

Kontrakt wspolny dla StripeGateway (produkcja) i FakeGateway (dev/testy),
reszta kodu nie wie z ktora bramka rozmawia.
"""
import json
from abc import ABC, abstractmethod
from dataclasses import dataclass

import stripe

from storefront.domain.checkout import WebhookEvent
from storefront.domain.errors import InvalidSignature
from storefront.utils.settings import PAYMENT_GATEWAY, WEBHOOK_TOLERANCE_SECONDS


@dataclass(frozen=True)
class IntentResult:
    id: str
    status: str
    client_secret: str | None = None
    failure_reason: str | None = None


@dataclass(frozen=True)
class RefundResult:
    success: bool
    gateway_refund_id: str | None = None
    failure_reason: str | None = None


class PaymentGateway(ABC):

    @abstractmethod
    def create_payment_intent(
        self,
        amount: int,
        currency: str,
        payment_method: str,
        idempotency_key: str,
        metadata: dict,
    ) -> IntentResult:
        """amount w centach. Rzuca GatewayError(transient=...)."""

    @abstractmethod
    def confirm_payment_intent(self, intent_id: str) -> IntentResult:
        ...

    @abstractmethod
    def retrieve_payment_intent(self, intent_id: str) -> IntentResult:
        ...

    @abstractmethod
    def cancel_payment_intent(self, intent_id: str) -> IntentResult:
        ...

    @abstractmethod
    def create_refund(
        self,
        intent_id: str,
        amount: int | None,
        reason: str,
        idempotency_key: str,
    ) -> RefundResult:
        ...

    @abstractmethod
    def parse_webhook(self, payload: bytes, signature: str | None) -> WebhookEvent:
        """Weryfikuje podpis i zwraca zdarzenie, albo rzuca InvalidSignature."""


def verify_stripe_signature(payload: bytes, signature: str | None, secret: str) -> WebhookEvent:
    """
    Schemat Stripe-Signature (t=...,v1=...) sprawdzany przez SDK,
    payload parsowany dopiero po weryfikacji.
    """
    if not signature:
        raise InvalidSignature("Brak naglowka Stripe-Signature")
    if not secret:
        raise InvalidSignature("Brak skonfigurowanego sekretu webhookow")

    try:
        body = payload.decode("utf-8") if isinstance(payload, bytes) else payload
    except UnicodeDecodeError as e:
        raise InvalidSignature("Payload webhooka nie jest poprawnym UTF-8") from e

    try:
        stripe.WebhookSignature.verify_header(
            body, signature, secret, WEBHOOK_TOLERANCE_SECONDS
        )
    except stripe.SignatureVerificationError as e:
        raise InvalidSignature(f"Niepoprawny podpis webhooka: {e}") from e

    try:
        data = json.loads(body)
    except ValueError as e:
        raise InvalidSignature("Niepoprawny JSON webhooka") from e

    if not isinstance(data, dict) or not data.get("id"):
        #bez id nie ma klucza deduplikacji
        raise InvalidSignature("Webhook bez identyfikatora zdarzenia")

    obj = data.get("data", {}).get("object", {}) or {}
    if obj.get("object") == "payment_intent":
        reference = obj.get("id")
    else:
        reference = obj.get("payment_intent")

    return WebhookEvent(
        event_id=data["id"],
        event_type=data.get("type", "unknown"),
        payment_reference=reference,
        payload=data,
    )


_current_gateway: PaymentGateway | None = None


def get_gateway() -> PaymentGateway:
    global _current_gateway
    if _current_gateway is None:
        if PAYMENT_GATEWAY == "fake":
            from storefront.services.fake_gateway import FakeGateway
            _current_gateway = FakeGateway()
        else:
            from storefront.services.stripe_gateway import StripeGateway
            _current_gateway = StripeGateway()
    return _current_gateway


def set_gateway(gateway: PaymentGateway) -> None:
    global _current_gateway
    _current_gateway = gateway


def reset_gateway() -> None:
    global _current_gateway
    _current_gateway = None
