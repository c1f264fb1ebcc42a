# storefront/services/fake_gateway.py
"""
Konfigurowalna bramka platnosci do dev i testow.

Zachowuje sie jak Stripe w trybie testowym: idempotency key zwraca ten sam
intent, webhooki sa podpisywane tym samym schematem t=...,v1=... co Stripe,
wiec weryfikacja podpisu idzie ta sama sciezka co na produkcji.
"""
import hashlib
import hmac
import json
import threading
import time
from uuid import uuid4

from storefront.domain.errors import GatewayError
from storefront.services.payment_gateway import (
    IntentResult,
    PaymentGateway,
    RefundResult,
    verify_stripe_signature,
)

#charge_outcome -> status intentu po potwierdzeniu
_OUTCOME_STATUS = {
    "succeeded": "succeeded",
    "requires_action": "requires_action",
    "processing": "processing",
    "declined": "requires_payment_method",
}


class FakeGateway(PaymentGateway):

    def __init__(self, webhook_secret: str = "whsec_test_secret"):
        self.webhook_secret = webhook_secret
        self.charge_outcome = "succeeded"
        self.decline_reason = "Your card was declined."
        self.refund_should_succeed = True
        self.refund_failure_reason = "Refund rejected"
        self.intents: dict[str, dict] = {}
        self.calls: list[dict] = []
        self._keys: dict[str, str] = {}
        self._refund_keys: dict[str, str] = {}
        self._failures: list[tuple[str, GatewayError]] = []
        self._lock = threading.Lock()

    def configure(self, charge_outcome: str = "succeeded", refund_should_succeed: bool = True) -> None:
        self.charge_outcome = charge_outcome
        self.refund_should_succeed = refund_should_succeed

    def fail_next(self, method: str, times: int = 1, transient: bool = True) -> None:
        """Kolejne `times` wywolan `method` rzuci GatewayError."""
        for _ in range(times):
            self._failures.append(
                (method, GatewayError(f"fake {method} failure", transient=transient))
            )

    def calls_to(self, method: str) -> list[dict]:
        return [c for c in self.calls if c["method"] == method]

    def _record(self, method: str, **kwargs) -> None:
        self.calls.append({"method": method, **kwargs})
        for i, (m, error) in enumerate(self._failures):
            if m == method:
                del self._failures[i]
                raise error

    def _result(self, intent_id: str) -> IntentResult:
        intent = self.intents[intent_id]
        return IntentResult(
            id=intent_id,
            status=intent["status"],
            client_secret=f"{intent_id}_secret",
            failure_reason=intent.get("failure_reason"),
        )

    def create_payment_intent(self, amount, currency, payment_method, idempotency_key, metadata):
        with self._lock:
            self._record(
                "create_payment_intent",
                amount=amount,
                currency=currency,
                payment_method=payment_method,
                idempotency_key=idempotency_key,
            )
            existing = self._keys.get(idempotency_key)
            if existing:
                return self._result(existing)

            intent_id = f"pi_fake_{uuid4().hex[:16]}"
            self.intents[intent_id] = {
                "status": "requires_confirmation",
                "amount": amount,
                "currency": currency,
                "metadata": dict(metadata),
            }
            self._keys[idempotency_key] = intent_id
            return self._result(intent_id)

    def confirm_payment_intent(self, intent_id):
        with self._lock:
            self._record("confirm_payment_intent", intent_id=intent_id)
            intent = self.intents[intent_id]
            if intent["status"] == "requires_confirmation":
                intent["status"] = _OUTCOME_STATUS[self.charge_outcome]
                if self.charge_outcome == "declined":
                    intent["failure_reason"] = self.decline_reason
            return self._result(intent_id)

    def retrieve_payment_intent(self, intent_id):
        with self._lock:
            self._record("retrieve_payment_intent", intent_id=intent_id)
            return self._result(intent_id)

    def cancel_payment_intent(self, intent_id):
        with self._lock:
            self._record("cancel_payment_intent", intent_id=intent_id)
            self.intents[intent_id]["status"] = "canceled"
            return self._result(intent_id)

    def create_refund(self, intent_id, amount, reason, idempotency_key):
        with self._lock:
            self._record(
                "create_refund",
                intent_id=intent_id,
                amount=amount,
                reason=reason,
                idempotency_key=idempotency_key,
            )
            if self.refund_should_succeed:
                #jak Stripe: ten sam klucz idempotencji zwraca ten sam zwrot
                refund_id = self._refund_keys.setdefault(idempotency_key, f"re_fake_{uuid4().hex[:12]}")
                return RefundResult(success=True, gateway_refund_id=refund_id)
            return RefundResult(success=False, failure_reason=self.refund_failure_reason)

    def parse_webhook(self, payload, signature):
        return verify_stripe_signature(payload, signature, self.webhook_secret)

    # pomocnicze do symulacji
    def complete_action(self, intent_id: str, succeeded: bool = True) -> None:
        """Klient przeszedl (albo nie) 3DS."""
        with self._lock:
            self.intents[intent_id]["status"] = "succeeded" if succeeded else "requires_payment_method"

    def build_event(self, event_type: str, intent_id: str, event_id: str | None = None) -> bytes:
        intent = self.intents.get(intent_id, {})
        event = {
            "id": event_id or f"evt_fake_{uuid4().hex[:16]}",
            "object": "event",
            "type": event_type,
            "created": int(time.time()),
            "data": {
                "object": {
                    "id": intent_id,
                    "object": "payment_intent",
                    "amount": intent.get("amount"),
                    "currency": intent.get("currency"),
                    "status": intent.get("status"),
                    "metadata": intent.get("metadata", {}),
                }
            },
        }
        return json.dumps(event).encode("utf-8")

    def sign(self, payload: bytes, timestamp: int | None = None) -> str:
        ts = timestamp or int(time.time())
        signed = f"{ts}.".encode("utf-8") + payload
        digest = hmac.new(self.webhook_secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()
        return f"t={ts},v1={digest}"
