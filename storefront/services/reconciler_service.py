# storefront/services/reconciler_service.py
from dataclasses import dataclass

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from storefront.data.models.checkout import CheckoutSessionModel
from storefront.data.models.order import OrderModel
from storefront.data.models.payment_event import PaymentEventModel
from storefront.domain.checkout import CheckoutStatus, RefundStatus, WebhookAck, WebhookEvent
from storefront.domain.errors import (
    CheckoutError,
    InsufficientInventory,
    InvalidSignature,
    ProductNotFound,
    RefundFailed,
)
from storefront.repos.checkout_repo import CheckoutRepo
from storefront.repos.order_repo import OrderRepo
from storefront.repos.payment_repo import PaymentEventRepo, RefundRepo
from storefront.services.compensation_service import CompensationService
from storefront.services.notification_service import NotificationService
from storefront.services.order_committer import OrderCommitter
from storefront.services.payment_gateway import PaymentGateway
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

SUCCESS_EVENTS = {"payment_intent.succeeded"}
FAILURE_EVENTS = {"payment_intent.payment_failed", "payment_intent.canceled"}

# wyniki rozliczenia platnosci
ORDER_CREATED = "order_created"
DUPLICATE = "duplicate"
COMPENSATED = "compensated"
REFUND_FAILED = "refund_failed"
CANCELLED = "cancelled"
ANOMALY = "anomaly"
IGNORED = "ignored"


@dataclass(frozen=True)
class Settlement:
    outcome: str
    order: OrderModel | None = None
    cause: CheckoutError | None = None


class PaymentReconciler:
    """
    Rozlicza los platnosci dokladnie raz, niezaleznie od tego ktora sciezka
    przyszla pierwsza: synchroniczny checkout, webhook bramki (at-least-once,
    dowolna kolejnosc, duplikaty) czy task rekoncyliacji w tle.

    Dedup po gateway_event_id, check-before-act po payment_reference,
    oznaczenie eventu jako processed w tej samej transakcji co zmiana zamowienia.
    """

    def __init__(self, db: Session, gateway: PaymentGateway):
        self.db = db
        self.gateway = gateway
        self.events = PaymentEventRepo(db)
        self.checkouts = CheckoutRepo(db)
        self.orders = OrderRepo(db)
        self.refunds = RefundRepo(db)
        self.committer = OrderCommitter(db)
        self.compensation = CompensationService(db, gateway)

    # webhook
    def handle_event(self, payload: bytes, signature: str | None) -> WebhookAck:
        try:
            event = self.gateway.parse_webhook(payload, signature)
        except InvalidSignature as e:
            #granica bezpieczenstwa, nie retry
            logger.warning(f"Odrzucony webhook: {e.message}")
            raise

        logger.info(f"Webhook {event.event_id} {event.event_type} platnosc {event.payment_reference}")

        record = self._record_receipt(event)
        if record.processed:
            logger.info(f"Webhook {event.event_id} juz przetworzony ({record.outcome}), no-op")
            return WebhookAck(event_id=event.event_id, outcome=record.outcome or DUPLICATE, duplicate=True)

        if event.event_type in SUCCESS_EVENTS and event.payment_reference:
            settlement = self.settle_success(
                event.payment_reference,
                event_id=event.event_id,
                checkout_id=event.metadata.get("checkout_id"),
            )
        elif event.event_type in FAILURE_EVENTS and event.payment_reference:
            settlement = self.settle_failure(
                event.payment_reference,
                reason=event.event_type,
                event_id=event.event_id,
                checkout_id=event.metadata.get("checkout_id"),
            )
        else:
            self.events.mark_processed(event.event_id, IGNORED)
            self.db.commit()
            settlement = Settlement(IGNORED)

        return WebhookAck(
            event_id=event.event_id,
            outcome=settlement.outcome,
            order_id=settlement.order.id if settlement.order else None,
        )

    def _record_receipt(self, event: WebhookEvent) -> PaymentEventModel:
        existing = self.events.get(event.event_id)
        if existing:
            return existing
        try:
            record = self.events.add(
                PaymentEventModel(
                    gateway_event_id=event.event_id,
                    payment_reference=event.payment_reference,
                    event_type=event.event_type,
                    processed=False,
                )
            )
            self.db.commit()
            return record
        except IntegrityError:
            #ten sam event dostarczony rownolegle
            self.db.rollback()
            return self.events.get(event.event_id)

    # rozliczenie
    def settle_success(
        self,
        payment_reference: str,
        event_id: str | None = None,
        checkout_id: str | None = None,
    ) -> Settlement:
        existing = self.orders.get_by_payment_reference(payment_reference)
        if existing:
            self._finish(event_id, DUPLICATE)
            return Settlement(DUPLICATE, order=existing)

        checkout = self._find_checkout(payment_reference, checkout_id)

        if checkout is None:
            #pieniadze pobrane, nie wiemy za co - nie ma z czego zbudowac zamowienia
            NotificationService.alert_operators(
                "unknown_payment", payment_reference, "Platnosc bez sesji checkoutu"
            )
            return self._compensate(None, payment_reference, None, "unknown_payment", event_id)

        if checkout.status == CheckoutStatus.COMPENSATED.value:
            self._finish(event_id, COMPENSATED)
            return Settlement(COMPENSATED)

        claim = self.refunds.get_by_payment_reference(payment_reference)
        if claim is not None:
            #zwrot juz zgloszony, kompensacja dokonczona (bramka tylko gdy claim wisi w pending)
            return self._compensate(checkout, payment_reference, None, claim.reason, event_id)

        if checkout.status == CheckoutStatus.CANCELLED.value:
            #sukces po anulowaniu - nie nadpisujemy stanu, zwracamy pieniadze
            NotificationService.alert_operators(
                "success_after_cancel",
                payment_reference,
                f"Sukces platnosci dla anulowanego checkoutu {checkout.id}",
            )
            return self._compensate(checkout, payment_reference, None, "success_after_cancel", event_id)

        if checkout.status != CheckoutStatus.PENDING.value:
            logger.warning(f"Checkout {checkout.id} w stanie {checkout.status} bez zamowienia dla {payment_reference}")
            self._finish(event_id, ANOMALY)
            return Settlement(ANOMALY)

        try:
            result = self.committer.commit(
                user_id=checkout.user_id,
                lines=checkout.validated_lines(),
                shipping_address=checkout.shipping_address,
                payment_reference=payment_reference,
                totals=checkout.totals(),
                currency=checkout.currency,
                checkout_id=checkout.id,
                event_id=event_id,
            )
        except (InsufficientInventory, ProductNotFound) as e:
            logger.warning(f"Platnosc {payment_reference} pobrana, commit nieudany: {e.message}")
            checkout = self.checkouts.get(checkout.id)
            return self._compensate(checkout, payment_reference, e, e.code, event_id)

        if result.created:
            self._after_commit(result.order, checkout.recipient_email)
            return Settlement(ORDER_CREATED, order=result.order)
        return Settlement(DUPLICATE, order=result.order)

    def settle_failure(
        self,
        payment_reference: str,
        reason: str,
        event_id: str | None = None,
        checkout_id: str | None = None,
    ) -> Settlement:
        order = self.orders.get_by_payment_reference(payment_reference)
        if order:
            #anulowanie po sukcesie: zamowienie zostaje, eskalacja do operatorow
            NotificationService.alert_operators(
                "cancel_after_success",
                payment_reference,
                f"Zdarzenie {reason} dla potwierdzonego zamowienia {order.id}",
            )
            self._finish(event_id, ANOMALY)
            return Settlement(ANOMALY, order=order)

        checkout = self._find_checkout(payment_reference, checkout_id)
        if checkout is not None and checkout.status == CheckoutStatus.PENDING.value:
            #rezerwacja porzucona, magazyn nietkniety (nic nie bylo zdjete)
            checkout.transition_to(CheckoutStatus.CANCELLED, reason=reason)
            self._finish(event_id, CANCELLED, commit=False)
            self.db.commit()
            logger.info(f"Checkout {checkout.id} anulowany: {reason}")
            return Settlement(CANCELLED)

        self._finish(event_id, IGNORED)
        return Settlement(IGNORED)

    def _find_checkout(self, payment_reference: str, checkout_id: str | None) -> CheckoutSessionModel | None:
        checkout = self.checkouts.get_by_payment_reference(payment_reference)
        if checkout is None and checkout_id:
            #pad miedzy utworzeniem intentu a zapisem referencji
            checkout = self.checkouts.get(checkout_id)
            if checkout is not None and checkout.payment_reference is None:
                checkout.payment_reference = payment_reference
                self.db.commit()
        return checkout

    def _compensate(self, checkout, payment_reference, cause, reason, event_id) -> Settlement:
        amount = checkout.total if checkout is not None else None
        outcome = COMPENSATED
        try:
            refund = self.compensation.refund(payment_reference, reason, amount)
        except RefundFailed as e:
            #alert juz poszedl, decyzja biznesowa jest ostateczna
            outcome = REFUND_FAILED
            cause = e
        else:
            if refund.status == RefundStatus.FAILED:
                #zwrot odrzucony przy wczesniejszej dostawie, alert juz poszedl
                outcome = REFUND_FAILED
                cause = RefundFailed(payment_reference, "zwrot odrzucony wczesniej")

        if checkout is not None:
            #webhook mogl dokonczyc ta sama kompensacje w trakcie wywolania bramki
            self.db.refresh(checkout)
            if checkout.status == CheckoutStatus.PENDING.value:
                checkout.transition_to(CheckoutStatus.COMPENSATED, reason=reason)
        self._finish(event_id, outcome, commit=False)
        self.db.commit()
        return Settlement(outcome, cause=cause)

    def _finish(self, event_id: str | None, outcome: str, commit: bool = True) -> None:
        if event_id:
            self.events.mark_processed(event_id, outcome)
        if commit:
            self.db.commit()

    def _after_commit(self, order: OrderModel, recipient: str | None) -> None:
        #efekty uboczne dopiero po commicie, ich blad nie dotyka transakcji
        logger.info(f"[AUDIT] order_confirmed order={order.id} payment={order.payment_reference}")
        NotificationService.send_order_confirmation(order, recipient)
