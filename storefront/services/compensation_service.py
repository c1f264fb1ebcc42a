# storefront/services/compensation_service.py
from decimal import Decimal

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from storefront.data.models.refund import RefundModel
from storefront.domain.checkout import RefundOutcome, RefundStatus, to_minor_units
from storefront.domain.errors import GatewayError, RefundFailed
from storefront.repos.payment_repo import RefundRepo
from storefront.services.notification_service import NotificationService
from storefront.services.payment_gateway import PaymentGateway
from storefront.utils.retry import gateway_retry
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class CompensationService:
    """
    Saga: platnosc pobrana, zamowienie nie powstalo -> zwrot.

    Dokladnie jeden zwrot na payment_reference: najpierw unikalny claim w bazie,
    dopiero potem wywolanie bramki. Claim zawieszony w pending (crash przed
    bramka) jest ponawiany z tym samym kluczem idempotencji.
    Nieudany zwrot to alert dla operatorow, nigdy ciche ponawianie w tle.
    """

    def __init__(self, db: Session, gateway: PaymentGateway):
        self.db = db
        self.gateway = gateway
        self.refunds = RefundRepo(db)

    def refund(self, payment_reference: str, reason: str, amount: Decimal | None = None) -> RefundOutcome:
        claim = self._claim(payment_reference, reason, amount)
        if claim is None:
            existing = self.refunds.get_by_payment_reference(payment_reference)
            if existing.status != RefundStatus.PENDING.value:
                logger.info(
                    f"Zwrot dla {payment_reference} juz obsluzony (status {existing.status}), "
                    f"pomijam wywolanie bramki"
                )
                return RefundOutcome(
                    payment_reference=payment_reference,
                    status=RefundStatus(existing.status),
                    gateway_refund_id=existing.gateway_refund_id,
                    already_handled=True,
                )
            #claim bez wyniku (np. worker padl przed bramka), ten sam klucz idempotencji w bramce
            logger.warning(f"Zwrot dla {payment_reference} zawieszony w stanie pending, ponawiam wywolanie bramki")
            claim = existing
            if amount is None:
                amount = existing.amount

        logger.warning(f"Kompensacja: zwrot platnosci {payment_reference} ({reason})")
        try:
            result = self._create_refund(payment_reference, amount, reason)
            failure = None if result.success else (result.failure_reason or "unknown")
        except GatewayError as e:
            result = None
            failure = e.message

        if failure is None:
            claim.status = RefundStatus.REFUNDED.value
            claim.gateway_refund_id = result.gateway_refund_id
            self.db.commit()
            logger.info(f"Zwrot {result.gateway_refund_id} dla {payment_reference} wykonany")
            return RefundOutcome(
                payment_reference=payment_reference,
                status=RefundStatus.REFUNDED,
                gateway_refund_id=result.gateway_refund_id,
            )

        claim.status = RefundStatus.FAILED.value
        claim.failure_reason = failure
        self.db.commit()

        #pieniadze zatrzymane bez rezerwacji towaru, wymaga interwencji
        NotificationService.alert_operators(
            "refund_failed",
            payment_reference,
            f"Zwrot nieudany ({failure}); powod kompensacji: {reason}",
        )
        raise RefundFailed(payment_reference, failure)

    def _claim(self, payment_reference: str, reason: str, amount: Decimal | None) -> RefundModel | None:
        if self.refunds.get_by_payment_reference(payment_reference):
            return None
        try:
            claim = self.refunds.add(
                RefundModel(
                    payment_reference=payment_reference,
                    amount=amount,
                    reason=reason,
                    status=RefundStatus.PENDING.value,
                )
            )
            self.db.commit()
        except IntegrityError:
            #ktos inny zglosil ten zwrot rownolegle
            self.db.rollback()
            return None
        return claim

    @gateway_retry()
    def _create_refund(self, payment_reference: str, amount: Decimal | None, reason: str):
        return self.gateway.create_refund(
            payment_reference,
            to_minor_units(amount) if amount is not None else None,
            reason,
            idempotency_key=f"refund_{payment_reference}",
        )
