# storefront/services/checkout_service.py
import uuid

from sqlalchemy.orm import Session

from storefront.data.models.checkout import CheckoutSessionModel
from storefront.data.models.user import UserModel
from storefront.domain.checkout import (
    CartLine,
    CheckoutOutcome,
    CheckoutStatus,
    PaymentStatus,
)
from storefront.domain.errors import (
    CheckoutError,
    CheckoutInProgress,
    GatewayError,
    InvalidCart,
    OrderNotCommitted,
    PaymentDeclined,
)
from storefront.repos.cart_repo import CartRepo
from storefront.repos.checkout_repo import CheckoutRepo
from storefront.services.lock_service import LockService
from storefront.services.payment_gateway import PaymentGateway
from storefront.services.payment_service import PaymentService
from storefront.services.pricing_service import PricingService
from storefront.services.reconciler_service import (
    COMPENSATED,
    REFUND_FAILED,
    PaymentReconciler,
)
from storefront.utils.settings import CHECKOUT_LOCK_TTL_SECONDS
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class CheckoutService:
    """
    Use case checkoutu:
    1. lock per uzytkownik (redis), jeden checkout naraz
    2. walidacja koszyka + snapshot cen -> CheckoutSession (pending)
    3. platnosc (bez lockow bazy na czas wywolania bramki)
    4. sukces -> commit przez PaymentReconciler (ta sama sciezka co webhook)
       commit nieudany po pobraniu -> kompensacja, OrderNotCommitted
    """

    def __init__(self, db: Session, gateway: PaymentGateway, lock_service: LockService):
        self.db = db
        self.carts = CartRepo(db)
        self.checkouts = CheckoutRepo(db)
        self.pricing = PricingService(db)
        self.payments = PaymentService(gateway)
        self.reconciler = PaymentReconciler(db, gateway)
        self.lock_service = lock_service

    def checkout(
        self,
        user_id: int,
        shipping_address: dict,
        payment_method: str,
        currency: str,
        discount_code: str | None = None,
    ) -> CheckoutOutcome:
        checkout_id = f"chk_{uuid.uuid4().hex}"

        if not self.lock_service.acquire_checkout_lock(user_id, checkout_id, CHECKOUT_LOCK_TTL_SECONDS):
            raise CheckoutInProgress(f"Checkout uzytkownika {user_id} juz trwa")

        try:
            return self._checkout(
                checkout_id, user_id, shipping_address, payment_method, currency, discount_code
            )
        finally:
            self.lock_service.release_checkout_lock(user_id, checkout_id)

    def _checkout(self, checkout_id, user_id, shipping_address, payment_method, currency, discount_code):
        #check czy poprzedni checkout nie czeka na rozstrzygniecie platnosci
        pending = self.checkouts.get_pending_for_user(user_id)
        if pending:
            raise CheckoutInProgress(
                f"Checkout {pending.id} uzytkownika {user_id} czeka na rozstrzygniecie platnosci"
            )

        user = self.db.get(UserModel, user_id)
        if user is None:
            raise InvalidCart(f"Uzytkownik {user_id} nie istnieje")

        cart_lines = [
            CartLine(user_id=item.user_id, product_id=item.product_id, quantity=item.quantity)
            for item in self.carts.get_cart_lines(user_id)
        ]
        snapshots = self.pricing.snapshot(cart_lines)
        lines = self.pricing.validated_lines(cart_lines, snapshots)
        totals = self.pricing.quote(lines, discount_code)

        checkout = self.checkouts.create(
            CheckoutSessionModel(
                id=checkout_id,
                user_id=user_id,
                status=CheckoutStatus.PENDING.value,
                lines=[line.to_dict() for line in lines],
                subtotal=totals.subtotal,
                discount=totals.discount,
                shipping_cost=totals.shipping_cost,
                tax=totals.tax,
                total=totals.total,
                currency=currency,
                shipping_address=shipping_address,
                recipient_email=user.email,
            )
        )
        self.db.commit()
        logger.info(f"Checkout {checkout_id} uzytkownika {user_id}: total {totals.total} {currency}")

        #zaden lock bazy nie jest trzymany w trakcie wywolania bramki
        result = self.payments.charge(
            amount=totals.total,
            currency=currency,
            payment_method=payment_method,
            checkout_id=checkout_id,
            metadata={"user_id": str(user_id)},
        )

        if result.payment_reference and checkout.payment_reference is None:
            checkout.payment_reference = result.payment_reference
            self.db.commit()

        if result.status == PaymentStatus.SUCCEEDED:
            settlement = self.reconciler.settle_success(result.payment_reference, checkout_id=checkout_id)
            if settlement.outcome == COMPENSATED:
                cause = settlement.cause or CheckoutError("Platnosc juz zwrocona")
                raise OrderNotCommitted(result.payment_reference, cause)
            if settlement.outcome == REFUND_FAILED:
                raise settlement.cause
            if settlement.order is None:
                #webhook/reconciler rozstrzygnal inaczej niz bramka w odpowiedzi synchronicznej
                raise GatewayError(
                    f"Platnosc {result.payment_reference} rozliczona jako {settlement.outcome}",
                    transient=False,
                )
            return CheckoutOutcome(
                checkout_id=checkout_id,
                status=CheckoutStatus.COMPLETED.value,
                payment_reference=result.payment_reference,
                order_id=settlement.order.id,
                totals=totals,
            )

        if result.status == PaymentStatus.REQUIRES_ACTION:
            #klient konczy 3DS, los platnosci rozstrzygnie webhook
            logger.info(f"Checkout {checkout_id} czeka na akcje klienta ({result.payment_reference})")
            return CheckoutOutcome(
                checkout_id=checkout_id,
                status=CheckoutStatus.PENDING.value,
                payment_reference=result.payment_reference,
                client_secret=result.client_secret,
                totals=totals,
            )

        if result.status == PaymentStatus.DECLINED:
            self._cancel(checkout, result.reason)
            raise PaymentDeclined(result.reason or "declined")

        #GATEWAY_ERROR
        if result.transient:
            #stan platnosci nieznany: sesja zostaje pending, rozstrzygnie webhook albo task rekoncyliacji
            logger.warning(f"Checkout {checkout_id} pozostaje pending po bledzie bramki: {result.reason}")
        else:
            self._cancel(checkout, result.reason)
        raise GatewayError(result.reason or "Blad bramki platnosci", transient=result.transient)

    def _cancel(self, checkout: CheckoutSessionModel, reason: str | None) -> None:
        #webhook mogl juz rozstrzygnac sesje w miedzyczasie
        self.db.refresh(checkout)
        if checkout.status == CheckoutStatus.PENDING.value:
            checkout.transition_to(CheckoutStatus.CANCELLED, reason=reason)
            self.db.commit()
            logger.info(f"Checkout {checkout.id} anulowany: {reason}")
