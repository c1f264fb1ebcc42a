# storefront/tasks/reconcile.py
from datetime import datetime, timezone, timedelta

from storefront.celery_worker import celery_app
from storefront.data.database import SessionLocal
from storefront.data.models.checkout import CheckoutSessionModel
from storefront.domain.checkout import CheckoutStatus, PaymentStatus
from storefront.services.payment_gateway import get_gateway
from storefront.services.payment_service import PaymentService
from storefront.services.reconciler_service import PaymentReconciler
from storefront.utils.settings import CHECKOUT_PENDING_TTL_SECONDS
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


def resolve_stale_checkout(reconciler: PaymentReconciler, payments: PaymentService, checkout: CheckoutSessionModel) -> str:
    """
    Rozstrzyga jedna sesje wiszaca w pending (zgubiony webhook, pad workera).
    Zwraca wynik: order_created / cancelled / duplicate / compensated / skipped ...
    """
    db = reconciler.db

    if not checkout.payment_reference:
        #intent nigdy nie powstal albo padlismy przed zapisem referencji
        checkout.transition_to(CheckoutStatus.CANCELLED, reason="payment_never_started")
        db.commit()
        return "cancelled"

    status = payments.payment_status(checkout.payment_reference)

    if status.status == PaymentStatus.SUCCEEDED:
        return reconciler.settle_success(checkout.payment_reference, checkout_id=checkout.id).outcome

    if status.status == PaymentStatus.DECLINED:
        return reconciler.settle_failure(checkout.payment_reference, reason=status.reason or "declined").outcome

    if status.status == PaymentStatus.GATEWAY_ERROR:
        logger.warning(f"Checkout {checkout.id}: status platnosci nieznany ({status.reason}), nastepna proba pozniej")
        return "skipped"

    #REQUIRES_ACTION po TTL: klient porzucil platnosc, anulujemy intent w bramce
    cancelled = payments.cancel(checkout.payment_reference)
    if cancelled.status == PaymentStatus.SUCCEEDED:
        #klient zdazyl zaplacic miedzy odczytem a anulowaniem
        return reconciler.settle_success(checkout.payment_reference, checkout_id=checkout.id).outcome
    if cancelled.status == PaymentStatus.GATEWAY_ERROR:
        logger.warning(f"Checkout {checkout.id}: anulowanie intentu nieudane ({cancelled.reason})")
        return "skipped"
    return reconciler.settle_failure(checkout.payment_reference, reason="abandoned").outcome


@celery_app.task(name="storefront.tasks.reconcile.reconcile_pending_checkouts_task")
def reconcile_pending_checkouts_task(limit: int = 100):
    logger.info("Reconcile pending checkouts task started")

    gateway = get_gateway()
    db = SessionLocal()
    try:
        reconciler = PaymentReconciler(db, gateway)
        payments = PaymentService(gateway)

        older_than = datetime.now(timezone.utc) - timedelta(seconds=CHECKOUT_PENDING_TTL_SECONDS)
        stale = reconciler.checkouts.list_stale_pending(older_than, limit=limit)
        logger.info(f"Found {len(stale)} stale pending checkouts")

        results = {}
        for checkout in stale:
            try:
                results[checkout.id] = resolve_stale_checkout(reconciler, payments, checkout)
            except Exception as e:
                #jedna sesja nie blokuje reszty, zostaje pending do nastepnego przebiegu
                db.rollback()
                logger.error(f"Rekoncyliacja checkoutu {checkout.id} nieudana: {e}")
                results[checkout.id] = "error"

        return results

    finally:
        db.close()
