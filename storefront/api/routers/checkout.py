# storefront/api/routers/checkout.py
from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy.orm import Session

from storefront.data.database import get_db
from storefront.domain.checkout import CheckoutStatus
from storefront.domain.errors import (
    CheckoutInProgress,
    GatewayError,
    InsufficientInventory,
    InvalidCart,
    OrderNotCommitted,
    PaymentDeclined,
    ProductNotFound,
    RefundFailed,
    StorageError,
)
from storefront.domain.schemas import CheckoutIn, CheckoutOut
from storefront.services.checkout_service import CheckoutService
from storefront.services.lock_service import LockService, get_lock_service
from storefront.services.payment_gateway import PaymentGateway, get_gateway
router = APIRouter(prefix="/checkout", tags=["checkout"])


def _error(status_code: int, e, **extra):
    return HTTPException(status_code=status_code, detail={"code": e.code, "message": e.message, **extra})


@router.post("", response_model=CheckoutOut, status_code=201)
def checkout(
    payload: CheckoutIn,
    response: Response,
    db: Session = Depends(get_db),
    gateway: PaymentGateway = Depends(get_gateway),
    lock_service: LockService = Depends(get_lock_service),
):
    """
    201 - zamowienie potwierdzone
    202 - platnosc wymaga akcji klienta (3DS), zamowienie powstanie po webhooku
    """
    svc = CheckoutService(db, gateway, lock_service)
    try:
        outcome = svc.checkout(
            user_id=payload.user_id,
            shipping_address=payload.shipping_address.model_dump(),
            payment_method=payload.payment_method,
            currency=payload.currency.lower(),
            discount_code=payload.discount_code,
        )
    except CheckoutInProgress as e:
        raise _error(409, e)
    except InsufficientInventory as e:
        raise _error(409, e, product_id=e.product_id, requested=e.requested, available=e.available)
    except ProductNotFound as e:
        raise _error(404, e, product_id=e.product_id)
    except InvalidCart as e:
        raise _error(400, e)
    except PaymentDeclined as e:
        raise _error(402, e)
    except GatewayError as e:
        raise _error(503 if e.transient else 502, e, retryable=e.transient)
    except StorageError as e:
        raise _error(503, e, retryable=True)
    except OrderNotCommitted as e:
        raise _error(409, e, payment_reference=e.payment_reference, refunded=True)
    except RefundFailed as e:
        raise _error(500, e, payment_reference=e.payment_reference)

    if outcome.status == CheckoutStatus.PENDING.value:
        response.status_code = 202
    return CheckoutOut.model_validate(outcome)
