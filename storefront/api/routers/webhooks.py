# storefront/api/routers/webhooks.py
from fastapi import APIRouter, Depends, Header, HTTPException, Request
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session

from storefront.data.database import get_db
from storefront.domain.errors import InvalidSignature, StorageError
from storefront.domain.schemas import WebhookAckOut
from storefront.services.payment_gateway import PaymentGateway, get_gateway
from storefront.services.reconciler_service import PaymentReconciler

router = APIRouter(prefix="/webhooks", tags=["webhooks"])


@router.post("/payments", response_model=WebhookAckOut)
async def payment_webhook(
    request: Request,
    stripe_signature: str | None = Header(None, alias="Stripe-Signature"),
    db: Session = Depends(get_db),
    gateway: PaymentGateway = Depends(get_gateway),
):
    """
    Webhook bramki (at-least-once). 200 takze dla duplikatow i ignorowanych typow,
    400 tylko przy blednym podpisie. 503 = bramka ponowi dostarczenie.
    """
    #podpis liczony z surowego body, nie z przeparsowanego jsona
    payload = await request.body()

    reconciler = PaymentReconciler(db, gateway)
    try:
        ack = await run_in_threadpool(reconciler.handle_event, payload, stripe_signature)
    except InvalidSignature as e:
        raise HTTPException(status_code=400, detail=e.message)
    except StorageError as e:
        raise HTTPException(status_code=503, detail=e.message)

    return WebhookAckOut.model_validate(ack)
