# storefront/repos/payment_repo.py
from datetime import datetime, timezone

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from storefront.data.models.payment_event import PaymentEventModel
from storefront.data.models.refund import RefundModel


class PaymentEventRepo:
    def __init__(self, db: Session):
        self.db = db

    def get(self, gateway_event_id: str) -> PaymentEventModel | None:
        return self.db.execute(
            select(PaymentEventModel)
            .where(PaymentEventModel.gateway_event_id == gateway_event_id)
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def add(self, event: PaymentEventModel) -> PaymentEventModel:
        self.db.add(event)
        self.db.flush()
        return event

    def mark_processed(self, gateway_event_id: str, outcome: str) -> int:
        res = self.db.execute(
            update(PaymentEventModel)
            .where(PaymentEventModel.gateway_event_id == gateway_event_id)
            .values(
                processed=True,
                processed_at=datetime.now(timezone.utc),
                outcome=outcome,
            )
            .execution_options(synchronize_session=False)
        )
        return res.rowcount


class RefundRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_by_payment_reference(self, payment_reference: str) -> RefundModel | None:
        return self.db.execute(
            select(RefundModel)
            .where(RefundModel.payment_reference == payment_reference)
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def add(self, refund: RefundModel) -> RefundModel:
        self.db.add(refund)
        self.db.flush()
        return refund
