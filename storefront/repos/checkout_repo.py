# storefront/repos/checkout_repo.py
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.orm import Session

from storefront.data.models.checkout import CheckoutSessionModel
from storefront.domain.checkout import CheckoutStatus


class CheckoutRepo:
    def __init__(self, db: Session):
        self.db = db

    def create(self, checkout: CheckoutSessionModel) -> CheckoutSessionModel:
        self.db.add(checkout)
        self.db.flush()
        return checkout

    def get(self, checkout_id: str) -> CheckoutSessionModel | None:
        return self.db.get(CheckoutSessionModel, checkout_id)

    def get_by_payment_reference(self, payment_reference: str) -> CheckoutSessionModel | None:
        return self.db.execute(
            select(CheckoutSessionModel).where(
                CheckoutSessionModel.payment_reference == payment_reference
            )
        ).scalar_one_or_none()

    def get_pending_for_user(self, user_id: int) -> CheckoutSessionModel | None:
        return self.db.execute(
            select(CheckoutSessionModel)
            .where(
                CheckoutSessionModel.user_id == user_id,
                CheckoutSessionModel.status == CheckoutStatus.PENDING.value,
            )
            .order_by(CheckoutSessionModel.created_at.desc())
            .limit(1)
        ).scalar_one_or_none()

    def list_stale_pending(self, older_than: datetime, limit: int = 100) -> list[CheckoutSessionModel]:
        return list(
            self.db.execute(
                select(CheckoutSessionModel)
                .where(
                    CheckoutSessionModel.status == CheckoutStatus.PENDING.value,
                    CheckoutSessionModel.updated_at < older_than,
                )
                .order_by(CheckoutSessionModel.updated_at)
                .limit(limit)
            ).scalars().all()
        )

