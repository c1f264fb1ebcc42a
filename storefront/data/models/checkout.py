# storefront/data/models/checkout.py
from sqlalchemy import Column, Integer, ForeignKey, String, DateTime, Numeric, JSON
from datetime import datetime, timezone

from storefront.data.database import Base
from storefront.domain.checkout import (
    CheckoutStatus,
    CHECKOUT_TRANSITIONS,
    Totals,
    ValidatedLine,
    check_transition,
)


def _now():
    return datetime.now(timezone.utc)


class CheckoutSessionModel(Base):
    """
    Rezerwacja checkoutu, wiaze payment intent ze stanem koszyka
    zwalidowanym przed platnoscia (ceny zamrozone).
    """

    __tablename__ = "checkout_sessions"

    id = Column(String(40), primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    status = Column(String, nullable=False, default=CheckoutStatus.PENDING.value, index=True)
    lines = Column(JSON, nullable=False)

    subtotal = Column(Numeric(10, 2), nullable=False)
    discount = Column(Numeric(10, 2), nullable=False)
    shipping_cost = Column(Numeric(10, 2), nullable=False)
    tax = Column(Numeric(10, 2), nullable=False)
    total = Column(Numeric(10, 2), nullable=False)
    currency = Column(String(3), nullable=False)

    shipping_address = Column(JSON, nullable=False)
    recipient_email = Column(String, nullable=True)

    payment_reference = Column(String(255), nullable=True, unique=True)
    failure_reason = Column(String, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_now, onupdate=_now)

    def transition_to(self, target: CheckoutStatus, reason: str | None = None) -> None:
        check_transition(CHECKOUT_TRANSITIONS, CheckoutStatus(self.status), target)
        self.status = target.value
        if reason:
            self.failure_reason = reason

    def validated_lines(self) -> list[ValidatedLine]:
        return [ValidatedLine.from_dict(line) for line in self.lines]

    def totals(self) -> Totals:
        return Totals(
            subtotal=self.subtotal,
            discount=self.discount,
            shipping_cost=self.shipping_cost,
            tax=self.tax,
            total=self.total,
        )
