from sqlalchemy import Column, Integer, String, DateTime, Numeric
from datetime import datetime, timezone

from storefront.data.database import Base
from storefront.domain.checkout import RefundStatus


class RefundModel(Base):
    __tablename__ = "refunds"

    id = Column(Integer, primary_key=True)

    #unikalny claim, jeden zwrot na platnosc
    payment_reference = Column(String(255), nullable=False, unique=True)
    amount = Column(Numeric(10, 2), nullable=True)
    reason = Column(String, nullable=False)

    status = Column(String, nullable=False, default=RefundStatus.PENDING.value)
    gateway_refund_id = Column(String(255), nullable=True)
    failure_reason = Column(String, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
