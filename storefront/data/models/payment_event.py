from sqlalchemy import Column, Integer, String, DateTime, Boolean
from datetime import datetime, timezone

from storefront.data.database import Base


class PaymentEventModel(Base):
    """Tabela deduplikacji webhookow, gateway_event_id jest kluczem idempotencji."""

    __tablename__ = "payment_events"

    id = Column(Integer, primary_key=True)
    gateway_event_id = Column(String(255), nullable=False, unique=True)
    payment_reference = Column(String(255), nullable=True, index=True)
    event_type = Column(String(100), nullable=False)

    received_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    processed = Column(Boolean, nullable=False, default=False)
    processed_at = Column(DateTime(timezone=True), nullable=True)
    outcome = Column(String(50), nullable=True)
