import uuid
from datetime import datetime
from sqlalchemy import Column, String, DateTime, Text, JSON
from .database import Base


class SharedSlip(Base):
    __tablename__ = "shared_slips"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()), index=True)
    data = Column(JSON, nullable=False)  # PaymentRecord as submitted
    qr_string = Column(Text, nullable=True)  # None when the record was incomplete
    created_at = Column(DateTime(), default=datetime.utcnow, nullable=False)
    expires_at = Column(DateTime(), nullable=False, index=True)

    def is_expired(self, now: datetime | None = None) -> bool:
        return (now or datetime.utcnow()) > self.expires_at
