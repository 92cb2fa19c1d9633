from pydantic import BaseModel, Field, field_validator
from typing import Dict, Optional
from datetime import datetime
from decimal import Decimal

from .core.config import settings


class PaymentRecord(BaseModel):
    """Payment slip as filled in on the form. Amount uses the canonical "1234.56" form."""
    payer_name: str = ""
    payer_address: str = ""
    payer_city: str = ""

    purpose: str = ""

    receiver_name: str = ""
    receiver_address: str = ""
    receiver_city: str = ""
    receiver_account: str = ""

    payment_code: str = "189"  # SF, base code
    currency: str = Field(default_factory=lambda: settings.default_currency)
    amount: str = ""

    model: str = ""  # 97 for check digit references
    reference: str = ""  # Poziv na broj

    @field_validator("*", mode="before")
    @classmethod
    def coerce_to_text(cls, value):
        if value is None:
            return ""
        # Amounts and codes posted as JSON numbers
        if isinstance(value, float):
            # Plain notation, str() would give "1e+20"
            return format(Decimal(str(value)), "f")
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value

    class Config:
        frozen = True


class GenerateIPSResponse(BaseModel):
    qr_string: Optional[str]
    valid: bool
    account_display: str = ""
    errors: Dict[str, str] = {}


class AmountFormatRequest(BaseModel):
    amount: str


class AmountFormatResponse(BaseModel):
    canonical: str
    payload: Optional[str]
    display: str


class ShareSlipResponse(BaseModel):
    share_id: str
    expires_at: datetime


class SharedSlipResponse(BaseModel):
    id: str
    data: PaymentRecord
    qr_string: Optional[str]
    created_at: datetime
    expires_at: datetime

    class Config:
        from_attributes = True
