import logging
import re
from datetime import datetime, timedelta
from decimal import Decimal
from io import BytesIO
from typing import Dict, Optional

import qrcode
from qrcode.constants import ERROR_CORRECT_M
from fastapi import HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.config import settings
from ..database import SessionLocal
from ..models import SharedSlip
from ..schemas import PaymentRecord, GenerateIPSResponse, ShareSlipResponse, SharedSlipResponse
from ..utils.ips import (
    ACCOUNT_LENGTH,
    CHECKSUM_MODEL,
    amount_to_payload,
    canonicalize_amount,
    format_account_display,
    generate_ips_string,
)

logger = logging.getLogger(__name__)


class IPSService:
    @staticmethod
    def validate_record(record: PaymentRecord) -> Dict[str, str]:
        """
        Check a record the way the payment form does.

        Stricter than the encoder: the account must be typed with all 18
        digits, not just pad out to 18.

        Returns:
            Mapping of field name to message, empty when the record is valid.
        """
        errors: Dict[str, str] = {}

        account_digits = re.sub(r"[^0-9]", "", record.receiver_account)
        if not record.receiver_account:
            errors["receiver_account"] = "Receiver account is required"
        elif len(account_digits) != ACCOUNT_LENGTH:
            errors["receiver_account"] = f"Receiver account must have exactly {ACCOUNT_LENGTH} digits"

        if not record.amount:
            errors["amount"] = "Amount is required"
        else:
            payload_amount = amount_to_payload(canonicalize_amount(record.amount))
            if payload_amount is None:
                errors["amount"] = "Amount must be a number"
            elif Decimal(payload_amount) == 0:
                errors["amount"] = "Amount must be greater than zero"

        if not record.receiver_name.strip():
            errors["receiver_name"] = "Receiver name is required"

        if record.payment_code and not re.fullmatch(r"[0-9]{3}", record.payment_code.strip()):
            errors["payment_code"] = "Payment code must have 3 digits"

        if record.model and not re.fullmatch(r"[0-9]{2}", record.model):
            errors["model"] = "Model must have 2 digits"

        reference = record.reference.strip()
        if record.model == CHECKSUM_MODEL and reference:
            # Anything else falls back to "00" check digits
            if not re.fullmatch(r"[0-9A-Za-z]+", re.sub(r"[\s-]", "", reference)):
                errors["reference"] = "Reference for model 97 may contain only letters and digits"

        return errors

    @staticmethod
    def generate(record: PaymentRecord) -> GenerateIPSResponse:
        """Generate the IPS payload together with the form validation result."""
        qr_string = generate_ips_string(record)
        errors = IPSService.validate_record(record)

        if qr_string is None:
            logger.debug("Record incomplete, no payload generated (%s)", ", ".join(errors) or "encoding failed")

        return GenerateIPSResponse(
            qr_string=qr_string,
            valid=qr_string is not None and not errors,
            account_display=format_account_display(record.receiver_account),
            errors=errors,
        )

    @staticmethod
    def render_png(qr_string: str) -> bytes:
        """Render a payload as a PNG QR code at error correction level M."""
        qr = qrcode.QRCode(
            version=None,
            error_correction=ERROR_CORRECT_M,
            box_size=settings.qr_box_size,
            border=settings.qr_border,
        )
        qr.add_data(qr_string)
        qr.make(fit=True)

        img = qr.make_image(fill_color="black", back_color="white")

        buffer = BytesIO()
        img.save(buffer, format="PNG")
        return buffer.getvalue()

    @staticmethod
    def share_slip(record: PaymentRecord, db: Optional[Session] = None) -> ShareSlipResponse:
        """Store a slip for link sharing. It stays readable for the configured number of days."""
        if db is None:
            db = SessionLocal()
            close_db = True
        else:
            close_db = False

        try:
            created_at = datetime.utcnow()
            slip = SharedSlip(
                data=record.model_dump(),
                qr_string=generate_ips_string(record),
                created_at=created_at,
                expires_at=created_at + timedelta(days=settings.share_expiry_days),
            )

            db.add(slip)
            db.commit()
            db.refresh(slip)

            logger.info("Shared slip %s saved, expires at %s", slip.id, slip.expires_at.isoformat())
            return ShareSlipResponse(share_id=slip.id, expires_at=slip.expires_at)

        except SQLAlchemyError as db_error:
            db.rollback()
            logger.error("Failed to save shared slip: %s", db_error)
            raise HTTPException(status_code=500, detail="Failed to save shared slip")

        finally:
            if close_db:
                db.close()

    @staticmethod
    def get_shared_slip(share_id: str, db: Optional[Session] = None,
                        now: Optional[datetime] = None) -> Optional[SharedSlipResponse]:
        """Fetch a shared slip. Expired slips are reported the same as missing ones."""
        if db is None:
            db = SessionLocal()
            close_db = True
        else:
            close_db = False

        try:
            slip = db.query(SharedSlip).filter(SharedSlip.id == share_id).first()
            if slip is None:
                logger.info("Shared slip %s not found", share_id)
                return None

            if slip.is_expired(now):
                logger.info("Shared slip %s expired at %s", share_id, slip.expires_at.isoformat())
                return None

            return SharedSlipResponse.model_validate(slip)

        finally:
            if close_db:
                db.close()
