from fastapi import APIRouter, Body, Depends, HTTPException, Response
from sqlalchemy.orm import Session

from ...api.deps import get_db
from ...schemas import (
    PaymentRecord, GenerateIPSResponse,
    AmountFormatRequest, AmountFormatResponse,
    ShareSlipResponse, SharedSlipResponse
)
from ...services.ips_service import IPSService
from ...utils.ips import canonicalize_display_amount, amount_to_payload, amount_to_display

router = APIRouter()


@router.post("/generate", response_model=GenerateIPSResponse)
def generate_ips(record: PaymentRecord = Body(...)):
    """Generate the IPS QR payload for a payment slip."""
    return IPSService.generate(record)


@router.post("/qr.png", response_class=Response)
def generate_ips_png(record: PaymentRecord = Body(...)):
    """Render the IPS QR code of a payment slip as PNG."""
    result = IPSService.generate(record)
    if result.qr_string is None:
        raise HTTPException(
            status_code=422,
            detail={"message": "Payment slip is incomplete", "errors": result.errors}
        )

    return Response(content=IPSService.render_png(result.qr_string), media_type="image/png")


@router.post("/amount", response_model=AmountFormatResponse)
def format_amount(data: AmountFormatRequest = Body(...)):
    """Convert an amount as typed into its canonical, payload and display forms."""
    canonical = canonicalize_display_amount(data.amount)
    return AmountFormatResponse(
        canonical=canonical,
        payload=amount_to_payload(canonical),
        display=amount_to_display(canonical)
    )


@router.post("/share", response_model=ShareSlipResponse, status_code=201)
def share_slip(record: PaymentRecord = Body(...), db: Session = Depends(get_db)):
    """Save a payment slip and return the id for its share link."""
    return IPSService.share_slip(record, db)


@router.get("/share/{share_id}", response_model=SharedSlipResponse)
def get_shared_slip(share_id: str, db: Session = Depends(get_db)):
    """Get a shared payment slip."""
    slip = IPSService.get_shared_slip(share_id, db)
    if not slip:
        raise HTTPException(status_code=404, detail="Payment slip not found or expired")
    return slip
