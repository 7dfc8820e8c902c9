from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.db.deps import get_db
from app.schemas.messages import OtpRequest, OtpVerifyRequest
from app.services.otp_service import (
    OTP_STATUS_ALREADY_VERIFIED,
    OTP_STATUS_EXPIRED,
    OTP_STATUS_INVALID,
    OTP_STATUS_NOT_FOUND,
    OTP_STATUS_TOO_MANY_ATTEMPTS,
    request_otp,
    verify_otp,
)
from app.utils.phone import to_e164

router = APIRouter()


@router.post("/request")
async def request_verification(body: OtpRequest, db: Session = Depends(get_db)):
    if not to_e164(body.phone):
        raise HTTPException(status_code=400, detail="Phone number is required")
    result = await request_otp(db, body.phone)
    if result["status"] == "failed":
        raise HTTPException(status_code=502, detail="Failed to send OTP")
    return {"success": True, **result}


@router.post("/verify")
def verify_verification(body: OtpVerifyRequest, db: Session = Depends(get_db)):
    status = verify_otp(db, body.phone, body.otp)
    if status == OTP_STATUS_NOT_FOUND:
        raise HTTPException(status_code=404, detail="No OTP requested for this number")
    if status == OTP_STATUS_EXPIRED:
        raise HTTPException(status_code=400, detail="OTP expired")
    if status == OTP_STATUS_INVALID:
        raise HTTPException(status_code=400, detail="Invalid OTP")
    if status == OTP_STATUS_TOO_MANY_ATTEMPTS:
        raise HTTPException(status_code=429, detail="Too many failed attempts, request a new OTP")
    message = "Phone already verified" if status == OTP_STATUS_ALREADY_VERIFIED else "Phone verified"
    return {"success": True, "status": status, "message": message}
