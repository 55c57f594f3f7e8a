from typing import Annotated, Union

from fastapi import APIRouter, Body, Depends, status
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.schemas.auth import (
    AuthSession,
    LoginRequest,
    PasswordLogin,
    PendingVerification,
    Registered,
    RegistrationRequest,
    VerifyOtpRequest,
)
from app.services import auth as auth_service
from app.services.sms import SmsSender, get_sms_sender

router = APIRouter(tags=["auth"])

# REGISTER: create the user only; the client logs in afterwards
@router.post("/register", response_model=Registered, status_code=status.HTTP_201_CREATED)
def register_user(
    payload: Annotated[RegistrationRequest, Body(discriminator="role")],
    db: Session = Depends(get_db),
):
    user = auth_service.register(db, payload)
    return Registered(user_id=user.id)

# LOGIN: ADMIN gets a session straight away, FARMER/CONSUMER get an OTP challenge
@router.post("/login", response_model=Union[AuthSession, PendingVerification])
def login(
    payload: Annotated[LoginRequest, Body(discriminator="role")],
    db: Session = Depends(get_db),
    sender: SmsSender = Depends(get_sms_sender),
):
    if isinstance(payload, PasswordLogin):
        return auth_service.login_with_password(db, payload)
    return auth_service.start_otp_login(db, payload, sender)

# VERIFY-OTP: second step of the phone login
@router.post("/verify-otp", response_model=AuthSession)
def verify_otp(
    payload: VerifyOtpRequest,
    db: Session = Depends(get_db),
):
    return auth_service.verify_otp_login(db, payload.user_id, payload.otp)
