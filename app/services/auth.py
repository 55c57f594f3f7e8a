import logging
from typing import Union

from sqlalchemy.orm import Session

from app.auth import otp
from app.auth.security import create_access_token, get_password_hash, verify_password
from app.core.errors import AppError, ErrorKind
from app.crud import user as user_crud
from app.models.user import Role, User
from app.schemas.auth import (
    AdminRegistration,
    AuthSession,
    ConsumerRegistration,
    FarmerRegistration,
    OtpLogin,
    PasswordLogin,
    PendingVerification,
    UserSummary,
)
from app.services.sms import SmsSender

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid credentials."
INVALID_OR_EXPIRED = "Invalid or expired OTP."


def _start_session(user: User) -> AuthSession:
    token = create_access_token(user.id, user.role)
    return AuthSession(token=token, user=UserSummary.model_validate(user))


def register(
    db: Session,
    payload: Union[AdminRegistration, FarmerRegistration, ConsumerRegistration],
) -> User:
    """Create a user for the role carried by `payload`. No session is issued."""
    role = Role(payload.role)
    email = getattr(payload, "email", None)
    phone = getattr(payload, "phone", None)

    if user_crud.find_conflicting_user(db, email=email, phone=phone):
        raise AppError(ErrorKind.CONFLICT, "A user with this email or phone already exists.")

    fields = {"role": role, "name": payload.name, "email": email, "phone": phone}
    if isinstance(payload, AdminRegistration):
        fields["hashed_password"] = get_password_hash(payload.password)
    elif isinstance(payload, FarmerRegistration):
        fields["farm_name"] = payload.farm_name
        fields["location"] = payload.location
    else:
        fields["address"] = payload.address

    user = user_crud.create_user(db, **fields)
    logger.info("Registered user %s with role %s", user.id, role.value)
    return user


def login_with_password(db: Session, payload: PasswordLogin) -> AuthSession:
    user = user_crud.get_user_by_email(db, payload.email)
    if (
        user is None
        or not user.uses_password
        or not user.hashed_password
        or not verify_password(payload.password, user.hashed_password)
    ):
        logger.info("Password login rejected")
        raise AppError(ErrorKind.INVALID_CREDENTIALS, INVALID_CREDENTIALS)

    logger.info("Password login succeeded for user %s", user.id)
    return _start_session(user)


def start_otp_login(db: Session, payload: OtpLogin, sender: SmsSender) -> PendingVerification:
    role = Role(payload.role)
    user = user_crud.get_user_by_phone(db, payload.phone, role=role)
    if user is None:
        raise AppError(ErrorKind.NOT_FOUND, f"No {role.value.lower()} registered with this phone number.")

    otp.issue_challenge(db, user, user.phone, sender)
    return PendingVerification(user_id=user.id)


def verify_otp_login(db: Session, user_id: int, code: str) -> AuthSession:
    if not otp.verify_challenge(db, user_id, code):
        logger.info("OTP verification rejected for user %s", user_id)
        raise AppError(ErrorKind.INVALID_OR_EXPIRED, INVALID_OR_EXPIRED)

    user = user_crud.get_user(db, user_id)
    if user is None:
        raise AppError(ErrorKind.INVALID_OR_EXPIRED, INVALID_OR_EXPIRED)

    logger.info("OTP login succeeded for user %s", user.id)
    return _start_session(user)
