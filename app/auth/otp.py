"""One-time code challenges for phone-based login.

A challenge is good for exactly one successful verification before it
expires. Verification is a single conditional UPDATE so that two concurrent
requests presenting the same code cannot both succeed.
"""
import logging
import secrets
from datetime import datetime, timedelta, timezone

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import get_settings
from app.core.errors import AppError, ErrorKind
from app.models.base import is_storable_id
from app.models.otp import OtpChallenge
from app.models.user import User
from app.services.sms import SmsSender

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    # Stored timestamps are naive UTC
    return datetime.now(timezone.utc).replace(tzinfo=None)


def generate_code(length: int) -> str:
    return str(secrets.randbelow(10 ** length)).zfill(length)


def issue_challenge(db: Session, user: User, phone: str, sender: SmsSender) -> str:
    """Persist a new challenge for `user` and deliver its code to `phone`.

    Earlier unconsumed challenges stay valid. If delivery fails the new
    challenge is rolled back, so a code is never left behind without the
    caller having been handed the pending-verification handle.
    """
    settings = get_settings()
    code = generate_code(settings.OTP_LENGTH)
    challenge = OtpChallenge(
        user_id=user.id,
        phone=phone,
        code=code,
        expires_at=utcnow() + timedelta(minutes=settings.OTP_EXPIRE_MINUTES),
        consumed=False,
    )
    try:
        db.add(challenge)
        db.flush()
        sender.send_otp(phone, code)
        db.commit()
    except Exception:
        db.rollback()
        logger.exception("Could not issue OTP challenge for user %s", user.id)
        raise AppError(ErrorKind.INTERNAL, "Could not send verification code. Please try again.")

    logger.info("Issued OTP challenge %s for user %s", challenge.id, user.id)
    return code


def verify_challenge(db: Session, user_id: int, code: str) -> bool:
    """Consume a matching, unexpired, unconsumed challenge. True on success."""
    if not is_storable_id(user_id):
        return False
    try:
        result = db.execute(
            update(OtpChallenge)
            .where(
                OtpChallenge.user_id == user_id,
                OtpChallenge.code == code,
                OtpChallenge.consumed.is_(False),
                OtpChallenge.expires_at > utcnow(),
            )
            .values(consumed=True)
            .execution_options(synchronize_session=False)
        )
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("OTP verification failed for user %s", user_id)
        raise AppError(ErrorKind.INTERNAL, "Could not verify code. Please try again.")
    return result.rowcount > 0
