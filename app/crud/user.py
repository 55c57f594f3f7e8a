import logging
from typing import Optional

from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.errors import AppError, ErrorKind
from app.models.base import is_storable_id
from app.models.user import Role, User

logger = logging.getLogger(__name__)


def normalize_email(email: Optional[str]) -> Optional[str]:
    if email is None:
        return None
    return email.strip().lower() or None


def get_user(db: Session, user_id: int) -> Optional[User]:
    if not is_storable_id(user_id):
        return None
    return db.query(User).filter(User.id == user_id).first()


def get_user_by_email(db: Session, email: str) -> Optional[User]:
    email = normalize_email(email)
    if not email:
        return None
    return db.query(User).filter(func.lower(User.email) == email).first()


def get_user_by_phone(db: Session, phone: str, role: Optional[Role] = None) -> Optional[User]:
    query = db.query(User).filter(User.phone == phone.strip())
    if role is not None:
        query = query.filter(User.role == role)
    return query.first()


def find_conflicting_user(db: Session, email: Optional[str] = None, phone: Optional[str] = None) -> Optional[User]:
    """Return any user already holding the given email or phone, in one query."""
    clauses = []
    email = normalize_email(email)
    if email:
        clauses.append(func.lower(User.email) == email)
    if phone:
        clauses.append(User.phone == phone.strip())
    if not clauses:
        return None
    return db.query(User).filter(or_(*clauses)).first()


def create_user(db: Session, **fields) -> User:
    """Insert a user. Uniqueness is enforced by the table constraints."""
    fields["email"] = normalize_email(fields.get("email"))
    if fields.get("phone"):
        fields["phone"] = fields["phone"].strip()

    db_user = User(**fields)
    db.add(db_user)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.info("Registration rejected by uniqueness constraint (role=%s)", fields.get("role"))
        raise AppError(ErrorKind.CONFLICT, "A user with this email or phone already exists.")
    db.refresh(db_user)
    return db_user
