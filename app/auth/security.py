import enum
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import jwt
from jose.exceptions import ExpiredSignatureError, JWTClaimsError, JWTError
from passlib.context import CryptContext

from app.core.config import get_settings
from app.core.errors import AppError, ErrorKind
from app.models.user import Role
from app.schemas.auth import Identity

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
bearer_scheme = HTTPBearer(auto_error=False)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


class TokenFailure(str, enum.Enum):
    MALFORMED = "MALFORMED"
    INVALID_SIGNATURE = "INVALID_SIGNATURE"
    EXPIRED = "EXPIRED"


class TokenError(Exception):
    def __init__(self, reason: TokenFailure):
        super().__init__(reason.value)
        self.reason = reason


_FAILURE_MESSAGES = {
    TokenFailure.MALFORMED: "Authentication failed: Malformed token",
    TokenFailure.INVALID_SIGNATURE: "Authentication failed: Invalid token",
    TokenFailure.EXPIRED: "Authentication failed: Token expired",
}


def create_access_token(user_id: int, role: Role, expires_delta: Optional[timedelta] = None) -> str:
    settings = get_settings()
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    issued_at = datetime.now(timezone.utc)
    to_encode = {
        "sub": str(user_id),
        "role": Role(role).value,
        "iat": issued_at,
        "exp": issued_at + expires_delta,
    }
    return jwt.encode(
        to_encode,
        settings.JWT_SECRET_KEY.get_secret_value(),
        algorithm=settings.JWT_ALGORITHM,
    )


def decode_access_token(token: str) -> Identity:
    """Verify a session token and return the identity it was issued for.

    Raises TokenError with MALFORMED when the token cannot be parsed or lacks
    usable claims, INVALID_SIGNATURE when the signature does not match, and
    EXPIRED when the signature is valid but `exp` has passed.
    """
    settings = get_settings()
    try:
        jwt.get_unverified_claims(token)
    except JWTError:
        raise TokenError(TokenFailure.MALFORMED)

    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET_KEY.get_secret_value(),
            algorithms=[settings.JWT_ALGORITHM],
        )
    except ExpiredSignatureError:
        raise TokenError(TokenFailure.EXPIRED)
    except JWTClaimsError:
        raise TokenError(TokenFailure.MALFORMED)
    except JWTError:
        raise TokenError(TokenFailure.INVALID_SIGNATURE)

    if "exp" not in payload:
        raise TokenError(TokenFailure.MALFORMED)
    try:
        return Identity(user_id=int(payload["sub"]), role=Role(payload["role"]))
    except (KeyError, TypeError, ValueError):
        raise TokenError(TokenFailure.MALFORMED)


async def get_current_identity(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Identity:
    if credentials is None:
        raise AppError(
            ErrorKind.UNAUTHENTICATED,
            "Authentication failed: Missing or malformed Authorization header",
        )
    try:
        identity = decode_access_token(credentials.credentials)
    except TokenError as exc:
        logger.info("Rejected session token on %s: %s", request.url.path, exc.reason.value)
        raise AppError(ErrorKind.UNAUTHENTICATED, _FAILURE_MESSAGES[exc.reason])

    request.state.identity = identity
    return identity


def require_roles(*roles: Role):
    allowed = frozenset(roles)

    def checker(identity: Identity = Depends(get_current_identity)) -> Identity:
        if identity.role not in allowed:
            raise AppError(
                ErrorKind.FORBIDDEN,
                "Forbidden: requires role " + " or ".join(sorted(r.value for r in allowed)),
            )
        return identity

    return checker
