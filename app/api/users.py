from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.auth.security import get_current_identity
from app.core.errors import AppError, ErrorKind
from app.crud.user import get_user
from app.db.session import get_db
from app.schemas.auth import Identity
from app.schemas.user import User as UserSchema

router = APIRouter()

# --------------------------------------------------------------------
# Get current user (any logged in user) -> GET /users/me
# --------------------------------------------------------------------
@router.get("/me", response_model=UserSchema)
def read_user_me(
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    db_user = get_user(db, identity.user_id)
    if db_user is None:
        raise AppError(ErrorKind.NOT_FOUND, "User not found")
    return UserSchema.model_validate(db_user)
