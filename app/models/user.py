import enum

from sqlalchemy import Column, String, Enum, CheckConstraint
from sqlalchemy.orm import validates
from app.models.base import BaseModel


class Role(str, enum.Enum):
    FARMER = "FARMER"
    CONSUMER = "CONSUMER"
    ADMIN = "ADMIN"


# Roles that authenticate with email + password; every other role uses a phone OTP
PASSWORD_ROLES = frozenset({Role.ADMIN})


class User(BaseModel):
    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint("email IS NOT NULL OR phone IS NOT NULL", name="ck_users_contact"),
    )

    name = Column(String(100))
    role = Column(Enum(Role, name="user_roles"), nullable=False)
    email = Column(String(100), unique=True, index=True)
    phone = Column(String(20), unique=True, index=True)
    hashed_password = Column(String(255))

    # Role-specific profile
    farm_name = Column(String(100))
    location = Column(String(255))
    address = Column(String(255))

    @validates("role")
    def _freeze_role(self, key, value):
        value = Role(value)
        if self.role is not None and Role(self.role) != value:
            raise ValueError("A user's role cannot be changed after creation")
        return value

    @property
    def uses_password(self) -> bool:
        return self.role in PASSWORD_ROLES
