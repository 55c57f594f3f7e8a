from typing import Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from app.models.user import Role

PHONE_PATTERN = r"^\+?\d{7,15}$"


class RequestSchema(BaseModel):
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)


class Identity(BaseModel):
    """Verified claims of the session token presented with a request."""
    model_config = ConfigDict(frozen=True)

    user_id: int
    role: Role


# -- Registration: one variant per role, each declaring its required fields --

class AdminRegistration(RequestSchema):
    role: Literal["ADMIN"]
    email: EmailStr
    password: str = Field(min_length=1)
    name: Optional[str] = None


class FarmerRegistration(RequestSchema):
    role: Literal["FARMER"]
    name: str = Field(min_length=1)
    phone: str = Field(pattern=PHONE_PATTERN)
    farm_name: str = Field(alias="farmName", min_length=1)
    location: str = Field(min_length=1)
    email: Optional[EmailStr] = None


class ConsumerRegistration(RequestSchema):
    role: Literal["CONSUMER"]
    name: str = Field(min_length=1)
    phone: str = Field(pattern=PHONE_PATTERN)
    address: str = Field(min_length=1)
    email: Optional[EmailStr] = None


# Tagged by `role`; routes apply the discriminator
RegistrationRequest = Union[AdminRegistration, FarmerRegistration, ConsumerRegistration]


# -- Login: password roles vs. OTP roles --

class PasswordLogin(RequestSchema):
    role: Literal["ADMIN"]
    email: str = Field(min_length=1)
    password: str = Field(min_length=1)


class OtpLogin(RequestSchema):
    role: Literal["FARMER", "CONSUMER"]
    phone: str = Field(min_length=1)


LoginRequest = Union[PasswordLogin, OtpLogin]


class VerifyOtpRequest(RequestSchema):
    user_id: int = Field(alias="userId")
    otp: str = Field(min_length=1)


# -- Responses --

class UserSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: Optional[str] = None
    role: Role


class AuthSession(BaseModel):
    token: str
    user: UserSummary


class PendingVerification(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: int = Field(alias="userId")


class Registered(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: int = Field(alias="userId")
