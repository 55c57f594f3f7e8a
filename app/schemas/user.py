from typing import Optional
from pydantic import ConfigDict
from app.models.user import Role
from app.schemas.base import TimestampSchema

class User(TimestampSchema):
    id: int
    name: Optional[str] = None
    role: Role
    email: Optional[str] = None
    phone: Optional[str] = None
    farm_name: Optional[str] = None
    location: Optional[str] = None
    address: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)
