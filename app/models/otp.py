from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey, Integer
from sqlalchemy.orm import relationship
from app.models.base import BaseModel


class OtpChallenge(BaseModel):
    __tablename__ = "otp_challenges"

    user_id = Column(Integer, ForeignKey('users.id'), nullable=False, index=True)
    phone = Column(String(20), nullable=False)
    code = Column(String(12), nullable=False)
    expires_at = Column(DateTime, nullable=False)
    consumed = Column(Boolean, nullable=False, default=False)

    user = relationship("User")
