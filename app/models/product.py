from sqlalchemy import Column, String, Integer, Numeric, ForeignKey
from sqlalchemy.orm import relationship
from app.models.base import BaseModel


class Product(BaseModel):
    """Catalogue row referenced by order line items; managed outside this service."""
    __tablename__ = "products"

    name = Column(String(100), nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    unit = Column(String(20), nullable=False, default="kg")
    farmer_id = Column(Integer, ForeignKey('users.id'), nullable=False)

    farmer = relationship("User")
