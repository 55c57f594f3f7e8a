from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from pydantic import BaseModel
from app.models.order import OrderStatus
from app.schemas.base import BaseSchema

class ConsumerSummary(BaseSchema):
    id: int
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None

class ProductSummary(BaseSchema):
    id: int
    name: str
    price: Decimal
    unit: str

class OrderItem(BaseSchema):
    id: int
    product_id: int
    product: Optional[ProductSummary] = None
    quantity: int
    unit_price: Decimal

class Order(BaseSchema):
    id: int
    consumer_id: int
    consumer: Optional[ConsumerSummary] = None
    total: Decimal
    status: OrderStatus
    created_at: Optional[datetime] = None
    items: List[OrderItem]

class OrderStatusUpdate(BaseModel):
    status: OrderStatus

class OrderStatusUpdated(BaseModel):
    message: str
    order: Order
