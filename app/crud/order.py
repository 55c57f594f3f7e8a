from typing import List, Optional

from sqlalchemy import update
from sqlalchemy.orm import Session, selectinload

from app.models.base import is_storable_id
from app.models.order import Order, OrderItem, OrderStatus


def _with_details(query):
    return query.options(
        selectinload(Order.consumer),
        selectinload(Order.items).selectinload(OrderItem.product),
    )


def get_order(db: Session, order_id: int) -> Optional[Order]:
    if not is_storable_id(order_id):
        return None
    return (
        _with_details(db.query(Order))
        .filter(Order.id == order_id)
        .first()
    )


def list_orders(db: Session, consumer_id: Optional[int] = None, skip: int = 0, limit: int = 100) -> List[Order]:
    query = _with_details(db.query(Order))
    if consumer_id is not None:
        query = query.filter(Order.consumer_id == consumer_id)
    return query.order_by(Order.created_at.desc(), Order.id.desc()).offset(skip).limit(limit).all()


def set_status_if(db: Session, order_id: int, expected: OrderStatus, target: OrderStatus) -> bool:
    """Compare-and-set the order status. Returns False when the status is no longer `expected`."""
    if not is_storable_id(order_id):
        return False
    result = db.execute(
        update(Order)
        .where(Order.id == order_id, Order.status == expected)
        .values(status=target)
        .execution_options(synchronize_session=False)
    )
    db.commit()
    return result.rowcount == 1
