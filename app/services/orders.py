"""Order lifecycle.

Status moves forward one step at a time along
PENDING -> PROCESSING -> SHIPPED -> DELIVERED, or escapes to CANCELLED from
any non-terminal status. DELIVERED and CANCELLED are terminal.
"""
import logging
from decimal import Decimal
from typing import Dict, FrozenSet, Iterable, List, Optional, Tuple

from sqlalchemy.orm import Session

from app.core.errors import AppError, ErrorKind
from app.crud import order as order_crud
from app.models.order import Order, OrderItem, OrderStatus
from app.models.product import Product
from app.models.user import Role
from app.schemas.auth import Identity

logger = logging.getLogger(__name__)

TRANSITIONS: Dict[OrderStatus, FrozenSet[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.PROCESSING, OrderStatus.CANCELLED}),
    OrderStatus.PROCESSING: frozenset({OrderStatus.SHIPPED, OrderStatus.CANCELLED}),
    OrderStatus.SHIPPED: frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED}),
    OrderStatus.DELIVERED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}

# Roles allowed to move an order; everyone else may only read
STATUS_EDITORS = frozenset({Role.FARMER, Role.ADMIN})


def is_valid_transition(current: OrderStatus, target: OrderStatus) -> bool:
    return target in TRANSITIONS.get(current, frozenset())


def is_terminal(status: OrderStatus) -> bool:
    return not TRANSITIONS.get(status)


def can_view(order: Order, actor: Identity) -> bool:
    return actor.role in STATUS_EDITORS or order.consumer_id == actor.user_id


def get_order_for(db: Session, order_id: int, actor: Identity) -> Order:
    order = order_crud.get_order(db, order_id)
    if order is None:
        raise AppError(ErrorKind.NOT_FOUND, "Order not found.")
    if not can_view(order, actor):
        raise AppError(ErrorKind.FORBIDDEN, "Forbidden: this order belongs to another consumer.")
    return order


def list_orders_for(db: Session, actor: Identity, skip: int = 0, limit: int = 100) -> List[Order]:
    consumer_id: Optional[int] = None
    if actor.role not in STATUS_EDITORS:
        consumer_id = actor.user_id
    return order_crud.list_orders(db, consumer_id=consumer_id, skip=skip, limit=limit)


def transition_order(db: Session, order_id: int, target: OrderStatus, actor: Identity) -> Order:
    if actor.role not in STATUS_EDITORS:
        raise AppError(
            ErrorKind.FORBIDDEN,
            "Forbidden: You do not have permission to update order status.",
        )

    order = order_crud.get_order(db, order_id)
    if order is None:
        raise AppError(ErrorKind.NOT_FOUND, "Order not found.")

    current = OrderStatus(order.status)
    target = OrderStatus(target)
    if not is_valid_transition(current, target):
        raise AppError(
            ErrorKind.INVALID_TRANSITION,
            f"Cannot move order from {current.value} to {target.value}.",
        )

    if not order_crud.set_status_if(db, order_id, current, target):
        # Someone else moved the order after we read it
        logger.info("Order %s changed concurrently; %s -> %s rejected", order_id, current.value, target.value)
        raise AppError(
            ErrorKind.INVALID_TRANSITION,
            f"Order {order_id} is no longer {current.value}.",
        )

    logger.info(
        "Order %s moved %s -> %s by user %s (%s)",
        order_id, current.value, target.value, actor.user_id, actor.role.value,
    )
    return order_crud.get_order(db, order_id)


def place_order(db: Session, consumer_id: int, items: Iterable[Tuple[int, int]]) -> Order:
    """Create a PENDING order from (product_id, quantity) pairs.

    Unit prices are captured from the products at this moment and the total is
    the sum of quantity * unit price. Stock is not touched here.
    """
    lines = []
    total = Decimal("0")
    for product_id, quantity in items:
        if quantity <= 0:
            raise AppError(ErrorKind.VALIDATION_ERROR, "Quantity must be positive.")
        product = db.query(Product).filter(Product.id == product_id).first()
        if product is None:
            raise AppError(ErrorKind.NOT_FOUND, f"Product with ID {product_id} not found")
        unit_price = Decimal(str(product.price))
        total += unit_price * quantity
        lines.append(OrderItem(product_id=product.id, quantity=quantity, unit_price=unit_price))

    if not lines:
        raise AppError(ErrorKind.VALIDATION_ERROR, "An order needs at least one item.")

    order = Order(consumer_id=consumer_id, total=total, status=OrderStatus.PENDING, items=lines)
    db.add(order)
    db.commit()
    db.refresh(order)
    return order
