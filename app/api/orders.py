from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import List

from app.auth.security import get_current_identity, require_roles
from app.db.session import get_db
from app.models.user import Role
from app.schemas.auth import Identity
from app.schemas.order import Order as OrderSchema, OrderStatusUpdate, OrderStatusUpdated
from app.services import orders as order_service

router = APIRouter()

# --------------------------------------------------------------------
# List orders (farmer/admin: all, consumer: own) -> GET /orders
# --------------------------------------------------------------------
@router.get("/", response_model=List[OrderSchema])
def read_orders(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    return order_service.list_orders_for(db, identity, skip=skip, limit=limit)

# --------------------------------------------------------------------
# Get one order -> GET /orders/{order_id}
# --------------------------------------------------------------------
@router.get("/{order_id}", response_model=OrderSchema)
def read_order(
    order_id: int,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    return order_service.get_order_for(db, order_id, identity)

# --------------------------------------------------------------------
# Move an order along its lifecycle (farmer/admin) -> PATCH /orders/{order_id}/status
# --------------------------------------------------------------------
@router.patch("/{order_id}/status", response_model=OrderStatusUpdated)
def update_order_status(
    order_id: int,
    payload: OrderStatusUpdate,
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_roles(Role.FARMER, Role.ADMIN)),
):
    order = order_service.transition_order(db, order_id, payload.status, identity)
    return OrderStatusUpdated(
        message=f"Order status updated to {order.status.value}.",
        order=OrderSchema.model_validate(order),
    )
