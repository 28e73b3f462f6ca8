from typing import Optional

from fastapi import Depends, HTTPException, Request
from sqlalchemy.orm import Session

from api.flash import ORDER_SESSION_KEY
from db.models import Order, OrderState
from db.session import get_db


def current_order(request: Request, db: Session = Depends(get_db)) -> Optional[Order]:
    """The incomplete order bound to the shopper's session, if any."""
    order_id = request.session.get(ORDER_SESSION_KEY)
    if order_id is None:
        return None
    order = db.get(Order, order_id)
    if order is None or order.state == OrderState.complete:
        return None
    return order


def require_current_order(order: Optional[Order] = Depends(current_order)) -> Order:
    if order is None:
        raise HTTPException(status_code=404, detail="Order not found")
    return order
