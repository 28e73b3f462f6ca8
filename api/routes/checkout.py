"""
Checkout step and order pages the PayPal routes redirect to.
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import RedirectResponse
from sqlalchemy import select
from sqlalchemy.orm import Session

from api.dependencies import require_current_order
from api.flash import (
    checkout_error_message,
    clear_checkout_session,
    flash,
    pop_flash,
    t,
)
from api.schemas import CheckoutStepOut, OrderOut, OrderPageOut
from core.dependencies import get_settings
from core.settings import Settings
from db.models import Order, OrderState
from db.session import get_db
from payments.confirmation import CheckoutError, complete_order
from payments.paypal_service import PayPalExpressService

router = APIRouter()
orders_router = APIRouter()


@router.get("/{state}", response_model=CheckoutStepOut, name="checkout_state")
def checkout_state(
    request: Request,
    state: OrderState,
    paypal_cancel_token: Optional[str] = Query(None),
    order: Order = Depends(require_current_order),
):
    return CheckoutStepOut(
        step=state,
        order=OrderOut.model_validate(order),
        flash=pop_flash(request),
        paypal_cancel_token=paypal_cancel_token,
    )


@router.post("/confirm", name="checkout_complete")
def complete(
    request: Request,
    order: Order = Depends(require_current_order),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """Capture the PayPal payment and complete the order from the confirm step."""
    try:
        complete_order(db, order, PayPalExpressService.from_settings(settings))
    except CheckoutError as e:
        flash(request, "error", checkout_error_message(e))
        url = request.url_for("checkout_state", state=OrderState.payment.value)
        return RedirectResponse(url=str(url), status_code=302)

    flash(request, "notice", t("order_processed_successfully"))
    flash(request, "order_completed", True)
    clear_checkout_session(request)
    url = request.url_for("order_show", number=order.number)
    return RedirectResponse(url=str(url), status_code=302)


@orders_router.get("/{number}", response_model=OrderPageOut, name="order_show")
def show_order(request: Request, number: str, db: Session = Depends(get_db)):
    order = db.execute(select(Order).filter(Order.number == number)).scalars().first()
    if order is None:
        raise HTTPException(status_code=404, detail="Order not found")
    return OrderPageOut(order=OrderOut.model_validate(order), flash=pop_flash(request))
