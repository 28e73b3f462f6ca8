"""
PayPal Express Checkout routes

- POST /paypal: build the SetExpressCheckout request and redirect to PayPal
- GET /paypal/confirm: PayPal return callback, records the payment
- GET /paypal/cancel: PayPal cancel callback
"""

from typing import Optional

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import RedirectResponse
from sqlalchemy.orm import Session

from api.dependencies import require_current_order
from api.flash import (
    TOKEN_SESSION_KEY,
    checkout_error_message,
    clear_checkout_session,
    flash,
    t,
)
from core.dependencies import get_settings
from core.logging import BusinessEvents
from core.metrics import express_requests
from core.settings import Settings
from db.models import Order, PaymentMethod
from db.session import get_db
from payments.confirmation import (
    CheckoutError,
    complete_order,
    confirm_express_checkout,
)
from payments.express_checkout import ExpressCheckoutRequestBuilder
from payments.paypal_service import PayPalError, PayPalExpressService

log = structlog.get_logger(__name__)

router = APIRouter()


def load_payment_method(db: Session, payment_method_id: int) -> PaymentMethod:
    payment_method = db.get(PaymentMethod, payment_method_id)
    if payment_method is None or not payment_method.active:
        raise HTTPException(status_code=404, detail="Payment method not found")
    return payment_method


def checkout_state_url(request: Request, state: str, **params) -> str:
    url = request.url_for("checkout_state", state=state)
    if params:
        url = url.include_query_params(**params)
    return str(url)


def redirect(url: str) -> RedirectResponse:
    return RedirectResponse(url=url, status_code=302)


@router.post("", name="paypal_express")
def express(
    request: Request,
    payment_method_id: int = Query(...),
    order: Order = Depends(require_current_order),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """Send the shopper to PayPal's hosted checkout for the current order."""
    payment_method = load_payment_method(db, payment_method_id)
    provider = payment_method.provider(
        timeout=settings.PAYPAL_TIMEOUT, version=settings.PP_VERSION
    )

    return_url = str(
        request.url_for("paypal_confirm").include_query_params(
            payment_method_id=payment_method_id, utm_nooverride=1
        )
    )
    cancel_url = str(request.url_for("paypal_cancel"))

    builder = ExpressCheckoutRequestBuilder.from_settings(settings)
    details = builder.build(order, payment_method, return_url, cancel_url)
    log.info(
        BusinessEvents.EXPRESS_REQUEST,
        order_number=order.number,
        order_total=str(order.total),
        payment_details=details["SetExpressCheckoutRequestDetails"]["PaymentDetails"],
    )

    pp_request = provider.build_set_express_checkout(details)
    try:
        pp_response = provider.set_express_checkout(pp_request)
    except PayPalError as e:
        # Transport failures and HTTP error statuses
        express_requests.labels(outcome="connection_failed").inc()
        log.warning(
            BusinessEvents.EXPRESS_CONNECTION_FAILED,
            order_number=order.number,
            error=str(e),
        )
        flash(request, "error", t("paypal.connection_failed"))
        return redirect(checkout_state_url(request, "payment"))

    if not pp_response.success:
        express_requests.labels(outcome="declined").inc()
        log.info(
            BusinessEvents.EXPRESS_DECLINED,
            order_number=order.number,
            errors=[e.model_dump() for e in pp_response.errors],
        )
        reasons = " ".join(pp_response.error_messages)
        flash(request, "error", t("paypal.generic_error", reasons=reasons))
        return redirect(checkout_state_url(request, "payment"))

    express_requests.labels(outcome="redirect").inc()
    request.session[TOKEN_SESSION_KEY] = pp_response.token
    log.info(
        BusinessEvents.EXPRESS_REDIRECT, order_number=order.number, token=pp_response.token
    )
    return redirect(provider.express_checkout_url(pp_response, useraction="commit"))


@router.get("/confirm", name="paypal_confirm")
def confirm(
    request: Request,
    token: str = Query(...),
    payer_id: str = Query(..., alias="PayerID"),
    payment_method_id: int = Query(...),
    order: Order = Depends(require_current_order),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """Record the approved PayPal session and route by the order's state."""
    expected_token = request.session.get(TOKEN_SESSION_KEY)
    if expected_token is not None and expected_token != token:
        log.warning(BusinessEvents.EXPRESS_CONFIRM_REJECTED, order_number=order.number)
        flash(request, "error", t("paypal.token_mismatch"))
        return redirect(checkout_state_url(request, "payment"))

    payment_method = load_payment_method(db, payment_method_id)

    try:
        confirm_express_checkout(db, order, payment_method, token, payer_id)
        if not settings.CHECKOUT_CONFIRMATION_REQUIRED:
            complete_order(db, order, PayPalExpressService.from_settings(settings))
    except CheckoutError as e:
        flash(request, "error", checkout_error_message(e))
        return redirect(checkout_state_url(request, "payment"))

    if order.complete:
        flash(request, "notice", t("order_processed_successfully"))
        flash(request, "order_completed", True)
        clear_checkout_session(request)
        return redirect(str(request.url_for("order_show", number=order.number)))

    return redirect(checkout_state_url(request, order.state.value))


@router.get("/cancel", name="paypal_cancel")
def cancel(
    request: Request,
    token: Optional[str] = Query(None),
    order: Order = Depends(require_current_order),
):
    flash(request, "notice", t("paypal.cancel"))
    request.session.pop(TOKEN_SESSION_KEY, None)
    log.info(BusinessEvents.EXPRESS_CANCELLED, order_number=order.number)
    params = {"paypal_cancel_token": token} if token else {}
    return redirect(checkout_state_url(request, order.state.value, **params))
