"""
PayPal return handling and order completion

- Records the PayPal token/payer id as a payment on the order
- Moves the order to the confirm step
- Captures the payment when the order is completed
"""

from typing import Optional

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from core.logging import BusinessEvents
from core.metrics import orders_completed, payments_created
from db.models import (
    Order,
    OrderState,
    Payment,
    PaymentMethod,
    PaymentState,
    PaypalExpressCheckout,
)
from payments.paypal_service import PayPalError, PayPalExpressService

log = structlog.get_logger(__name__)


class CheckoutError(Exception):
    def __init__(self, messages: list[str]):
        self.messages = messages
        super().__init__(" ".join(messages))


class OrderNotSaved(CheckoutError):
    pass


class GatewayUnavailable(CheckoutError):
    """PayPal could not be reached; details stay in the logs."""


def find_payment_for_token(order: Order, token: str) -> Optional[Payment]:
    """Live payment already recorded for this token; failed captures don't count."""
    for payment in order.payments:
        if payment.state == PaymentState.failed:
            continue
        if payment.source is not None and payment.source.token == token:
            return payment
    return None


def save_order(db: Session, order: Order) -> None:
    """Commit the order or roll back and raise OrderNotSaved."""
    errors = order.validate_for_confirm()
    if errors:
        db.rollback()
        log.warning(
            BusinessEvents.ORDER_SAVE_FAILED, order_number=order.number, errors=errors
        )
        raise OrderNotSaved(errors)

    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        log.error(
            BusinessEvents.ORDER_SAVE_FAILED, order_number=order.number, error=str(e)
        )
        raise OrderNotSaved(["The order could not be stored."]) from e


def confirm_express_checkout(
    db: Session,
    order: Order,
    payment_method: PaymentMethod,
    token: str,
    payer_id: str,
) -> Payment:
    """Record the approved PayPal session and move the order to confirm."""
    payment = find_payment_for_token(order, token)
    created = payment is None
    if created:
        payment = Payment(
            order=order,
            payment_method=payment_method,
            source=PaypalExpressCheckout(token=token, payer_id=payer_id),
            amount=order.total,
        )
        db.add(payment)

    if order.bill_address is None:
        order.clone_shipping_address()

    order.state = OrderState.confirm
    save_order(db, order)

    if created:
        payments_created.inc()
    log.info(
        BusinessEvents.EXPRESS_CONFIRMED,
        order_number=order.number,
        payment_id=payment.id,
        amount=str(payment.amount),
        created=created,
    )
    return payment


def fail_payment(db: Session, order: Order, payment: Payment, response_code=None) -> None:
    payment.state = PaymentState.failed
    payment.response_code = response_code
    order.state = OrderState.payment
    db.commit()


def complete_order(db: Session, order: Order, service: PayPalExpressService) -> Order:
    """Capture pending PayPal payments and complete the order.

    On any capture failure the payment is marked failed and the order goes
    back to the payment step. A decline raises CheckoutError with PayPal's
    messages; an unreachable gateway raises GatewayUnavailable.
    """
    if order.state != OrderState.confirm:
        raise CheckoutError(["The order is not ready to be completed."])

    pending = [p for p in order.payments if p.state == PaymentState.checkout]
    if not pending:
        raise CheckoutError(["No payment found for this order."])

    for payment in pending:
        try:
            response = service.do_express_checkout_payment(payment)
        except PayPalError as e:
            fail_payment(db, order, payment)
            log.error(
                BusinessEvents.PAYMENT_CAPTURE_FAILED,
                order_number=order.number,
                payment_id=payment.id,
                error=str(e),
            )
            raise GatewayUnavailable(["Could not connect to PayPal."]) from e

        if response.success:
            payment.state = PaymentState.completed
            payment.response_code = response.transaction_id
            payment.source.transaction_id = response.transaction_id
            continue

        fail_payment(db, order, payment, response.ack)
        log.error(
            BusinessEvents.PAYMENT_CAPTURE_FAILED,
            order_number=order.number,
            payment_id=payment.id,
            errors=response.error_messages,
        )
        raise CheckoutError(
            response.error_messages or ["PayPal did not accept the payment."]
        )

    order.transition_to(OrderState.complete)
    db.commit()
    orders_completed.inc()
    log.info(BusinessEvents.ORDER_COMPLETED, order_number=order.number)
    return order
