"""Flash messages and checkout state carried in the signed session cookie."""

from fastapi import Request

from payments.confirmation import CheckoutError, GatewayUnavailable, OrderNotSaved

ORDER_SESSION_KEY = "order_id"
TOKEN_SESSION_KEY = "paypal_token"

MESSAGES = {
    "paypal.generic_error": "PayPal failed. {reasons}",
    "paypal.connection_failed": "Could not connect to PayPal.",
    "paypal.cancel": "Don't want to use PayPal? No problems.",
    "paypal.token_mismatch": "Your PayPal session does not match this order. Please try again.",
    "order_processed_successfully": "Your order has been processed successfully",
    "order_not_saved": "Your order could not be saved: {reasons}",
    "payment_processing_failed": "Payment could not be processed: {reasons}",
}


def t(key: str, **kwargs) -> str:
    return MESSAGES[key].format(**kwargs)


def flash(request: Request, category: str, message) -> None:
    messages = request.session.get("flash", {})
    messages[category] = message
    request.session["flash"] = messages


def pop_flash(request: Request) -> dict:
    return request.session.pop("flash", {})


def clear_checkout_session(request: Request) -> None:
    """Forget the completed order and its PayPal token."""
    request.session.pop(ORDER_SESSION_KEY, None)
    request.session.pop(TOKEN_SESSION_KEY, None)


def checkout_error_message(error: CheckoutError) -> str:
    if isinstance(error, OrderNotSaved):
        return t("order_not_saved", reasons=" ".join(error.messages))
    if isinstance(error, GatewayUnavailable):
        return t("paypal.connection_failed")
    return t("payment_processing_failed", reasons=" ".join(error.messages))
