"""
PayPal NVP gateway client tests.
"""

from decimal import Decimal
from unittest.mock import MagicMock, patch

import pytest
import requests

from db.models import Order, Payment, PaypalExpressCheckout
from helpers import MockResponse
from payments.paypal_service import (
    ExpressCheckoutResponse,
    PayPalConnectionError,
    PayPalError,
    PayPalExpressService,
    encode_set_express_checkout,
)

CREDENTIALS = {"USER": "api_user", "PWD": "api_password", "SIGNATURE": "api_signature"}

DECLINED = (
    "ACK=Failure&CORRELATIONID=c0ffee&L_ERRORCODE0=10001"
    "&L_SHORTMESSAGE0=Internal+Error&L_LONGMESSAGE0=Timeout+processing+request"
    "&L_SEVERITYCODE0=Error&L_ERRORCODE1=10413"
    "&L_SHORTMESSAGE1=Invalid+Data&L_LONGMESSAGE1=The+totals+do+not+match."
)


def make_payment():
    order = Order(number="R300", currency="USD")
    return Payment(
        id=7,
        order=order,
        amount=Decimal("25.00"),
        source=PaypalExpressCheckout(token="EC-123", payer_id="PAYER1"),
    )


def test_parse_success_response():
    response = ExpressCheckoutResponse.from_nvp(
        "ACK=Success&TOKEN=EC-123&CORRELATIONID=abc&VERSION=204.0"
    )

    assert response.success
    assert response.token == "EC-123"
    assert response.correlation_id == "abc"
    assert response.errors == []
    assert response.raw["VERSION"] == "204.0"


def test_success_with_warning_is_success():
    response = ExpressCheckoutResponse.from_nvp("ACK=SuccessWithWarning&TOKEN=EC-9")
    assert response.success


def test_parse_errors_in_order():
    """Every L_* error is kept, long messages in PayPal's order."""
    response = ExpressCheckoutResponse.from_nvp(DECLINED)

    assert not response.success
    assert [e.code for e in response.errors] == ["10001", "10413"]
    assert response.errors[0].severity == "Error"
    assert response.error_messages == [
        "Timeout processing request",
        "The totals do not match.",
    ]


def test_missing_ack_is_failure():
    response = ExpressCheckoutResponse.from_nvp("")
    assert response.ack == "Failure"
    assert not response.success


def test_encode_set_express_checkout():
    details = {
        "InvoiceID": "R300",
        "BuyerEmail": "shopper@example.com",
        "ReturnURL": "http://shop.test/paypal/confirm",
        "CancelURL": "http://shop.test/paypal/cancel",
        "SolutionType": "Mark",
        "LandingPage": "Billing",
        "cppheaderimage": "",
        "NoShipping": 1,
        "PaymentDetails": [
            {
                "OrderTotal": {"currencyID": "USD", "value": Decimal("25")},
                "ItemTotal": {"currencyID": "USD", "value": Decimal("20.00")},
                "ShippingTotal": {"currencyID": "USD", "value": Decimal("5.00")},
                "TaxTotal": {"currencyID": "USD", "value": Decimal("0")},
                "ShipToAddress": {},
                "PaymentDetailsItem": [
                    {
                        "Name": "Canvas Tote",
                        "Number": "TOTE-1",
                        "Quantity": 2,
                        "Amount": {"currencyID": "USD", "value": Decimal("10.00")},
                        "ItemCategory": "Physical",
                    }
                ],
                "ShippingMethod": "Standard Shipping",
                "PaymentAction": "Sale",
            }
        ],
    }

    fields = encode_set_express_checkout(details)

    assert fields["METHOD"] == "SetExpressCheckout"
    assert fields["PAYMENTREQUEST_0_INVNUM"] == "R300"
    assert fields["EMAIL"] == "shopper@example.com"
    assert fields["NOSHIPPING"] == "1"
    assert "HDRIMG" not in fields
    assert fields["PAYMENTREQUEST_0_AMT"] == "25.00"
    assert fields["PAYMENTREQUEST_0_ITEMAMT"] == "20.00"
    assert fields["PAYMENTREQUEST_0_SHIPPINGAMT"] == "5.00"
    assert fields["PAYMENTREQUEST_0_TAXAMT"] == "0.00"
    assert fields["PAYMENTREQUEST_0_CURRENCYCODE"] == "USD"
    assert fields["PAYMENTREQUEST_0_PAYMENTACTION"] == "Sale"
    assert fields["L_PAYMENTREQUEST_0_NAME0"] == "Canvas Tote"
    assert fields["L_PAYMENTREQUEST_0_NUMBER0"] == "TOTE-1"
    assert fields["L_PAYMENTREQUEST_0_QTY0"] == "2"
    assert fields["L_PAYMENTREQUEST_0_AMT0"] == "10.00"
    assert fields["L_PAYMENTREQUEST_0_ITEMCATEGORY0"] == "Physical"


def test_encode_order_total_only():
    fields = encode_set_express_checkout(
        {"PaymentDetails": [{"OrderTotal": {"currencyID": "EUR", "value": "5.00"}}]}
    )

    assert fields == {
        "METHOD": "SetExpressCheckout",
        "PAYMENTREQUEST_0_AMT": "5.00",
        "PAYMENTREQUEST_0_CURRENCYCODE": "EUR",
    }


def test_express_checkout_url():
    response = ExpressCheckoutResponse(ack="Success", token="EC-123")

    sandbox = PayPalExpressService(CREDENTIALS, mode="sandbox")
    assert sandbox.express_checkout_url(response, useraction="commit") == (
        "https://www.sandbox.paypal.com/cgi-bin/webscr"
        "?cmd=_express-checkout&token=EC-123&useraction=commit"
    )

    live = PayPalExpressService(CREDENTIALS, mode="live")
    assert live.express_checkout_url(response) == (
        "https://www.paypal.com/cgi-bin/webscr?cmd=_express-checkout&token=EC-123"
    )


def test_unknown_mode_falls_back_to_sandbox():
    service = PayPalExpressService(CREDENTIALS, mode="staging")
    assert service.endpoint == "https://api-3t.sandbox.paypal.com/nvp"


def test_from_settings(mock_settings):
    service = PayPalExpressService.from_settings(mock_settings)

    assert service.credentials == {
        "VERSION": "204.0",
        "USER": "api_user",
        "PWD": "api_password",
        "SIGNATURE": "api_signature",
    }
    assert service.timeout == mock_settings.PAYPAL_TIMEOUT


@patch("payments.paypal_service.requests.post")
def test_set_express_checkout_posts_credentials(mock_post):
    mock_post.return_value = MockResponse("ACK=Success&TOKEN=EC-123")
    service = PayPalExpressService(CREDENTIALS, mode="live", timeout=12)

    response = service.set_express_checkout({"METHOD": "SetExpressCheckout"})

    assert response.token == "EC-123"
    args, kwargs = mock_post.call_args
    assert args[0] == "https://api-3t.paypal.com/nvp"
    assert kwargs["timeout"] == 12
    assert kwargs["data"]["METHOD"] == "SetExpressCheckout"
    assert kwargs["data"]["USER"] == "api_user"
    assert kwargs["data"]["VERSION"] == "204.0"


@patch("payments.paypal_service.requests.post")
def test_set_express_checkout_is_not_retried(mock_post):
    mock_post.side_effect = requests.ConnectionError("connection refused")
    service = PayPalExpressService(CREDENTIALS)

    with pytest.raises(PayPalConnectionError):
        service.set_express_checkout({"METHOD": "SetExpressCheckout"})

    assert mock_post.call_count == 1


@patch("payments.paypal_service.requests.post")
def test_timeout_is_connection_error(mock_post):
    mock_post.side_effect = requests.Timeout("read timed out")

    with pytest.raises(PayPalConnectionError):
        PayPalExpressService(CREDENTIALS).set_express_checkout({})


@patch("payments.paypal_service.requests.post")
def test_http_error_is_paypal_error(mock_post):
    mock_response = MagicMock()
    mock_response.raise_for_status.side_effect = requests.HTTPError("500 Server Error")
    mock_post.return_value = mock_response

    with pytest.raises(PayPalError) as exc_info:
        PayPalExpressService(CREDENTIALS).set_express_checkout({})

    assert not isinstance(exc_info.value, PayPalConnectionError)
    assert "500" in str(exc_info.value)


@patch("payments.paypal_service.requests.post")
def test_do_express_checkout_payment(mock_post):
    mock_post.return_value = MockResponse(
        "ACK=Success&PAYMENTINFO_0_TRANSACTIONID=9XK&PAYMENTINFO_0_PAYMENTSTATUS=Completed"
    )
    service = PayPalExpressService(CREDENTIALS)

    response = service.do_express_checkout_payment(make_payment())

    assert response.success
    assert response.transaction_id == "9XK"
    assert response.payment_status == "Completed"
    data = mock_post.call_args.kwargs["data"]
    assert data["METHOD"] == "DoExpressCheckoutPayment"
    assert data["TOKEN"] == "EC-123"
    assert data["PAYERID"] == "PAYER1"
    assert data["PAYMENTREQUEST_0_AMT"] == "25.00"
    assert data["PAYMENTREQUEST_0_CURRENCYCODE"] == "USD"
    assert data["MSGSUBID"] == "R300-P7"


@patch("payments.paypal_service.requests.post")
def test_capture_retries_connection_errors(mock_post, no_retry_wait):
    """Capture is retried with the same MSGSUBID after a dropped connection."""
    mock_post.side_effect = [
        requests.ConnectionError("reset by peer"),
        MockResponse("ACK=Success&PAYMENTINFO_0_TRANSACTIONID=9XK"),
    ]

    response = PayPalExpressService(CREDENTIALS).do_express_checkout_payment(
        make_payment()
    )

    assert response.success
    assert mock_post.call_count == 2
    first, second = mock_post.call_args_list
    assert first.kwargs["data"]["MSGSUBID"] == second.kwargs["data"]["MSGSUBID"]


@patch("payments.paypal_service.requests.post")
def test_capture_gives_up_after_three_attempts(mock_post, no_retry_wait):
    mock_post.side_effect = requests.ConnectionError("unreachable")

    with pytest.raises(PayPalConnectionError):
        PayPalExpressService(CREDENTIALS).do_express_checkout_payment(make_payment())

    assert mock_post.call_count == 3


@patch("payments.paypal_service.requests.post")
def test_capture_decline_is_not_retried(mock_post, no_retry_wait):
    mock_post.return_value = MockResponse(DECLINED)

    response = PayPalExpressService(CREDENTIALS).do_express_checkout_payment(
        make_payment()
    )

    assert not response.success
    assert mock_post.call_count == 1
