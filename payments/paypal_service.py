"""
PayPal Express Checkout gateway client

This module talks to PayPal's NVP API:
- SetExpressCheckout to start a hosted checkout session
- DoExpressCheckoutPayment to capture an approved session
- Hosted checkout redirect URLs
"""

from decimal import Decimal
from typing import Any, Optional
from urllib.parse import parse_qsl, urlencode

import requests
import structlog
import tenacity
from pydantic import BaseModel, Field

from core.logging import BusinessEvents
from core.settings import Settings
from db.models import Payment

log = structlog.get_logger(__name__)

API_ENDPOINTS = {
    "sandbox": "https://api-3t.sandbox.paypal.com/nvp",
    "live": "https://api-3t.paypal.com/nvp",
}

CHECKOUT_URLS = {
    "sandbox": "https://www.sandbox.paypal.com/cgi-bin/webscr",
    "live": "https://www.paypal.com/cgi-bin/webscr",
}

DEFAULT_VERSION = "204.0"

SUCCESS_ACKS = {"Success", "SuccessWithWarning"}

REQUEST_FIELDS = {
    "InvoiceID": "PAYMENTREQUEST_0_INVNUM",
    "BuyerEmail": "EMAIL",
    "ReturnURL": "RETURNURL",
    "CancelURL": "CANCELURL",
    "SolutionType": "SOLUTIONTYPE",
    "LandingPage": "LANDINGPAGE",
    "cppheaderimage": "HDRIMG",
    "NoShipping": "NOSHIPPING",
}

# ShippingMethod has no NVP counterpart
AMOUNT_FIELDS = {
    "OrderTotal": "AMT",
    "ItemTotal": "ITEMAMT",
    "ShippingTotal": "SHIPPINGAMT",
    "TaxTotal": "TAXAMT",
}

ADDRESS_FIELDS = {
    "Name": "SHIPTONAME",
    "Street1": "SHIPTOSTREET",
    "Street2": "SHIPTOSTREET2",
    "CityName": "SHIPTOCITY",
    "StateOrProvince": "SHIPTOSTATE",
    "Country": "SHIPTOCOUNTRYCODE",
    "PostalCode": "SHIPTOZIP",
    "Phone": "SHIPTOPHONENUM",
}

ITEM_FIELDS = {
    "Name": "NAME",
    "Number": "NUMBER",
    "Quantity": "QTY",
    "ItemCategory": "ITEMCATEGORY",
}


class PayPalError(Exception):
    pass


class PayPalConnectionError(PayPalError):
    pass


class GatewayError(BaseModel):
    code: Optional[str] = None
    short_message: Optional[str] = None
    long_message: Optional[str] = None
    severity: Optional[str] = None


class ExpressCheckoutResponse(BaseModel):
    """Parsed NVP response from PayPal."""

    ack: str
    token: Optional[str] = None
    correlation_id: Optional[str] = None
    transaction_id: Optional[str] = None
    payment_status: Optional[str] = None
    errors: list[GatewayError] = Field(default_factory=list)
    raw: dict[str, str] = Field(default_factory=dict)

    @property
    def success(self) -> bool:
        return self.ack in SUCCESS_ACKS

    @property
    def error_messages(self) -> list[str]:
        return [e.long_message or e.short_message or "" for e in self.errors]

    @classmethod
    def from_nvp(cls, body: str) -> "ExpressCheckoutResponse":
        fields = dict(parse_qsl(body, keep_blank_values=True))
        errors = []
        n = 0
        while any(
            f"L_{key}{n}" in fields
            for key in ("ERRORCODE", "SHORTMESSAGE", "LONGMESSAGE")
        ):
            errors.append(
                GatewayError(
                    code=fields.get(f"L_ERRORCODE{n}"),
                    short_message=fields.get(f"L_SHORTMESSAGE{n}"),
                    long_message=fields.get(f"L_LONGMESSAGE{n}"),
                    severity=fields.get(f"L_SEVERITYCODE{n}"),
                )
            )
            n += 1

        return cls(
            ack=fields.get("ACK", "Failure"),
            token=fields.get("TOKEN"),
            correlation_id=fields.get("CORRELATIONID"),
            transaction_id=fields.get("PAYMENTINFO_0_TRANSACTIONID"),
            payment_status=fields.get("PAYMENTINFO_0_PAYMENTSTATUS"),
            errors=errors,
            raw=fields,
        )


def format_amount(value) -> str:
    return f"{Decimal(value):.2f}"


def encode_payment_details(index: int, details: dict[str, Any]) -> dict[str, str]:
    prefix = f"PAYMENTREQUEST_{index}_"
    fields = {}

    for key, name in AMOUNT_FIELDS.items():
        if key in details:
            fields[prefix + name] = format_amount(details[key]["value"])
            fields[prefix + "CURRENCYCODE"] = details[key]["currencyID"]

    if "PaymentAction" in details:
        fields[prefix + "PAYMENTACTION"] = details["PaymentAction"]

    for key, value in (details.get("ShipToAddress") or {}).items():
        if value is not None and key in ADDRESS_FIELDS:
            fields[prefix + ADDRESS_FIELDS[key]] = str(value)

    for m, item in enumerate(details.get("PaymentDetailsItem") or []):
        for key, name in ITEM_FIELDS.items():
            if item.get(key) is not None:
                fields[f"L_{prefix}{name}{m}"] = str(item[key])
        fields[f"L_{prefix}AMT{m}"] = format_amount(item["Amount"]["value"])

    return fields


def encode_set_express_checkout(details: dict[str, Any]) -> dict[str, str]:
    """Flatten nested SetExpressCheckout request details into NVP fields."""
    fields = {"METHOD": "SetExpressCheckout"}
    for key, name in REQUEST_FIELDS.items():
        if details.get(key) not in (None, ""):
            fields[name] = str(details[key])

    for index, payment in enumerate(details.get("PaymentDetails") or []):
        fields.update(encode_payment_details(index, payment))
    return fields


class PayPalExpressService:
    def __init__(
        self,
        credentials: dict[str, Optional[str]],
        mode: str = "sandbox",
        timeout: float = 30.0,
        version: str = DEFAULT_VERSION,
    ):
        self.credentials = {"VERSION": version, **credentials}
        self.mode = mode if mode in API_ENDPOINTS else "sandbox"
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings: Settings) -> "PayPalExpressService":
        """Client using the environment credentials of the direct API path."""
        return cls(
            credentials=settings.paypal_credentials,
            mode=settings.PAYPAL_MODE,
            timeout=settings.PAYPAL_TIMEOUT,
            version=settings.PP_VERSION,
        )

    @property
    def endpoint(self) -> str:
        return API_ENDPOINTS[self.mode]

    def _post(self, fields: dict[str, str]) -> ExpressCheckoutResponse:
        payload = {**fields, **self.credentials}
        try:
            r = requests.post(self.endpoint, data=payload, timeout=self.timeout)
            r.raise_for_status()
        except (requests.ConnectionError, requests.Timeout) as e:
            raise PayPalConnectionError(str(e)) from e
        except requests.RequestException as e:
            raise PayPalError(str(e)) from e
        return ExpressCheckoutResponse.from_nvp(r.text)

    def build_set_express_checkout(self, request: dict[str, Any]) -> dict[str, str]:
        return encode_set_express_checkout(request["SetExpressCheckoutRequestDetails"])

    def set_express_checkout(self, fields: dict[str, str]) -> ExpressCheckoutResponse:
        """Start a hosted checkout session. Single attempt, no retries."""
        response = self._post(fields)
        log.info(
            BusinessEvents.EXPRESS_REQUEST,
            ack=response.ack,
            token=response.token,
            correlation_id=response.correlation_id,
        )
        return response

    def express_checkout_url(
        self, response: ExpressCheckoutResponse, useraction: Optional[str] = None
    ) -> str:
        params = {"cmd": "_express-checkout", "token": response.token}
        if useraction:
            params["useraction"] = useraction
        return f"{CHECKOUT_URLS[self.mode]}?{urlencode(params)}"

    @tenacity.retry(
        stop=tenacity.stop_after_attempt(3),
        wait=tenacity.wait_exponential(multiplier=1, min=1, max=8),
        retry=tenacity.retry_if_exception_type(PayPalConnectionError),
        reraise=True,
    )
    def do_express_checkout_payment(self, payment: Payment) -> ExpressCheckoutResponse:
        """Capture an approved express checkout session.

        MSGSUBID makes a retried request idempotent on PayPal's side.
        """
        fields = {
            "METHOD": "DoExpressCheckoutPayment",
            "TOKEN": payment.source.token,
            "PAYERID": payment.source.payer_id,
            "PAYMENTREQUEST_0_PAYMENTACTION": "Sale",
            "PAYMENTREQUEST_0_AMT": format_amount(payment.amount),
            "PAYMENTREQUEST_0_CURRENCYCODE": payment.order.currency,
            "MSGSUBID": payment.identifier,
        }
        log.info(
            BusinessEvents.PAYMENT_CAPTURE,
            token=payment.source.token,
            amount=format_amount(payment.amount),
        )

        response = self._post(fields)
        first = response.errors[0] if response.errors else GatewayError()
        log.info(
            BusinessEvents.PAYMENT_CAPTURE,
            ack=response.ack,
            short_message=first.short_message,
            long_message=first.long_message,
            transaction_id=response.transaction_id,
        )
        return response
