"""
PayPal Express Checkout request builder

This module maps an order into the nested SetExpressCheckout request:
- Line items and qualifying adjustments become PaymentDetailsItem entries
- Item, shipping and tax totals are reported in dedicated fields
- The ship-to address is sent only for the "Sole" solution type
"""

from decimal import Decimal
from typing import Any, Optional

import structlog

from core.settings import Settings
from db.models import AdjustmentCategory, LineItem, Order, PaymentMethod

log = structlog.get_logger(__name__)

ZERO = Decimal("0.00")

# Reported through ShippingTotal/TaxTotal instead of as items
TOTAL_CATEGORIES = {AdjustmentCategory.tax, AdjustmentCategory.shipping}


def money(currency: str, value) -> dict[str, Any]:
    return {"currencyID": currency, "value": Decimal(value)}


def line_item(item: LineItem, currency: str) -> dict[str, Any]:
    return {
        "Name": item.product_name,
        "Number": item.sku,
        "Quantity": item.quantity,
        "Amount": money(currency, item.price),
        "ItemCategory": "Physical",
    }


def adjustment_items(order: Order) -> list[dict[str, Any]]:
    """Eligible additional adjustments that PayPal should list as items."""
    items = []
    for adjustment in order.additional_adjustments:
        if not adjustment.eligible:
            continue

        log.info(
            "paypal.adjustment",
            order_number=order.number,
            label=adjustment.label,
            amount=str(adjustment.amount),
        )

        # PayPal rejects zero-amount items: "It can be a positive or negative
        # value but not zero."
        if Decimal(adjustment.amount) == 0:
            continue
        if adjustment.category in TOTAL_CATEGORIES:
            continue

        items.append(
            {
                "Name": adjustment.label,
                "Quantity": 1,
                "Amount": money(order.currency, adjustment.amount),
            }
        )
    return items


def item_sum(items: list[dict[str, Any]]) -> Decimal:
    return sum(
        (item["Quantity"] * Decimal(item["Amount"]["value"]) for item in items), ZERO
    )


class ExpressCheckoutRequestBuilder:
    """Builds SetExpressCheckout request details for an order."""

    def __init__(
        self,
        free_shipping_promotion_id: Optional[int] = None,
        free_shipping_discount: Decimal = ZERO,
        shipping_method: str = "Standard Shipping",
    ):
        self.free_shipping_promotion_id = free_shipping_promotion_id
        self.free_shipping_discount = Decimal(free_shipping_discount)
        self.shipping_method = shipping_method

    @classmethod
    def from_settings(cls, settings: Settings) -> "ExpressCheckoutRequestBuilder":
        return cls(
            free_shipping_promotion_id=settings.FREE_SHIPPING_PROMOTION_ID,
            free_shipping_discount=settings.FREE_SHIPPING_DISCOUNT,
        )

    def items(self, order: Order) -> list[dict[str, Any]]:
        items = [line_item(item, order.currency) for item in order.line_items]
        items.extend(adjustment_items(order))
        return items

    def free_shipping_eligible(self, order: Order) -> bool:
        if self.free_shipping_promotion_id is None:
            return False
        return any(
            adj.eligible and adj.source_id == self.free_shipping_promotion_id
            for adj in order.adjustments
        )

    def shipment_sum(self, order: Order) -> Decimal:
        ship_total = Decimal(order.ship_total or ZERO)
        if self.free_shipping_eligible(order):
            log.info(
                "paypal.free_shipping",
                order_number=order.number,
                eligible=True,
                discount=str(self.free_shipping_discount),
            )
            return ship_total - self.free_shipping_discount

        log.info("paypal.free_shipping", order_number=order.number, eligible=False)
        return ship_total

    def address_options(
        self, order: Order, payment_method: PaymentMethod
    ) -> dict[str, Any]:
        if not address_required(payment_method):
            return {}

        address = order.bill_address
        if address is None:
            return {}
        return {
            "Name": address.full_name,
            "Street1": address.address1,
            "Street2": address.address2,
            "CityName": address.city,
            "Phone": address.phone,
            "StateOrProvince": address.state_text,
            "Country": address.country_iso,
            "PostalCode": address.zipcode,
        }

    def payment_details(
        self,
        order: Order,
        items: list[dict[str, Any]],
        payment_method: PaymentMethod,
    ) -> dict[str, Any]:
        total = item_sum(items)
        order_total = money(order.currency, order.total)

        if total == 0:
            # PayPal does not accept an empty or zero ItemTotal; the buyer sees
            # a plain "Current purchase" summary instead.
            return {"OrderTotal": order_total}

        return {
            "OrderTotal": order_total,
            "ItemTotal": money(order.currency, total),
            "ShippingTotal": money(order.currency, self.shipment_sum(order)),
            "TaxTotal": money(order.currency, order.tax_total or ZERO),
            "ShipToAddress": self.address_options(order, payment_method),
            "PaymentDetailsItem": items,
            "ShippingMethod": self.shipping_method,
            "PaymentAction": "Sale",
        }

    def build(
        self,
        order: Order,
        payment_method: PaymentMethod,
        return_url: str,
        cancel_url: str,
    ) -> dict[str, Any]:
        items = self.items(order)
        return {
            "SetExpressCheckoutRequestDetails": {
                "InvoiceID": order.number,
                "BuyerEmail": order.email,
                "ReturnURL": return_url,
                "CancelURL": cancel_url,
                "SolutionType": payment_method.preferred_solution or "Mark",
                "LandingPage": payment_method.preferred_landing_page or "Billing",
                "cppheaderimage": payment_method.preferred_logourl or "",
                "NoShipping": 1,
                "PaymentDetails": [
                    self.payment_details(order, items, payment_method)
                ],
            }
        }


def address_required(payment_method: PaymentMethod) -> bool:
    return payment_method.preferred_solution == "Sole"
