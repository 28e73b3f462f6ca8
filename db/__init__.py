"""Persistence layer: SQLAlchemy models and session management."""

from db.models import (
    Address,
    Adjustment,
    AdjustmentCategory,
    Base,
    LineItem,
    Order,
    OrderState,
    Payment,
    PaymentMethod,
    PaymentState,
    PaypalExpressCheckout,
)

__all__ = [
    "Address",
    "Adjustment",
    "AdjustmentCategory",
    "Base",
    "LineItem",
    "Order",
    "OrderState",
    "Payment",
    "PaymentMethod",
    "PaymentState",
    "PaypalExpressCheckout",
]
