"""
API Schemas Module

This module defines Pydantic models for response serialization.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict

from db.models import AdjustmentCategory, OrderState, PaymentState


class AddressOut(BaseModel):
    firstname: Optional[str] = None
    lastname: Optional[str] = None
    address1: Optional[str] = None
    address2: Optional[str] = None
    city: Optional[str] = None
    zipcode: Optional[str] = None
    phone: Optional[str] = None
    state_name: Optional[str] = None
    country_iso: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class LineItemOut(BaseModel):
    id: int
    product_name: str
    sku: Optional[str] = None
    quantity: int
    price: Decimal

    model_config = ConfigDict(from_attributes=True)


class AdjustmentOut(BaseModel):
    id: int
    label: str
    amount: Decimal
    eligible: bool
    category: AdjustmentCategory

    model_config = ConfigDict(from_attributes=True)


class PaymentOut(BaseModel):
    id: int
    amount: Decimal
    state: PaymentState
    payment_method_id: int
    response_code: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class OrderOut(BaseModel):
    """Schema for an order as seen by the shopper."""

    number: str
    email: Optional[str] = None
    currency: str
    state: OrderState
    item_total: Decimal
    ship_total: Decimal
    tax_total: Decimal
    adjustment_total: Decimal
    total: Decimal
    completed_at: Optional[datetime] = None
    bill_address: Optional[AddressOut] = None
    ship_address: Optional[AddressOut] = None
    line_items: list[LineItemOut] = []
    adjustments: list[AdjustmentOut] = []
    payments: list[PaymentOut] = []

    model_config = ConfigDict(from_attributes=True)


class CheckoutStepOut(BaseModel):
    step: OrderState
    order: OrderOut
    flash: dict[str, Any] = {}
    paypal_cancel_token: Optional[str] = None


class OrderPageOut(BaseModel):
    order: OrderOut
    flash: dict[str, Any] = {}
