"""
Database Models Module

This module defines SQLAlchemy ORM models for:
- Orders, line items and adjustments
- Addresses
- Payment methods and their PayPal preferences
- Payments and PayPal express checkout sessions
"""

from sqlalchemy import (
    Boolean,
    Column,
    Integer,
    String,
    DateTime,
    ForeignKey,
    Enum,
    Numeric,
    Index,
)
from sqlalchemy.orm import declarative_base, relationship
from datetime import datetime, UTC
from decimal import Decimal
from enum import Enum as PyEnum
from typing import List

Base = declarative_base()

ZERO = Decimal("0.00")


class OrderState(PyEnum):
    cart = "cart"
    address = "address"
    delivery = "delivery"
    payment = "payment"
    confirm = "confirm"
    complete = "complete"


CHECKOUT_STEPS = [
    OrderState.cart,
    OrderState.address,
    OrderState.delivery,
    OrderState.payment,
    OrderState.confirm,
    OrderState.complete,
]


class AdjustmentCategory(PyEnum):
    tax = "tax"
    shipping = "shipping"
    promotion = "promotion"
    other = "other"


class PaymentState(PyEnum):
    checkout = "checkout"
    completed = "completed"
    failed = "failed"


class Address(Base):
    __tablename__ = "addresses"

    id = Column(Integer, primary_key=True)
    firstname = Column(String(100))
    lastname = Column(String(100))
    address1 = Column(String(255))
    address2 = Column(String(255))
    city = Column(String(100))
    zipcode = Column(String(20))
    phone = Column(String(50))
    state_name = Column(String(100))
    country_iso = Column(String(2))

    @property
    def full_name(self) -> str:
        return " ".join(part for part in (self.firstname, self.lastname) if part)

    @property
    def state_text(self) -> str | None:
        return self.state_name

    def clone(self) -> "Address":
        return Address(
            firstname=self.firstname,
            lastname=self.lastname,
            address1=self.address1,
            address2=self.address2,
            city=self.city,
            zipcode=self.zipcode,
            phone=self.phone,
            state_name=self.state_name,
            country_iso=self.country_iso,
        )

    def __repr__(self):
        return f"<Address(id={self.id}, city={self.city})>"


class Order(Base):
    """A shopper's purchase: items, adjustments, addresses and checkout state."""

    __tablename__ = "orders"

    id = Column(Integer, primary_key=True)
    number = Column(String(32), unique=True, nullable=False, index=True)
    email = Column(String(255))
    currency = Column(String(3), nullable=False, default="USD")
    item_total = Column(Numeric(10, 2), nullable=False, default=ZERO)
    ship_total = Column(Numeric(10, 2), nullable=False, default=ZERO)
    tax_total = Column(Numeric(10, 2), nullable=False, default=ZERO)
    adjustment_total = Column(Numeric(10, 2), nullable=False, default=ZERO)
    total = Column(Numeric(10, 2), nullable=False, default=ZERO)
    state = Column(Enum(OrderState), nullable=False, default=OrderState.cart)
    bill_address_id = Column(Integer, ForeignKey("addresses.id"))
    ship_address_id = Column(Integer, ForeignKey("addresses.id"))
    completed_at = Column(DateTime)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC))

    bill_address = relationship("Address", foreign_keys=[bill_address_id])
    ship_address = relationship("Address", foreign_keys=[ship_address_id])
    line_items = relationship(
        "LineItem", back_populates="order", cascade="all, delete-orphan"
    )
    adjustments = relationship(
        "Adjustment", back_populates="order", cascade="all, delete-orphan"
    )
    payments = relationship(
        "Payment", back_populates="order", cascade="all, delete-orphan"
    )

    @property
    def complete(self) -> bool:
        return self.state == OrderState.complete

    @property
    def additional_adjustments(self) -> List["Adjustment"]:
        """Adjustments charged on top of item prices (not included tax)."""
        return [adj for adj in self.adjustments if not adj.included]

    def clone_shipping_address(self) -> None:
        if self.ship_address is not None:
            self.bill_address = self.ship_address.clone()

    def update_totals(self) -> None:
        """Recompute totals from line items and eligible additional adjustments."""
        self.item_total = sum((item.amount for item in self.line_items), ZERO)
        eligible = [adj for adj in self.additional_adjustments if adj.eligible]
        self.tax_total = sum(
            (adj.amount for adj in eligible if adj.category == AdjustmentCategory.tax),
            ZERO,
        )
        self.adjustment_total = sum(
            (adj.amount for adj in eligible if adj.category != AdjustmentCategory.tax),
            ZERO,
        )
        self.total = (
            self.item_total
            + Decimal(self.ship_total or ZERO)
            + self.tax_total
            + self.adjustment_total
        )

    def can_transition_to(self, new_state: OrderState) -> bool:
        """Checkout moves one step forward, back to any earlier step, never out of complete."""
        if self.state == OrderState.complete:
            return False
        current = CHECKOUT_STEPS.index(self.state)
        target = CHECKOUT_STEPS.index(new_state)
        return target <= current or target == current + 1

    def transition_to(self, new_state: OrderState) -> None:
        if not self.can_transition_to(new_state):
            raise ValueError(
                f"Invalid transition: {self.state.value} -> {new_state.value}"
            )
        self.state = new_state
        if new_state == OrderState.complete:
            self.completed_at = datetime.now(UTC)

    def validate_for_confirm(self) -> List[str]:
        errors = []
        if not self.email:
            errors.append("Email can't be blank")
        if self.bill_address is None:
            errors.append("Bill address can't be blank")
        if not self.line_items:
            errors.append("There are no items for this order")
        return errors

    def __repr__(self):
        return f"<Order(number={self.number}, state={self.state})>"


class LineItem(Base):
    __tablename__ = "line_items"

    id = Column(Integer, primary_key=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False, index=True)
    product_name = Column(String(255), nullable=False)
    sku = Column(String(100))
    quantity = Column(Integer, nullable=False, default=1)
    price = Column(Numeric(10, 2), nullable=False)

    order = relationship("Order", back_populates="line_items")

    @property
    def amount(self) -> Decimal:
        return Decimal(self.price) * self.quantity


class Adjustment(Base):
    """A charge or discount applied to an order (tax, shipping, promotion)."""

    __tablename__ = "adjustments"
    __table_args__ = (Index("ix_adjustments_source_eligible", "source_id", "eligible"),)

    id = Column(Integer, primary_key=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False, index=True)
    label = Column(String(255), nullable=False)
    amount = Column(Numeric(10, 2), nullable=False, default=ZERO)
    eligible = Column(Boolean, nullable=False, default=True)
    category = Column(
        Enum(AdjustmentCategory), nullable=False, default=AdjustmentCategory.other
    )
    included = Column(Boolean, nullable=False, default=False)
    source_id = Column(Integer)

    order = relationship("Order", back_populates="adjustments")

    def __repr__(self):
        return f"<Adjustment(label={self.label}, amount={self.amount})>"


class PaymentMethod(Base):
    """PayPal Express configuration: API credentials and checkout preferences."""

    __tablename__ = "payment_methods"

    id = Column(Integer, primary_key=True)
    name = Column(String(100), nullable=False)
    type = Column(String(100), nullable=False, default="PaypalExpress")
    active = Column(Boolean, nullable=False, default=True)
    preferred_login = Column(String(255))
    preferred_password = Column(String(255))
    preferred_signature = Column(String(255))
    preferred_server = Column(String(10), nullable=False, default="sandbox")
    preferred_solution = Column(String(10))
    preferred_landing_page = Column(String(10))
    preferred_logourl = Column(String(255))

    def provider(self, **options):
        from payments.paypal_service import PayPalExpressService

        return PayPalExpressService(
            credentials={
                "USER": self.preferred_login,
                "PWD": self.preferred_password,
                "SIGNATURE": self.preferred_signature,
            },
            mode=self.preferred_server,
            **options,
        )

    def __repr__(self):
        return f"<PaymentMethod(id={self.id}, name={self.name})>"


class PaypalExpressCheckout(Base):
    """Token/payer id pair PayPal hands back when the shopper approves."""

    __tablename__ = "paypal_express_checkouts"

    id = Column(Integer, primary_key=True)
    token = Column(String(64), nullable=False, index=True)
    payer_id = Column(String(64))
    transaction_id = Column(String(64))
    state = Column(String(20), nullable=False, default="complete")
    created_at = Column(DateTime, default=lambda: datetime.now(UTC))

    payment = relationship("Payment", back_populates="source", uselist=False)

    def __repr__(self):
        return f"<PaypalExpressCheckout(token={self.token}, payer_id={self.payer_id})>"


class Payment(Base):
    __tablename__ = "payments"
    __table_args__ = (Index("ix_payments_order_state", "order_id", "state"),)

    id = Column(Integer, primary_key=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False)
    payment_method_id = Column(
        Integer, ForeignKey("payment_methods.id"), nullable=False
    )
    source_id = Column(
        Integer, ForeignKey("paypal_express_checkouts.id"), nullable=False
    )
    amount = Column(Numeric(10, 2), nullable=False)
    state = Column(Enum(PaymentState), nullable=False, default=PaymentState.checkout)
    response_code = Column(String(64))
    created_at = Column(DateTime, nullable=False, default=lambda: datetime.now(UTC))

    order = relationship("Order", back_populates="payments")
    payment_method = relationship("PaymentMethod")
    source = relationship("PaypalExpressCheckout", back_populates="payment")

    @property
    def identifier(self) -> str:
        return f"{self.order.number}-P{self.id}"

    def __repr__(self):
        return f"<Payment(id={self.id}, order_id={self.order_id}, state={self.state})>"
