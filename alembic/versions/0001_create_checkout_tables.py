"""create checkout tables

Revision ID: 0001_checkout
Revises:
Create Date: 2026-10-19 12:00:00.000000

"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "0001_checkout"
down_revision = None
branch_labels = None
depends_on = None

ORDER_STATES = ("cart", "address", "delivery", "payment", "confirm", "complete")
ADJUSTMENT_CATEGORIES = ("tax", "shipping", "promotion", "other")
PAYMENT_STATES = ("checkout", "completed", "failed")


def upgrade() -> None:
    op.create_table(
        "addresses",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("firstname", sa.String(100)),
        sa.Column("lastname", sa.String(100)),
        sa.Column("address1", sa.String(255)),
        sa.Column("address2", sa.String(255)),
        sa.Column("city", sa.String(100)),
        sa.Column("zipcode", sa.String(20)),
        sa.Column("phone", sa.String(50)),
        sa.Column("state_name", sa.String(100)),
        sa.Column("country_iso", sa.String(2)),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "orders",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("number", sa.String(32), nullable=False),
        sa.Column("email", sa.String(255)),
        sa.Column("currency", sa.String(3), nullable=False),
        sa.Column("item_total", sa.Numeric(10, 2), nullable=False),
        sa.Column("ship_total", sa.Numeric(10, 2), nullable=False),
        sa.Column("tax_total", sa.Numeric(10, 2), nullable=False),
        sa.Column("adjustment_total", sa.Numeric(10, 2), nullable=False),
        sa.Column("total", sa.Numeric(10, 2), nullable=False),
        sa.Column(
            "state", sa.Enum(*ORDER_STATES, name="orderstate"), nullable=False
        ),
        sa.Column("bill_address_id", sa.Integer(), sa.ForeignKey("addresses.id")),
        sa.Column("ship_address_id", sa.Integer(), sa.ForeignKey("addresses.id")),
        sa.Column("completed_at", sa.DateTime()),
        sa.Column("created_at", sa.DateTime()),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_orders_number", "orders", ["number"], unique=True)

    op.create_table(
        "line_items",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("order_id", sa.Integer(), sa.ForeignKey("orders.id"), nullable=False),
        sa.Column("product_name", sa.String(255), nullable=False),
        sa.Column("sku", sa.String(100)),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("price", sa.Numeric(10, 2), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_line_items_order_id", "line_items", ["order_id"])

    op.create_table(
        "adjustments",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("order_id", sa.Integer(), sa.ForeignKey("orders.id"), nullable=False),
        sa.Column("label", sa.String(255), nullable=False),
        sa.Column("amount", sa.Numeric(10, 2), nullable=False),
        sa.Column("eligible", sa.Boolean(), nullable=False),
        sa.Column(
            "category",
            sa.Enum(*ADJUSTMENT_CATEGORIES, name="adjustmentcategory"),
            nullable=False,
        ),
        sa.Column("included", sa.Boolean(), nullable=False),
        sa.Column("source_id", sa.Integer()),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_adjustments_order_id", "adjustments", ["order_id"])
    op.create_index(
        "ix_adjustments_source_eligible", "adjustments", ["source_id", "eligible"]
    )

    op.create_table(
        "payment_methods",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("type", sa.String(100), nullable=False),
        sa.Column("active", sa.Boolean(), nullable=False),
        sa.Column("preferred_login", sa.String(255)),
        sa.Column("preferred_password", sa.String(255)),
        sa.Column("preferred_signature", sa.String(255)),
        sa.Column("preferred_server", sa.String(10), nullable=False),
        sa.Column("preferred_solution", sa.String(10)),
        sa.Column("preferred_landing_page", sa.String(10)),
        sa.Column("preferred_logourl", sa.String(255)),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "paypal_express_checkouts",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("token", sa.String(64), nullable=False),
        sa.Column("payer_id", sa.String(64)),
        sa.Column("transaction_id", sa.String(64)),
        sa.Column("state", sa.String(20), nullable=False),
        sa.Column("created_at", sa.DateTime()),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_paypal_express_checkouts_token", "paypal_express_checkouts", ["token"]
    )

    op.create_table(
        "payments",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("order_id", sa.Integer(), sa.ForeignKey("orders.id"), nullable=False),
        sa.Column(
            "payment_method_id",
            sa.Integer(),
            sa.ForeignKey("payment_methods.id"),
            nullable=False,
        ),
        sa.Column(
            "source_id",
            sa.Integer(),
            sa.ForeignKey("paypal_express_checkouts.id"),
            nullable=False,
        ),
        sa.Column("amount", sa.Numeric(10, 2), nullable=False),
        sa.Column(
            "state", sa.Enum(*PAYMENT_STATES, name="paymentstate"), nullable=False
        ),
        sa.Column("response_code", sa.String(64)),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_payments_order_state", "payments", ["order_id", "state"])


def downgrade() -> None:
    op.drop_table("payments")
    op.drop_table("paypal_express_checkouts")
    op.drop_table("payment_methods")
    op.drop_table("adjustments")
    op.drop_table("line_items")
    op.drop_table("orders")
    op.drop_table("addresses")
