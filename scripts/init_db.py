#!/usr/bin/env python3
"""
Database initialization script that runs migrations and seeds initial data.
This runs automatically when the API container starts up.
"""

import sys
import os
import time
import subprocess
from decimal import Decimal

# Add the project root to the Python path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy import create_engine, text  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.exc import OperationalError  # noqa: E402
from db.models import (  # noqa: E402
    Address,
    Adjustment,
    AdjustmentCategory,
    LineItem,
    Order,
    OrderState,
    PaymentMethod,
)
from core.dependencies import get_settings, init_settings  # noqa: E402


def wait_for_db(max_attempts=30, delay=2):
    """Wait for database to be ready."""
    settings = get_settings()

    for attempt in range(max_attempts):
        try:
            engine = create_engine(settings.DATABASE_URL)
            with engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            print(f"✅ Database ready after {attempt + 1} attempts")
            engine.dispose()
            return True
        except OperationalError:
            print(f"⏳ Database not ready, attempt {attempt + 1}/{max_attempts}...")
            time.sleep(delay)

    print(f"❌ Database not ready after {max_attempts} attempts")
    return False


def run_migrations():
    """Run Alembic migrations."""
    print("🔄 Running database migrations...")
    result = subprocess.run(
        ["alembic", "upgrade", "head"],
        capture_output=True,
        text=True,
    )
    if result.returncode == 0:
        print("✅ Migrations completed successfully")
        return True
    print(f"❌ Migration failed: {result.stderr}")
    return False


def seed_initial_data():
    """Seed the PayPal payment method and, in demo mode, a sample order."""
    settings = get_settings()
    engine = create_engine(settings.DATABASE_URL)
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    db = SessionLocal()
    try:
        if db.query(PaymentMethod).count() > 0:
            print("✅ Payment methods already present")
            return True

        print("🌱 Seeding PayPal Express payment method...")
        db.add(
            PaymentMethod(
                name="PayPal",
                preferred_login=os.getenv("PAYPAL_LOGIN"),
                preferred_password=os.getenv("PAYPAL_PASSWORD"),
                preferred_signature=os.getenv("PAYPAL_SIGNATURE"),
                preferred_server=settings.PAYPAL_MODE,
                preferred_solution="Mark",
                preferred_landing_page="Billing",
            )
        )

        if os.getenv("DEMO_MODE", "").lower() in {"1", "true", "yes"}:
            print("🌱 Seeding demo order...")
            address = Address(
                firstname="Demo",
                lastname="Buyer",
                address1="1 Main St",
                city="San Jose",
                zipcode="95131",
                phone="555-0100",
                state_name="CA",
                country_iso="US",
            )
            order = Order(
                number="R000000001",
                email="buyer@demo.test",
                currency="USD",
                state=OrderState.payment,
                ship_total=Decimal("5.00"),
                ship_address=address,
                line_items=[
                    LineItem(
                        product_name="Canvas Tote",
                        sku="TOTE-00011",
                        quantity=2,
                        price=Decimal("15.99"),
                    )
                ],
                adjustments=[
                    Adjustment(
                        label="Tax",
                        amount=Decimal("2.56"),
                        eligible=True,
                        category=AdjustmentCategory.tax,
                    ),
                    Adjustment(
                        label="Promotion (10% off)",
                        amount=Decimal("-3.20"),
                        eligible=True,
                        category=AdjustmentCategory.promotion,
                    ),
                ],
            )
            order.update_totals()
            db.add(order)

        db.commit()
        print("✅ Seed data committed")
        return True
    except Exception as e:
        db.rollback()
        print(f"❌ Error seeding data: {e}")
        return False
    finally:
        db.close()
        engine.dispose()


def init_database():
    """Initialize database with migrations and seed data."""
    print("🚀 Initializing database...")

    init_settings()

    if not wait_for_db():
        print("❌ Database initialization failed - database not ready")
        sys.exit(1)

    if not run_migrations():
        print("❌ Database initialization failed - migration error")
        sys.exit(1)

    if not seed_initial_data():
        print("❌ Database initialization failed - seeding error")
        sys.exit(1)

    print("🎉 Database initialization completed successfully!")


if __name__ == "__main__":
    init_database()
