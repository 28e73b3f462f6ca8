"""Test configuration and fixtures."""

import os
from decimal import Decimal

import pytest
import tenacity
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from core.dependencies import get_settings
from core.settings import Settings
from db.models import (
    Address,
    Base,
    LineItem,
    Order,
    OrderState,
    PaymentMethod,
)
from main import app


@pytest.fixture(autouse=True)
def setup_test_environment():
    """Setup test environment variables before each test."""
    original_env = dict(os.environ)

    os.environ.update(
        {
            "DATABASE_URL": "sqlite:///:memory:",
            "SECRET_KEY": "test-session-secret",
            "PP_USER": "api_user",
            "PP_PWD": "api_password",
            "PP_SIGNATURE": "api_signature",
            "APP_NAME": "Test Checkout",
            "ENVIRONMENT": "development",
            "DISABLE_TRACING": "true",
            "DEBUG": "true",
        }
    )

    yield

    os.environ.clear()
    os.environ.update(original_env)


@pytest.fixture
def mock_settings():
    return Settings(
        DATABASE_URL="sqlite:///:memory:",
        PP_USER="api_user",
        PP_PWD="api_password",
        PP_SIGNATURE="api_signature",
        APP_NAME="Test Checkout",
        DEBUG=True,
        ENVIRONMENT="development",
    )


@pytest.fixture
def test_db_engine():
    """Create a test database engine and setup tables."""
    engine = create_engine(
        "sqlite:///:memory:",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)

    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def test_db_session(test_db_engine):
    """Create test database session using the shared engine."""
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_db_engine)
    session = SessionLocal()

    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(mock_settings, test_db_engine):
    """Test client with proper database setup."""
    from db.session import get_db, reset_engines

    reset_engines()

    TestingSessionLocal = sessionmaker(
        autocommit=False, autoflush=False, bind=test_db_engine
    )

    def override_get_db():
        db = TestingSessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_settings] = lambda: mock_settings

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
    reset_engines()


@pytest.fixture
def payment_method(test_db_session):
    method = PaymentMethod(
        name="PayPal",
        preferred_login="merchant_api1.example.com",
        preferred_password="secret",
        preferred_signature="signature",
        preferred_server="sandbox",
    )
    test_db_session.add(method)
    test_db_session.commit()
    return method


@pytest.fixture
def order(test_db_session):
    """An order at the payment step: one line item (2 x 10.00), 5.00 shipping."""
    order = Order(
        number="R100000001",
        email="shopper@example.com",
        currency="USD",
        state=OrderState.payment,
        ship_total=Decimal("5.00"),
        ship_address=Address(
            firstname="Jane",
            lastname="Shopper",
            address1="10 Market St",
            city="San Francisco",
            zipcode="94105",
            phone="555-0101",
            state_name="CA",
            country_iso="US",
        ),
        line_items=[
            LineItem(
                product_name="Canvas Tote",
                sku="TOTE-1",
                quantity=2,
                price=Decimal("10.00"),
            )
        ],
    )
    order.update_totals()
    test_db_session.add(order)
    test_db_session.commit()
    return order


@pytest.fixture
def no_retry_wait(monkeypatch):
    """Capture retries happen back to back."""
    from payments.paypal_service import PayPalExpressService

    monkeypatch.setattr(
        PayPalExpressService.do_express_checkout_payment.retry,
        "wait",
        tenacity.wait_none(),
    )
