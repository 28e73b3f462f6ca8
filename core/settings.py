import os
from decimal import Decimal
from typing import Literal, Optional

from dotenv import load_dotenv
from pydantic import ConfigDict, field_validator, model_validator
from pydantic_settings import BaseSettings

# Load .env file automatically
load_dotenv()

DEFAULT_SECRET_KEY = "change-me"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    DATABASE_URL: str
    DATABASE_POOL_SIZE: int = 10
    DATABASE_MAX_OVERFLOW: int = 20
    DATABASE_POOL_TIMEOUT: int = 30
    DATABASE_POOL_RECYCLE: int = 3600

    # Signs the session cookie that binds PayPal callbacks to an order
    SECRET_KEY: str = DEFAULT_SECRET_KEY

    # PayPal gateway
    PAYPAL_MODE: Literal["sandbox", "live"] = "sandbox"
    PAYPAL_TIMEOUT: float = 30.0

    # Direct NVP credentials used when capturing express checkout payments
    PP_VERSION: str = "204.0"
    PP_USER: Optional[str] = None
    PP_PWD: Optional[str] = None
    PP_SIGNATURE: Optional[str] = None

    # Free shipping promotion: shipping reported to PayPal is reduced by
    # FREE_SHIPPING_DISCOUNT when the order carries an eligible adjustment
    # from this promotion. Empty disables the rule.
    FREE_SHIPPING_PROMOTION_ID: Optional[int] = 5
    FREE_SHIPPING_DISCOUNT: Decimal = Decimal("4.95")

    # When false, a confirmed PayPal return completes the order immediately
    CHECKOUT_CONFIRMATION_REQUIRED: bool = True

    # App settings
    APP_NAME: str = "PayPal Express Checkout"
    DEBUG: bool = False
    ENVIRONMENT: Literal["development", "test", "production"] = "development"

    # Observability (Optional)
    OTEL_EXPORTER_OTLP_ENDPOINT: str = "http://localhost:4317"
    OTEL_SERVICE_NAME: str = "paypal-express-checkout"

    # Metrics (Optional)
    METRICS_ENABLED: bool = True

    model_config = ConfigDict(env_file=".env", case_sensitive=True)

    @field_validator("FREE_SHIPPING_PROMOTION_ID", mode="before")
    @classmethod
    def empty_promotion_disables_rule(cls, value):
        if value == "":
            return None
        return value

    @model_validator(mode="after")
    def require_secret_key_in_production(self):
        if self.ENVIRONMENT == "production" and self.SECRET_KEY == DEFAULT_SECRET_KEY:
            raise ValueError("SECRET_KEY must be set in production")
        return self

    @property
    def paypal_credentials(self) -> dict[str, Optional[str]]:
        """NVP credential fields for the direct API path."""
        return {
            "VERSION": self.PP_VERSION,
            "USER": self.PP_USER,
            "PWD": self.PP_PWD,
            "SIGNATURE": self.PP_SIGNATURE,
        }

    def __init__(self, **kwargs):
        # Check for DATABASE_URL before calling parent constructor
        if not os.getenv("DATABASE_URL") and "DATABASE_URL" not in kwargs:
            raise RuntimeError(
                "DATABASE_URL not set; create .env or export the variable"
            )
        super().__init__(**kwargs)
