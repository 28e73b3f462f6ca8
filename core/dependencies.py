"""Process-wide checkout settings, loaded once by the app lifespan."""

from typing import Optional

from core.settings import Settings

_checkout_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """FastAPI dependency returning the settings loaded at startup."""
    assert (
        _checkout_settings is not None
    ), "Checkout settings not loaded; the app lifespan calls init_settings()."
    return _checkout_settings


def init_settings() -> Settings:
    """Load settings from the environment (DATABASE_URL, SECRET_KEY, PP_*)."""
    global _checkout_settings
    _checkout_settings = Settings()
    return _checkout_settings


def clear_settings():
    global _checkout_settings
    _checkout_settings = None
