"""
PayPal Express Checkout - Main Application Entry Point

This module initializes the FastAPI application and sets up the core routing.
It serves the shop's PayPal Express Checkout flow: redirecting shoppers to
PayPal, recording their approval on return and completing their orders.
"""

from contextlib import asynccontextmanager

import structlog
from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor

from api import routes
from api.middleware import CheckoutSessionMiddleware, log_api_entry
from core.dependencies import clear_settings, get_settings, init_settings
from core.logging import configure_logging
from core.metrics import add_metrics_auth_middleware, init_metrics
from core.settings import Settings
from core.tracing import init_tracer
from db.session import init_db

log = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for FastAPI application startup and shutdown events."""
    # Startup
    init_settings()
    settings = get_settings()

    init_tracer(settings.OTEL_SERVICE_NAME)
    init_db(settings)

    yield
    # Shutdown
    clear_settings()


app = FastAPI(
    title="PayPal Express Checkout",
    description="""
    ## PayPal Express Checkout for the shop's checkout flow

    ### Flow:
    1. `POST /paypal` builds the SetExpressCheckout request and redirects to PayPal
    2. `GET /paypal/confirm` records the approved payment and moves the order to confirm
    3. `POST /checkout/confirm` captures the payment and completes the order
    4. `GET /paypal/cancel` returns the shopper to the payment step
    """,
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)

FastAPIInstrumentor.instrument_app(app)

init_metrics(app)

add_metrics_auth_middleware(app)

app.middleware("http")(log_api_entry)

# Holds the current order, PayPal token and flash messages
app.add_middleware(CheckoutSessionMiddleware)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    log.error("api.unhandled_error", path=request.url.path, error=str(exc))
    return JSONResponse(
        status_code=500,
        content={"detail": str(exc)},
    )


@app.get("/")
async def root():
    return {
        "name": "PayPal Express Checkout",
        "version": "1.0.0",
        "endpoints": {
            "express": "POST /paypal?payment_method_id= - Redirect to PayPal",
            "confirm": "GET /paypal/confirm - PayPal return callback",
            "cancel": "GET /paypal/cancel - PayPal cancel callback",
            "checkout": "GET /checkout/{state} - Current checkout step",
            "complete": "POST /checkout/confirm - Capture payment and complete",
            "orders": "GET /orders/{number} - Order summary",
            "health": "/healthz",
            "metrics": "/metrics",
        },
    }


@app.get("/healthz")
async def health_check(settings: Settings = Depends(get_settings)):
    """Health check endpoint to verify API status."""
    db_type = (
        "PostgreSQL" if settings.DATABASE_URL.startswith("postgresql") else "SQLite"
    )
    return {
        "status": "ok",
        "app_name": settings.APP_NAME,
        "database": db_type,
        "environment": settings.ENVIRONMENT,
        "paypal_mode": settings.PAYPAL_MODE,
    }


app.include_router(routes.router)


def main():
    configure_logging()
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)


if __name__ == "__main__":
    main()
