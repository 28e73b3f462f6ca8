"""
Prometheus metrics instrumentation for the PayPal Express Checkout service.

This module sets up FastAPI instrumentation to expose metrics in Prometheus format
at the /metrics endpoint with optional authentication.
"""

from prometheus_fastapi_instrumentator import Instrumentator
from prometheus_client import Counter, Histogram
from fastapi import Request, HTTPException, status
import os

# Outcome of each SetExpressCheckout attempt: redirect, declined, connection_failed
express_requests = Counter(
    "paypal_express_requests_total",
    "Total number of SetExpressCheckout attempts",
    ["outcome"],
)

payments_created = Counter(
    "paypal_payments_created_total",
    "Total number of payments created from PayPal return callbacks",
)

orders_completed = Counter(
    "orders_completed_total",
    "Total number of orders completed through PayPal Express",
)

gateway_latency = Histogram(
    "paypal_gateway_latency_seconds",
    "Time taken for PayPal redirect and return handlers to respond",
    buckets=[0.1, 0.5, 1.0, 2.5, 5.0, 10.0],
)


def gateway_latency_instrumentor(info):
    """Instrumentation function for tracking PayPal handler latency."""
    if info.request.url.path.startswith("/paypal"):
        gateway_latency.observe(info.modified_duration)


def init_metrics(app):
    """
    Initialize Prometheus metrics instrumentation for the FastAPI app.

    Args:
        app: FastAPI application instance

    Returns:
        Instrumentator instance
    """
    inst = Instrumentator(
        should_group_status_codes=False,
        should_ignore_untemplated=True,
    )

    inst.add(gateway_latency_instrumentor)

    inst.instrument(app).expose(app, endpoint="/metrics", include_in_schema=False)
    return inst


def add_metrics_auth_middleware(app):
    """
    Add middleware to protect the /metrics endpoint in production.
    For production use, set METRICS_AUTH_TOKEN environment variable.
    """

    @app.middleware("http")
    async def metrics_auth_middleware(request: Request, call_next):
        if request.url.path == "/metrics":
            if os.getenv("ENVIRONMENT", "development") != "production":
                return await call_next(request)

            auth_header = request.headers.get("X-Metrics-Auth")
            expected_token = os.getenv("METRICS_AUTH_TOKEN")

            if expected_token and auth_header == expected_token:
                return await call_next(request)

            # Allow internal network access (VPN/private networks)
            client_ip = request.client.host if request.client else None
            if client_ip and (
                client_ip.startswith("10.")
                or client_ip.startswith("192.168.")
                or client_ip.startswith("172.")
            ):
                return await call_next(request)

            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Metrics endpoint access denied",
            )

        return await call_next(request)
