"""Test the metrics module."""

import pytest
from unittest.mock import patch, MagicMock

from core.metrics import (
    express_requests,
    gateway_latency,
    init_metrics,
    orders_completed,
    payments_created,
)


def test_express_requests_counter_with_labels():
    """Test SetExpressCheckout counter with outcome labels."""
    for i, outcome in enumerate(["redirect", "declined", "connection_failed"]):
        metric = express_requests.labels(outcome=outcome)
        initial_value = metric._value._value

        metric.inc(i + 1)

        assert metric._value._value == initial_value + (i + 1)
        assert metric._labelvalues == (outcome,)


def test_payments_created_counter():
    initial_value = payments_created._value._value
    payments_created.inc()
    assert payments_created._value._value == initial_value + 1


def test_gateway_latency_histogram():
    """Test gateway latency histogram records observations."""
    for latency in [0.05, 0.3, 1.2, 7.5]:
        gateway_latency.observe(latency)

    assert gateway_latency._sum._value > 0


def test_init_metrics_with_app():
    """Test metrics initialization with FastAPI app."""
    mock_app = MagicMock()

    with patch("core.metrics.Instrumentator") as mock_instrumentator:
        mock_inst = MagicMock()
        mock_instrumentator.return_value = mock_inst
        mock_inst.add.return_value = mock_inst
        mock_inst.instrument.return_value = mock_inst
        mock_inst.expose.return_value = mock_inst

        result = init_metrics(mock_app)

        mock_instrumentator.assert_called_once()
        mock_inst.add.assert_called()
        mock_inst.instrument.assert_called_with(mock_app)
        mock_inst.expose.assert_called_with(
            mock_app, endpoint="/metrics", include_in_schema=False
        )
        assert result == mock_inst


def test_metrics_endpoint_integration(client):
    """Test that metrics endpoint is available and returns Prometheus format."""
    response = client.get("/metrics")

    assert response.status_code == 200
    assert "text/plain" in response.headers.get("content-type", "")

    content = response.text
    assert "paypal_express_requests_total" in content
    assert "paypal_payments_created_total" in content
    assert "orders_completed_total" in content
    assert "paypal_gateway_latency_seconds" in content


def test_metrics_naming_convention():
    """Counter names drop the _total suffix internally."""
    assert express_requests._name == "paypal_express_requests"
    assert payments_created._name == "paypal_payments_created"
    assert orders_completed._name == "orders_completed"
    assert gateway_latency._name == "paypal_gateway_latency_seconds"


def test_gateway_latency_instrumentor():
    """Only PayPal handlers are observed."""
    from core.metrics import gateway_latency_instrumentor

    before = gateway_latency._sum._value

    mock_info = MagicMock()
    mock_info.request.url.path = "/healthz"
    mock_info.modified_duration = 1.5
    gateway_latency_instrumentor(mock_info)
    assert gateway_latency._sum._value == before

    mock_info.request.url.path = "/paypal/confirm"
    try:
        gateway_latency_instrumentor(mock_info)
    except Exception as e:
        pytest.fail(f"Instrumentor raised unexpected exception: {e}")
    assert gateway_latency._sum._value == pytest.approx(before + 1.5)


def test_metrics_protected_in_production(client, monkeypatch):
    monkeypatch.setenv("ENVIRONMENT", "production")
    monkeypatch.setenv("METRICS_AUTH_TOKEN", "s3cret")

    response = client.get("/metrics", headers={"X-Metrics-Auth": "s3cret"})
    assert response.status_code == 200
