"""
Prometheus metrics blueprint for observability.

Exposes /metrics endpoint with HTTP request metrics and the shop's domain
counters from docegestao.metrics. This endpoint should be restricted to
internal network or monitoring systems only.
"""
from flask import Blueprint, Response, request, g
from prometheus_client import Counter, Histogram, Gauge, generate_latest, CONTENT_TYPE_LATEST
import time

from docegestao.metrics import metric_registry as _metric_registry, registry

metrics_bp = Blueprint('metrics', __name__)

# HTTP Request Metrics
http_requests_total = Counter(
    'http_requests_total',
    'Total HTTP requests',
    ['method', 'endpoint', 'http_status'],
    registry=_metric_registry
)

http_request_duration_seconds = Histogram(
    'http_request_duration_seconds',
    'HTTP request latency in seconds',
    ['method', 'endpoint'],
    registry=_metric_registry,
    buckets=(0.005, 0.01, 0.025, 0.05, 0.075, 0.1, 0.25, 0.5, 0.75, 1.0, 2.5, 5.0, 7.5, 10.0)
)

http_requests_in_flight = Gauge(
    'http_requests_in_flight',
    'Number of HTTP requests currently being processed',
    registry=_metric_registry
)


def setup_metrics_instrumentation(app):
    """
    Setup before_request and after_request hooks for automatic metrics collection.

    This should be called from app factory after app creation.
    """

    @app.before_request
    def before_request_metrics():
        """Record request start time and increment in-flight counter."""
        g._prometheus_metrics_start_time = time.time()
        http_requests_in_flight.inc()

    @app.after_request
    def after_request_metrics(response):
        """Record request metrics after response is ready."""
        if not hasattr(g, '_prometheus_metrics_start_time'):
            return response

        duration = time.time() - g._prometheus_metrics_start_time

        # Get endpoint name (e.g., 'pos.checkout')
        endpoint = request.endpoint or 'unknown'
        method = request.method

        http_request_duration_seconds.labels(
            method=method,
            endpoint=endpoint
        ).observe(duration)

        http_requests_total.labels(
            method=method,
            endpoint=endpoint,
            http_status=response.status_code
        ).inc()

        http_requests_in_flight.dec()
        return response


@metrics_bp.route('/metrics')
def metrics():
    """
    Prometheus metrics endpoint.

    SECURITY NOTE:
    - This endpoint is NOT authenticated
    - Should be restricted by network/firewall rules in production

    Returns:
        Response: Prometheus-formatted metrics in text/plain
    """
    data = generate_latest(registry)
    return Response(data, mimetype=CONTENT_TYPE_LATEST)
