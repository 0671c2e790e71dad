"""
Prometheus registry and domain counters.

Shared by the services that record sales and sync failures and by the
/metrics blueprint that exposes them.
"""
import os

from prometheus_client import Counter, CollectorRegistry, REGISTRY, multiprocess

# Check if running in multi-process mode (Gunicorn)
MULTIPROCESS_MODE = os.environ.get('PROMETHEUS_MULTIPROC_DIR') is not None

# Use multiprocess registry in production with Gunicorn
if MULTIPROCESS_MODE:
    registry = CollectorRegistry()
    multiprocess.MultiProcessCollector(registry)
else:
    registry = REGISTRY

metric_registry = registry if not MULTIPROCESS_MODE else None

sales_recorded_total = Counter(
    'docegestao_sales_recorded_total',
    'Sales recorded at checkout',
    ['payment_method'],
    registry=metric_registry
)

sync_failures_total = Counter(
    'docegestao_sync_failures_total',
    'Background persistence calls that failed (state left diverged)',
    ['operation'],
    registry=metric_registry
)
