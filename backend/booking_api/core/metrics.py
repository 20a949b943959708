"""
Metrics instrumentation for observability.
Exposes Prometheus-compatible metrics at /metrics endpoint.
"""

from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from fastapi import Response

# Operation metrics
operation_requests = Counter(
    'graphql_operations_total',
    'Total dispatched graph operations',
    ['operation', 'status']  # success, invalid, denied, error
)

operation_latency = Histogram(
    'graphql_operation_latency_seconds',
    'Operation handler latency',
    ['operation'],
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0]
)

# Authorization metrics
authorization_denials = Counter(
    'authorization_denials_total',
    'Operations rejected by the authorization gate',
    ['operation', 'reason']  # unauthenticated, forbidden
)

# Database metrics
db_operations = Counter(
    'db_operations_total',
    'Total database operations',
    ['operation']  # read, write, rollback
)

# Booking metrics
bookings_created = Counter(
    'bookings_created_total',
    'Bookings successfully created'
)

booked_items = Histogram(
    'booking_items_per_booking',
    'Number of bookables linked to a new booking',
    buckets=[1, 2, 3, 5, 10, 20, 50]
)


def metrics_endpoint() -> Response:
    """
    Prometheus metrics endpoint.

    Usage:
        @app.get("/metrics")
        def metrics():
            return metrics_endpoint()
    """
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


def record_operation(operation: str, status: str, duration: float):
    """Record a dispatched operation. Status: success, invalid, denied, error"""
    operation_requests.labels(operation=operation, status=status).inc()
    operation_latency.labels(operation=operation).observe(duration)


def record_denial(operation: str, reason: str):
    authorization_denials.labels(operation=operation, reason=reason).inc()


def record_db_operation(operation: str):
    """Record database operation. Operation: read, write, rollback"""
    db_operations.labels(operation=operation).inc()


def record_booking_created(item_count: int):
    bookings_created.inc()
    booked_items.observe(item_count)
