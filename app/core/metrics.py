"""Prometheus metrics for monitoring"""
from prometheus_client import Counter, Histogram, Gauge, CollectorRegistry, generate_latest

registry = CollectorRegistry()

request_count = Counter(
    'http_requests_total',
    'Total HTTP requests',
    ['method', 'endpoint', 'status'],
    registry=registry
)

request_duration = Histogram(
    'http_request_duration_seconds',
    'HTTP request duration in seconds',
    ['method', 'endpoint'],
    registry=registry
)

pricing_calculations = Counter(
    'pricing_calculations_total',
    'Total fare calculations by outcome',
    ['outcome'],
    registry=registry
)

distance_lookups = Counter(
    'distance_lookups_total',
    'Total driving distance lookups',
    ['status'],
    registry=registry
)

distance_lookup_duration = Histogram(
    'distance_lookup_duration_seconds',
    'Driving distance lookup duration in seconds',
    registry=registry
)

quick_quotes = Counter(
    'quick_quotes_total',
    'Total quick quotes by pricing source',
    ['source', 'suppressed'],
    registry=registry
)

cache_hits = Counter(
    'price_cache_hits_total',
    'Total price cache hits',
    registry=registry
)

cache_misses = Counter(
    'price_cache_misses_total',
    'Total price cache misses',
    registry=registry
)

rate_limit_exceeded = Counter(
    'rate_limit_exceeded_total',
    'Total rate limit exceeded events',
    registry=registry
)

webhook_deliveries = Counter(
    'webhook_deliveries_total',
    'Total webhook delivery attempts',
    ['status'],
    registry=registry
)

redis_connected = Gauge(
    'redis_connected',
    'Redis connection status (1=connected, 0=disconnected)',
    registry=registry
)

rate_matrix_routes = Gauge(
    'rate_matrix_routes',
    'Number of priced routes in the loaded rate matrix',
    registry=registry
)


def get_metrics_text() -> str:
    """Generate Prometheus metrics in text format"""
    return generate_latest(registry).decode('utf-8')
