from prometheus_client import Counter, Histogram


CATALOG_LOOKUP_TOTAL = Counter(
    "checkout_catalog_lookup_total",
    "Product lookups against the catalog store",
    ["service", "backend", "result"],
)

CHECKOUT_OPERATIONS_TOTAL = Counter(
    "checkout_operations_total",
    "Checkout coordinator operations",
    ["service", "status"],
)

AUTH_TOKEN_VALIDATION_TOTAL = Counter(
    "checkout_auth_token_validation_total",
    "Authentication token validation events in Checkout service",
    ["service", "result"],
)

CHECKOUT_API_REQUESTS_TOTAL = Counter(
    "checkout_api_requests_total",
    "Checkout API request events",
    ["service", "endpoint", "method", "status"],
)

HTTP_REQUESTS_TOTAL = Counter(
    "checkout_http_requests_total",
    "Total HTTP requests",
    ["service", "method", "path", "status_code"],
)

HTTP_REQUEST_DURATION_SECONDS = Histogram(
    "checkout_http_request_duration_seconds",
    "HTTP request latency in seconds",
    ["service", "method", "path"],
)
