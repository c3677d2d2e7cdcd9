from prometheus_client import Counter, Gauge, Histogram

# HTTP request metrics
HTTP_REQUESTS_TOTAL = Counter(
    "gameanalyzer_http_requests_total",
    "Total HTTP requests",
    ["method", "path", "status_class"],
)
HTTP_REQUEST_DURATION_SECONDS = Histogram(
    "gameanalyzer_http_request_duration_seconds",
    "Duration of HTTP requests in seconds",
    ["method", "path"],
)

# Session lifecycle
SESSIONS_STARTED_TOTAL = Counter("gameanalyzer_sessions_started_total", "Sessions started")
SESSIONS_ENDED_TOTAL = Counter("gameanalyzer_sessions_ended_total", "Sessions ended", ["status"])
ACTIVE_SESSIONS = Gauge("gameanalyzer_active_sessions", "Sessions currently held in memory")
ACTIONS_INGESTED_TOTAL = Counter(
    "gameanalyzer_actions_ingested_total",
    "Gameplay actions ingested",
    ["type"],
)
ACTIONS_COERCED_TOTAL = Counter(
    "gameanalyzer_actions_coerced_total",
    "Actions with at least one field replaced by a default",
)

# Analysis pipeline
ANALYSES_TOTAL = Counter(
    "gameanalyzer_analyses_total",
    "Session analyses by resulting confidence and reason",
    ["confidence", "reason"],
)
AUGMENT_SECONDS = Histogram(
    "gameanalyzer_augment_seconds",
    "Duration of AI insight generation calls in seconds",
    ["provider", "model", "outcome"],
)
PROBE_AVAILABLE = Gauge(
    "gameanalyzer_probe_available",
    "1 if the last connectivity probe found the AI service available",
    ["provider"],
)
DIAGNOSTIC_QUEUE_DROPPED_TOTAL = Counter(
    "gameanalyzer_diagnostic_queue_dropped_total",
    "Actions dropped because the diagnostic queue was full",
)
