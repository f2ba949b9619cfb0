from prometheus_client import Counter, Histogram, REGISTRY


# we check if they are already registered to avoid errors during hot reloads or test runs
def get_or_create_metric(name, documentation, metric_type, **kwargs):
    try:
        return metric_type(name, documentation, **kwargs)
    except ValueError:
        # already registered under this name
        return REGISTRY._names_to_collectors[name]


REQUESTS_TOTAL = get_or_create_metric(
    "schedule_ai_requests_total",
    "Total HTTP requests",
    Counter,
    labelnames=["endpoint", "status"],
)

REQUEST_LATENCY_SECONDS = get_or_create_metric(
    "schedule_ai_request_latency_seconds",
    "HTTP request latency",
    Histogram,
    labelnames=["endpoint"],
)

LLM_CALLS_TOTAL = get_or_create_metric(
    "schedule_ai_llm_calls_total",
    "Generation service calls",
    Counter,
    labelnames=["provider", "status"],
)

EVENTS_EXTRACTED_TOTAL = get_or_create_metric(
    "schedule_ai_events_extracted_total",
    "Structured events produced by extraction",
    Counter,
    labelnames=["mode"],
)

EVENTS_REJECTED_TOTAL = get_or_create_metric(
    "schedule_ai_events_rejected_total",
    "Bulk extraction elements dropped by validation",
    Counter,
)

PLACEMENTS_TOTAL = get_or_create_metric(
    "schedule_ai_placements_total",
    "Placement outcomes of scheduling runs",
    Counter,
    labelnames=["outcome"],
)

SCHEDULING_RUNS_TOTAL = get_or_create_metric(
    "schedule_ai_scheduling_runs_total",
    "Scheduling runs by final status",
    Counter,
    labelnames=["status"],
)
