from prometheus_client import Counter, Histogram, Gauge, REGISTRY


# we check if they are already registered to avoid errors during hot reloads or test runs
def get_or_create_metric(name, documentation, metric_type, **kwargs):
    try:
        return metric_type(name, documentation, **kwargs)
    except ValueError:
        # If it already exists, retrieve it from the registry
        return REGISTRY._names_to_collectors[name]


REQUESTS_TOTAL = get_or_create_metric(
    "todo_requests_total",
    "Total requests",
    Counter,
    labelnames=["endpoint", "status"],
)

REQUEST_LATENCY_SECONDS = get_or_create_metric(
    "todo_request_latency_seconds",
    "Request latency",
    Histogram,
    labelnames=["endpoint"],
)

COMMANDS_TOTAL = get_or_create_metric(
    "todo_commands_total",
    "Commands dispatched, by command type and how they were recognised",
    Counter,
    labelnames=["type", "route"],
)

TIER_OUTCOMES_TOTAL = get_or_create_metric(
    "todo_tier_outcomes_total",
    "Extraction tier outcomes",
    Counter,
    labelnames=["tier", "outcome"],
)

REMINDERS_FIRED_TOTAL = get_or_create_metric(
    "todo_reminders_fired_total", "Reminders delivered to the notifier", Counter
)

RECURRING_REGENERATED_TOTAL = get_or_create_metric(
    "todo_recurring_regenerated_total", "Recurring tasks regenerated", Counter
)

TASKS_GAUGE = get_or_create_metric(
    "todo_tasks", "Tasks in the store by status", Gauge, labelnames=["status"]
)
