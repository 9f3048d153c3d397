"""Prometheus metrics for materialization, scheduler sweeps and balance transitions"""

from prometheus_client import Counter, Histogram

# Materialization metrics
occurrences_created_counter = Counter(
    "finledger_occurrences_created_total",
    "Occurrences inserted by materialization",
    ["trigger"],  # create | sweep | manual
)

duplicate_occurrences_counter = Counter(
    "finledger_duplicate_occurrences_total",
    "Occurrence inserts rejected by the uniqueness constraint and skipped",
)

materialization_failures_counter = Counter(
    "finledger_materialization_failures_total",
    "Materialization passes that failed and were rolled back",
)

# Scheduler metrics
sweep_duration_histogram = Histogram(
    "finledger_sweep_duration_seconds",
    "Time spent in one scheduler sweep",
    buckets=[0.1, 0.5, 1.0, 5.0, 15.0, 60.0, 300.0],
)

# Ledger metrics
balance_transition_counter = Counter(
    "finledger_balance_transitions_total",
    "Account balance transitions applied",
    ["transition"],  # create | edit | delete
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_materialization(trigger: str, created: int, duplicates_skipped: int) -> None:
    """Record how many occurrences a pass inserted and how many it skipped as duplicates"""
    if created:
        occurrences_created_counter.labels(trigger=trigger).inc(created)
    if duplicates_skipped:
        duplicate_occurrences_counter.inc(duplicates_skipped)
