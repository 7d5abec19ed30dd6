# ==== PROMETHEUS METRICS ==== #

"""
Prometheus metrics for the fulfillment exception engine.

Counters cover sweep runs, order completions, auto-repicks and their
exhaustion, degraded collaborator calls and pick-completion notifications.
"""

from prometheus_client import (
    Counter,
    Histogram,
    REGISTRY,
    generate_latest,
    start_http_server,
)


# ==== SWEEP METRICS ==== #

sweep_runs_total = Counter(
    "fulfillment_exception_sweep_runs_total",
    "Exception sweeps by outcome (completed, skipped)",
    ["outcome"]
)

sweep_duration_seconds = Histogram(
    "fulfillment_exception_sweep_duration_seconds",
    "Wall time of one exception sweep over all order types",
)

orders_completed_total = Counter(
    "fulfillment_orders_completed_total",
    "Orders moved to COMPLETE by the exception sweep",
    ["order_type", "path"]  # path: single_line, consolidated
)

auto_repicks_total = Counter(
    "fulfillment_auto_repicks_total",
    "Picks automatically sent back for a repick",
    ["order_type", "path"]
)

auto_repicks_exhausted_total = Counter(
    "fulfillment_auto_repicks_exhausted_total",
    "Repick-eligible items skipped because their straggle budget is spent",
    ["order_type", "path"]
)


# ==== COLLABORATOR METRICS ==== #

collaborator_failures_total = Counter(
    "fulfillment_collaborator_failures_total",
    "Collaborator calls that failed after retries and were degraded",
    ["operation"]
)


# ==== PICK COMPLETION METRICS ==== #

pick_completion_notifications_total = Counter(
    "fulfillment_pick_completion_notifications_total",
    "Pick completion notifications by decode outcome",
    ["outcome"]  # decoded, repaired, dropped
)

pick_completion_items_updated_total = Counter(
    "fulfillment_pick_completion_items_updated_total",
    "Order items updated from pick completion notifications",
    ["item_status"]
)


def init_metrics(port: int | None = None) -> None:
    """Expose the default registry over HTTP when a port is given."""
    if port:
        start_http_server(port)


def render_metrics() -> bytes:
    """Render the default registry in the Prometheus text format."""
    return generate_latest(REGISTRY)
