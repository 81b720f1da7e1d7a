"""
Prometheus metrics for ingestion runs and apply link checks.
"""
import logging
from typing import Dict

from prometheus_client import Counter, Histogram

logger = logging.getLogger(__name__)

listings_processed = Counter(
    'klaro_ingest_listings_total',
    'Listings handled by ingestion runs',
    ['source', 'action'],
)
runs_completed = Counter(
    'klaro_ingest_runs_total',
    'Ingestion runs by outcome',
    ['outcome'],
)
run_duration = Histogram(
    'klaro_ingest_run_duration_seconds',
    'Wall-clock duration of ingestion runs',
    buckets=(5, 15, 30, 60, 90, 120, 150, 300),
)
link_checks = Counter(
    'klaro_link_checks_total',
    'Apply link checks by result',
    ['status'],
)


def incr_listing(source: str, action: str, count: int = 1):
    """Count listings for one source and action (imported, updated, skipped, expired, error)."""
    if count > 0:
        listings_processed.labels(source=source, action=action).inc(count)


def record_run(summary: Dict, duration_seconds: float):
    """Record a finished run from its summary dict."""
    if not summary.get("success"):
        outcome = "failed"
    elif summary.get("budgetExhausted"):
        outcome = "budget_exhausted"
    else:
        outcome = "completed"

    runs_completed.labels(outcome=outcome).inc()
    run_duration.observe(duration_seconds)
    logger.info(f"[metrics] Run {summary.get('runId')} recorded: outcome={outcome}, duration={duration_seconds:.1f}s")


def incr_link_check(status: str):
    """Count one apply link check result (active, stale, error, unknown)."""
    link_checks.labels(status=status).inc()
