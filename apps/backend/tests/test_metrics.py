"""
Unit tests for ingestion metrics.
"""
from prometheus_client import REGISTRY

import metrics


def sample(name, labels):
    return REGISTRY.get_sample_value(name, labels) or 0.0


def test_incr_listing():
    labels = {"source": "xing", "action": "imported"}
    before = sample("klaro_ingest_listings_total", labels)

    metrics.incr_listing("xing", "imported", count=3)
    metrics.incr_listing("xing", "imported", count=0)

    assert sample("klaro_ingest_listings_total", labels) == before + 3


def test_record_run_outcomes():
    outcomes = {
        "completed": {"runId": "run_1", "success": True, "budgetExhausted": False},
        "budget_exhausted": {"runId": "run_2", "success": True, "budgetExhausted": True},
        "failed": {"runId": "run_3", "success": False, "budgetExhausted": False},
    }
    before = {o: sample("klaro_ingest_runs_total", {"outcome": o}) for o in outcomes}
    observations = sample("klaro_ingest_run_duration_seconds_count", {})

    for summary in outcomes.values():
        metrics.record_run(summary, 12.5)

    for outcome in outcomes:
        assert sample("klaro_ingest_runs_total", {"outcome": outcome}) == before[outcome] + 1
    assert sample("klaro_ingest_run_duration_seconds_count", {}) == observations + 3


def test_incr_link_check():
    before = sample("klaro_link_checks_total", {"status": "stale"})

    metrics.incr_link_check("stale")

    assert sample("klaro_link_checks_total", {"status": "stale"}) == before + 1
