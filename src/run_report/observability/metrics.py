"""Prometheus metrics for run-report.

Counters cover the three core components: recorded tests/steps,
rendered reports and retention deletions. A run is a short-lived
process, so the metrics are exported as a node-exporter textfile
(:func:`write_metrics_file`) rather than served over HTTP.

Usage::

    from run_report.observability.metrics import STEPS_RECORDED_TOTAL

    STEPS_RECORDED_TOTAL.labels(status="Success").inc()
"""

from __future__ import annotations

from pathlib import Path

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    REGISTRY,
    Counter,
    generate_latest,
    write_to_textfile,
)

# ---------------------------------------------------------------------------
# Recorder metrics
# ---------------------------------------------------------------------------

STEPS_RECORDED_TOTAL = Counter(
    "run_report_steps_recorded_total",
    "Step status transitions recorded by the run recorder.",
    labelnames=["status"],
    registry=REGISTRY,
)

TESTS_RECORDED_TOTAL = Counter(
    "run_report_tests_recorded_total",
    "Test status transitions recorded by the run recorder.",
    labelnames=["status"],
    registry=REGISTRY,
)

# ---------------------------------------------------------------------------
# Report metrics
# ---------------------------------------------------------------------------

REPORTS_RENDERED_TOTAL = Counter(
    "run_report_reports_rendered_total",
    "Report documents written to disk by format.",
    labelnames=["format"],
    registry=REGISTRY,
)

# ---------------------------------------------------------------------------
# Retention metrics
# ---------------------------------------------------------------------------

RETENTION_FILES_DELETED_TOTAL = Counter(
    "run_report_retention_files_deleted_total",
    "Artifact files removed by retention cleanup.",
    labelnames=["category"],
    registry=REGISTRY,
)

RETENTION_DELETE_FAILURES_TOTAL = Counter(
    "run_report_retention_delete_failures_total",
    "Artifact files left in place after all delete retries failed.",
    labelnames=["category"],
    registry=REGISTRY,
)


def metrics_text() -> tuple[bytes, str]:
    """Generate Prometheus exposition text and content-type header."""
    return generate_latest(REGISTRY), CONTENT_TYPE_LATEST


def write_metrics_file(path: Path) -> Path:
    """Write the registry to *path* in the textfile-collector format."""
    path.parent.mkdir(parents=True, exist_ok=True)
    write_to_textfile(str(path), REGISTRY)
    return path
