"""Observability infrastructure for run-report.

Provides structured logging and Prometheus counters for the recorder,
the report renderer and retention cleanup.

Quick start::

    from run_report.observability import configure_logging, get_logger
    from run_report.observability.metrics import write_metrics_file

    configure_logging()
    ...
    write_metrics_file(Path("metrics/run_report.prom"))
"""

from .logging import configure_logging, get_logger, run_id_ctx
from .metrics import metrics_text, write_metrics_file

__all__ = [
    "configure_logging",
    "get_logger",
    "metrics_text",
    "run_id_ctx",
    "write_metrics_file",
]
