"""Logging setup for the run-report CLI.

structlog renders both structlog events and records from stdlib module
loggers, so library code keeps ``logging.getLogger(__name__)`` while
the CLI emits key/value events. Output goes to stderr; stdout is
reserved for the per-engine result lines.

Every entry logged while an engine runs carries ``run_id=<engine>``
(set through :data:`run_id_ctx`).

Usage::

    configure_logging(level="DEBUG")
    get_logger(__name__).info("run_complete", passed=1, failed=0)
"""

from __future__ import annotations

import logging
import os
import sys
from contextvars import ContextVar

import structlog

run_id_ctx: ContextVar[str | None] = ContextVar("run_id", default=None)

_configured = False

# Loggers that flood DEBUG output with driver traffic.
_QUIET_LOGGERS = ("playwright", "asyncio")


class _StderrHandler(logging.StreamHandler):
    """Writes to whatever ``sys.stderr`` is at emit time."""

    def __init__(self) -> None:
        super().__init__(sys.stderr)

    @property
    def stream(self):
        return sys.stderr

    @stream.setter
    def stream(self, value) -> None:
        pass


def _add_run_id(logger, method_name: str, event_dict: dict) -> dict:
    rid = run_id_ctx.get()
    if rid is not None:
        event_dict.setdefault("run_id", rid)
    return event_dict


def _pre_chain(json_output: bool) -> list:
    # Console lines stay short; JSON lines get sortable UTC timestamps.
    stamper = (
        structlog.processors.TimeStamper(fmt="iso", utc=True)
        if json_output
        else structlog.processors.TimeStamper(fmt="%H:%M:%S", utc=False)
    )
    return [
        structlog.contextvars.merge_contextvars,
        _add_run_id,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        stamper,
        structlog.processors.format_exc_info,
    ]


def configure_logging(
    *,
    level: str | None = None,
    json_output: bool | None = None,
    force: bool = False,
) -> None:
    """Install the structlog formatter on the root logger.

    Later calls are ignored unless ``force`` is set.

    Args:
        level: Level name; falls back to ``LOG_LEVEL``, then INFO.
        json_output: JSON lines instead of console output; falls back
            to ``LOG_FORMAT=json``.
        force: Reconfigure even if logging was already set up.
    """
    global _configured
    if _configured and not force:
        return
    _configured = True

    level = (level or os.environ.get("LOG_LEVEL") or "INFO").upper()
    if json_output is None:
        json_output = os.environ.get("LOG_FORMAT", "").lower() == "json"

    pre_chain = _pre_chain(json_output)
    renderer = (
        structlog.processors.JSONRenderer()
        if json_output
        else structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())
    )

    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )

    handler = _StderrHandler()
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            # stdlib records carry their fields in ``extra=``.
            foreign_pre_chain=[*pre_chain, structlog.stdlib.ExtraAdder()],
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                renderer,
            ],
        )
    )

    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(getattr(logging, level, logging.INFO))
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)
