"""Recorded UI test runs: run recorder, report renderer, artifact retention.

Quick start::

    from run_report import ReportRenderer, RunRecorder, cleanup, default_categories

    cleanup(default_categories(Path.cwd()))
    recorder = RunRecorder('Login test')
    ...
    path = ReportRenderer(Path('reports')).render(recorder.run)
"""

from .retention import (
    CategoryResult,
    RetentionCategory,
    RetentionError,
    cleanup,
    cleanup_directory,
    default_categories,
)
from .settings import ConfigError, RunSettings, load_settings
from .testing.recorder import RecorderStateError, RunRecorder, Status
from .testing.report import ReportRenderer, ReportSummary, ReportWriteError

__all__ = [
    'CategoryResult',
    'ConfigError',
    'RecorderStateError',
    'ReportRenderer',
    'ReportSummary',
    'ReportWriteError',
    'RetentionCategory',
    'RetentionError',
    'RunRecorder',
    'RunSettings',
    'Status',
    'cleanup',
    'cleanup_directory',
    'default_categories',
    'load_settings',
]
