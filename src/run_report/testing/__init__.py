"""Run recording, report rendering and scenario glue for UI test runs."""

from .login_scenario import LoginPage, LoginScenario
from .page import Page, PageError
from .recorder import (
    RecorderStateError,
    Run,
    RunRecorder,
    Status,
    Step,
    Test,
)
from .report import (
    ReportRenderer,
    ReportSummary,
    ReportWriteError,
    build_report_data,
    render_html,
    render_json,
)
from .screenshot import failure_screenshot_path, take_screenshot

__all__ = [
    'LoginPage',
    'LoginScenario',
    'Page',
    'PageError',
    'RecorderStateError',
    'ReportRenderer',
    'ReportSummary',
    'ReportWriteError',
    'Run',
    'RunRecorder',
    'Status',
    'Step',
    'Test',
    'build_report_data',
    'failure_screenshot_path',
    'render_html',
    'render_json',
    'take_screenshot',
]
