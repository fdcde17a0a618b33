"""Command-line entry point.

Usage::

    # Clean old artifacts, run the login scenario on every configured
    # engine and write one report per engine.
    run-report run --config config/config.json

    # Run on two engines one after another, JSON reports.
    run-report run --engine chromium --engine firefox --format json

    # Retention only.
    run-report cleanup --output-root ./artifacts

Exit codes: 0 when every engine passed, 1 when a scenario failed or a
report could not be written, 2 on configuration errors.
"""

from __future__ import annotations

import argparse
import sys
from contextlib import AbstractContextManager
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Callable, Sequence

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import sync_playwright

from .observability import (
    configure_logging,
    get_logger,
    run_id_ctx,
    write_metrics_file,
)
from .retention import CategoryResult, cleanup
from .settings import BrowserSettings, ConfigError, RunSettings, load_settings
from .testing.browser import launch_browser_session
from .testing.login_scenario import LoginScenario
from .testing.page import Page, PageError
from .testing.recorder import RunRecorder
from .testing.report import REPORT_FORMATS, ReportRenderer, ReportWriteError

logger = get_logger(__name__)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_CONFIG = 2

# (browser settings, videos dir) -> context manager yielding a Page.
SessionFactory = Callable[[BrowserSettings, Path], AbstractContextManager[Page]]


@dataclass(frozen=True, slots=True)
class EngineOutcome:
    """Result of one engine's run."""

    engine: str
    passed: bool
    report_path: Path | None
    error: str | None = None


class _PlaywrightSession:
    """Default session factory: one Playwright driver per engine run."""

    def __init__(self, browser: BrowserSettings, video_dir: Path) -> None:
        self._browser = browser
        self._video_dir = video_dir
        self._pw_cm = None
        self._session_cm = None

    def __enter__(self) -> Page:
        self._pw_cm = sync_playwright()
        try:
            playwright = self._pw_cm.__enter__()
        except PlaywrightError as exc:
            raise PageError(f'Playwright driver failed to start: {exc.message}') from exc
        try:
            self._session_cm = launch_browser_session(
                playwright, self._browser, self._video_dir,
            )
            return self._session_cm.__enter__()
        except BaseException:
            self._pw_cm.__exit__(*sys.exc_info())
            raise

    def __exit__(self, *exc_info) -> None:
        try:
            if self._session_cm is not None:
                self._session_cm.__exit__(*exc_info)
        finally:
            self._pw_cm.__exit__(*exc_info)


def run_engine(
    engine: str,
    settings: RunSettings,
    *,
    fmt: str = 'html',
    strict: bool = False,
    multi_engine: bool = False,
    session_factory: SessionFactory = _PlaywrightSession,
) -> EngineOutcome:
    """Run the login scenario on one engine and render its report.

    A report is written even when the browser cannot be started or
    fails while the session is open or closing.
    """
    token = run_id_ctx.set(engine)
    try:
        recorder = RunRecorder(f'Login test ({engine})', strict=strict)
        browser = replace(settings.browser, type=engine)
        test_name = f'Login ({engine})' if multi_engine else 'Login'
        error: str | None = None

        try:
            with session_factory(browser, settings.videos_dir) as page:
                passed = LoginScenario(
                    page,
                    recorder,
                    settings.login,
                    settings.screenshots_dir,
                    test_name=test_name,
                    screenshot_prefix=f'{engine}_' if multi_engine else '',
                ).run()
        except (PageError, PlaywrightError) as exc:
            logger.error('browser_session_failed', engine=engine, error=str(exc))
            passed = False
            error = str(exc)
            if recorder.current_test is None:
                recorder.start_test(test_name)
            recorder.end_test_failure(f'Browser session failed: {exc}', 0.0)

        renderer = ReportRenderer(settings.reports_dir, fmt=fmt)
        try:
            report_path: Path | None = renderer.render(recorder.run)
        except ReportWriteError as exc:
            logger.error('report_not_written', engine=engine, error=str(exc))
            return EngineOutcome(engine, False, None, str(exc))
        return EngineOutcome(engine, passed, report_path, error)
    finally:
        run_id_ctx.reset(token)


def run_cleanup(settings: RunSettings, *, fmt: str = 'html') -> list[CategoryResult]:
    """Best-effort retention over the settings' artifact directories."""
    return cleanup(settings.retention_categories(report_format=fmt))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='run-report',
        description='Run recorded UI scenarios and manage their artifacts',
    )
    parser.add_argument(
        '--log-level', default=None, help='Log level (default: LOG_LEVEL or INFO)',
    )
    parser.add_argument(
        '--json-logs', action='store_true', help='Emit JSON log lines',
    )
    sub = parser.add_subparsers(dest='command', required=True)

    run = sub.add_parser('run', help='Run the login scenario and write reports')
    _add_common(run)
    run.add_argument(
        '--engine', action='append', default=None,
        help='Browser engine to run (repeatable; default: from config)',
    )
    run.add_argument(
        '--skip-cleanup', action='store_true',
        help='Do not apply retention before the run',
    )
    run.add_argument(
        '--strict', action='store_true',
        help='Fail loudly on recorder misuse instead of ignoring it',
    )
    run.add_argument(
        '--metrics-file', type=Path, default=None,
        help='Write Prometheus textfile metrics here after the run',
    )

    clean = sub.add_parser('cleanup', help='Apply artifact retention only')
    _add_common(clean)
    return parser


def _add_common(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        '--config', type=Path, default=None,
        help='Path to config JSON (default: RUN_REPORT_CONFIG or config/config.json)',
    )
    parser.add_argument(
        '--output-root', type=Path, default=None,
        help='Directory holding reports/, screenshots/ and videos/',
    )
    parser.add_argument(
        '--format', choices=REPORT_FORMATS, default='html',
        help='Report format, also selects which reports retention keeps (default: html)',
    )


def main(
    argv: Sequence[str] | None = None,
    *,
    session_factory: SessionFactory = _PlaywrightSession,
) -> int:
    """CLI entry point; returns the process exit code."""
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(level=args.log_level, json_output=args.json_logs or None)

    command = args.command
    try:
        settings = load_settings(args.config)
    except ConfigError as exc:
        logger.error('config_invalid', error=str(exc))
        print(f'Error: {exc}', file=sys.stderr)
        return EXIT_CONFIG

    if args.output_root is not None:
        settings = replace(settings, output_root=args.output_root)

    fmt = args.format

    if command == 'cleanup':
        results = run_cleanup(settings, fmt=fmt)
        for result in results:
            status = f'error: {result.error}' if result.error else (
                f'deleted {len(result.deleted)}, kept {result.kept}, '
                f'failed {len(result.failed)}'
            )
            print(f'{result.category}: {status}')
        return EXIT_OK if all(r.ok for r in results) else EXIT_FAILED

    engines = tuple(args.engine) if args.engine else settings.engine_list
    candidate = replace(settings, engines=engines)
    errors = candidate.validate()
    if errors:
        print('Error: ' + '; '.join(errors), file=sys.stderr)
        return EXIT_CONFIG

    if not args.skip_cleanup:
        # Problems are logged per category; they never block the run.
        run_cleanup(candidate, fmt=fmt)

    outcomes: list[EngineOutcome] = []
    for engine in engines:
        outcome = run_engine(
            engine,
            candidate,
            fmt=fmt,
            strict=args.strict,
            multi_engine=len(engines) > 1,
            session_factory=session_factory,
        )
        outcomes.append(outcome)
        verdict = 'PASSED' if outcome.passed else 'FAILED'
        where = outcome.report_path or 'no report written'
        print(f'[{engine}] {verdict}: {where}')

    logger.info(
        'run_complete',
        engines=list(engines),
        passed=sum(1 for o in outcomes if o.passed),
        failed=sum(1 for o in outcomes if not o.passed),
    )
    if args.metrics_file is not None:
        write_metrics_file(args.metrics_file)

    return EXIT_OK if all(o.passed for o in outcomes) else EXIT_FAILED


if __name__ == '__main__':
    raise SystemExit(main())
