"""Login page object and the recorded login scenario.

The scenario runs three steps against the login page (navigate, submit
credentials, verify the secure area) and reports each one to a
:class:`RunRecorder`. The first failing step captures a full-page
screenshot, is recorded as a failure and ends the scenario.

Usage::

    recorder = RunRecorder('Login test (chromium)')
    scenario = LoginScenario(page, recorder, settings.login, settings.screenshots_dir)
    passed = scenario.run()
"""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Callable

from ..settings import LoginSettings
from .page import LOAD_STATE_NETWORK_IDLE, Page, PageError
from .recorder import RunRecorder
from .screenshot import failure_screenshot_path, take_screenshot

logger = logging.getLogger(__name__)

USERNAME_INPUT = '#username'
PASSWORD_INPUT = '#password'
SUBMIT_BUTTON = 'button[type="submit"]'
LOGOUT_LINK = 'a[href="/logout"]'
FLASH_SUCCESS = '.flash.success'
FLASH_ERROR = '.flash.error'
FLASH_TIMEOUT_MS = 5000


class LoginPage:
    """Page object for a username/password login form."""

    def __init__(self, page: Page, login_url: str) -> None:
        self._page = page
        self.login_url = login_url

    def navigate(self) -> None:
        self._page.navigate(self.login_url)

    def login(self, username: str, password: str) -> None:
        """Fill the form, submit it and wait for the network to settle."""
        self._page.fill(USERNAME_INPUT, username)
        self._page.fill(PASSWORD_INPUT, password)
        self._page.click(SUBMIT_BUTTON)
        self._page.wait_for_load_state(LOAD_STATE_NETWORK_IDLE)

    def verify_login_success(self) -> bool:
        """True once the success banner shows and a logout link is visible."""
        self._page.wait_for_locator(FLASH_SUCCESS, FLASH_TIMEOUT_MS)
        return self._page.is_visible(LOGOUT_LINK)

    def verify_login_failed(self) -> bool:
        """True when the error banner shows and the form is still there."""
        self._page.wait_for_locator(FLASH_ERROR, FLASH_TIMEOUT_MS)
        return self._page.is_visible(SUBMIT_BUTTON)

    def logout(self) -> None:
        self._page.click(LOGOUT_LINK)
        self._page.wait_for_load_state(LOAD_STATE_NETWORK_IDLE)


class LoginScenario:
    """Recorded happy-path login scenario.

    Args:
        page: Page capability to drive.
        recorder: Recorder receiving the test and its steps.
        login: Target URL and credentials.
        screenshot_dir: Where failure screenshots are written.
        test_name: Name of the recorded test.
        screenshot_prefix: Prepended to screenshot names so several
            engines in one process do not overwrite each other.
        monotonic: Clock for the test duration (tests).
    """

    def __init__(
        self,
        page: Page,
        recorder: RunRecorder,
        login: LoginSettings,
        screenshot_dir: Path,
        *,
        test_name: str = 'Login',
        screenshot_prefix: str = '',
        monotonic: Callable[[], float] = time.monotonic,
    ) -> None:
        self._page = page
        self._login_page = LoginPage(page, login.url)
        self._recorder = recorder
        self._login = login
        self._screenshot_dir = screenshot_dir
        self._test_name = test_name
        self._screenshot_prefix = screenshot_prefix
        self._monotonic = monotonic

    def run(self) -> bool:
        """Execute the scenario; True when every step passed."""
        self._recorder.start_test(self._test_name)
        start = self._monotonic()

        passed = (
            self._step(
                'Navigate to login page', 'navigate',
                self._login_page.navigate,
                success='Login page loaded',
                failure='Could not open the login page',
            )
            and self._step(
                'Submit credentials', 'login',
                lambda: self._login_page.login(
                    self._login.username, self._login.password,
                ),
                success='Credentials submitted',
                failure='Login form submission failed',
            )
            and self._step(
                'Verify login result', 'verification',
                self._verify,
                success='Secure area reached',
                failure='Login verification failed',
            )
        )

        duration = self._monotonic() - start
        if passed:
            self._recorder.end_test_success('Login test passed', duration)
        else:
            self._recorder.end_test_failure('Login test failed', duration)
        logger.info(
            'Login scenario %s in %.2fs',
            'passed' if passed else 'failed', duration,
        )
        return passed

    def _verify(self) -> None:
        if not self._login_page.verify_login_success():
            raise PageError(f'Logout link {LOGOUT_LINK} is not visible')

    def _step(
        self,
        name: str,
        scenario: str,
        action: Callable[[], None],
        *,
        success: str,
        failure: str,
    ) -> bool:
        self._recorder.start_step(name)
        try:
            action()
        except PageError as exc:
            logger.warning('Step %r failed: %s', name, exc)
            shot = take_screenshot(
                self._page,
                failure_screenshot_path(
                    self._screenshot_dir, f'{self._screenshot_prefix}{scenario}',
                ),
            )
            self._recorder.end_step_failure(failure, exc, shot)
            return False
        self._recorder.end_step_success(success)
        return True
