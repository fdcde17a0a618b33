"""Pytest configuration for run_report tests."""
import sys
from pathlib import Path

# Add src/ to path for src-layout imports
_PROJECT_ROOT = Path(__file__).parent.parent
_SRC = _PROJECT_ROOT / 'src'
if str(_SRC) not in sys.path:
    sys.path.insert(0, str(_SRC))

import pytest

from run_report.testing.page import PageError


class FakePage:
    """In-memory Page capability.

    ``failures`` maps a method name to the PageError it should raise;
    ``visible`` overrides is_visible per selector (default True).
    """

    def __init__(
        self,
        *,
        failures: dict[str, PageError] | None = None,
        visible: dict[str, bool] | None = None,
        screenshot_error: PageError | None = None,
    ) -> None:
        self.failures = failures or {}
        self.visible = visible or {}
        self.screenshot_error = screenshot_error
        self.calls: list[tuple] = []

    def _call(self, name: str, *args) -> None:
        self.calls.append((name, *args))
        if name in self.failures:
            raise self.failures[name]

    def navigate(self, url):
        self._call('navigate', url)

    def fill(self, selector, value):
        self._call('fill', selector, value)

    def click(self, selector):
        self._call('click', selector)

    def wait_for_load_state(self, state='networkidle'):
        self._call('wait_for_load_state', state)

    def wait_for_locator(self, selector, timeout_ms):
        self._call('wait_for_locator', selector, timeout_ms)

    def is_visible(self, selector):
        self._call('is_visible', selector)
        return self.visible.get(selector, True)

    def screenshot(self, path, full_page=True):
        self.calls.append(('screenshot', path, full_page))
        if self.screenshot_error is not None:
            raise self.screenshot_error
        Path(path).write_bytes(b'\x89PNG fake')


@pytest.fixture
def fake_page_cls():
    """The FakePage class, for tests that need several configured pages."""
    return FakePage


@pytest.fixture
def fake_page():
    return FakePage()


@pytest.fixture
def artifacts_root(tmp_path):
    """Temporary output root holding reports/, screenshots/, videos/."""
    root = tmp_path / 'artifacts'
    root.mkdir()
    return root
