"""Run configuration: browser, login target, output locations.

``RunSettings`` is a plain frozen dataclass so tests can build it
directly. :func:`load_settings` reads it from JSON; when the config file
does not exist yet it is created with the defaults, which are then used.

Expected JSON schema (every key optional)::

    {
      "browser": {"type": "chromium", "headless": false,
                  "slowMo": 0, "maximized": true},
      "login": {"username": "tomsmith",
                "password": "SuperSecretPassword!",
                "url": "http://the-internet.herokuapp.com/login"},
      "outputRoot": ".",
      "engines": ["chromium"],
      "retention": {"reports": 1, "screenshots": 3, "videos": 1}
    }

Configuration sources (in order):
  1. Explicit ``data`` dict argument (tests, embedded config).
  2. Filesystem path via ``path`` argument.
  3. ``RUN_REPORT_CONFIG`` environment variable pointing to a file.
  4. Default path: ``config/config.json`` relative to CWD.

``RUN_REPORT_BROWSER`` and ``RUN_REPORT_HEADLESS`` override the browser
section after loading.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

from .retention import RetentionCategory

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = 'config/config.json'
_ENV_VAR = 'RUN_REPORT_CONFIG'

BROWSER_TYPES = ('chromium', 'firefox', 'webkit')

# Retention category name -> (directory name, extension).
ARTIFACT_DIRS: dict[str, tuple[str, str]] = {
    'reports': ('reports', '.html'),
    'screenshots': ('screenshots', '.png'),
    'videos': ('videos', '.webm'),
}
DEFAULT_RETENTION = {'reports': 1, 'screenshots': 3, 'videos': 1}


class ConfigError(ValueError):
    """Raised when the run configuration is invalid or unreadable."""


@dataclass(frozen=True, slots=True)
class BrowserSettings:
    type: str = 'chromium'
    """One of: chromium, firefox, webkit."""

    headless: bool = False
    slow_mo: int = 0
    """Delay in milliseconds inserted between browser operations."""

    maximized: bool = True
    """Use a 1920x1080 viewport."""


@dataclass(frozen=True, slots=True)
class LoginSettings:
    username: str = 'tomsmith'
    password: str = 'SuperSecretPassword!'
    """Never log this."""

    url: str = 'http://the-internet.herokuapp.com/login'


@dataclass(frozen=True, slots=True)
class RunSettings:
    """Configuration for one invocation of the runner.

    Attributes:
        browser: Browser launch options (engine used when ``engines``
            is empty).
        login: Login scenario target and credentials.
        output_root: Directory holding reports/, screenshots/, videos/.
        engines: Engines to run one after another.
        retention: Keep-count per artifact category.
    """

    browser: BrowserSettings = field(default_factory=BrowserSettings)
    login: LoginSettings = field(default_factory=LoginSettings)
    output_root: Path = Path('.')
    engines: tuple[str, ...] = ()
    retention: dict[str, int] = field(
        default_factory=lambda: dict(DEFAULT_RETENTION),
    )

    @property
    def reports_dir(self) -> Path:
        return self.output_root / ARTIFACT_DIRS['reports'][0]

    @property
    def screenshots_dir(self) -> Path:
        return self.output_root / ARTIFACT_DIRS['screenshots'][0]

    @property
    def videos_dir(self) -> Path:
        return self.output_root / ARTIFACT_DIRS['videos'][0]

    @property
    def engine_list(self) -> tuple[str, ...]:
        return self.engines or (self.browser.type,)

    def retention_categories(
        self, *, report_format: str = 'html',
    ) -> list[RetentionCategory]:
        """Retention categories in reports, screenshots, videos order."""
        return [
            RetentionCategory(
                name=name,
                directory=self.output_root / dirname,
                extension=f'.{report_format}' if name == 'reports' else ext,
                keep_count=self.retention.get(name, DEFAULT_RETENTION[name]),
            )
            for name, (dirname, ext) in ARTIFACT_DIRS.items()
        ]

    def validate(self) -> list[str]:
        """Return a list of configuration errors. Empty means valid."""
        errors: list[str] = []
        for engine in (self.browser.type, *self.engines):
            if engine not in BROWSER_TYPES:
                errors.append(
                    f'unknown browser type {engine!r}; '
                    f'expected one of {", ".join(BROWSER_TYPES)}'
                )
        if self.browser.slow_mo < 0:
            errors.append('browser.slowMo must be >= 0')
        if not self.login.url:
            errors.append('login.url is required')
        for name, keep in self.retention.items():
            if name not in ARTIFACT_DIRS:
                errors.append(f'unknown retention category {name!r}')
            elif keep < 0:
                errors.append(f'retention.{name} must be >= 0')
        return errors

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the JSON config schema."""
        return {
            'browser': {
                'type': self.browser.type,
                'headless': self.browser.headless,
                'slowMo': self.browser.slow_mo,
                'maximized': self.browser.maximized,
            },
            'login': {
                'username': self.login.username,
                'password': self.login.password,
                'url': self.login.url,
            },
            'outputRoot': str(self.output_root),
            'engines': list(self.engines),
            'retention': dict(self.retention),
        }


def load_settings(
    path: str | Path | None = None,
    *,
    data: dict | None = None,
    env: dict[str, str] | None = None,
) -> RunSettings:
    """Load run settings, writing a default config file if none exists.

    Args:
        path: Filesystem path to the JSON config.
        data: Pre-parsed config dict (takes precedence over path).
        env: Environment mapping (defaults to ``os.environ``).

    Returns:
        Validated RunSettings.

    Raises:
        ConfigError: If the config cannot be read, created or validated.
    """
    if env is None:
        env = dict(os.environ)

    if data is None:
        data = _load_or_create(_resolve_path(path, env))

    settings = _apply_env_overrides(_build_settings(data), env)

    errors = settings.validate()
    if errors:
        raise ConfigError('Invalid configuration: ' + '; '.join(errors))
    return settings


def _resolve_path(path: str | Path | None, env: dict[str, str]) -> Path:
    resolved = path
    if resolved is None:
        resolved = env.get(_ENV_VAR, '').strip() or None
    if resolved is None:
        resolved = DEFAULT_CONFIG_PATH
    return Path(resolved)


def _load_or_create(config_path: Path) -> dict:
    """Read the JSON config, creating it with defaults when missing."""
    if not config_path.exists():
        defaults = RunSettings().to_dict()
        try:
            config_path.parent.mkdir(parents=True, exist_ok=True)
            config_path.write_text(
                json.dumps(defaults, indent=2) + '\n', encoding='utf-8',
            )
        except OSError as exc:
            raise ConfigError(
                f'Cannot create default config at {config_path}: {exc}'
            ) from exc
        logger.info('Wrote default configuration to %s', config_path)
        return defaults

    try:
        return json.loads(config_path.read_text(encoding='utf-8'))
    except json.JSONDecodeError as exc:
        raise ConfigError(f'Invalid JSON in {config_path}: {exc}') from exc
    except OSError as exc:
        raise ConfigError(f'Cannot read config {config_path}: {exc}') from exc


def _section(data: dict, key: str) -> dict:
    value = data.get(key, {})
    if not isinstance(value, dict):
        raise ConfigError(f'{key} must be an object, got {type(value).__name__}')
    return value


def _typed(section: dict, key: str, expected: type, default: Any, where: str) -> Any:
    value = section.get(key, default)
    # bool is an int subclass; reject it where a number is expected.
    if not isinstance(value, expected) or (
        expected is int and isinstance(value, bool)
    ):
        raise ConfigError(
            f'{where}.{key} must be {expected.__name__}, '
            f'got {type(value).__name__}'
        )
    return value


def _build_settings(data: dict) -> RunSettings:
    if not isinstance(data, dict):
        raise ConfigError(
            f'Expected object at top level, got {type(data).__name__}'
        )

    defaults = RunSettings()
    b = _section(data, 'browser')
    login = _section(data, 'login')
    retention_raw = _section(data, 'retention')

    browser = BrowserSettings(
        type=_typed(b, 'type', str, defaults.browser.type, 'browser'),
        headless=_typed(b, 'headless', bool, defaults.browser.headless, 'browser'),
        slow_mo=_typed(b, 'slowMo', int, defaults.browser.slow_mo, 'browser'),
        maximized=_typed(b, 'maximized', bool, defaults.browser.maximized, 'browser'),
    )
    login_settings = LoginSettings(
        username=_typed(login, 'username', str, defaults.login.username, 'login'),
        password=_typed(login, 'password', str, defaults.login.password, 'login'),
        url=_typed(login, 'url', str, defaults.login.url, 'login'),
    )

    engines = data.get('engines', [])
    if not isinstance(engines, list) or not all(isinstance(e, str) for e in engines):
        raise ConfigError('engines must be a list of browser type names')

    retention = dict(DEFAULT_RETENTION)
    for name in retention_raw:
        retention[name] = _typed(retention_raw, name, int, 0, 'retention')

    output_root = _typed(data, 'outputRoot', str, '.', 'config')

    return RunSettings(
        browser=browser,
        login=login_settings,
        output_root=Path(output_root),
        engines=tuple(engines),
        retention=retention,
    )


def _apply_env_overrides(settings: RunSettings, env: dict[str, str]) -> RunSettings:
    browser = settings.browser
    engine = env.get('RUN_REPORT_BROWSER', '').strip()
    if engine:
        browser = replace(browser, type=engine)
    headless = env.get('RUN_REPORT_HEADLESS', '').strip().lower()
    if headless:
        browser = replace(browser, headless=headless in ('1', 'true', 'yes'))
    if browser is settings.browser:
        return settings
    return replace(settings, browser=browser)
