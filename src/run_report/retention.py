"""Retention cleanup for generated test artifacts.

Keeps only the most recent files of each artifact category (reports,
screenshots, videos) so repeated runs do not fill the disk. Run it once
before any browser starts; deletion retries block the calling thread.

For every category the directory is scanned non-recursively, files are
matched by a case-insensitive extension suffix and sorted newest first,
and everything past ``keep_count`` is deleted. Deletion retries with a
fixed backoff because a browser may still hold a freshly written
screenshot or video open. A file that stays locked is logged and left
in place; it never aborts the cleanup.

Usage::

    results = cleanup(default_categories(Path.cwd()))
    for result in results:
        print(result.to_dict())
"""

from __future__ import annotations

import logging
import os
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterable

from .observability.metrics import (
    RETENTION_DELETE_FAILURES_TOTAL,
    RETENTION_FILES_DELETED_TOTAL,
)

logger = logging.getLogger(__name__)

MAX_DELETE_RETRIES = 3
RETRY_INTERVAL_SECONDS = 2.0


class RetentionError(OSError):
    """Raised when a category directory cannot be created or listed."""


@dataclass(frozen=True, slots=True)
class RetentionCategory:
    """How many of the newest matching files survive in a directory."""

    name: str
    directory: Path
    extension: str
    keep_count: int

    def __post_init__(self) -> None:
        if self.keep_count < 0:
            raise ValueError(
                f'keep_count must be >= 0 for {self.name!r}, '
                f'got {self.keep_count}'
            )

    def matches(self, filename: str) -> bool:
        return filename.lower().endswith(self.extension.lower())


@dataclass(slots=True)
class CategoryResult:
    """Outcome of cleaning one category."""

    category: str
    directory: str
    found: int = 0
    kept: int = 0
    deleted: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    created: bool = False
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict:
        return {
            'category': self.category,
            'directory': self.directory,
            'found': self.found,
            'kept': self.kept,
            'deleted': len(self.deleted),
            'failed': len(self.failed),
            'created': self.created,
            'error': self.error,
        }


def default_categories(root: Path) -> list[RetentionCategory]:
    """Reference retention policy: newest report, 3 screenshots, 1 video."""
    return [
        RetentionCategory('reports', root / 'reports', '.html', 1),
        RetentionCategory('screenshots', root / 'screenshots', '.png', 3),
        RetentionCategory('videos', root / 'videos', '.webm', 1),
    ]


def cleanup(
    categories: Iterable[RetentionCategory],
    *,
    max_retries: int = MAX_DELETE_RETRIES,
    retry_interval: float = RETRY_INTERVAL_SECONDS,
    sleep: Callable[[float], None] = time.sleep,
) -> list[CategoryResult]:
    """Apply retention to every category, isolating failures.

    A :class:`RetentionError` in one category is logged and recorded on
    that category's result; the remaining categories are still cleaned.
    """
    results: list[CategoryResult] = []
    for category in categories:
        try:
            result = cleanup_directory(
                category,
                max_retries=max_retries,
                retry_interval=retry_interval,
                sleep=sleep,
            )
        except RetentionError as exc:
            logger.error(
                'Retention cleanup failed for %s: %s', category.name, exc,
            )
            result = CategoryResult(
                category=category.name,
                directory=str(category.directory),
                error=str(exc),
            )
        results.append(result)

    logger.info(
        'Retention cleanup complete',
        extra={
            'operation': 'retention_cleanup',
            'deleted': sum(len(r.deleted) for r in results),
            'failed': sum(len(r.failed) for r in results),
            'errors': sum(1 for r in results if not r.ok),
        },
    )
    return results


def cleanup_directory(
    category: RetentionCategory,
    *,
    max_retries: int = MAX_DELETE_RETRIES,
    retry_interval: float = RETRY_INTERVAL_SECONDS,
    sleep: Callable[[float], None] = time.sleep,
) -> CategoryResult:
    """Delete all but the ``keep_count`` newest matching files.

    Raises:
        RetentionError: If the directory cannot be created or listed.
    """
    directory = category.directory
    result = CategoryResult(category=category.name, directory=str(directory))
    logger.info(
        'Cleaning %s: keeping %d newest %s file(s)',
        directory, category.keep_count, category.extension,
    )

    if not directory.exists():
        try:
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise RetentionError(
                f'Cannot create directory {directory}: {exc}'
            ) from exc
        result.created = True
        return result

    candidates = _scan(category)
    result.found = len(candidates)
    if len(candidates) <= category.keep_count:
        result.kept = len(candidates)
        logger.info(
            '%s holds %d file(s), within the limit of %d',
            directory, len(candidates), category.keep_count,
        )
        return result

    result.kept = category.keep_count
    for path in candidates[category.keep_count:]:
        if _delete_with_retry(path, max_retries, retry_interval, sleep):
            result.deleted.append(str(path))
            RETENTION_FILES_DELETED_TOTAL.labels(category=category.name).inc()
        else:
            result.failed.append(str(path))
            RETENTION_DELETE_FAILURES_TOTAL.labels(category=category.name).inc()
    return result


def _scan(category: RetentionCategory) -> list[Path]:
    """List matching regular files, newest first (ties by name)."""
    entries: list[tuple[float, str, Path]] = []
    try:
        with os.scandir(category.directory) as it:
            for entry in it:
                if not entry.is_file(follow_symlinks=False):
                    continue
                if not category.matches(entry.name):
                    continue
                try:
                    mtime = entry.stat(follow_symlinks=False).st_mtime
                except OSError:
                    # Vanished or unreadable between listing and stat.
                    continue
                entries.append((mtime, entry.name, Path(entry.path)))
    except OSError as exc:
        raise RetentionError(
            f'Cannot read directory {category.directory}: {exc}'
        ) from exc

    entries.sort(key=lambda e: (-e[0], e[1]))
    return [path for _, _, path in entries]


def _delete_with_retry(
    path: Path,
    max_retries: int,
    retry_interval: float,
    sleep: Callable[[float], None],
) -> bool:
    """Delete *path*, retrying while it is locked. True if it is gone."""
    last_error: OSError | None = None
    for attempt in range(1, max_retries + 1):
        try:
            # Opening read/write fails while another process holds an
            # exclusive lock (Windows share modes).
            with open(path, 'r+b'):
                pass
            path.unlink()
        except FileNotFoundError:
            logger.debug('%s already removed', path)
            return True
        except OSError as exc:
            last_error = exc
            logger.info(
                '%s may be in use, retrying (%d/%d): %s',
                path, attempt, max_retries, exc,
            )
            if attempt < max_retries:
                sleep(retry_interval)
            continue

        if not path.exists():
            logger.info('Deleted %s', path)
            return True

    logger.warning(
        'Could not delete %s after %d attempts: %s',
        path, max_retries, last_error,
    )
    return False
