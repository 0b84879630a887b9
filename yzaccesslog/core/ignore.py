#!/usr/bin/python3.7+
# -*- coding:utf-8 -*-
"""
@date: 2024-03-11
@desc: 不记录访问日志的路径
"""
import re
import threading
from typing import Iterable, Pattern, Tuple

from yzaccesslog.logger import get_logger

__all__ = [
    "IgnorePatternError",
    "Ignores",
    "default_ignores",
    "ignore",
    "is_ignored",
]

logger = get_logger(__name__)


class IgnorePatternError(ValueError):
    """配置的忽略规则不是合法的正则表达式"""

    def __init__(self, pattern: str, error: re.error):
        self.pattern = pattern
        self.error = error
        super().__init__(f'invalid ignore pattern "{pattern}": {error}')


class Ignores(object):
    """
    Append-only set of path patterns.

    Readers never lock: ``add_pattern`` publishes a new tuple under a lock,
    so a concurrent ``is_ignored`` sees either the old or the new full set.
    """

    def __init__(self, patterns: Iterable[str] = ()):
        self._patterns: Tuple[Pattern, ...] = ()
        self._lock = threading.Lock()
        for pattern in patterns:
            self.add_pattern(pattern)

    @classmethod
    def from_settings(cls, settings=None) -> "Ignores":
        if settings is None:
            from yzaccesslog.default_settings import default_setting as settings
        ignores = cls(settings.ACCESS_LOG_IGNORE_PATTERNS)
        if settings.ACCESS_LOG_IGNORE_HEALTH:
            from yzaccesslog.utils.health_views import HEALTH_IGNORE_PATTERN
            ignores.add_pattern(HEALTH_IGNORE_PATTERN)
        return ignores

    @property
    def patterns(self) -> Tuple[Pattern, ...]:
        return self._patterns

    def add_pattern(self, pattern: str) -> Pattern:
        try:
            compiled = re.compile(pattern)
        except re.error as exc:
            raise IgnorePatternError(pattern, exc) from exc
        with self._lock:
            self._patterns = self._patterns + (compiled,)
        logger.debug("access log ignores %r", pattern)
        return compiled

    def is_ignored(self, path: str) -> bool:
        for regex in self._patterns:
            if regex.search(path):
                return True
        return False

    def __len__(self):
        return len(self._patterns)


default_ignores = Ignores()


def ignore(pattern: str) -> Pattern:
    """Register ``pattern`` on the process-wide ``default_ignores``."""
    return default_ignores.add_pattern(pattern)


def is_ignored(path: str) -> bool:
    return default_ignores.is_ignored(path)
