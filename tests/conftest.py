"""Shared fixtures for yzaccesslog tests."""

import datetime
from typing import Any, Callable, Dict

import pytest

from yzaccesslog.core.formatter import LogFormatterParams

FIXED_TS = datetime.datetime(2024, 3, 11, 10, 1, 2, tzinfo=datetime.timezone.utc)
FIXED_TS_CLF = "11/Mar/2024:10:01:02 +0000"


@pytest.fixture
def http_scope() -> Callable[..., Dict[str, Any]]:
    """Factory for minimal ASGI HTTP scopes."""

    def _make(path: str = "/", method: str = "GET", headers=None, **extra: Any) -> Dict[str, Any]:
        scope = {
            "type": "http",
            "method": method,
            "path": path,
            "raw_path": path.encode(),
            "query_string": b"",
            "http_version": "1.1",
            "headers": headers or [],
            "client": ("1.2.3.4", 5555),
        }
        scope.update(extra)
        return scope

    return _make


@pytest.fixture
def make_params() -> Callable[..., LogFormatterParams]:
    """Factory for LogFormatterParams with a fixed timestamp."""

    def _make(**overrides: Any) -> LogFormatterParams:
        values = {
            "method": "GET",
            "proto": "HTTP/1.1",
            "request_uri": "/foo",
            "remote_addr": "1.2.3.4:5555",
            "host": "example.com",
            "path": "/foo",
            "status_code": 200,
            "size": 512,
            "timestamp": FIXED_TS,
        }
        values.update(overrides)
        return LogFormatterParams(**values)

    return _make


@pytest.fixture
def fixed_duration(monkeypatch: pytest.MonkeyPatch) -> str:
    """Pin the upstream latency rendering to ``1ms``."""
    monkeypatch.setattr("yzaccesslog.core.formatter.duration2str", lambda ns: "1ms")
    return "1ms"
