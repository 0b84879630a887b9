#!/usr/bin/python3.7+
# -*- coding:utf-8 -*-
"""
@date: 2024-03-11
@desc: 反向代理的访问日志：Common Log Format + XFF/host/upstream/trace/err
"""
from yzaccesslog.core.escape import append_quoted, quote
from yzaccesslog.core.formatter import (
    LogFormatterParams,
    build_common_log_line,
    build_log_line,
    write_access_log,
)
from yzaccesslog.core.ignore import IgnorePatternError, Ignores, ignore, is_ignored
from yzaccesslog.utils.fastapi_context import (
    AccessLogMiddleware,
    RequestContext,
    attach_context,
    read_backend,
    read_error,
    record_backend,
    record_error,
)

__version__ = "1.0.0"

__all__ = [
    "AccessLogMiddleware",
    "IgnorePatternError",
    "Ignores",
    "LogFormatterParams",
    "RequestContext",
    "append_quoted",
    "attach_context",
    "build_common_log_line",
    "build_log_line",
    "ignore",
    "is_ignored",
    "quote",
    "read_backend",
    "read_error",
    "record_backend",
    "record_error",
    "write_access_log",
]
