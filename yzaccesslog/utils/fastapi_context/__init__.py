#!/usr/bin/python3.7+
# -*- coding:utf-8 -*-
"""
@date: 2024-03-11
@desc:
请求上下文与访问日志中间件
参考
https://github.com/tomwojcik/starlette-context
https://docs.python.org/zh-cn/3.7/library/contextvars.html#module-contextvars
"""
from .fastapi_context import (
    RequestContext,
    attach_context,
    context,
    get_context,
    read_backend,
    read_error,
    record_backend,
    record_error,
)
from .context_middleware import AccessLogMiddleware
