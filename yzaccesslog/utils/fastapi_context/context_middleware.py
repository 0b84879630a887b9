#!/usr/bin/python3.7+
# -*- coding:utf-8 -*-
"""
@date: 2024-03-11
@desc: 访问日志中间件
"""
import datetime
import time
from typing import Any, Callable, MutableMapping, Optional

from starlette.types import ASGIApp, Message, Receive, Scope, Send

from yzaccesslog.core.formatter import LogFormatterParams, write_access_log
from yzaccesslog.core.ignore import Ignores
from yzaccesslog.logger import get_logger
from yzaccesslog.utils.fastapi_context.fastapi_context import (
    _request_scope_context_storage,
    attach_context,
    record_error,
)

__all__ = [
    "AccessLogMiddleware",
]

logger = get_logger(__name__)


class AccessLogMiddleware:
    """
    Attach a request context, run the app, then write one access line.

    The line is built after the app returns, so whatever the router and the
    error path recorded on the context is visible to the formatter.
    """

    def __init__(
            self,
            app: ASGIApp,
            writer: Any = None,
            ignores: Optional[Ignores] = None,
            trace_header: Optional[str] = None,
            formatter: Callable = write_access_log,
    ) -> None:
        if writer is None or ignores is None or trace_header is None:
            from yzaccesslog.default_settings import default_setting as settings
            if writer is None:
                from yzaccesslog.utils.custom_log.logger import get_access_writer
                writer = get_access_writer(settings.ACCESS_LOG_LOGGER)
            if ignores is None:
                ignores = Ignores.from_settings(settings)
            if trace_header is None:
                trace_header = settings.ACCESS_LOG_TRACE_HEADER
        self.app = app
        self.writer = writer
        self.ignores = ignores
        self.trace_header = trace_header
        self.formatter = formatter

    async def __call__(
            self, scope: Scope, receive: Receive, send: Send
    ) -> None:
        if scope["type"] not in ("http",):  # pragma: no cover
            await self.app(scope, receive, send)
            return

        timestamp = datetime.datetime.now().astimezone()
        started_ns = time.perf_counter_ns()
        ctx = attach_context(scope)
        token = _request_scope_context_storage.set(ctx)
        response: MutableMapping[str, Any] = {"status": 0, "size": 0}

        async def send_wrapper(message: Message) -> None:
            if message["type"] == "http.response.start":
                response["status"] = message["status"]
            elif message["type"] == "http.response.body":
                response["size"] += len(message.get("body", b""))
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        except Exception as exc:
            if ctx.error is None:
                record_error(scope, exc)
            if not response["status"]:
                response["status"] = 500
            raise
        finally:
            try:
                params = LogFormatterParams.from_scope(
                    scope, response["status"], response["size"], timestamp,
                    started_ns=started_ns, ctx=ctx, trace_header=self.trace_header,
                )
                self.formatter(self.writer, params, self.ignores)
            except Exception as exc:
                # 日志失败不能影响请求处理
                logger.debug("access log dropped: %s", exc)
            finally:
                _request_scope_context_storage.reset(token)
