#!/usr/bin/python3.7+
# -*- coding:utf-8 -*-
"""
@date: 2024-03-11
@desc: 请求上下文：记录转发的后端地址和请求处理的最终错误

One ``RequestContext`` is created per request and shared by reference: it is
kept on the ASGI scope (``request.state.access_log_context``) and in a
context variable, so the router, the error path and the access logger all
see the same object even when they hold different request wrappers.
"""
from contextvars import ContextVar
from dataclasses import dataclass
from typing import Any, MutableMapping, Optional

from starlette.requests import HTTPConnection

__all__ = [
    "RequestContext",
    "attach_context",
    "context",
    "get_context",
    "read_backend",
    "read_error",
    "record_backend",
    "record_error",
]

STATE_KEY = "access_log_context"

_request_scope_context_storage: ContextVar[Optional["RequestContext"]] = ContextVar(
    "yzaccesslog_context", default=None
)


@dataclass
class RequestContext:
    error: Optional[BaseException] = None
    backend: Optional[str] = None


def _scope_of(request) -> Optional[MutableMapping[str, Any]]:
    if request is None:
        return None
    if isinstance(request, HTTPConnection):
        return request.scope
    return request


def attach_context(scope: MutableMapping[str, Any]) -> RequestContext:
    """Put a fresh, empty context on ``scope`` and return it."""
    ctx = RequestContext()
    scope.setdefault("state", {})[STATE_KEY] = ctx
    return ctx


def get_context(request=None) -> Optional[RequestContext]:
    """
    Context of ``request`` (a Starlette request or an ASGI scope); with no
    request, the one bound to the current task.
    """
    scope = _scope_of(request)
    if scope is not None:
        state = scope.get("state")
        if state is not None and STATE_KEY in state:
            return state[STATE_KEY]
    return _request_scope_context_storage.get()


def record_backend(request, backend):
    """
    Remember which upstream serves this request.

    :param backend: ``str`` or a URL object, stored as ``str(backend)``
    :return: the same request
    """
    ctx = get_context(request)
    if ctx is not None:
        ctx.backend = str(backend)
    return request


def record_error(request, error: BaseException):
    # 多次调用时以最后一次为准
    ctx = get_context(request)
    if ctx is not None:
        ctx.error = error


def read_backend(request=None) -> Optional[str]:
    ctx = get_context(request)
    return ctx.backend if ctx is not None else None


def read_error(request=None) -> Optional[BaseException]:
    ctx = get_context(request)
    return ctx.error if ctx is not None else None


class _Context(object):
    """Accessor for the context bound to the current request."""

    def exists(self) -> bool:
        return _request_scope_context_storage.get() is not None

    @property
    def data(self) -> dict:
        ctx = _request_scope_context_storage.get()
        if ctx is None:
            return {}
        return {"backend": ctx.backend, "error": ctx.error}


context = _Context()
