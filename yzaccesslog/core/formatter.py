#!/usr/bin/python3.7+
# -*- coding:utf-8 -*-
"""
@date: 2024-03-11
@desc: 代理访问日志的格式化

One line per request::

    1.2.3.4 - - [10/Oct/2000:13:55:36 -0700] "GET /foo --> http://10.0.0.5:8080 HTTP/1.1" 200 512 XFF(9.9.9.9) host(example.com) upstream(1.2ms)<trace> err: boom

The layout is consumed by downstream parsers; field order and escaping must
not change.
"""
import datetime
import io
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, List, MutableMapping, Optional, Tuple

from yzaccesslog.core.escape import append_quoted, to_bytes
from yzaccesslog.core.ignore import Ignores, default_ignores
from yzaccesslog.logger import get_logger
from yzaccesslog.utils.time_utils import clf_time, duration2str, timedelta2ns

if TYPE_CHECKING:
    from yzaccesslog.utils.fastapi_context.fastapi_context import RequestContext

__all__ = [
    "LogFormatterParams",
    "build_common_log_line",
    "build_log_line",
    "split_host_port",
    "write_access_log",
]

logger = get_logger(__name__)


def _local_now() -> datetime.datetime:
    return datetime.datetime.now().astimezone()


def _decode(raw: bytes) -> str:
    return raw.decode("utf-8", "surrogateescape")


def _header(headers: List[Tuple[bytes, bytes]], name: str) -> str:
    name = name.lower().encode("latin-1")
    for key, value in headers:
        if key.lower() == name:
            return _decode(value)
    return ""


def _proto(http_version: str) -> str:
    # 与 Go 的 req.Proto 一致: "2" -> "HTTP/2.0"
    if "." not in http_version:
        http_version = http_version + ".0"
    return "HTTP/" + http_version


def _remote_addr(scope: MutableMapping[str, Any]) -> str:
    client = scope.get("client")
    if not client:
        return ""
    host, port = client[0], client[1]
    if ":" in host:
        return "[%s]:%s" % (host, port)
    return "%s:%s" % (host, port)


def _username(scope: MutableMapping[str, Any]) -> Optional[str]:
    # starlette AuthenticationMiddleware 写入的 scope["user"]
    user = scope.get("user")
    if user is not None and getattr(user, "is_authenticated", False):
        return getattr(user, "display_name", None) or None
    return None


@dataclass
class LogFormatterParams:
    method: str
    proto: str
    request_uri: str
    remote_addr: str
    host: str = ""
    path: str = ""
    query_string: str = ""
    username: Optional[str] = None
    forwarded_for: str = ""
    trace_context: str = ""
    status_code: int = 0
    size: int = 0
    timestamp: datetime.datetime = field(default_factory=_local_now)
    started_ns: Optional[int] = None  # time.perf_counter_ns() at request start
    context: Optional["RequestContext"] = None

    @classmethod
    def from_scope(
            cls,
            scope: MutableMapping[str, Any],
            status_code: int,
            size: int,
            timestamp: datetime.datetime,
            started_ns: Optional[int] = None,
            ctx: Optional["RequestContext"] = None,
            trace_header: str = "X-Cloud-Trace-Context",
    ) -> "LogFormatterParams":
        """
        Build params from an ASGI HTTP scope. Raw bytes are decoded with
        ``surrogateescape`` so the line keeps the bytes the client sent.
        """
        headers = scope.get("headers") or []
        raw_path = scope.get("raw_path")
        query_string = _decode(scope.get("query_string") or b"")
        request_uri = _decode(raw_path) if raw_path else scope.get("path", "")
        if request_uri and query_string:
            request_uri = request_uri + "?" + query_string
        return cls(
            method=scope.get("method", ""),
            proto=_proto(scope.get("http_version", "1.1")),
            request_uri=request_uri,
            remote_addr=_remote_addr(scope),
            host=_header(headers, "host"),
            path=scope.get("path", ""),
            query_string=query_string,
            username=_username(scope),
            forwarded_for=_header(headers, "x-forwarded-for"),
            trace_context=_header(headers, trace_header) if trace_header else "",
            status_code=status_code,
            size=size,
            timestamp=timestamp,
            started_ns=started_ns,
            context=ctx,
        )

    @property
    def proto_major(self) -> int:
        try:
            return int(self.proto.split("/", 1)[1].split(".", 1)[0])
        except (IndexError, ValueError):
            return 0

    @property
    def url_request_uri(self) -> str:
        """Target rebuilt from the parsed path and query."""
        uri = self.path or "/"
        if self.query_string:
            uri = uri + "?" + self.query_string
        return uri

    def elapsed_ns(self) -> int:
        if self.started_ns is not None:
            return time.perf_counter_ns() - self.started_ns
        ts = self.timestamp
        now = datetime.datetime.now(ts.tzinfo) if ts.tzinfo else datetime.datetime.now()
        return timedelta2ns(now - ts)


class AddrError(ValueError):
    pass


def split_host_port(hostport: str) -> Tuple[str, str]:
    """
    Split ``host:port`` or ``[host]:port``.

    :raise AddrError: missing port, too many colons, stray brackets
    """
    i = hostport.rfind(":")
    if i < 0:
        raise AddrError("missing port in address: %r" % hostport)

    if hostport.startswith("["):
        end = hostport.find("]")
        if end < 0:
            raise AddrError("missing ']' in address: %r" % hostport)
        if end + 1 == len(hostport):
            raise AddrError("missing port in address: %r" % hostport)
        if end + 1 != i:
            # ']' 后面必须紧跟最后一个 ':'
            if hostport[end + 1] == ":":
                raise AddrError("too many colons in address: %r" % hostport)
            raise AddrError("missing port in address: %r" % hostport)
        host = hostport[1:end]
        j, k = 1, end + 1
    else:
        host = hostport[:i]
        if ":" in host:
            raise AddrError("too many colons in address: %r" % hostport)
        j, k = 0, 0
    if "[" in hostport[j:]:
        raise AddrError("unexpected '[' in address: %r" % hostport)
    if "]" in hostport[k:]:
        raise AddrError("unexpected ']' in address: %r" % hostport)
    return host, hostport[i + 1:]


def _request_target(params: LogFormatterParams) -> str:
    uri = params.request_uri
    # HTTP/2 的 CONNECT 请求用 authority 表示目标
    # https://httpwg.org/specs/rfc7540.html#CONNECT
    if params.proto_major == 2 and params.method == "CONNECT":
        uri = params.host
    if not uri:
        uri = params.url_request_uri
    ctx = params.context
    if ctx is not None and ctx.backend is not None:
        uri = uri + " --> " + ctx.backend
    return uri


def build_common_log_line(params: LogFormatterParams) -> bytearray:
    """
    ``host - user [time] "METHOD target PROTO" status size``
    """
    username = params.username or "-"

    try:
        host, _ = split_host_port(params.remote_addr)
    except AddrError:
        host = params.remote_addr

    uri = _request_target(params)

    buf = bytearray()
    buf += to_bytes(host)
    buf += b" - "
    buf += to_bytes(username)
    buf += b" ["
    buf += clf_time(params.timestamp).encode()
    buf += b'] "'
    buf += to_bytes(params.method)
    buf += b" "
    append_quoted(buf, uri)
    buf += b" "
    buf += to_bytes(params.proto)
    buf += b'" '
    buf += str(params.status_code).encode()
    buf += b" "
    buf += str(params.size).encode()
    return buf


def build_log_line(params: LogFormatterParams) -> bytes:
    buf = build_common_log_line(params)
    buf += b" XFF(" + to_bytes(params.forwarded_for) + b")"
    buf += b" host(" + to_bytes(params.host) + b")"
    buf += b" upstream(" + duration2str(params.elapsed_ns()).encode("utf-8") + b")"
    if params.trace_context:
        # 紧跟在 upstream(...) 之后，没有分隔符，下游解析依赖这个格式
        buf += to_bytes(params.trace_context)
    ctx = params.context
    if ctx is not None and ctx.error is not None:
        buf += b" err: "
        buf += to_bytes(str(ctx.error))
    buf += b"\n"
    return bytes(buf)


def write_access_log(writer, params: LogFormatterParams, ignores: Optional[Ignores] = None):
    """
    Build the line for ``params`` and hand it to ``writer`` in one ``write``.

    Ignored paths write nothing. Write failures are dropped: access logging
    must not break request handling.
    """
    if ignores is None:
        ignores = default_ignores
    if ignores.is_ignored(params.path):
        return

    line = build_log_line(params)
    try:
        if isinstance(writer, io.TextIOBase):
            buffer = getattr(writer, "buffer", None)
            if buffer is not None:
                # 文本文件走底层 buffer，写入原始字节
                writer.flush()
                buffer.write(line)
            else:
                writer.write(line.decode("utf-8", "backslashreplace"))
        else:
            writer.write(line)
    except Exception as exc:
        logger.debug("access log write failed: %s", exc)
