"""Tests for access-line construction and emission."""

import io
import re
import time
from unittest.mock import MagicMock

import pytest

from yzaccesslog.core.formatter import (
    AddrError,
    LogFormatterParams,
    build_common_log_line,
    build_log_line,
    split_host_port,
    write_access_log,
)
from yzaccesslog.core.ignore import Ignores
from yzaccesslog.utils.fastapi_context.fastapi_context import RequestContext

from .conftest import FIXED_TS, FIXED_TS_CLF


class TestSplitHostPort:
    """Remote address parsing."""

    @pytest.mark.parametrize(
        "addr,expected",
        [
            ("1.2.3.4:5555", ("1.2.3.4", "5555")),
            ("[::1]:80", ("::1", "80")),
            ("example.com:", ("example.com", "")),
            (":80", ("", "80")),
        ],
    )
    def test_valid(self, addr: str, expected: tuple) -> None:
        assert split_host_port(addr) == expected

    @pytest.mark.parametrize(
        "addr",
        ["", "1.2.3.4", "::1", "a:b:c", "[::1]", "[::1]x:80", "[::1:80", "a]:80", "[a]:[80"],
    )
    def test_invalid(self, addr: str) -> None:
        with pytest.raises(AddrError):
            split_host_port(addr)


class TestCommonLogLine:
    """The Common Log Format prefix."""

    def test_plain_request(self, make_params) -> None:
        line = build_common_log_line(make_params())
        assert bytes(line) == f'1.2.3.4 - - [{FIXED_TS_CLF}] "GET /foo HTTP/1.1" 200 512'.encode()

    def test_username(self, make_params) -> None:
        line = build_common_log_line(make_params(username="alice"))
        assert line.startswith(b"1.2.3.4 - alice [")

    def test_empty_username_is_dash(self, make_params) -> None:
        line = build_common_log_line(make_params(username=""))
        assert line.startswith(b"1.2.3.4 - - [")

    def test_ipv6_remote_address(self, make_params) -> None:
        line = build_common_log_line(make_params(remote_addr="[2001:db8::1]:443"))
        assert line.startswith(b"2001:db8::1 - - [")

    def test_unparsable_remote_address_is_kept(self, make_params) -> None:
        line = build_common_log_line(make_params(remote_addr="unix-socket"))
        assert line.startswith(b"unix-socket - - [")

    def test_connect_over_http2_uses_authority(self, make_params) -> None:
        params = make_params(
            method="CONNECT", proto="HTTP/2", request_uri="/ignored", host="example.com:443"
        )
        assert b'"CONNECT example.com:443 HTTP/2"' in build_common_log_line(params)

    def test_connect_over_http2_0(self, make_params) -> None:
        params = make_params(method="CONNECT", proto="HTTP/2.0", request_uri="", host="example.com:443")
        assert b'"CONNECT example.com:443 HTTP/2.0"' in build_common_log_line(params)

    def test_connect_over_http1_uses_request_uri(self, make_params) -> None:
        params = make_params(method="CONNECT", request_uri="example.com:443", host="other:1")
        assert b'"CONNECT example.com:443 HTTP/1.1"' in build_common_log_line(params)

    def test_empty_request_uri_falls_back_to_url(self, make_params) -> None:
        params = make_params(request_uri="", path="/search", query_string="q=1")
        assert b'"GET /search?q=1 HTTP/1.1"' in build_common_log_line(params)

    def test_empty_request_uri_and_path(self, make_params) -> None:
        params = make_params(request_uri="", path="")
        assert b'"GET / HTTP/1.1"' in build_common_log_line(params)

    def test_backend_annotation(self, make_params) -> None:
        ctx = RequestContext(backend="http://10.0.0.5:8080")
        params = make_params(request_uri="/api/x", path="/api/x", context=ctx)
        assert b'"GET /api/x --> http://10.0.0.5:8080 HTTP/1.1"' in build_common_log_line(params)

    def test_target_is_escaped(self, make_params) -> None:
        params = make_params(request_uri='/a"b\\c\n')
        assert b'"GET /a\\"b\\\\c\\n HTTP/1.1"' in build_common_log_line(params)

    def test_raw_bytes_in_target(self, make_params) -> None:
        params = make_params(request_uri=b"/p\xff".decode("utf-8", "surrogateescape"))
        assert b'"GET /p\\xff HTTP/1.1"' in build_common_log_line(params)


class TestBuildLogLine:
    """Proxy suffix fields."""

    def test_full_line_without_error(self, make_params, fixed_duration) -> None:
        line = build_log_line(make_params(forwarded_for="9.9.9.9, 10.0.0.1"))
        assert line == (
            f'1.2.3.4 - - [{FIXED_TS_CLF}] "GET /foo HTTP/1.1" 200 512'
            " XFF(9.9.9.9, 10.0.0.1) host(example.com) upstream(1ms)\n"
        ).encode()
        assert b" err:" not in line

    def test_missing_headers_leave_empty_fields(self, make_params, fixed_duration) -> None:
        line = build_log_line(make_params(host=""))
        assert line.endswith(b" XFF() host() upstream(1ms)\n")

    def test_trace_context_is_appended_without_separator(self, make_params, fixed_duration) -> None:
        line = build_log_line(make_params(trace_context="105445aa7843bc8b/1;o=1"))
        assert line.endswith(b" upstream(1ms)105445aa7843bc8b/1;o=1\n")

    def test_error_is_appended(self, make_params, fixed_duration) -> None:
        ctx = RequestContext(error=RuntimeError("boom"))
        line = build_log_line(make_params(context=ctx))
        assert line.endswith(b" upstream(1ms) err: boom\n")

    def test_error_with_empty_message(self, make_params, fixed_duration) -> None:
        ctx = RequestContext(error=RuntimeError())
        assert build_log_line(make_params(context=ctx)).endswith(b" err: \n")

    def test_trace_then_error(self, make_params, fixed_duration) -> None:
        ctx = RequestContext(error=ValueError("bad"), backend="http://b")
        line = build_log_line(make_params(context=ctx, trace_context="t1"))
        assert line.endswith(b"upstream(1ms)t1 err: bad\n")
        assert b"/foo --> http://b HTTP/1.1" in line

    def test_latency_measured_from_monotonic_start(self, make_params) -> None:
        params = make_params(started_ns=time.perf_counter_ns() - 5 * 10 ** 6)
        match = re.search(rb" upstream\(([^)]*)\)\n$", build_log_line(params))
        assert match
        assert match.group(1).endswith(b"ms")

    def test_latency_falls_back_to_timestamp(self, make_params) -> None:
        match = re.search(rb" upstream\(([^)]*)\)", build_log_line(make_params()))
        # FIXED_TS lies in the past, so the elapsed time is rendered with hours
        assert b"h" in match.group(1)

    def test_single_newline_terminates(self, make_params) -> None:
        line = build_log_line(make_params())
        assert line.count(b"\n") == 1 and line.endswith(b"\n")


class TestWriteAccessLog:
    """Emission to the sink."""

    def test_writes_once(self, make_params) -> None:
        writer = MagicMock()
        write_access_log(writer, make_params(), Ignores())
        writer.write.assert_called_once()
        (data,), _ = writer.write.call_args
        assert isinstance(data, bytes)
        assert data.startswith(b"1.2.3.4 - - [")

    def test_ignored_path_writes_nothing(self, make_params) -> None:
        writer = MagicMock()
        write_access_log(writer, make_params(path="/health", request_uri="/health"), Ignores(["^/health"]))
        writer.write.assert_not_called()

    def test_ignore_uses_path_not_query(self, make_params) -> None:
        writer = io.BytesIO()
        params = make_params(path="/api", request_uri="/api?next=/health")
        write_access_log(writer, params, Ignores(["^/health"]))
        assert writer.getvalue()

    def test_text_sink_receives_str(self, make_params) -> None:
        sink = io.StringIO()
        write_access_log(sink, make_params(), Ignores())
        assert sink.getvalue().startswith("1.2.3.4 - - [")
        assert sink.getvalue().endswith("\n")

    def test_text_file_sink_keeps_raw_bytes(self, make_params, tmp_path) -> None:
        path = tmp_path / "access.log"
        host = b"h\xff".decode("utf-8", "surrogateescape")
        with open(path, "w", encoding="utf-8") as sink:
            sink.write("# start\n")
            write_access_log(sink, make_params(host=host, forwarded_for=host), Ignores())
        content = path.read_bytes()
        assert content.startswith(b"# start\n1.2.3.4 - - [")
        assert b" XFF(h\xff) host(h\xff) " in content
        assert content.endswith(b"\n")

    def test_text_sink_without_buffer_escapes_bad_bytes(self, make_params) -> None:
        sink = io.StringIO()
        ctx = RequestContext(error=RuntimeError(b"bad \xfe".decode("utf-8", "surrogateescape")))
        write_access_log(sink, make_params(context=ctx), Ignores())
        assert sink.getvalue().endswith(" err: bad \\xfe\n")

    def test_write_failure_is_swallowed(self, make_params) -> None:
        writer = MagicMock()
        writer.write.side_effect = OSError("disk full")
        write_access_log(writer, make_params(), Ignores())
        writer.write.assert_called_once()

    def test_closed_sink_is_swallowed(self, make_params) -> None:
        sink = io.BytesIO()
        sink.close()
        write_access_log(sink, make_params(), Ignores())

    def test_default_ignores(self, make_params, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("yzaccesslog.core.formatter.default_ignores", Ignores(["^/foo"]))
        writer = MagicMock()
        write_access_log(writer, make_params())
        writer.write.assert_not_called()


class TestFromScope:
    """Building formatter params from raw ASGI scopes."""

    def test_ipv6_client_and_raw_path(self, http_scope) -> None:
        scope = http_scope(
            "/p",
            raw_path=b"/p%20q\xff",
            query_string=b"a=1",
            client=("::1", 5555),
            headers=[(b"host", b"h.example"), (b"x-forwarded-for", b"1.1.1.1"), (b"x-forwarded-for", b"2.2.2.2")],
        )
        params = LogFormatterParams.from_scope(scope, 204, 0, timestamp=None)
        assert params.remote_addr == "[::1]:5555"
        assert params.request_uri == "/p%20q\udcff?a=1"
        assert params.host == "h.example"
        assert params.forwarded_for == "1.1.1.1"
        assert params.proto == "HTTP/1.1"

    @pytest.mark.parametrize(
        "http_version,proto",
        [("1.0", "HTTP/1.0"), ("1.1", "HTTP/1.1"), ("2", "HTTP/2.0"), ("3", "HTTP/3.0")],
    )
    def test_proto_matches_request_line_notation(self, http_scope, http_version: str, proto: str) -> None:
        params = LogFormatterParams.from_scope(http_scope(http_version=http_version), 200, 0, timestamp=None)
        assert params.proto == proto

    def test_http2_and_missing_client(self, http_scope) -> None:
        scope = http_scope(http_version="2", client=None)
        params = LogFormatterParams.from_scope(scope, 200, 0, timestamp=None)
        assert params.proto == "HTTP/2.0"
        assert params.proto_major == 2
        assert params.remote_addr == ""

    def test_http2_connect_line(self, http_scope, fixed_duration) -> None:
        scope = http_scope(
            "", method="CONNECT", raw_path=b"", http_version="2",
            headers=[(b"host", b"example.com:443")],
        )
        params = LogFormatterParams.from_scope(scope, 200, 0, timestamp=FIXED_TS)
        assert b'"CONNECT example.com:443 HTTP/2.0" 200 0' in build_log_line(params)

    def test_trace_header_name(self, http_scope) -> None:
        scope = http_scope(headers=[(b"traceparent", b"00-abc-01")])
        params = LogFormatterParams.from_scope(scope, 200, 0, timestamp=None, trace_header="Traceparent")
        assert params.trace_context == "00-abc-01"

    def test_authenticated_user(self, http_scope) -> None:
        user = MagicMock(is_authenticated=True, display_name="alice")
        params = LogFormatterParams.from_scope(http_scope(user=user), 200, 0, timestamp=None)
        assert params.username == "alice"

    def test_anonymous_user(self, http_scope) -> None:
        user = MagicMock(is_authenticated=False, display_name="")
        params = LogFormatterParams.from_scope(http_scope(user=user), 200, 0, timestamp=None)
        assert params.username is None
