"""Tests for the HTTP transport."""

import httpx
import pytest

from nodebridge import BridgeUsageError
from nodebridge import HttpTransport


def test_send_before_connect_is_a_usage_error() -> None:
    """Verify sending without a channel fails unconditionally."""
    transport = HttpTransport()
    with pytest.raises(BridgeUsageError, match="connect"):
        transport.send("{}")


def test_send_uses_patch_with_body() -> None:
    """Verify one PATCH request carries the instruction body."""
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, text='{"logs":[],"value":"hi"}')

    transport = HttpTransport(httpx.MockTransport(handler))
    transport.connect("http://127.0.0.1:54321", 30)
    try:
        payload: str = transport.send('{"type":"noop"}')
    finally:
        transport.close()

    assert payload == '{"logs":[],"value":"hi"}'
    assert len(seen) == 1
    assert seen[0].method == "PATCH"
    assert seen[0].url.host == "127.0.0.1"
    assert seen[0].url.port == 54321
    assert seen[0].content == b'{"type":"noop"}'
    assert seen[0].url.query == b""


def test_channel_is_reused_across_sends() -> None:
    """Verify consecutive sends go through the same connection settings."""
    count: list[int] = [0]

    def handler(request: httpx.Request) -> httpx.Response:
        count[0] += 1
        return httpx.Response(200, text=str(count[0]))

    transport = HttpTransport(httpx.MockTransport(handler))
    transport.connect("http://127.0.0.1:54321", None)
    assert transport.send("a") == "1"
    assert transport.send("b") == "2"
    transport.close()


def test_failure_status_raises() -> None:
    """Verify error statuses are not swallowed."""
    transport = HttpTransport(httpx.MockTransport(lambda request: httpx.Response(500, text="oops")))
    transport.connect("http://127.0.0.1:54321", 30)
    with pytest.raises(httpx.HTTPStatusError):
        transport.send("{}")
    transport.close()


def test_redirects_are_not_followed() -> None:
    """Verify a redirect surfaces as an error instead of a second request."""
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(307, headers={"Location": "http://127.0.0.1:1/elsewhere"})

    transport = HttpTransport(httpx.MockTransport(handler))
    transport.connect("http://127.0.0.1:54321", 30)
    with pytest.raises(httpx.HTTPStatusError):
        transport.send("{}")
    transport.close()
    assert len(seen) == 1


def test_timeouts_propagate_as_timeout_errors() -> None:
    """Verify transfer timeouts keep their httpx timeout class."""

    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    transport = HttpTransport(httpx.MockTransport(handler))
    transport.connect("http://127.0.0.1:54321", 0.01)
    with pytest.raises(httpx.TimeoutException):
        transport.send("{}")
    transport.close()


def test_send_after_close_is_a_usage_error() -> None:
    """Verify a closed transport refuses to send."""
    transport = HttpTransport(httpx.MockTransport(lambda request: httpx.Response(200)))
    transport.connect("http://127.0.0.1:54321", 30)
    transport.close()
    with pytest.raises(BridgeUsageError):
        transport.send("{}")


def test_zero_timeout_disables_the_limit() -> None:
    """Verify a zero timeout is not handed to httpx as a zero-second limit."""
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, text="ok")

    transport = HttpTransport(httpx.MockTransport(handler))
    transport.connect("http://127.0.0.1:54321", 0)
    assert transport.send("{}") == "ok"
    transport.close()
    assert seen[0].extensions["timeout"] == {"connect": None, "read": None, "write": None, "pool": None}


def test_body_that_is_not_utf8_is_a_usage_error() -> None:
    """Verify undecodable response bodies are rejected."""
    transport = HttpTransport(httpx.MockTransport(lambda request: httpx.Response(200, content=b"\xff\xfe\xfa")))
    transport.connect("http://127.0.0.1:54321", 30)
    with pytest.raises(BridgeUsageError, match="UTF-8"):
        transport.send("{}")
    transport.close()
