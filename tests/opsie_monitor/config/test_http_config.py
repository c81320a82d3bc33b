"""
Unit tests for the HTTP client configuration module.

This module contains tests ensuring that the shared session is created with
the timing trace config, and that the trace hooks fill in RequestTrace objects.
"""

from types import SimpleNamespace

import aiohttp
import pytest
from yarl import URL

from opsie_monitor.config import get_context
from opsie_monitor.config.http_config import (
    _on_connection_create_end,
    _on_dns_resolvehost_end,
    _on_request_end,
    _on_request_headers_sent,
    _on_request_start,
    build_trace_config,
    get_http_session,
)
from opsie_monitor.domain import RequestTrace


def test_build_trace_config_should_register_timing_hooks() -> None:
    # Act
    trace_config = build_trace_config()

    # Assert
    assert isinstance(trace_config, aiohttp.TraceConfig)
    assert _on_request_start in trace_config.on_request_start
    assert _on_dns_resolvehost_end in trace_config.on_dns_resolvehost_end
    assert _on_connection_create_end in trace_config.on_connection_create_end
    assert _on_request_headers_sent in trace_config.on_request_headers_sent
    assert _on_request_end in trace_config.on_request_end


@pytest.mark.asyncio
async def test_trace_hooks_should_record_timestamps_in_request_trace() -> None:
    # Arrange
    trace = RequestTrace()
    ctx = SimpleNamespace(trace_request_ctx=trace)
    params = SimpleNamespace(url=URL("https://example.com/"))

    # Act
    await _on_request_start(None, ctx, params)
    await _on_dns_resolvehost_end(None, ctx, params)
    await _on_connection_create_end(None, ctx, params)
    await _on_request_headers_sent(None, ctx, params)
    await _on_request_end(None, ctx, params)

    # Assert
    assert trace.is_ssl is True
    assert trace.request_start is not None
    assert trace.request_start <= trace.dns_resolve_end <= trace.connection_end
    assert trace.connection_end <= trace.headers_sent <= trace.response_start


@pytest.mark.asyncio
async def test_trace_hooks_should_ignore_requests_without_request_trace() -> None:
    # Arrange
    ctx = SimpleNamespace(trace_request_ctx=None)
    params = SimpleNamespace(url=URL("http://example.com/"))

    # Act / Assert: nothing to record, nothing raised
    await _on_request_start(None, ctx, params)
    await _on_request_end(None, ctx, params)


@pytest.mark.asyncio
async def test_get_http_session_should_return_client_session() -> None:
    # Arrange
    context = get_context(["https://example.com", "--timeout", "7"])

    # Act
    session = get_http_session(context)

    # Assert
    try:
        assert isinstance(session, aiohttp.ClientSession)
        assert session.timeout.total == 7
    finally:
        await session.close()
