"""
HTTP client configuration module for the website monitoring system.

This module provides functionality to create and configure the HTTP client
session shared by the HTTP check and the webhook dispatcher. The session
carries a trace config that records low-level request timings into the
RequestTrace passed as 'trace_request_ctx'.
"""

import asyncio
import logging
from types import SimpleNamespace
from typing import Any, Optional

import aiohttp

from opsie_monitor.config.monitoring_context import MonitorConfig
from opsie_monitor.domain import RequestTrace

# Module logger
logger = logging.getLogger(__name__)


def _trace_of(trace_config_ctx: SimpleNamespace) -> Optional[RequestTrace]:
    trace = getattr(trace_config_ctx, "trace_request_ctx", None)
    return trace if isinstance(trace, RequestTrace) else None


def _now() -> float:
    return asyncio.get_running_loop().time()


async def _on_request_start(
    session: aiohttp.ClientSession, ctx: SimpleNamespace, params: Any
) -> None:
    trace = _trace_of(ctx)
    if trace is not None:
        trace.request_start = _now()
        trace.is_ssl = params.url.scheme == "https"


async def _on_dns_resolvehost_end(
    session: aiohttp.ClientSession, ctx: SimpleNamespace, params: Any
) -> None:
    trace = _trace_of(ctx)
    if trace is not None:
        trace.dns_resolve_end = _now()


async def _on_connection_create_end(
    session: aiohttp.ClientSession, ctx: SimpleNamespace, params: Any
) -> None:
    trace = _trace_of(ctx)
    if trace is not None:
        trace.connection_end = _now()


async def _on_request_headers_sent(
    session: aiohttp.ClientSession, ctx: SimpleNamespace, params: Any
) -> None:
    trace = _trace_of(ctx)
    if trace is not None and trace.headers_sent is None:
        trace.headers_sent = _now()


async def _on_request_end(
    session: aiohttp.ClientSession, ctx: SimpleNamespace, params: Any
) -> None:
    trace = _trace_of(ctx)
    if trace is not None:
        trace.response_start = _now()


def build_trace_config() -> aiohttp.TraceConfig:
    """
    Creates the trace config recording request timings into RequestTrace objects.

    Requests made without a RequestTrace as 'trace_request_ctx' are ignored.

    Returns:
        aiohttp.TraceConfig: The configured trace config.
    """
    trace_config = aiohttp.TraceConfig()
    trace_config.on_request_start.append(_on_request_start)
    trace_config.on_dns_resolvehost_end.append(_on_dns_resolvehost_end)
    trace_config.on_connection_create_end.append(_on_connection_create_end)
    trace_config.on_request_headers_sent.append(_on_request_headers_sent)
    trace_config.on_request_end.append(_on_request_end)
    return trace_config


def get_http_session(context: MonitorConfig) -> aiohttp.ClientSession:
    """
    Create and configure an HTTP client session based on the provided configuration.

    Using a shared session is recommended for performance reasons. The
    connector neither caches DNS lookups nor keeps connections alive, so every
    check measures resolution, connection and TLS handshake.

    Args:
        context: Configuration containing HTTP client settings.

    Returns:
        aiohttp.ClientSession: A configured HTTP client session.
    """
    logger.debug(f"Creating HTTP session with a {context.timeout}s default timeout.")
    return aiohttp.ClientSession(
        connector=aiohttp.TCPConnector(use_dns_cache=False, force_close=True),
        timeout=aiohttp.ClientTimeout(total=context.timeout),
        trace_configs=[build_trace_config()],
    )
