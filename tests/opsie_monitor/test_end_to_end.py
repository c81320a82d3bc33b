"""
End-to-end tests running the monitor against local aiohttp servers.

A single test server plays both roles: the monitored site and the webhook
receiver. Every delivery is recorded so the tests can verify the exact
bytes and their signature.
"""

import json
import os
from typing import Any, AsyncIterator, Dict, List
from unittest.mock import MagicMock

import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestServer, unused_port

from opsie_monitor.__main__ import build_monitor, main
from opsie_monitor.checker.aiohttp_http_checker import AiohttpHttpChecker
from opsie_monitor.config import get_context
from opsie_monitor.config.http_config import get_http_session
from opsie_monitor.contracts import SiteChecker
from opsie_monitor.dispatcher.webhook_dispatcher import WebhookDispatcher, verify_signature
from opsie_monitor.domain import DnsRecord, DnsResult, HttpMethod, TlsResult, WebhookEndpoint
from opsie_monitor.monitor import MonitorLoop

SECRET = "s3cret"
DELIVERIES = web.AppKey("deliveries", list)


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in list(os.environ):
        if name.startswith("OPSIE_MONITOR_"):
            monkeypatch.delenv(name, raising=False)


@pytest_asyncio.fixture
async def server() -> AsyncIterator[TestServer]:
    """
    Starts a server exposing a healthy page and a recording webhook receiver.
    """
    deliveries: List[Dict[str, Any]] = []

    async def health(request: web.Request) -> web.Response:
        return web.json_response({"status": "ok"})

    async def hook(request: web.Request) -> web.Response:
        deliveries.append({"body": await request.read(), "headers": dict(request.headers)})
        return web.Response(status=200)

    app = web.Application()
    app.router.add_get("/health", health)
    app.router.add_post("/hook", hook)
    app[DELIVERIES] = deliveries

    test_server = TestServer(app)
    await test_server.start_server()
    yield test_server
    await test_server.close()


def _deliveries(server: TestServer) -> List[Dict[str, Any]]:
    return server.app[DELIVERIES]


@pytest.mark.asyncio
async def test_main_should_deliver_one_signed_payload(server: TestServer) -> None:
    # Arrange
    context = get_context(
        [
            str(server.make_url("/health")),
            "--method",
            "GET",
            "--once",
            "--metadata",
            "region=us",
            "--webhook-url",
            str(server.make_url("/hook")),
            "--webhook-secret",
            SECRET,
            "--no-ssl-checking",
        ]
    )

    # Act
    await main(context)

    # Assert
    deliveries = _deliveries(server)
    assert len(deliveries) == 1
    body: bytes = deliveries[0]["body"]
    headers = deliveries[0]["headers"]
    assert verify_signature(body, SECRET, headers["Signature"])
    assert headers["User-Agent"] == "Opsiebot/1.0"
    assert SECRET.encode() not in body

    payload = json.loads(body)
    assert list(payload) == ["http", "ssl", "dns", "metadata"]
    assert payload["http"]["status"] == 200
    assert payload["http"]["up"] is True
    assert payload["http"]["timing"]["total"] > 0
    assert payload["ssl"] == {}
    assert payload["dns"] == {}
    assert payload["metadata"] == {"region": "us"}


@pytest.mark.asyncio
async def test_monitor_should_embed_every_check_in_payload(server: TestServer) -> None:
    # Arrange
    url = str(server.make_url("/health"))
    tls_result = TlsResult(
        url=url,
        time="2026-10-19T12:00:00+00:00",
        valid=True,
        issuer="Test CA",
        expired=False,
        valid_from="2026-09-01T00:00:00+00:00",
        expires_on="2026-12-01T00:00:00+00:00",
        days_remaining=42,
        domain="example.com",
        algorithm="RSA-SHA256",
        fingerprint="ab" * 32,
        additional_domains=["example.com"],
    )
    dns_result = DnsResult(
        url=url,
        time="2026-10-19T12:00:00+00:00",
        records=[DnsRecord("cloudflare", "example.com", "A", 300, "93.184.216.34")],
    )
    ssl_checker = MagicMock(spec=SiteChecker)
    ssl_checker.check.return_value = tls_result
    dns_checker = MagicMock(spec=SiteChecker)
    dns_checker.check.return_value = dns_result

    context = get_context([url, "--timeout", "5"])
    session = get_http_session(context)
    try:
        monitor = MonitorLoop(
            url=url,
            http_checker=AiohttpHttpChecker(
                session=session,
                method=HttpMethod.GET,
                timeout=5,
                accept_header="application/json",
            ),
            ssl_checker=ssl_checker,
            dns_checker=dns_checker,
            dispatcher=WebhookDispatcher(
                session=session,
                endpoints=[WebhookEndpoint(str(server.make_url("/hook")), SECRET)],
                timeout=5,
            ),
            once=True,
        )

        # Act
        await monitor.run()
    finally:
        await session.close()

    # Assert
    deliveries = _deliveries(server)
    assert len(deliveries) == 1
    payload = json.loads(deliveries[0]["body"])
    assert payload["http"]["up"] is True
    assert payload["ssl"]["days_remaining"] == 42
    assert payload["ssl"]["valid"] is True
    assert payload["dns"]["records"][0]["resolver"] == "cloudflare"
    assert payload["metadata"] == {}


@pytest.mark.asyncio
async def test_monitor_should_report_unreachable_site_and_still_deliver(
    server: TestServer,
) -> None:
    # Arrange
    url = f"https://127.0.0.1:{unused_port()}/"
    context = get_context(
        [
            url,
            "--once",
            "--timeout",
            "3",
            "--webhook-url",
            str(server.make_url("/hook")),
            "--webhook-secret",
            SECRET,
        ]
    )
    session = get_http_session(context)
    try:
        monitor = build_monitor(context, session)

        # Act
        await monitor.run()
    finally:
        await session.close()

    # Assert
    deliveries = _deliveries(server)
    assert len(deliveries) == 1
    assert verify_signature(deliveries[0]["body"], SECRET, deliveries[0]["headers"]["Signature"])
    payload = json.loads(deliveries[0]["body"])
    assert payload["http"]["up"] is False
    assert payload["http"]["status"] == 0
    assert payload["http"]["message"]
    assert payload["ssl"]["valid"] is False
    assert payload["ssl"]["message"]
    assert payload["dns"] == {}
