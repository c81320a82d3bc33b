"""
Tests for the console script entry point and the main coroutine.

run() must turn configuration errors into exit status 2 without a traceback,
and main() must stop the monitor on SIGTERM and always close the shared
HTTP session.

The tests follow the Arrange-Act-Assert (AAA) pattern.
"""

import asyncio
import logging
import os
import signal
from typing import Any, AsyncIterator, List
from unittest.mock import AsyncMock, patch

import aiohttp
import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestServer

from opsie_monitor.__main__ import main, run
from opsie_monitor.config import get_context
from opsie_monitor.config.http_config import get_http_session
from opsie_monitor.config.monitoring_context import MonitorConfig

REQUESTED = web.AppKey("requested", asyncio.Event)


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in list(os.environ):
        if name.startswith("OPSIE_MONITOR_"):
            monkeypatch.delenv(name, raising=False)


@pytest_asyncio.fixture
async def site() -> AsyncIterator[TestServer]:
    """
    Starts a healthy site that flags every request it receives.
    """

    async def health(request: web.Request) -> web.Response:
        request.app[REQUESTED].set()
        return web.json_response({"status": "ok"})

    app = web.Application()
    app.router.add_get("/health", health)
    app[REQUESTED] = asyncio.Event()

    test_server = TestServer(app)
    await test_server.start_server()
    yield test_server
    await test_server.close()


@pytest.mark.parametrize(
    "argv",
    [
        ["https://example.com", "--body", "[1]"],
        ["https://example.com", "--body", "{not json"],
        ["https://example.com", "--interval", "-1"],
        ["https://example.com", "--logging-type", "custom"],
        ["https://example.com", "--logging-type", "verbose"],
    ],
)
def test_run_should_exit_with_status_2_for_invalid_configuration(
    argv: List[str], capsys: pytest.CaptureFixture
) -> None:
    # Act
    status = run(argv)

    # Assert
    assert status == 2
    assert capsys.readouterr().err.startswith("Configuration error: ")


def test_run_should_exit_with_status_2_for_invalid_environment_value(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture
) -> None:
    # Arrange
    monkeypatch.setenv("OPSIE_MONITOR_TIMEOUT", "abc")

    # Act
    status = run(["https://example.com"])

    # Assert
    assert status == 2
    assert "abc" in capsys.readouterr().err


def test_run_should_configure_logging_and_run_main() -> None:
    # Arrange
    with patch("opsie_monitor.__main__.configure_logging") as configure, patch(
        "opsie_monitor.__main__.main", new_callable=AsyncMock
    ) as main_mock:
        # Act
        status = run(["https://example.com", "--once", "--monitor-id", "test-monitor"])

    # Assert
    assert status == 0
    configure.assert_called_once()
    main_mock.assert_awaited_once()
    context: MonitorConfig = main_mock.await_args.args[0]
    assert context.monitor_id == "test-monitor"
    assert context.once is True


@pytest.mark.asyncio
async def test_main_should_stop_on_sigterm_and_close_session(site: TestServer) -> None:
    # Arrange
    context = get_context(
        [
            str(site.make_url("/health")),
            "--method",
            "GET",
            "--interval",
            "3600",
            "--no-ssl-checking",
        ]
    )
    sessions: List[aiohttp.ClientSession] = []

    def recording_session(*args: Any) -> aiohttp.ClientSession:
        session = get_http_session(*args)
        sessions.append(session)
        return session

    with patch("opsie_monitor.__main__.get_http_session", side_effect=recording_session):
        task = asyncio.create_task(main(context))
        await asyncio.wait_for(site.app[REQUESTED].wait(), timeout=5)

        # Act
        os.kill(os.getpid(), signal.SIGTERM)
        await asyncio.wait_for(task, timeout=5)

    # Assert
    assert task.done()
    assert len(sessions) == 1
    assert sessions[0].closed


@pytest.mark.asyncio
async def test_main_should_log_configuration_warnings(
    site: TestServer, caplog: pytest.LogCaptureFixture
) -> None:
    # Arrange
    caplog.set_level(logging.WARNING, logger="opsie_monitor.__main__")
    context = get_context(
        [
            str(site.make_url("/health")),
            "--method",
            "GET",
            "--once",
            "--no-ssl-checking",
            "--webhook-url",
            str(site.make_url("/hook")),
        ]
    )

    # Act
    await main(context)

    # Assert
    warnings = [
        r.getMessage()
        for r in caplog.records
        if r.name == "opsie_monitor.__main__" and r.levelno == logging.WARNING
    ]
    assert warnings == [
        "Got 1 webhook URLs and 0 webhook secrets. Webhooks are disabled for this run."
    ]
