"""
Main entry point for the website monitor.

This module initializes and runs the monitor. It parses the configuration,
sets up logging, creates the shared HTTP session, wires the checkers and the
webhook dispatcher into the monitor loop, and stops the loop gracefully when
the process receives SIGINT or SIGTERM.
"""

import asyncio
import logging
import signal
import sys
from typing import List, Optional, Sequence

import aiohttp

from opsie_monitor.checker.aiohttp_http_checker import AiohttpHttpChecker
from opsie_monitor.checker.dns_checker import DnsChainChecker
from opsie_monitor.checker.ssl_checker import SslCertificateChecker
from opsie_monitor.config import MonitorConfig, get_context
from opsie_monitor.config.http_config import get_http_session
from opsie_monitor.config.logging_config import configure_logging
from opsie_monitor.dispatcher.webhook_dispatcher import WebhookDispatcher
from opsie_monitor.monitor import MonitorLoop


def build_monitor(context: MonitorConfig, session: aiohttp.ClientSession) -> MonitorLoop:
    """
    Wires the checkers and the dispatcher into a monitor loop.

    Each collaborator receives only the slice of the configuration it needs.

    Args:
        context: The monitor configuration.
        session: The shared HTTP session.

    Returns:
        MonitorLoop: The monitor, ready to run.
    """
    return MonitorLoop(
        url=context.url,
        http_checker=AiohttpHttpChecker(
            session=session,
            method=context.method,
            timeout=context.timeout,
            accept_header=context.accept_header,
            headers=context.headers,
            body=context.body,
            post_as_form=context.post_as_form,
            auth_mode=context.auth_mode,
            username=context.username,
            password=context.password,
            bearer_token=context.bearer_token,
        ),
        ssl_checker=SslCertificateChecker(enabled=context.ssl_checking, timeout=context.timeout),
        dns_checker=DnsChainChecker(
            enabled=context.dns_checking,
            resolvers=context.dns_servers,
            timeout=context.timeout,
        ),
        dispatcher=WebhookDispatcher(
            session=session, endpoints=context.webhooks, timeout=context.timeout
        ),
        metadata=context.metadata,
        interval=context.interval,
        once=context.once,
    )


async def main(context: MonitorConfig) -> None:
    """
    Set up and run the monitor until it stops.

    Args:
        context: Configuration containing all application settings.

    Returns:
        None
    """
    logger: logging.Logger = logging.getLogger(__name__)
    logger.info("Starting application...")
    for warning in context.warnings:
        logger.warning(warning)

    http_session: aiohttp.ClientSession = get_http_session(context)
    logger.info("configured: http_session")

    monitor: Optional[MonitorLoop] = None
    loop = asyncio.get_running_loop()
    handled_signals: List[signal.Signals] = []
    try:
        monitor = build_monitor(context, http_session)
        for signum in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(signum, monitor.stop)
                handled_signals.append(signum)
            except NotImplementedError:
                logger.debug(f"Signal handlers are not supported, {signum!r} not handled.")

        logger.info(f"Monitor initialized with {len(context.webhooks)} webhooks.")
        await monitor.run()

    except asyncio.CancelledError:
        logger.info("Application shutdown requested.")
    finally:
        logger.info("Shutting down resources...")
        if monitor is not None:
            monitor.stop()
        for signum in handled_signals:
            loop.remove_signal_handler(signum)
        await http_session.close()
        logger.info("Shutdown complete.")


def run(argv: Optional[Sequence[str]] = None) -> int:
    """
    Console script entry point.

    Returns:
        int: The process exit status, 2 when the configuration is invalid.
    """
    try:
        # Parse command-line arguments and environment variables
        context: MonitorConfig = get_context(argv)

        # Configure logging based on the context
        configure_logging(context)
    except (ValueError, RuntimeError) as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2

    try:
        asyncio.run(main(context))
    except KeyboardInterrupt:
        logging.info("Shutdown initiated by user (Ctrl+C).")
    return 0


if __name__ == "__main__":
    sys.exit(run())
