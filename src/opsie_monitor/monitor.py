"""
Core monitor loop for the website monitoring system.

This module provides the MonitorLoop class, which orchestrates the monitoring
process: every cycle it runs the HTTP, TLS and DNS checkers, assembles their
results into a payload and hands it to the dispatcher, then waits for the
configured interval.
"""

import asyncio
import logging
from enum import Enum
from typing import Any, Dict, List, Optional

from .assembler import assemble
from .contracts import PayloadDispatcher, SiteChecker
from .domain import DeliveryOutcome, DnsResult, HttpResult, Payload, TlsResult


class MonitorState(str, Enum):
    """The two states of the monitor loop."""

    RUNNING = "running"
    STOPPED = "stopped"


class MonitorLoop:
    """
    Coordinates the check-and-deliver cycle.

    The three checkers are independent collaborators: they run concurrently
    within a cycle, and a crash in one of them is replaced by its failure
    result without affecting the others. The loop holds no state across
    cycles besides its configuration and the cycle counter.
    """

    def __init__(
        self,
        url: str,
        http_checker: SiteChecker[HttpResult],
        ssl_checker: SiteChecker[TlsResult],
        dns_checker: SiteChecker[DnsResult],
        dispatcher: PayloadDispatcher,
        metadata: Optional[Dict[str, str]] = None,
        interval: float = 10,
        once: bool = False,
    ) -> None:
        """
        Initializes a new MonitorLoop instance.

        Args:
            url: The monitored URL.
            http_checker: Component performing the HTTP check.
            ssl_checker: Component performing the TLS certificate check.
            dns_checker: Component performing the DNS check.
            dispatcher: Component delivering the payload.
            metadata: Opaque key/value pairs attached to every payload.
            interval: Seconds to wait between two cycles.
            once: Whether to stop after the first cycle.
        """
        self._url: str = url
        self._http_checker: SiteChecker[HttpResult] = http_checker
        self._ssl_checker: SiteChecker[TlsResult] = ssl_checker
        self._dns_checker: SiteChecker[DnsResult] = dns_checker
        self._dispatcher: PayloadDispatcher = dispatcher
        self._metadata: Dict[str, str] = dict(metadata or {})
        self._interval: float = interval
        self._once: bool = once
        self._logger: logging.Logger = logging.getLogger(__name__)
        self._state: MonitorState = MonitorState.RUNNING
        self._stop_event: asyncio.Event = asyncio.Event()
        self._cycle_count: int = 0

    @property
    def state(self) -> MonitorState:
        return self._state

    @property
    def cycle_count(self) -> int:
        return self._cycle_count

    async def _run_isolated(self, checker: SiteChecker[Any]) -> Any:
        """
        Runs a single checker, turning any unexpected exception into its failure result.
        """
        try:
            return await checker.check(self._url)
        except Exception as e:
            self._logger.exception(
                f"Checker '{type(checker).__name__}' crashed for {self._url} with error: {e}"
            )
            return checker.failure_result(self._url, e)

    async def run_cycle(self) -> Payload:
        """
        Runs one cycle: all checks, payload assembly and delivery.

        Returns:
            Payload: The payload assembled and delivered in this cycle.
        """
        self._cycle_count += 1
        self._logger.debug(f"Starting cycle {self._cycle_count} for {self._url}")

        http_result, tls_result, dns_result = await asyncio.gather(
            self._run_isolated(self._http_checker),
            self._run_isolated(self._ssl_checker),
            self._run_isolated(self._dns_checker),
        )

        payload = assemble(http_result, tls_result, dns_result, self._metadata)
        outcomes: List[DeliveryOutcome] = []
        try:
            outcomes = await self._dispatcher.deliver(payload)
        except Exception as e:
            self._logger.exception(f"Dispatcher failed for {self._url} with error: {e}")
        delivered = sum(1 for outcome in outcomes if outcome.delivered)

        self._logger.info(
            f"Cycle {self._cycle_count}: {self._url} up={http_result.up} "
            f"status={http_result.status}, "
            f"ssl_valid={tls_result.valid if tls_result is not None else 'n/a'}, "
            f"dns_records={len(dns_result.records) if dns_result is not None else 'n/a'}, "
            f"webhooks delivered {delivered}/{len(outcomes)}"
        )
        return payload

    async def _wait_interval(self) -> None:
        """
        Sleeps for the interval, waking up immediately if stop() is called.
        """
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=self._interval)
        except asyncio.TimeoutError:
            pass

    async def run(self) -> None:
        """
        Runs cycles until stopped, or a single cycle when configured to run once.

        Returns:
            None
        """
        self._logger.info(
            f"Starting monitor for {self._url} "
            + ("(single run)." if self._once else f"every {self._interval}s.")
        )

        while self._state == MonitorState.RUNNING:
            await self.run_cycle()

            if self._once:
                self._state = MonitorState.STOPPED
                break

            await self._wait_interval()

        self._logger.info(f"Monitor stopped after {self._cycle_count} cycles.")

    def stop(self) -> None:
        """
        Requests the loop to stop.

        The current cycle, if any, completes; a pending wait ends immediately
        and no further cycle starts. Safe to call from a signal handler.
        """
        if self._state == MonitorState.STOPPED:
            return
        self._logger.info("Stop requested.")
        self._state = MonitorState.STOPPED
        self._stop_event.set()
