"""
Core interfaces for the website monitoring system.

This module defines the abstract base classes composed by the monitor loop.
Each checker and the dispatcher receive only the configuration they need
at construction time, so they can be tested standalone with fakes.
"""

import abc
from typing import Generic, List, Optional, TypeVar

from .domain import DeliveryOutcome, Payload

ResultT = TypeVar("ResultT")


class SiteChecker(abc.ABC, Generic[ResultT]):
    """
    Abstract interface for a component that performs one kind of check on a URL.

    Its responsibility is to encapsulate the network I/O of the check and
    return a structured result. Implementations must not raise for check
    failures (timeouts, refused connections, invalid certificates, resolver
    errors); those are part of the returned value.
    """

    @abc.abstractmethod
    async def check(self, url: str) -> Optional[ResultT]:
        """
        Performs the check against the given URL.

        Args:
            url: The monitored URL.

        Returns:
            The check result, or None when the check is disabled.
        """
        pass

    @abc.abstractmethod
    def failure_result(self, url: str, error: BaseException) -> Optional[ResultT]:
        """
        Builds the result reported when 'check' crashed unexpectedly.

        The monitor loop uses it to keep a well-formed payload even if a
        checker has a bug.

        Args:
            url: The monitored URL.
            error: The exception raised by 'check'.

        Returns:
            A failure result for this kind of check.
        """
        pass


class PayloadDispatcher(abc.ABC):
    """
    Abstract interface for a component that delivers a cycle's payload.
    """

    @abc.abstractmethod
    async def deliver(self, payload: Payload) -> List[DeliveryOutcome]:
        """
        Delivers the payload to every configured destination.

        A failed delivery to one destination must not prevent the others.
        Failures are reported in the returned outcomes, never raised.

        Args:
            payload: The payload assembled for the current cycle.

        Returns:
            List[DeliveryOutcome]: One outcome per destination, in order.
        """
        pass
