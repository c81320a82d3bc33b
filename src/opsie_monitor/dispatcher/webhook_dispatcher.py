"""
Webhook dispatcher for the website monitoring system.

This module provides an implementation of the PayloadDispatcher interface that
signs each cycle's payload and POSTs it to every configured webhook endpoint.
Deliveries run concurrently and are isolated from each other: a failure on
one endpoint is reported but never affects the others. There is no retry,
so a slow or broken receiver cannot push delay into the next cycle.
"""

import asyncio
import hashlib
import hmac
import logging
from typing import Dict, List, Sequence, Tuple

import aiohttp

from opsie_monitor.config.constants import (
    WEBHOOK_HTTP_VERB,
    WEBHOOK_SIGNATURE_HEADER,
    WEBHOOK_USER_AGENT,
)
from opsie_monitor.contracts import PayloadDispatcher
from opsie_monitor.domain import DeliveryOutcome, Payload, WebhookEndpoint
from opsie_monitor.errors import describe_error

# Module logger
logger = logging.getLogger(__name__)


def sign_payload(body: bytes, secret: str) -> str:
    """
    Computes the hex HMAC-SHA256 signature of a payload body.

    Args:
        body: The exact bytes sent to the endpoint.
        secret: The endpoint's shared secret.

    Returns:
        str: The lowercase hex digest.
    """
    return hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()


def verify_signature(body: bytes, secret: str, signature: str) -> bool:
    """
    Checks a received signature against the body, in constant time.

    Receivers can use it to authenticate a delivery.
    """
    return hmac.compare_digest(sign_payload(body, secret), signature.strip().lower())


def webhook_headers(body: bytes, secret: str) -> Dict[str, str]:
    return {
        "Content-Type": "application/json",
        "User-Agent": WEBHOOK_USER_AGENT,
        WEBHOOK_SIGNATURE_HEADER: sign_payload(body, secret),
    }


class WebhookDispatcher(PayloadDispatcher):
    """
    Delivers the payload to a static list of webhook endpoints.

    Each endpoint gets at most one POST per cycle, bounded by the timeout.
    With no endpoints configured, delivering is a no-op.
    """

    def __init__(
        self,
        session: aiohttp.ClientSession,
        endpoints: Sequence[WebhookEndpoint],
        timeout: int,
    ) -> None:
        """
        Initializes the dispatcher with a shared aiohttp ClientSession.

        Args:
            session: An active aiohttp.ClientSession.
            endpoints: The webhook endpoints, in delivery order.
            timeout: The timeout in seconds of each delivery.
        """
        self._session: aiohttp.ClientSession = session
        self._endpoints: Tuple[WebhookEndpoint, ...] = tuple(endpoints)
        self._timeout: aiohttp.ClientTimeout = aiohttp.ClientTimeout(total=timeout)

    async def _deliver_one(self, endpoint: WebhookEndpoint, body: bytes) -> DeliveryOutcome:
        """
        A helper method to safely deliver to a single endpoint.

        All exceptions are caught and reported in the outcome, but not propagated.
        """
        try:
            async with self._session.request(
                WEBHOOK_HTTP_VERB,
                endpoint.url,
                data=body,
                headers=webhook_headers(body, endpoint.secret),
                timeout=self._timeout,
            ) as response:
                status: int = response.status
                await response.read()
        except Exception as e:
            logger.warning(f"Webhook delivery to {endpoint.url} failed: {describe_error(e)}")
            return DeliveryOutcome(
                url=endpoint.url, delivered=False, status=None, error=describe_error(e)
            )

        if not 200 <= status < 300:
            logger.warning(f"Webhook {endpoint.url} rejected the payload with status {status}")
            return DeliveryOutcome(
                url=endpoint.url,
                delivered=False,
                status=status,
                error=f"Unexpected status code {status}",
            )

        logger.debug(f"Payload delivered to {endpoint.url} with status {status}")
        return DeliveryOutcome(url=endpoint.url, delivered=True, status=status)

    async def deliver(self, payload: Payload) -> List[DeliveryOutcome]:
        """
        Serializes the payload once and delivers it to every endpoint concurrently.

        The same serialized bytes are signed and sent to all endpoints.

        Args:
            payload: The payload assembled for the current cycle.

        Returns:
            List[DeliveryOutcome]: One outcome per endpoint, in endpoint order.
        """
        if not self._endpoints:
            return []

        body: bytes = payload.serialize()
        tasks = [self._deliver_one(endpoint, body) for endpoint in self._endpoints]
        return list(await asyncio.gather(*tasks))
