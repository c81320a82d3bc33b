"""
Domain models for the website monitoring system.

This module defines the core data structures used throughout the application:
the per-check results, the merged payload delivered to webhooks, the webhook
endpoints themselves and the timing trace filled in during an HTTP check.
All result values are immutable and are created fresh on every cycle.
"""

import json
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, NamedTuple, Optional


def iso_now() -> str:
    """Returns the current UTC time as an ISO-8601 string with second precision."""
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat()


class HttpMethod(str, Enum):
    """
    Defines supported HTTP methods as a type-safe enumeration.

    Inheriting from 'str' allows enum members to behave like strings,
    making them compatible with libraries expecting string values.
    """

    GET = "GET"
    HEAD = "HEAD"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"
    PATCH = "PATCH"
    OPTIONS = "OPTIONS"


class AuthMode(str, Enum):
    """The authentication scheme used by the HTTP check."""

    NONE = "none"
    BASIC = "basic"
    DIGEST = "digest"
    BEARER = "bearer"


class WebhookEndpoint(NamedTuple):
    """
    A destination for the monitoring payload.

    Attributes:
        url: The URL the payload is POSTed to.
        secret: The shared secret used to sign the payload. It is never
            logged nor included in the payload.
    """

    url: str
    secret: str

    def __repr__(self) -> str:
        return f"WebhookEndpoint(url={self.url!r}, secret='***')"


class RequestTrace:
    """
    Mutable holder for the low-level timestamps of a single HTTP request.

    An instance is passed as 'trace_request_ctx' to aiohttp, and the hooks
    registered by the trace config record event loop timestamps into it.
    Every attribute stays None when the matching event did not happen
    (e.g. no DNS lookup because the host was cached).
    """

    def __init__(self) -> None:
        self.request_start: Optional[float] = None
        self.dns_resolve_end: Optional[float] = None
        self.connection_end: Optional[float] = None
        self.headers_sent: Optional[float] = None
        self.response_start: Optional[float] = None
        self.request_end: Optional[float] = None
        self.is_ssl: bool = False

    def _elapsed_ms(self, timestamp: Optional[float]) -> float:
        if timestamp is None or self.request_start is None:
            return 0.0
        return round((timestamp - self.request_start) * 1000, 3)

    def timing(self) -> Dict[str, float]:
        """
        Returns the cumulative durations in milliseconds since the request start.

        Returns:
            Dict[str, float]: The named durations total, dns_resolving, ssl,
                pre_transfer and start_transfer.
        """
        return {
            "total": self._elapsed_ms(self.request_end),
            "dns_resolving": self._elapsed_ms(self.dns_resolve_end),
            "ssl": self._elapsed_ms(self.connection_end) if self.is_ssl else 0.0,
            "pre_transfer": self._elapsed_ms(self.headers_sent),
            "start_transfer": self._elapsed_ms(self.response_start),
        }


class HttpResult(NamedTuple):
    """
    The outcome of a single HTTP check.

    Attributes:
        url: The URL that was checked.
        time: ISO-8601 timestamp taken when the check started.
        status: The HTTP status code, or 0 if the request never completed.
        up: True only if the response was fully received with a 2xx status.
        timing: Named durations in milliseconds, empty on failure.
        message: A description of the failure, or None on success.
    """

    url: str
    time: str
    status: int
    up: bool
    timing: Dict[str, float]
    message: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "url": self.url,
            "time": self.time,
            "status": self.status,
            "up": self.up,
            "timing": dict(self.timing),
        }
        if self.message is not None:
            data["message"] = self.message
        return data


class TlsResult(NamedTuple):
    """
    The outcome of a single TLS certificate check.

    On failure only 'url', 'time', 'valid' (False) and 'message' are set and
    every descriptive field is None.
    """

    url: str
    time: str
    valid: bool
    issuer: Optional[str] = None
    expired: Optional[bool] = None
    valid_from: Optional[str] = None
    expires_on: Optional[str] = None
    days_remaining: Optional[int] = None
    domain: Optional[str] = None
    algorithm: Optional[str] = None
    fingerprint: Optional[str] = None
    additional_domains: Optional[List[str]] = None
    message: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"url": self.url, "time": self.time, "valid": self.valid}
        if self.message is not None:
            data["message"] = self.message
            return data
        data.update(
            {
                "issuer": self.issuer,
                "expired": self.expired,
                "valid_from": self.valid_from,
                "expires_on": self.expires_on,
                "days_remaining": self.days_remaining,
                "domain": self.domain,
                "algorithm": self.algorithm,
                "fingerprint": self.fingerprint,
                "additional_domains": list(self.additional_domains or []),
            }
        )
        return data


class DnsRecord(NamedTuple):
    """
    A single resource record returned by one resolver of the chain.

    Attributes:
        resolver: The resolver identifier that returned the record.
        name: The owner name of the record, without the trailing dot.
        type: The record type, e.g. 'A' or 'MX'.
        ttl: The time-to-live reported by the resolver.
        value: The record data in presentation format.
    """

    resolver: str
    name: str
    type: str
    ttl: int
    value: str

    def to_dict(self) -> Dict[str, Any]:
        return self._asdict()


class DnsResult(NamedTuple):
    """
    The aggregated records of every resolver in the chain.

    A resolver that fails contributes no records. 'message' is set only when
    the check could not run at all, e.g. the URL has no host.
    """

    url: str
    time: str
    records: List[DnsRecord]
    message: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "url": self.url,
            "time": self.time,
            "records": [record.to_dict() for record in self.records],
        }
        if self.message is not None:
            data["message"] = self.message
        return data


class Payload(NamedTuple):
    """
    The merged findings of one monitoring cycle.

    A disabled check is represented by None and serialized as an empty object.
    The field order (http, ssl, dns, metadata) is part of the wire format,
    since receivers verify the signature over the exact bytes.
    """

    http: HttpResult
    ssl: Optional[TlsResult]
    dns: Optional[DnsResult]
    metadata: Dict[str, str]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "http": self.http.to_dict(),
            "ssl": self.ssl.to_dict() if self.ssl is not None else {},
            "dns": self.dns.to_dict() if self.dns is not None else {},
            "metadata": dict(self.metadata),
        }

    def serialize(self) -> bytes:
        """
        Returns the canonical JSON encoding of the payload.

        Two payloads built from identical inputs always produce identical bytes.
        Non-ASCII characters are escaped, so any string, including one holding
        lone surrogates from undecodable command-line bytes, can be encoded.
        """
        return json.dumps(self.to_dict(), separators=(",", ":")).encode("ascii")


class DeliveryOutcome(NamedTuple):
    """
    The outcome of delivering one payload to one webhook endpoint.

    Attributes:
        url: The endpoint URL.
        delivered: True if the endpoint answered with a 2xx status.
        status: The HTTP status code received, or None if no response arrived.
        error: A description of the failure, or None on success.
    """

    url: str
    delivered: bool
    status: Optional[int]
    error: Optional[str] = None
