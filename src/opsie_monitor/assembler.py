"""
Payload assembly for the website monitoring system.

Merges the results of one cycle's checks with the caller supplied metadata.
"""

from typing import Mapping, Optional

from .domain import DnsResult, HttpResult, Payload, TlsResult


def assemble(
    http_result: HttpResult,
    tls_result: Optional[TlsResult],
    dns_result: Optional[DnsResult],
    metadata: Mapping[str, str],
) -> Payload:
    """
    Merges the check results and metadata into a single payload.

    This is a pure structural merge; the metadata is copied so later changes
    to the mapping cannot leak into an already assembled payload.

    Args:
        http_result: The result of the HTTP check.
        tls_result: The result of the TLS check, or None when disabled.
        dns_result: The result of the DNS check, or None when disabled.
        metadata: Opaque key/value pairs passed through to the receivers.

    Returns:
        Payload: The payload for the current cycle.
    """
    return Payload(http=http_result, ssl=tls_result, dns=dns_result, metadata=dict(metadata))
