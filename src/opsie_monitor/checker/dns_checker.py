"""
DNS checker resolving the monitored host through a chain of resolvers.

Every resolver of the chain is queried and all the records they return are
aggregated, instead of stopping at the first answer. Differences between
resolvers (split-horizon DNS, propagation lag) therefore show up in the
payload. A resolver that fails contributes no records and the chain goes on.
"""

import asyncio
import logging
from typing import Dict, List, Optional, Sequence, Tuple
from urllib.parse import urlsplit

import dns.asyncresolver
import dns.exception
import dns.inet
import dns.rdatatype
import dns.resolver

from opsie_monitor.contracts import SiteChecker
from opsie_monitor.domain import DnsRecord, DnsResult, iso_now
from opsie_monitor.errors import describe_error

# Module logger
logger = logging.getLogger(__name__)

# Public resolvers that can be referenced by name
KNOWN_RESOLVERS: Dict[str, Tuple[str, ...]] = {
    "google": ("8.8.8.8", "8.8.4.4"),
    "cloudflare": ("1.1.1.1", "1.0.0.1"),
}

LOCAL_RESOLVER = "local"

RECORD_TYPES: Tuple[str, ...] = ("A", "AAAA", "CNAME", "MX", "NS", "TXT", "SOA", "CAA")


class DnsChainChecker(SiteChecker[DnsResult]):
    """
    A concrete implementation of SiteChecker resolving the URL's host.

    Resolver identifiers are 'google', 'cloudflare', 'local' (the system
    configuration) or the IP address or hostname of any other nameserver.
    """

    def __init__(
        self,
        enabled: bool,
        resolvers: Sequence[str],
        timeout: int,
        record_types: Sequence[str] = RECORD_TYPES,
    ) -> None:
        """
        Args:
            enabled: Whether the check runs at all.
            resolvers: The resolver chain, in query order.
            timeout: Timeout in seconds for each DNS query.
            record_types: The record types queried on every resolver.
        """
        self._enabled: bool = enabled
        self._resolvers: Tuple[str, ...] = tuple(resolvers)
        self._timeout: int = timeout
        self._record_types: Tuple[str, ...] = tuple(record_types)

    async def _nameservers_for(self, identifier: str) -> List[str]:
        """
        Returns the nameserver addresses of a resolver identifier that is
        neither a known public resolver nor the local system resolver.
        """
        if dns.inet.is_address(identifier):
            return [identifier]
        answer = await dns.asyncresolver.resolve(identifier, "A", lifetime=self._timeout)
        return [rdata.to_text() for rdata in answer]

    async def _resolver_for(self, identifier: str) -> dns.asyncresolver.Resolver:
        """
        Builds the resolver matching a chain identifier.

        Raises:
            dns.exception.DNSException: If a nameserver hostname cannot be resolved.
        """
        key = identifier.strip().lower()
        if key == LOCAL_RESOLVER:
            resolver = dns.asyncresolver.Resolver(configure=True)
        else:
            resolver = dns.asyncresolver.Resolver(configure=False)
            if key in KNOWN_RESOLVERS:
                resolver.nameservers = list(KNOWN_RESOLVERS[key])
            else:
                resolver.nameservers = await self._nameservers_for(identifier.strip())
        resolver.timeout = self._timeout
        resolver.lifetime = self._timeout
        return resolver

    async def _query(
        self,
        identifier: str,
        resolver: dns.asyncresolver.Resolver,
        hostname: str,
        record_type: str,
    ) -> List[DnsRecord]:
        try:
            answer = await resolver.resolve(hostname, record_type)
        except (dns.resolver.NoAnswer, dns.resolver.NXDOMAIN):
            return []
        except (dns.exception.DNSException, OSError) as e:
            logger.warning(
                f"Resolver '{identifier}' failed for {record_type} {hostname}: {describe_error(e)}"
            )
            return []

        rrset = answer.rrset
        if rrset is None:
            return []
        name = rrset.name.to_text(omit_final_dot=True)
        rdtype = dns.rdatatype.to_text(rrset.rdtype)
        return [
            DnsRecord(
                resolver=identifier,
                name=name,
                type=rdtype,
                ttl=rrset.ttl,
                value=rdata.to_text(),
            )
            for rdata in rrset
        ]

    async def _resolve_with(self, identifier: str, hostname: str) -> List[DnsRecord]:
        """
        Queries every record type on one resolver of the chain.
        """
        try:
            resolver = await self._resolver_for(identifier)
        except (dns.exception.DNSException, OSError, ValueError) as e:
            logger.warning(f"Resolver '{identifier}' is unavailable: {describe_error(e)}")
            return []

        answers = await asyncio.gather(
            *[
                self._query(identifier, resolver, hostname, record_type)
                for record_type in self._record_types
            ]
        )
        return [record for records in answers for record in records]

    async def check(self, url: str) -> Optional[DnsResult]:
        """
        Resolves the URL's host on every resolver of the chain.

        Resolvers are queried one after the other in chain order, and their
        records are concatenated in that same order.

        Args:
            url: The monitored URL.

        Returns:
            Optional[DnsResult]: None if the check is disabled, otherwise the
                records returned by all the resolvers.
        """
        if not self._enabled:
            return None

        started_at: str = iso_now()
        hostname = urlsplit(url.strip()).hostname
        if not hostname:
            logger.warning(f"DNS check skipped, no host found in URL: {url}")
            return self.failure_result(url, ValueError(f"No host found in URL: {url}"), started_at)

        records: List[DnsRecord] = []
        for identifier in self._resolvers:
            records.extend(await self._resolve_with(identifier, hostname))

        logger.debug(
            f"DNS check for {hostname} returned {len(records)} records "
            f"from {len(self._resolvers)} resolvers"
        )
        return DnsResult(url=url, time=started_at, records=records)

    def failure_result(
        self, url: str, error: BaseException, started_at: Optional[str] = None
    ) -> DnsResult:
        return DnsResult(
            url=url,
            time=started_at or iso_now(),
            records=[],
            message=describe_error(error),
        )
