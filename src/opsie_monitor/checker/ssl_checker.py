"""
TLS certificate checker.

Opens a verified TLS connection to the monitored host and describes the
certificate it presents. The handshake uses the default trust store and
hostname verification, so self-signed, untrusted or mismatching certificates
are reported as invalid.
"""

import asyncio
import logging
import ssl
from datetime import datetime, timezone
from typing import List, Optional, Tuple
from urllib.parse import urlsplit

from cryptography import x509
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import dsa, ec, ed448, ed25519, rsa
from cryptography.x509.oid import NameOID

from opsie_monitor.contracts import SiteChecker
from opsie_monitor.domain import TlsResult, iso_now
from opsie_monitor.errors import describe_error

# Module logger
logger = logging.getLogger(__name__)

DEFAULT_TLS_PORT = 443


def tls_host_port_from_url(url: str) -> Tuple[str, int]:
    """
    Extracts the host and port to inspect from a URL.

    The URL port is used only for https URLs, anything else is inspected on 443.

    Raises:
        ValueError: If the URL has no host.
    """
    parts = urlsplit(url.strip())
    host = parts.hostname
    if not host:
        raise ValueError(f"No host found in URL: {url}")
    port = DEFAULT_TLS_PORT
    if parts.scheme.lower() == "https" and parts.port:
        port = parts.port
    return host, port


def _first_attribute(name: x509.Name, oid: x509.ObjectIdentifier) -> Optional[str]:
    attributes = name.get_attributes_for_oid(oid)
    if not attributes:
        return None
    value = attributes[0].value
    return value.decode("utf-8", "replace") if isinstance(value, bytes) else value


def _san_domains(certificate: x509.Certificate) -> List[str]:
    try:
        extension = certificate.extensions.get_extension_for_class(x509.SubjectAlternativeName)
    except x509.ExtensionNotFound:
        return []
    return extension.value.get_values_for_type(x509.DNSName)


def _signature_algorithm(certificate: x509.Certificate) -> str:
    """
    Returns the signature algorithm as '<KEY>-<HASH>', e.g. 'RSA-SHA256'.
    """
    public_key = certificate.public_key()
    if isinstance(public_key, rsa.RSAPublicKey):
        key_type = "RSA"
    elif isinstance(public_key, ec.EllipticCurvePublicKey):
        key_type = "ECDSA"
    elif isinstance(public_key, dsa.DSAPublicKey):
        key_type = "DSA"
    elif isinstance(public_key, ed25519.Ed25519PublicKey):
        return "ED25519"
    elif isinstance(public_key, ed448.Ed448PublicKey):
        return "ED448"
    else:
        key_type = type(public_key).__name__
    hash_algorithm = certificate.signature_hash_algorithm
    if hash_algorithm is None:
        return key_type
    return f"{key_type}-{hash_algorithm.name.upper()}"


def describe_certificate(url: str, started_at: str, der: bytes, now: datetime) -> TlsResult:
    """
    Builds a successful TlsResult from a DER encoded certificate.

    Args:
        url: The monitored URL.
        started_at: ISO-8601 timestamp of the check start.
        der: The certificate presented by the server.
        now: The reference time for validity and remaining days.

    Returns:
        TlsResult: The description of the certificate.
    """
    certificate = x509.load_der_x509_certificate(der)
    valid_from = certificate.not_valid_before_utc
    expires_on = certificate.not_valid_after_utc
    additional_domains = _san_domains(certificate)
    domain = _first_attribute(certificate.subject, NameOID.COMMON_NAME)
    if domain is None and additional_domains:
        domain = additional_domains[0]
    issuer = _first_attribute(certificate.issuer, NameOID.COMMON_NAME)

    return TlsResult(
        url=url,
        time=started_at,
        valid=valid_from <= now <= expires_on,
        issuer=issuer or certificate.issuer.rfc4514_string(),
        expired=now > expires_on,
        valid_from=valid_from.isoformat(),
        expires_on=expires_on.isoformat(),
        days_remaining=(expires_on - now).days,
        domain=domain,
        algorithm=_signature_algorithm(certificate),
        fingerprint=certificate.fingerprint(hashes.SHA256()).hex(),
        additional_domains=additional_domains,
    )


class SslCertificateChecker(SiteChecker[TlsResult]):
    """
    A concrete implementation of SiteChecker inspecting the TLS certificate.

    When disabled it returns None, which is serialized as an empty object.
    """

    def __init__(
        self, enabled: bool, timeout: int, ssl_context: Optional[ssl.SSLContext] = None
    ) -> None:
        """
        Args:
            enabled: Whether the check runs at all.
            timeout: Timeout in seconds for connecting and completing the handshake.
            ssl_context: The context verifying the certificate. Defaults to the
                system trust store with hostname verification.
        """
        self._enabled: bool = enabled
        self._timeout: int = timeout
        self._ssl_context: ssl.SSLContext = ssl_context or ssl.create_default_context()

    async def _fetch_certificate(self, host: str, port: int) -> bytes:
        writer: Optional[asyncio.StreamWriter] = None
        try:
            _, writer = await asyncio.wait_for(
                asyncio.open_connection(
                    host=host, port=port, ssl=self._ssl_context, server_hostname=host
                ),
                timeout=self._timeout,
            )
            ssl_object = writer.get_extra_info("ssl_object")
            der = ssl_object.getpeercert(binary_form=True) if ssl_object else None
            if not der:
                raise ssl.SSLError(f"No certificate presented by {host}:{port}")
            return der
        finally:
            if writer is not None:
                writer.close()
                try:
                    await writer.wait_closed()
                except (OSError, ssl.SSLError) as e:
                    logger.debug(f"Error closing TLS connection to {host}:{port}: {e}")

    async def check(self, url: str) -> Optional[TlsResult]:
        """
        Fetches and describes the certificate of the URL's host.

        Args:
            url: The monitored URL.

        Returns:
            Optional[TlsResult]: None if the check is disabled, otherwise the
                certificate description or a failure with a message.
        """
        if not self._enabled:
            return None

        started_at: str = iso_now()
        try:
            host, port = tls_host_port_from_url(url)
            der = await self._fetch_certificate(host, port)
            result = describe_certificate(url, started_at, der, datetime.now(timezone.utc))
        except Exception as e:
            logger.warning(f"SSL check failed for {url}: {describe_error(e)}")
            return self.failure_result(url, e, started_at)

        logger.debug(f"SSL check for {url}: valid={result.valid}, expires on {result.expires_on}")
        return result

    def failure_result(
        self, url: str, error: BaseException, started_at: Optional[str] = None
    ) -> TlsResult:
        return TlsResult(
            url=url,
            time=started_at or iso_now(),
            valid=False,
            message=describe_error(error),
        )
