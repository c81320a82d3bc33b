"""
HTTP checker implementation using the aiohttp library.

This module provides an implementation of the SiteChecker interface that
issues a single HTTP request per cycle and records its status and timings.
Certificate verification is disabled for this request: an invalid
certificate is reported by the TLS checker, not by the HTTP check.
"""

import asyncio
import json
import logging
from typing import Any, Dict, Mapping, Optional

import aiohttp

from opsie_monitor.contracts import SiteChecker
from opsie_monitor.domain import AuthMode, HttpMethod, HttpResult, RequestTrace, iso_now
from opsie_monitor.errors import describe_error

# Module logger
logger = logging.getLogger(__name__)

# Methods sending the body as query parameters
_QUERY_METHODS = (HttpMethod.GET, HttpMethod.HEAD)


def _flatten(body: Mapping[str, Any]) -> Dict[str, str]:
    """
    Converts body values to strings for query or form encoding.

    Strings are kept as they are, any other value is JSON encoded.
    """
    return {
        key: value if isinstance(value, str) else json.dumps(value) for key, value in body.items()
    }


class AiohttpHttpChecker(SiteChecker[HttpResult]):
    """
    A concrete implementation of SiteChecker performing the HTTP check.

    It issues exactly one request per call, never retries, and converts every
    transport-level failure into a failed HttpResult.
    """

    def __init__(
        self,
        session: aiohttp.ClientSession,
        method: HttpMethod,
        timeout: int,
        accept_header: str,
        headers: Optional[Mapping[str, str]] = None,
        body: Optional[Mapping[str, Any]] = None,
        post_as_form: bool = False,
        auth_mode: AuthMode = AuthMode.NONE,
        username: Optional[str] = None,
        password: Optional[str] = None,
        bearer_token: Optional[str] = None,
    ) -> None:
        """
        Initializes the checker with a shared aiohttp ClientSession.

        Args:
            session: An active aiohttp.ClientSession carrying the timing trace config.
            method: The HTTP method of the request.
            timeout: The request timeout in seconds.
            accept_header: The value of the Accept header.
            headers: Additional headers, applied on top of the Accept header.
            body: The request body, or None to send no body.
            post_as_form: Whether to form-encode the body instead of sending JSON.
            auth_mode: The authentication scheme.
            username: The basic/digest auth username.
            password: The basic/digest auth password.
            bearer_token: The bearer token.
        """
        self._session: aiohttp.ClientSession = session
        self._method: HttpMethod = method
        self._timeout: aiohttp.ClientTimeout = aiohttp.ClientTimeout(total=timeout)
        self._accept_header: str = accept_header
        self._headers: Dict[str, str] = dict(headers or {})
        self._body: Optional[Dict[str, Any]] = dict(body) if body else None
        self._post_as_form: bool = post_as_form
        self._auth_mode: AuthMode = auth_mode
        self._username: Optional[str] = username
        self._password: Optional[str] = password
        self._bearer_token: Optional[str] = bearer_token

    def _request_options(self) -> Dict[str, Any]:
        """
        Builds the keyword arguments of the request: headers, body and auth.
        """
        headers: Dict[str, str] = {"Accept": self._accept_header}
        headers.update(self._headers)
        options: Dict[str, Any] = {"headers": headers}

        if self._body is not None:
            if self._method in _QUERY_METHODS:
                options["params"] = _flatten(self._body)
            elif self._post_as_form:
                options["data"] = _flatten(self._body)
            else:
                options["json"] = self._body

        if self._auth_mode == AuthMode.BASIC:
            options["auth"] = aiohttp.BasicAuth(self._username or "", self._password or "")
        elif self._auth_mode == AuthMode.DIGEST:
            options["middlewares"] = (
                aiohttp.DigestAuthMiddleware(self._username or "", self._password or ""),
            )
        elif self._auth_mode == AuthMode.BEARER:
            headers["Authorization"] = f"Bearer {self._bearer_token}"

        return options

    async def check(self, url: str) -> HttpResult:
        """
        Performs the HTTP request against the URL.

        The response body is read completely before the check is considered
        successful, so a connection dropped mid-body reports the site as down.

        Args:
            url: The monitored URL.

        Returns:
            HttpResult: The status, up flag and timings, or a failure with
                status 0, empty timings and a message.
        """
        logger.debug(f"Starting HTTP check for: {url}")
        started_at: str = iso_now()
        trace = RequestTrace()

        try:
            async with self._session.request(
                self._method.value,
                url,
                timeout=self._timeout,
                ssl=False,
                trace_request_ctx=trace,
                **self._request_options(),
            ) as response:
                await response.read()
                trace.request_end = asyncio.get_running_loop().time()
                status_code: int = response.status
        except Exception as e:
            logger.warning(f"HTTP check failed for {url}: {describe_error(e)}")
            return self.failure_result(url, e, started_at)

        up = 200 <= status_code < 300
        logger.debug(f"HTTP check for {url} finished with status {status_code}")
        return HttpResult(
            url=url,
            time=started_at,
            status=status_code,
            up=up,
            timing=trace.timing(),
        )

    def failure_result(
        self, url: str, error: BaseException, started_at: Optional[str] = None
    ) -> HttpResult:
        return HttpResult(
            url=url,
            time=started_at or iso_now(),
            status=0,
            up=False,
            timing={},
            message=describe_error(error),
        )
