"""
Configuration context for the website monitoring system.

This module defines a data structure that holds all configuration parameters
for the monitoring system. It serves as a central point for passing configuration
throughout the application.
"""

from typing import Any, Dict, NamedTuple, Optional, Tuple

from opsie_monitor.domain import AuthMode, HttpMethod, WebhookEndpoint


class MonitorConfig(NamedTuple):
    """
    A data structure containing all configuration parameters for the monitor.

    This class is immutable and is built once at startup by parsing command-line
    arguments and environment variables. Checkers and the dispatcher read the
    slice they need from it and never mutate it.

    Attributes:
        url: The monitored URL.
        method: The HTTP method used by the HTTP check.
        body: The request body, or None to send no body.
        post_as_form: Whether to form-encode the body instead of sending JSON.
        headers: Additional request headers for the HTTP check.
        accept_header: The value of the Accept header.
        timeout: Timeout in seconds for every network operation.
        auth_mode: The authentication scheme of the HTTP check.
        username: The basic/digest auth username.
        password: The basic/digest auth password.
        bearer_token: The bearer token, ignored when a username is set.
        interval: Seconds to wait between two cycles.
        once: Whether to run a single cycle and exit.
        metadata: Opaque key/value pairs attached to every payload.
        webhooks: The endpoints receiving the payload, in delivery order.
        dns_checking: Whether the DNS check runs.
        dns_servers: The resolver chain, in query order.
        ssl_checking: Whether the TLS certificate check runs.
        monitor_id: Unique identifier of this monitor instance, used in logs.
        logging_type: Type of logging configuration to use (dev, prod, or custom).
        logging_config_file: Path to custom logging configuration file.
        warnings: Configuration problems that did not stop the run, logged at startup.
    """

    url: str
    method: HttpMethod
    body: Optional[Dict[str, Any]]
    post_as_form: bool
    headers: Dict[str, str]
    accept_header: str
    timeout: int
    auth_mode: AuthMode
    username: Optional[str]
    password: Optional[str]
    bearer_token: Optional[str]
    interval: int
    once: bool
    metadata: Dict[str, str]
    webhooks: Tuple[WebhookEndpoint, ...]
    dns_checking: bool
    dns_servers: Tuple[str, ...]
    ssl_checking: bool
    monitor_id: str
    logging_type: str
    logging_config_file: str
    warnings: Tuple[str, ...] = ()
