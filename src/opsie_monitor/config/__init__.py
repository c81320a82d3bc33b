"""
Configuration module for the website monitoring system.

This module provides functionality to parse command-line arguments and environment
variables to create a configuration context for the monitor. It defines
default values and help text for all configurable parameters, and turns the
raw option values into the immutable MonitorConfig.
"""

import argparse
import json
import os
from typing import Any, Dict, List, Optional, Sequence, Tuple
from uuid import uuid4

from opsie_monitor.config.constants import (
    DEFAULT_ACCEPT_HEADER,
    DEFAULT_DNS_SERVERS,
    DEFAULT_INTERVAL,
    DEFAULT_LOGGING_CONFIG_FILE,
    DEFAULT_LOGGING_TYPE,
    DEFAULT_METHOD,
    DEFAULT_MONITOR_ID_PREFIX,
    DEFAULT_TIMEOUT,
    ENV_PREFIX,
)
from opsie_monitor.config.monitoring_context import MonitorConfig
from opsie_monitor.domain import AuthMode, HttpMethod, WebhookEndpoint
from opsie_monitor.errors import ConfigurationError


def _env(name: str, default: Optional[str] = None) -> Optional[str]:
    return os.getenv(f"{ENV_PREFIX}{name}", default)


def _env_flag(name: str) -> bool:
    return (_env(name) or "").lower() == "true"


def _env_list(name: str) -> List[str]:
    raw = _env(name)
    if not raw:
        return []
    return [item.strip() for item in raw.split(",") if item.strip()]


def parse_key_value_pairs(pairs: Sequence[str], option: str) -> Dict[str, str]:
    """
    Transforms a list of 'key=value' strings into an ordered mapping.

    Each entry is split on the first '=' so values may contain '='.
    A later entry with the same key overrides the earlier one.

    Args:
        pairs: The raw option values.
        option: The option name, used in error messages.

    Returns:
        Dict[str, str]: The parsed pairs, in input order.

    Raises:
        ConfigurationError: If an entry has no '=', an empty key, or is not valid UTF-8.
    """
    parsed: Dict[str, str] = {}
    for pair in pairs:
        try:
            pair.encode("utf-8")
        except UnicodeEncodeError as err:
            raise ConfigurationError(
                f"Invalid --{option} value {pair!r}, it is not valid UTF-8."
            ) from err
        key, separator, value = pair.partition("=")
        key = key.strip()
        if not separator or not key:
            raise ConfigurationError(f"Invalid --{option} value {pair!r}, expected key=value.")
        parsed[key] = value
    return parsed


def parse_body(raw_body: Optional[str]) -> Optional[Dict[str, Any]]:
    """
    Decodes the request body option.

    Args:
        raw_body: A JSON object as a string, or None/empty for no body.

    Returns:
        The decoded object, or None when no body was given.

    Raises:
        ConfigurationError: If the value is not valid JSON or not a JSON object.
    """
    if not raw_body:
        return None
    try:
        body = json.loads(raw_body)
    except json.JSONDecodeError as err:
        raise ConfigurationError(f"Invalid JSON in --body: {err}") from err
    if not isinstance(body, dict):
        raise ConfigurationError("--body must be a JSON object.")
    return body


def pair_webhooks(urls: Sequence[str], secrets: Sequence[str]) -> Tuple[WebhookEndpoint, ...]:
    """
    Pairs webhook URLs with their secrets positionally.

    The nth URL is signed with the nth secret. Lists of different lengths
    disable webhooks entirely instead of pairing partially, so that monitoring
    keeps running with a bad webhook configuration. The caller reports the
    mismatch, once logging is configured.

    Args:
        urls: The webhook URLs.
        secrets: The webhook secrets.

    Returns:
        Tuple[WebhookEndpoint, ...]: The endpoints, in delivery order.
    """
    if len(urls) != len(secrets):
        return ()
    return tuple(WebhookEndpoint(url=url, secret=secret) for url, secret in zip(urls, secrets))


def resolve_auth_mode(
    username: Optional[str], use_digest_auth: bool, bearer_token: Optional[str]
) -> AuthMode:
    """
    Chooses the authentication scheme. Username based auth wins over the bearer token.
    """
    if username:
        return AuthMode.DIGEST if use_digest_auth else AuthMode.BASIC
    if bearer_token:
        return AuthMode.BEARER
    return AuthMode.NONE


def should_check_ssl(url: str, override: Optional[bool]) -> bool:
    """
    Returns whether the TLS check runs: the explicit override if given,
    otherwise True only for https URLs.
    """
    if override is not None:
        return override
    return url.lower().startswith("https://")


def _parse_method(method: str) -> HttpMethod:
    try:
        return HttpMethod(method.upper())
    except ValueError as err:
        allowed = ", ".join(m.value for m in HttpMethod)
        raise ConfigurationError(
            f"Unsupported HTTP method: {method}. Allowed values are: {allowed}"
        ) from err


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="opsie-monitor",
        description="Monitor the given website URL and deliver the results to webhooks.",
    )

    parser.add_argument(
        "url",
        type=str,
        help="The URL to check for HTTP, SSL and DNS.",
    )

    parser.add_argument(
        "-m",
        "--method",
        type=str,
        default=_env("METHOD", DEFAULT_METHOD),
        help="The HTTP method of the check request.\n"
        "If not provided, the value is read from the OPSIE_MONITOR_METHOD environment variable.\n"
        f"If that is also absent, a default value of {DEFAULT_METHOD} is used.",
    )

    parser.add_argument(
        "--body",
        type=str,
        default=_env("BODY"),
        help="JSON object with the body to send. GET requests send it as query parameters.",
    )

    parser.add_argument(
        "--post-as-form",
        action="store_true",
        default=_env_flag("POST_AS_FORM"),
        help="Send the body form-encoded (application/x-www-form-urlencoded) instead of JSON.",
    )

    parser.add_argument(
        "--header",
        action="append",
        default=None,
        help="A key=value header to set on the check request. Can be repeated.",
    )

    parser.add_argument(
        "--accept-header",
        type=str,
        default=_env("ACCEPT_HEADER", DEFAULT_ACCEPT_HEADER),
        help=f"The Accept header value. Defaults to {DEFAULT_ACCEPT_HEADER}.",
    )

    parser.add_argument(
        "-t",
        "--timeout",
        type=int,
        default=int(_env("TIMEOUT", str(DEFAULT_TIMEOUT))),
        help="Specifies the timeout in seconds for each check and webhook delivery.\n"
        "If not provided, the value is read from the OPSIE_MONITOR_TIMEOUT environment variable.\n"
        f"If that is also absent, a default value of {DEFAULT_TIMEOUT} seconds is used.",
    )

    parser.add_argument(
        "-i",
        "--interval",
        type=int,
        default=int(_env("INTERVAL", str(DEFAULT_INTERVAL))),
        help="Specifies the interval in seconds between two checks.\n"
        "If not provided, the value is read from the OPSIE_MONITOR_INTERVAL environment variable.\n"
        f"If that is also absent, a default value of {DEFAULT_INTERVAL} seconds is used.",
    )

    parser.add_argument(
        "--username",
        type=str,
        default=_env("USERNAME"),
        help="The HTTP auth username. Setting it overrides --bearer-token.",
    )

    parser.add_argument(
        "--password",
        type=str,
        default=_env("PASSWORD"),
        help="The HTTP auth password.",
    )

    parser.add_argument(
        "--digest-auth",
        action="store_true",
        default=_env_flag("DIGEST_AUTH"),
        help="Use digest auth instead of basic auth.",
    )

    parser.add_argument(
        "--bearer-token",
        type=str,
        default=_env("BEARER_TOKEN"),
        help="The bearer token to authorize the request. Ignored if --username is set.",
    )

    parser.add_argument(
        "--metadata",
        action="append",
        default=None,
        help="A key=value pair attached to every payload. Can be repeated.",
    )

    parser.add_argument(
        "--webhook-url",
        action="append",
        default=None,
        help="A webhook URL to deliver the payload to. Can be repeated.\n"
        "Falls back to the comma separated OPSIE_MONITOR_WEBHOOK_URL environment variable.",
    )

    parser.add_argument(
        "--webhook-secret",
        action="append",
        default=None,
        help="The secret signing the webhook URL at the same position. Can be repeated.\n"
        "Falls back to the comma separated OPSIE_MONITOR_WEBHOOK_SECRET environment variable.",
    )

    parser.add_argument(
        "--dns-checking",
        action="store_true",
        default=_env_flag("DNS_CHECKING"),
        help="Enable DNS resolving checks for the domain.",
    )

    parser.add_argument(
        "--dns-checking-server",
        action="append",
        default=None,
        help='A DNS resolver: "google", "cloudflare", "local" or any nameserver IP/hostname.\n'
        "Can be repeated, the order of the options defines the chain order.\n"
        f"Defaults to {', '.join(DEFAULT_DNS_SERVERS)}.",
    )

    parser.add_argument(
        "--ssl-checking",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Force the SSL certificate check on or off.\n"
        "By default it runs only for https URLs.",
    )

    parser.add_argument(
        "--once",
        action="store_true",
        default=_env_flag("ONCE"),
        help="Perform only one check, without monitoring the resource.",
    )

    parser.add_argument(
        "--monitor-id",
        type=str,
        default=_env("MONITOR_ID", f"{DEFAULT_MONITOR_ID_PREFIX}{uuid4()}"),
        help="Specifies the identifier of this monitor instance, added to every log record.\n"
        f"If absent, the default value will be {DEFAULT_MONITOR_ID_PREFIX}uuid4().",
    )

    parser.add_argument(
        "-lt",
        "--logging-type",
        type=str,
        default=_env("LOGGING_TYPE", DEFAULT_LOGGING_TYPE),
        help="Specifies the logging configuration type to use.\n"
        "Allowed values: dev, prod, custom (case insensitive).\n"
        "For 'dev' and 'prod', system will use built-in configurations.\n"
        "For 'custom', the --logging-config-file argument is required.",
    )

    parser.add_argument(
        "-lcf",
        "--logging-config-file",
        type=str,
        default=_env("LOGGING_CONFIG_FILE", DEFAULT_LOGGING_CONFIG_FILE),
        help="Path to custom logging configuration file.\n"
        "Required when --logging-type is set to 'custom'.",
    )

    return parser


def get_context(argv: Optional[Sequence[str]] = None) -> MonitorConfig:
    """
    Parse command-line arguments and environment variables to create the monitor configuration.

    For each option, it first checks for a command-line argument, then falls back
    to an environment variable, and finally uses a default value.

    Args:
        argv: The arguments to parse. Defaults to sys.argv[1:].

    Returns:
        MonitorConfig: The immutable configuration of this run.

    Raises:
        ConfigurationError: If an option value is invalid.
    """
    args: Any = _build_parser().parse_args(argv)

    if args.timeout <= 0:
        raise ConfigurationError("--timeout must be a positive number of seconds.")
    if args.interval < 0:
        raise ConfigurationError("--interval must not be negative.")

    webhook_urls: List[str] = args.webhook_url or _env_list("WEBHOOK_URL")
    webhook_secrets: List[str] = args.webhook_secret or _env_list("WEBHOOK_SECRET")
    dns_servers: List[str] = (
        args.dns_checking_server or _env_list("DNS_CHECKING_SERVER") or list(DEFAULT_DNS_SERVERS)
    )
    ssl_override: Optional[bool] = args.ssl_checking
    if ssl_override is None and _env("SSL_CHECKING"):
        ssl_override = _env_flag("SSL_CHECKING")

    # Reported by the caller once logging is configured
    warnings: List[str] = []
    if len(webhook_urls) != len(webhook_secrets):
        warnings.append(
            f"Got {len(webhook_urls)} webhook URLs and {len(webhook_secrets)} webhook secrets. "
            "Webhooks are disabled for this run."
        )

    return MonitorConfig(
        url=args.url,
        method=_parse_method(args.method),
        body=parse_body(args.body),
        post_as_form=args.post_as_form,
        headers=parse_key_value_pairs(args.header or [], "header"),
        accept_header=args.accept_header,
        timeout=args.timeout,
        auth_mode=resolve_auth_mode(args.username, args.digest_auth, args.bearer_token),
        username=args.username,
        password=args.password,
        bearer_token=args.bearer_token,
        interval=args.interval,
        once=args.once,
        metadata=parse_key_value_pairs(args.metadata or [], "metadata"),
        webhooks=pair_webhooks(webhook_urls, webhook_secrets),
        dns_checking=args.dns_checking,
        dns_servers=tuple(dns_servers),
        ssl_checking=should_check_ssl(args.url, ssl_override),
        monitor_id=args.monitor_id,
        logging_type=args.logging_type,
        logging_config_file=args.logging_config_file,
        warnings=tuple(warnings),
    )
