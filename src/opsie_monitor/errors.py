"""
Error types for the website monitoring system.

Check and delivery failures are never raised; they are reported as result
values. The exceptions below cover the cases where the monitor cannot start.
"""


class MonitorError(Exception):
    """Base class for all errors raised by the monitor."""


class ConfigurationError(MonitorError, ValueError):
    """
    Raised when the monitor configuration cannot be built from its input.

    Examples are a request body that is not a JSON object, a malformed
    key=value option or a negative interval.
    """


def describe_error(error: BaseException) -> str:
    """
    Returns a human-readable, never empty, description of an exception.

    Some exceptions (e.g. asyncio.TimeoutError) have an empty message,
    in which case the class name is used.
    """
    message = str(error).strip()
    return message or type(error).__name__
