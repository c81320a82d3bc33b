"""
Logging setup for the monitor process.

Logging is configured once at startup through logging.config.dictConfig,
from either one of the JSON files shipped next to this module (dev or prod)
or a user supplied JSON file. Afterwards every record carries the
'monitor_id' of this instance, so the output of several monitors sharing a
log sink can be told apart.
"""

import json
import logging.config
import os
from typing import Any, Dict

from opsie_monitor.config.monitoring_context import MonitorConfig


def configure_logging(context: MonitorConfig) -> None:
    """
    Applies the logging configuration selected by the monitor settings.

    'dev' and 'prod' (case insensitive) load logging-config-dev.json and
    logging-config-prod.json from this package, 'custom' loads the file
    named by --logging-config-file. Once loaded, a _MonitorIdFilter stamped
    with context.monitor_id is attached to the root logger and to each of
    its handlers, since handler filters are the ones that see records
    propagated from the opsie_monitor.* loggers.

    Args:
        context: The monitor settings, read for logging_type,
            logging_config_file and monitor_id.

    Raises:
        ValueError: If the logging type is empty or unknown, or 'custom' is
            selected without a configuration file.
        RuntimeError: If the configuration file cannot be loaded.
    """
    logging_type: str = context.logging_type.lower()
    if not logging_type:
        raise ValueError("Logging type must be provided.")
    elif logging_type == "dev":
        file_path = _get_local_package_file_path("logging-config-dev.json")
        _load_logging_config(file_path)
    elif logging_type == "prod":
        file_path = _get_local_package_file_path("logging-config-prod.json")
        _load_logging_config(file_path)
    elif logging_type == "custom":
        if not context.logging_config_file:
            raise ValueError("Custom logging configuration file must be provided.")
        else:
            _load_logging_config(context.logging_config_file)
    else:
        raise ValueError(
            f"Invalid logging type: {context.logging_type}. Allowed values are: dev, prod, custom"
        )

    # Records of child loggers bypass root logger filters, so attach to handlers.
    instance_filter = _MonitorIdFilter(monitor_id=context.monitor_id)
    root_logger = logging.getLogger()
    root_logger.addFilter(instance_filter)
    for handler in root_logger.handlers:
        handler.addFilter(instance_filter)

    logging.debug(f"Logging configured for monitor {context.monitor_id}.")


def _load_logging_config(config_file: str) -> None:
    """
    Reads a dictConfig mapping from a JSON file and applies it.

    Every failure is reported as a RuntimeError naming the file, which the
    console script turns into exit status 2.
    """
    try:
        with open(config_file) as f:
            config: Dict[str, Any] = json.load(f)
            logging.config.dictConfig(config)
    except FileNotFoundError as err:
        raise RuntimeError(f"Logging config file not found: {config_file}") from err
    except json.JSONDecodeError as err:
        raise RuntimeError(f"Invalid JSON format in logging config file: {config_file}") from err
    except Exception as err:
        raise RuntimeError(f"Error loading logging config: {str(err)}") from err


def _get_local_package_file_path(config_file: str) -> str:
    """Path of a configuration file shipped in this package."""
    return os.path.join(os.path.dirname(__file__), config_file)


class _MonitorIdFilter(logging.Filter):
    """
    Stamps each record with the identifier of this monitor instance.

    The builtin formats print it as %(monitor_id)s. Records are never
    dropped.
    """

    def __init__(self, monitor_id: str) -> None:
        super().__init__()
        self._monitor_id: str = monitor_id

    def filter(self, record: logging.LogRecord) -> bool:
        record.monitor_id = self._monitor_id
        return True
