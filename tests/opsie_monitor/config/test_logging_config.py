"""
Unit tests for the logging configuration module.

This module contains tests for the logging configuration module, ensuring that
it selects the right configuration file for each logging type, reports loading
errors, and injects the monitor ID into log records.

The tests follow the Arrange-Act-Assert (AAA) pattern and use proper mocking
of all external dependencies to ensure true unit testing.
"""

import json
import logging
import os
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from opsie_monitor.config import get_context
from opsie_monitor.config.logging_config import (
    _get_local_package_file_path,
    _load_logging_config,
    _MonitorIdFilter,
    configure_logging,
)
from opsie_monitor.config.monitoring_context import MonitorConfig


def _context(logging_type: str, logging_config_file: str = "") -> MonitorConfig:
    return get_context(["https://example.com", "--monitor-id", "test-monitor"])._replace(
        logging_type=logging_type, logging_config_file=logging_config_file
    )


@pytest.mark.parametrize(
    "logging_type, file_name",
    [("dev", "logging-config-dev.json"), ("PROD", "logging-config-prod.json")],
)
def test_configure_logging_should_load_builtin_configuration(
    logging_type: str, file_name: str
) -> None:
    # Arrange
    with patch("opsie_monitor.config.logging_config._load_logging_config") as mock_load:
        # Act
        configure_logging(_context(logging_type))

        # Assert
        mock_load.assert_called_once()
        assert mock_load.call_args.args[0].endswith(file_name)


def test_configure_logging_should_load_custom_configuration_file() -> None:
    # Arrange
    with patch("opsie_monitor.config.logging_config._load_logging_config") as mock_load:
        # Act
        configure_logging(_context("custom", "/path/to/custom/config.json"))

        # Assert
        mock_load.assert_called_once_with("/path/to/custom/config.json")


def test_configure_logging_should_add_monitor_id_filter_to_root_handlers() -> None:
    # Arrange
    handler = MagicMock(spec=logging.Handler)
    handler.level = logging.CRITICAL
    root_logger = logging.getLogger()
    root_logger.addHandler(handler)
    try:
        with patch("opsie_monitor.config.logging_config._load_logging_config"):
            # Act
            configure_logging(_context("dev"))

        # Assert
        added_filter = handler.addFilter.call_args.args[0]
        assert isinstance(added_filter, _MonitorIdFilter)
    finally:
        root_logger.removeHandler(handler)
        for log_filter in list(root_logger.filters):
            if isinstance(log_filter, _MonitorIdFilter):
                root_logger.removeFilter(log_filter)


@pytest.mark.parametrize(
    "logging_type, logging_config_file",
    [("", ""), ("verbose", ""), ("custom", "")],
)
def test_configure_logging_should_raise_value_error_for_invalid_settings(
    logging_type: str, logging_config_file: str
) -> None:
    # Act / Assert
    with pytest.raises(ValueError):
        configure_logging(_context(logging_type, logging_config_file))


def test_load_logging_config_should_raise_runtime_error_for_missing_file(tmp_path: Path) -> None:
    # Act / Assert
    with pytest.raises(RuntimeError, match="not found"):
        _load_logging_config(str(tmp_path / "missing.json"))


def test_load_logging_config_should_raise_runtime_error_for_invalid_json(tmp_path: Path) -> None:
    # Arrange
    config_file = tmp_path / "broken.json"
    config_file.write_text("{ not json")

    # Act / Assert
    with pytest.raises(RuntimeError, match="Invalid JSON"):
        _load_logging_config(str(config_file))


def test_load_logging_config_should_apply_dict_config(tmp_path: Path) -> None:
    # Arrange
    config = {"version": 1, "disable_existing_loggers": False}
    config_file = tmp_path / "logging.json"
    config_file.write_text(json.dumps(config))

    with patch("logging.config.dictConfig") as mock_dict_config:
        # Act
        _load_logging_config(str(config_file))

        # Assert
        mock_dict_config.assert_called_once_with(config)


@pytest.mark.parametrize("file_name", ["logging-config-dev.json", "logging-config-prod.json"])
def test_builtin_configurations_should_be_valid_and_use_monitor_id(file_name: str) -> None:
    # Arrange
    path = _get_local_package_file_path(file_name)

    # Act
    with open(path) as f:
        config = json.load(f)

    # Assert
    assert os.path.isfile(path)
    assert config["version"] == 1
    assert any("%(monitor_id)s" in f["format"] for f in config["formatters"].values())


def test_monitor_id_filter_should_inject_monitor_id() -> None:
    # Arrange
    record = logging.LogRecord("test", logging.INFO, __file__, 1, "message", None, None)
    monitor_filter = _MonitorIdFilter(monitor_id="monitor-7")

    # Act
    result = monitor_filter.filter(record)

    # Assert
    assert result is True
    assert record.monitor_id == "monitor-7"
