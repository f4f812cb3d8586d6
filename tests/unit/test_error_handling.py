"""Tests for error handling across components."""

import logging

import pytest
from rich.logging import RichHandler

from colimalab.exceptions import (
    ColimaLabError,
    CommandError,
    ConfigurationError,
    ConnectivityError,
    InstallationError,
    ProvisioningError,
    StepGraphError,
)
from colimalab.logging_config import get_logger, setup_logging


def test_custom_exception_with_details():
    """Test that custom exceptions support message and details."""
    error = ConnectivityError("Cannot connect to root@nas.local", "Check your SSH key")

    assert error.message == "Cannot connect to root@nas.local"
    assert error.details == "Check your SSH key"
    assert "Cannot connect" in str(error)
    assert "Check your SSH key" in str(error)


def test_custom_exception_without_details():
    """Test that custom exceptions work without details."""
    error = StepGraphError("Invalid input")

    assert error.message == "Invalid input"
    assert error.details is None
    assert str(error) == "Invalid input"


def test_exception_hierarchy():
    """Test that all custom exceptions inherit from ColimaLabError."""
    for exc in (
        CommandError,
        ConnectivityError,
        InstallationError,
            ConfigurationError,
        StepGraphError,
        ProvisioningError,
    ):
        assert issubclass(exc, ColimaLabError)


def test_command_error_carries_output():
    """Test that command errors keep the exit code and output."""
    error = CommandError("Command failed", "boom", returncode=2, output="boom")

    assert error.returncode == 2
    assert error.output == "boom"
    assert "Details: boom" in error.format_message()


def test_provisioning_error_wraps_step_failure():
    """Test that provisioning errors name the step and keep the cause details."""
    cause = InstallationError("Failed to install colima", "brew: no network")
    error = ProvisioningError("colima", cause, {"nfs-export": None})

    assert error.step == "colima"
    assert error.cause is cause
    assert error.message == "Step 'colima' failed: Failed to install colima"
    assert error.details == "brew: no network"
    assert list(error.completed) == ["nfs-export"]


def test_provisioning_error_from_os_error():
    """Test that non-ColimaLab causes are rendered with str()."""
    error = ProvisioningError("colima", PermissionError("denied"))

    assert error.message == "Step 'colima' failed: denied"
    assert error.completed == {}


def test_logging_setup():
    """Test that logging can be configured."""
    setup_logging(level="INFO", verbose=False)

    logger = get_logger("test")
    assert logger is not None
    assert logger.name == "test"


def test_logging_with_log_file(tmp_path):
    """Test that a log file receives debug output."""
    log_file = tmp_path / "logs" / "colimalab.log"
    setup_logging(verbose=True, log_file=log_file)

    get_logger("test").debug("This is a debug message")

    assert log_file.exists()
    assert "This is a debug message" in log_file.read_text()
    setup_logging()


def test_logging_console_uses_rich_on_stderr():
    """Test that console records go through rich at WARNING unless verbose."""
    setup_logging()
    (handler,) = logging.getLogger().handlers
    assert isinstance(handler, RichHandler)
    assert handler.console.stderr
    assert handler.level == logging.WARNING

    setup_logging(verbose=True)
    (handler,) = logging.getLogger().handlers
    assert handler.level == logging.DEBUG
    assert logging.getLogger().level == logging.DEBUG

    setup_logging()


def test_logging_quiets_http_libraries():
    """Test that per-request HTTP logs stay out of verbose output."""
    setup_logging(verbose=True)

    assert logging.getLogger("urllib3").level == logging.WARNING
    assert logging.getLogger("requests").level == logging.WARNING
    setup_logging()


def test_exception_can_be_caught_as_base_class():
    """Test that specific exceptions can be caught as ColimaLabError."""
    with pytest.raises(ColimaLabError) as exc_info:
        raise ConnectivityError("Test error")

    assert isinstance(exc_info.value, ConnectivityError)
    assert exc_info.value.message == "Test error"
