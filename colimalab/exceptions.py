"""Custom exceptions for colimalab."""


class ColimaLabError(Exception):
    """Base exception for all colimalab errors."""

    def __init__(self, message: str, details: str = None):
        """Initialize the exception.

        Args:
            message: Main error message
            details: Additional details or suggestions
        """
        self.message = message
        self.details = details
        super().__init__(self.format_message())

    def format_message(self) -> str:
        """Format the complete error message.

        Returns:
            Formatted error message with details
        """
        if self.details:
            return f"{self.message}\n\nDetails: {self.details}"
        return self.message


class CommandError(ColimaLabError):
    """Exception raised when an external command fails."""

    def __init__(
        self, message: str, details: str = None, returncode: int | None = None, output: str = ""
    ):
        self.returncode = returncode
        self.output = output
        super().__init__(message, details)


class ConnectivityError(ColimaLabError):
    """Exception raised when a remote host cannot be reached over SSH."""

    pass


class InstallationError(ColimaLabError):
    """Exception raised when the package manager fails to install something."""

    pass


class ConfigurationError(ColimaLabError):
    """Exception raised for configuration errors."""

    pass


class StepGraphError(ColimaLabError):
    """Exception raised for an invalid step dependency graph."""

    pass


class ProvisioningError(ColimaLabError):
    """Exception raised when a provisioning step aborts the run."""

    def __init__(self, step: str, cause: Exception, completed: dict | None = None):
        self.step = step
        self.cause = cause
        self.completed = completed or {}
        message = cause.message if isinstance(cause, ColimaLabError) else str(cause)
        details = cause.details if isinstance(cause, ColimaLabError) else None
        super().__init__(f"Step '{step}' failed: {message}", details)
