"""Homebrew helpers shared by the workstation steps."""

from colimalab.exceptions import CommandError, InstallationError
from colimalab.logging_config import get_logger
from colimalab.runner import CommandRunner

logger = get_logger(__name__)


def brew_install(runner: CommandRunner, formula: str) -> None:
    """Install a Homebrew formula.

    Raises:
        InstallationError: If brew exits non-zero
    """
    logger.info(f"Installing {formula} with Homebrew")
    try:
        runner.run(["brew", "install", formula])
    except CommandError as e:
        raise InstallationError(f"Failed to install {formula}", e.output or None) from e


def ensure_installed(runner: CommandRunner, command: str, formula: str | None = None) -> bool:
    """Install a formula only if its command is missing from PATH.

    Returns:
        True if an install was performed
    """
    if runner.command_exists(command):
        logger.debug(f"{command} is already installed")
        return False
    brew_install(runner, formula or command)
    return True
