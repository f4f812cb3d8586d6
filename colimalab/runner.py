"""Command execution on the workstation and on remote hosts.

Every external side effect of a provisioning run goes through a
``CommandRunner``: process execution, package installs, SSH, the local
filesystem and HTTP probes. Steps receive a runner instead of calling
``subprocess`` directly, so the same step can run against the real machine,
a remote host over SSH, or a ``RecordingRunner`` that only writes a journal.
"""

import shlex
import shutil
import subprocess
from abc import ABC, abstractmethod
from pathlib import Path

import requests
from pydantic import BaseModel, ConfigDict

from colimalab.exceptions import CommandError, ConnectivityError
from colimalab.logging_config import get_logger

logger = get_logger(__name__)

SSH_OPTIONS = ("-o", "BatchMode=yes", "-o", "StrictHostKeyChecking=accept-new")


class CommandResult(BaseModel):
    """Outcome of a single external command."""

    model_config = ConfigDict(frozen=True)

    args: list[str]
    returncode: int
    output: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def command(self) -> str:
        return shlex.join(self.args)


def _checked(result: CommandResult, check: bool) -> CommandResult:
    """Raise CommandError for a failed result when check is set."""
    if check and not result.ok:
        raise CommandError(
            f"Command failed with exit code {result.returncode}: {result.command}",
            result.output or None,
            returncode=result.returncode,
            output=result.output,
        )
    return result


class CommandRunner(ABC):
    """Capability interface for everything a step does to the outside world."""

    label = "runner"

    @abstractmethod
    def run(
        self, args: list[str], *, check: bool = True, timeout: float | None = None
    ) -> CommandResult:
        """Run a program with an argument vector.

        Args:
            args: Program and arguments
            check: Raise CommandError on a non-zero exit when True; return the
                failed result otherwise (best-effort commands)
            timeout: Optional timeout in seconds

        Returns:
            CommandResult with combined stdout/stderr
        """

    def run_shell(
        self, command: str, *, check: bool = True, timeout: float | None = None
    ) -> CommandResult:
        """Run a command line through bash."""
        return self.run(["bash", "-c", command], check=check, timeout=timeout)

    @abstractmethod
    def command_exists(self, name: str) -> bool:
        """Check whether a program is available on PATH."""

    def check_connection(self) -> None:
        """Verify the runner can execute commands at all.

        Raises:
            ConnectivityError: If a trivial command fails
        """
        try:
            self.run_shell("echo ok", timeout=30)
        except CommandError as e:
            raise ConnectivityError(
                f"Cannot connect to {self.label}",
                e.output
                or f"Check that key-based SSH works without a prompt: ssh {self.label} echo ok",
            ) from e

    def http_get(self, url: str, timeout: float = 5.0) -> str | None:
        """Fetch a URL and return the body, or None on any failure."""
        raise NotImplementedError(f"{type(self).__name__} cannot perform HTTP requests")

    def make_dirs(self, path: str | Path) -> None:
        raise NotImplementedError(f"{type(self).__name__} has no local filesystem access")

    def path_exists(self, path: str | Path) -> bool:
        raise NotImplementedError(f"{type(self).__name__} has no local filesystem access")

    def backup_dir(self, path: str | Path, suffix: str = ".bak") -> bool:
        raise NotImplementedError(f"{type(self).__name__} has no local filesystem access")

    def remove_tree(self, path: str | Path) -> None:
        raise NotImplementedError(f"{type(self).__name__} has no local filesystem access")


class LocalRunner(CommandRunner):
    """Runs commands on the local workstation."""

    label = "local"

    def run(
        self, args: list[str], *, check: bool = True, timeout: float | None = None
    ) -> CommandResult:
        args = [str(a) for a in args]
        logger.debug(f"Running: {shlex.join(args)}")

        try:
            completed = subprocess.run(
                args,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                timeout=timeout,
                check=False,
            )
            result = CommandResult(
                args=args, returncode=completed.returncode, output=completed.stdout.strip()
            )
        except FileNotFoundError:
            logger.error(f"{args[0]} binary not found in PATH")
            result = CommandResult(
                args=args, returncode=127, output=f"{args[0]}: command not found"
            )
        except subprocess.TimeoutExpired:
            logger.error(f"Command timed out after {timeout} seconds: {shlex.join(args)}")
            result = CommandResult(
                args=args, returncode=124, output=f"timed out after {timeout} seconds"
            )

        logger.debug(f"Command completed with return code {result.returncode}")
        return _checked(result, check)

    def command_exists(self, name: str) -> bool:
        return shutil.which(name) is not None

    def http_get(self, url: str, timeout: float = 5.0) -> str | None:
        try:
            response = requests.get(url, timeout=timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            logger.debug(f"GET {url} failed: {e}")
            return None
        return response.text

    def make_dirs(self, path: str | Path) -> None:
        Path(path).mkdir(mode=0o755, parents=True, exist_ok=True)

    def path_exists(self, path: str | Path) -> bool:
        return Path(path).exists()

    def backup_dir(self, path: str | Path, suffix: str = ".bak") -> bool:
        """Move a directory aside, replacing any previous backup.

        Returns:
            True if a backup was made, False if the directory did not exist
        """
        source = Path(path)
        if not source.exists():
            return False

        backup = source.with_name(source.name + suffix)
        if backup.exists():
            shutil.rmtree(backup)
        source.rename(backup)
        logger.info(f"Backed up {source} to {backup}")
        return True

    def remove_tree(self, path: str | Path) -> None:
        shutil.rmtree(path, ignore_errors=True)


class SSHRunner(CommandRunner):
    """Runs commands on a remote host through the local ssh client."""

    def __init__(self, host: str, user: str, transport: CommandRunner | None = None):
        """Initialize the SSH runner.

        Args:
            host: Remote hostname or IP address
            user: Remote login user
            transport: Runner that executes the ssh client (local by default)
        """
        self.host = host
        self.user = user
        self.transport = transport or LocalRunner()

    @property
    def label(self) -> str:
        return f"{self.user}@{self.host}"

    def run(
        self, args: list[str], *, check: bool = True, timeout: float | None = None
    ) -> CommandResult:
        return self.run_shell(shlex.join(str(a) for a in args), check=check, timeout=timeout)

    def run_shell(
        self, command: str, *, check: bool = True, timeout: float | None = None
    ) -> CommandResult:
        logger.debug(f"[{self.label}] {command}")
        return self.transport.run(
            ["ssh", *SSH_OPTIONS, self.label, command], check=check, timeout=timeout
        )

    def command_exists(self, name: str) -> bool:
        return self.run_shell(f"command -v {shlex.quote(name)}", check=False).ok


class RecordedCall(BaseModel):
    """One entry in a RecordingRunner journal."""

    model_config = ConfigDict(frozen=True)

    runner: str
    kind: str  # run, shell, fs or http
    command: str

    def __str__(self) -> str:
        return f"[{self.runner}] {self.command}"


class RecordingRunner(CommandRunner):
    """Runner that records calls instead of executing them.

    Commands succeed with empty output unless a response was registered for
    a matching command prefix, so every idempotency check reads as "absent"
    by default. Several runners can share one journal to observe the global
    order of commands across hosts.
    """

    def __init__(
        self,
        label: str = "local",
        journal: list[RecordedCall] | None = None,
        installed: tuple[str, ...] | list[str] = (),
        http_body: str | None = '{"models":[]}',
    ):
        self.label = label
        self.journal = journal if journal is not None else []
        self.installed = set(installed)
        self.http_body = http_body
        self.paths: set[str] = set()
        self._responses: list[tuple[str, int, str]] = []

    def respond(self, prefix: str, output: str = "", returncode: int = 0) -> "RecordingRunner":
        """Register a canned response; later registrations take precedence."""
        self._responses.insert(0, (prefix, returncode, output))
        return self

    def _record(self, kind: str, command: str) -> None:
        self.journal.append(RecordedCall(runner=self.label, kind=kind, command=command))

    def _respond(self, args: list[str], command: str, check: bool) -> CommandResult:
        for prefix, returncode, output in self._responses:
            if command.startswith(prefix):
                result = CommandResult(args=args, returncode=returncode, output=output.strip())
                break
        else:
            result = CommandResult(args=args, returncode=0)
        return _checked(result, check)

    def run(
        self, args: list[str], *, check: bool = True, timeout: float | None = None
    ) -> CommandResult:
        args = [str(a) for a in args]
        command = shlex.join(args)
        self._record("run", command)
        return self._respond(args, command, check)

    def run_shell(
        self, command: str, *, check: bool = True, timeout: float | None = None
    ) -> CommandResult:
        self._record("shell", command)
        return self._respond(["bash", "-c", command], command, check)

    def command_exists(self, name: str) -> bool:
        return name in self.installed

    def http_get(self, url: str, timeout: float = 5.0) -> str | None:
        self._record("http", f"GET {url}")
        return self.http_body

    def make_dirs(self, path: str | Path) -> None:
        self._record("fs", f"mkdir -p {path}")
        self.paths.add(str(path))

    def path_exists(self, path: str | Path) -> bool:
        return str(path) in self.paths

    def backup_dir(self, path: str | Path, suffix: str = ".bak") -> bool:
        if str(path) not in self.paths:
            return False
        self._record("fs", f"mv {path} {path}{suffix}")
        self.paths.discard(str(path))
        self.paths.add(f"{path}{suffix}")
        return True

    def remove_tree(self, path: str | Path) -> None:
        self._record("fs", f"rm -rf {path}")
        self.paths.discard(str(path))

    @property
    def commands(self) -> list[str]:
        """Commands issued through this runner, in order."""
        return [call.command for call in self.journal if call.runner == self.label]

    def called(self, prefix: str) -> bool:
        return any(command.startswith(prefix) for command in self.commands)
