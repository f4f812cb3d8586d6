"""Provisioning step contract shared by every homelab component."""

from abc import ABC, abstractmethod

from colimalab.logging_config import get_logger
from colimalab.models.results import StepResult
from colimalab.runner import CommandRunner

logger = get_logger(__name__)


class Step(ABC):
    """A single provisioning step.

    ``probe`` is a read-only idempotency check whose failures count as
    "absent". ``apply`` checks, acts if needed, verifies and reports named
    string outputs. Fatal command failures propagate as exceptions; nothing
    is rolled back.
    """

    name: str = "step"
    description: str = ""

    def __init__(self, runner: CommandRunner):
        self.runner = runner

    @abstractmethod
    def probe(self) -> bool:
        """Return True if the desired end state already exists."""

    @abstractmethod
    def apply(self) -> StepResult:
        """Bring the component to its desired state."""

    def teardown(self) -> None:
        """Undo the step where an inverse command exists."""
        logger.info(f"{self.name}: nothing to tear down")

    def result(self, changed: bool, **outputs: str) -> StepResult:
        return StepResult(name=self.name, outputs=outputs, changed=changed)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, runner={self.runner.label!r})"
