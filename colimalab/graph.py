"""Explicit dependency graph of provisioning steps."""

from colimalab.exceptions import ColimaLabError, ProvisioningError, StepGraphError
from colimalab.logging_config import get_logger
from colimalab.models.results import PipelineResult, StepResult
from colimalab.steps.base import Step

logger = get_logger(__name__)


class StepGraph:
    """Directed acyclic graph of steps, executed in topological order.

    Steps run one at a time. Independent steps run in the order they were
    added.
    """

    def __init__(self):
        self._steps: dict[str, Step] = {}
        self._after: dict[str, tuple[str, ...]] = {}

    def add(self, step: Step, after: tuple[Step | str, ...] | list[Step | str] = ()) -> Step:
        """Register a step and the steps it depends on.

        Raises:
            StepGraphError: If the name is taken or a predecessor is unknown
        """
        if step.name in self._steps:
            raise StepGraphError(f"Duplicate step name: '{step.name}'")

        names = tuple(p.name if isinstance(p, Step) else p for p in after)
        for name in names:
            if name not in self._steps:
                raise StepGraphError(
                    f"Step '{step.name}' depends on unknown step '{name}'",
                    "Add predecessors to the graph before the steps that depend on them",
                )

        self._steps[step.name] = step
        self._after[step.name] = names
        return step

    def __len__(self) -> int:
        return len(self._steps)

    def __contains__(self, name: str) -> bool:
        return name in self._steps

    def step(self, name: str) -> Step:
        return self._steps[name]

    def dependencies(self, name: str) -> tuple[str, ...]:
        return self._after[name]

    def order(self) -> list[Step]:
        """Return steps in topological order, ties broken by insertion order.

        Raises:
            StepGraphError: If the graph contains a cycle
        """
        pending = {name: set(deps) for name, deps in self._after.items()}
        ordered: list[str] = []

        while pending:
            ready = [name for name, deps in pending.items() if not deps]
            if not ready:
                raise StepGraphError(
                    "Step dependencies contain a cycle",
                    f"Unresolved steps: {', '.join(sorted(pending))}",
                )
            name = ready[0]
            ordered.append(name)
            del pending[name]
            for deps in pending.values():
                deps.discard(name)

        return [self._steps[name] for name in ordered]

    def run(self) -> PipelineResult:
        """Apply every step in dependency order.

        Raises:
            ProvisioningError: On the first failing step; later steps do not run
        """
        completed: dict[str, StepResult] = {}
        for step in self.order():
            missing = [d for d in self._after[step.name] if d not in completed]
            if missing:
                raise StepGraphError(
                    f"Step '{step.name}' started before {', '.join(missing)} completed"
                )

            logger.info(f"Running step {step.name}")
            try:
                result = step.apply()
            except (ColimaLabError, OSError) as e:
                logger.error(f"Step {step.name} failed: {e}")
                raise ProvisioningError(step.name, e, completed) from e

            completed[step.name] = result
            logger.info(f"Step {step.name} finished (changed={result.changed}): {result.outputs}")

        return PipelineResult(steps=list(completed.values()))

    def probe_all(self) -> dict[str, bool]:
        """Run every read-only check in dependency order."""
        return {step.name: step.probe() for step in self.order()}

    def teardown(self) -> list[str]:
        """Tear down steps in reverse dependency order.

        Returns:
            Names of the steps torn down
        """
        done = []
        for step in reversed(self.order()):
            logger.info(f"Tearing down step {step.name}")
            step.teardown()
            done.append(step.name)
        return done
