"""k3d cluster running inside the Colima Docker engine."""

import json

from colimalab.logging_config import get_logger
from colimalab.models.specs import ClusterSpec
from colimalab.runner import CommandRunner
from colimalab.steps.base import Step
from colimalab.steps.brew import ensure_installed

logger = get_logger(__name__)

READY_MARKER = "Ready"


def classify_nodes(output: str) -> str:
    """Derive the cluster status from ``kubectl get nodes`` output.

    Any occurrence of the marker counts, including inside ``NotReady``, so
    a cluster with a single ready node, or none fully ready, still reads as
    running.
    """
    return "running" if READY_MARKER in output else "not ready"


def listing_contains(output: str, name: str) -> bool:
    """Check ``k3d cluster list -o json`` output for a cluster name."""
    if not output:
        return False
    try:
        clusters = json.loads(output)
    except json.JSONDecodeError:
        # Older k3d releases print compact JSON without spaces
        return f'"name":"{name}"' in output

    if not isinstance(clusters, list):
        return False
    return any(isinstance(c, dict) and c.get("name") == name for c in clusters)


class K3dClusterStep(Step):
    """Ensures a named k3d cluster exists and reports node readiness."""

    name = "k3d"
    description = "Create the k3d cluster"

    def __init__(self, runner: CommandRunner, spec: ClusterSpec):
        super().__init__(runner)
        self.spec = spec

    def probe(self) -> bool:
        result = self.runner.run(["k3d", "cluster", "list", "-o", "json"], check=False)
        return result.ok and listing_contains(result.output, self.spec.name)

    def apply(self):
        spec = self.spec
        ensure_installed(self.runner, "k3d")
        ensure_installed(self.runner, "kubectl")

        changed = False
        if self.probe():
            # Port mappings are not reconciled into an existing cluster
            logger.info(f"k3d cluster '{spec.name}' already exists, skipping creation")
        else:
            logger.info(f"Creating k3d cluster '{spec.name}' with {spec.servers} server(s)")
            args = ["k3d", "cluster", "create", spec.name, "--servers", str(spec.servers)]
            for port in spec.ports:
                args.extend(["--port", port])
            self.runner.run(args)
            changed = True

        nodes = self.runner.run(["kubectl", "get", "nodes"])
        status = classify_nodes(nodes.output)
        if status != "running":
            logger.warning(f"k3d cluster '{spec.name}' has no ready nodes yet")

        return self.result(changed, name=spec.name, status=status)

    def teardown(self) -> None:
        if not self.probe():
            logger.info(f"k3d cluster '{self.spec.name}' does not exist")
            return
        logger.info(f"Deleting k3d cluster '{self.spec.name}'")
        self.runner.run(["k3d", "cluster", "delete", self.spec.name])
