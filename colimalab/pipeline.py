"""Wiring of the homelab provisioning steps."""

from colimalab.graph import StepGraph
from colimalab.models.lab import LabConfig
from colimalab.models.results import PipelineResult
from colimalab.runner import CommandRunner, LocalRunner, SSHRunner
from colimalab.steps import ColimaStep, K3dClusterStep, NFSExportStep, NFSMountStep, OllamaStep


def build_pipeline(
    config: LabConfig,
    local: CommandRunner | None = None,
    remote: CommandRunner | None = None,
) -> StepGraph:
    """Build the step graph for a homelab configuration.

    The export runs on the NAS, everything else on the workstation. k3d and
    Ollama both depend only on Colima.

    Args:
        config: Validated homelab configuration
        local: Runner for the workstation (LocalRunner by default)
        remote: Runner for the NAS (SSHRunner by default)
    """
    local = local or LocalRunner()
    remote = remote or SSHRunner(config.nas_host, config.nas_user)

    graph = StepGraph()
    export = graph.add(NFSExportStep(remote, config.export_spec()))
    mount = graph.add(NFSMountStep(local, config.mount_spec()), after=[export])
    colima = graph.add(ColimaStep(local, config.runtime_spec()), after=[mount])
    graph.add(K3dClusterStep(local, config.cluster_spec()), after=[colima])
    graph.add(OllamaStep(local, config.serving_spec()), after=[colima])
    return graph


def run_pipeline(
    config: LabConfig,
    local: CommandRunner | None = None,
    remote: CommandRunner | None = None,
) -> PipelineResult:
    """Provision the whole homelab and return the final outputs."""
    return build_pipeline(config, local, remote).run()
